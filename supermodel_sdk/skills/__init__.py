"""Skill selection and system-instruction assembly."""

from .catalog import SkillCatalog
from .instructions import build_system_instruction
from .resolver import ResolutionSource, ResolvedSkills, SkillResolver

__all__ = [
    "SkillCatalog",
    "SkillResolver",
    "ResolvedSkills",
    "ResolutionSource",
    "build_system_instruction",
]
