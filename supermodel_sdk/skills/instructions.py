from ..config.constants import PLATFORM_PREAMBLE
from ..models.skill import Skill


def build_system_instruction(skill: Skill) -> str:
    """
    Effective system instruction for a skill.

    Platform preamble, then the skill's system instructions, then its prompt
    template, space-joined in that order. Missing parts count as empty
    strings; no templating is applied.
    """
    return " ".join([
        PLATFORM_PREAMBLE.format(name=skill.name),
        skill.system_instructions or "",
        skill.prompt_template or "",
    ])
