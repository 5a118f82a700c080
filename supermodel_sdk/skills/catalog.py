from typing import Dict, Iterable, Iterator, List, Optional

from ..config.constants import GENERAL_SKILL_ID
from ..models.skill import Skill, SkillSummary


class SkillCatalog:
    """Ordered collection of the skills a user can pick from."""

    def __init__(self, skills: Optional[Iterable[Skill]] = None):
        self._skills: Dict[str, Skill] = {}
        for skill in skills or []:
            self.add(skill)

    def add(self, skill: Skill) -> None:
        self._skills[skill.id] = skill

    def get(self, skill_id: Optional[str]) -> Optional[Skill]:
        if skill_id is None:
            return None
        return self._skills.get(skill_id)

    def __contains__(self, skill_id: object) -> bool:
        return skill_id in self._skills

    def __iter__(self) -> Iterator[Skill]:
        return iter(self._skills.values())

    def __len__(self) -> int:
        return len(self._skills)

    def summaries(self) -> List[SkillSummary]:
        """Router view of every skill, in catalog order."""
        return [skill.summary() for skill in self._skills.values()]

    def active(self) -> List[Skill]:
        """Skills currently switched on, in catalog order."""
        return [skill for skill in self._skills.values() if skill.is_active]

    def general(self) -> Optional[Skill]:
        return self._skills.get(GENERAL_SKILL_ID)
