"""
Curriculum schemas for LLMEdu.

Defines Pydantic models for the static course catalog including:
- Modules with ordered sections
- Achievement definitions and their unlock criteria
"""

from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional


# -----------------------------------------------------------------------------
# Modules and sections
# -----------------------------------------------------------------------------


class SectionDefinition(BaseModel):
    """A section of a module. The id doubles as a progress storage key."""
    id: str = Field(..., pattern=r'^[a-z0-9_]+$')
    title: str
    description: str = ""
    estimated_minutes: int = Field(default=0, ge=0)


class ModuleDefinition(BaseModel):
    id: int = Field(..., ge=1)
    title: str
    description: str = ""
    prerequisites: list[int] = []   # module IDs
    sections: list[SectionDefinition]

    @field_validator('sections')
    @classmethod
    def section_ids_unique(cls, v):
        ids = [s.id for s in v]
        if len(ids) != len(set(ids)):
            raise ValueError('section ids must be unique within a module')
        return v

    @property
    def section_ids(self) -> list[str]:
        return [s.id for s in self.sections]

    @property
    def total_minutes(self) -> int:
        return sum(s.estimated_minutes for s in self.sections)


# -----------------------------------------------------------------------------
# Achievements
# -----------------------------------------------------------------------------


class AchievementCategory(str, Enum):
    PROGRESS = "progress"
    MASTERY = "mastery"
    ENGAGEMENT = "engagement"
    MILESTONE = "milestone"
    SPECIAL = "special"


class CriteriaType(str, Enum):
    MODULE_COMPLETE = "module_complete"
    MODULE_PERFECT = "module_perfect"
    COMPLETION_PERCENTAGE = "completion_percentage"
    ALL_MODULES_COMPLETE = "all_modules_complete"
    SECTION_COMPLETE_HOUR = "section_complete_hour"
    SECTIONS_PER_DAY = "sections_per_day"
    CONSECUTIVE_DAYS = "consecutive_days"
    MODULE_COMPLETE_TIME = "module_complete_time"
    # Measured from the recorded session history
    SECTION_COMPLETE_TIME = "section_complete_time"
    SESSION_DURATION = "session_duration"
    RECOMMENDED_TIME_ALL_SECTIONS = "recommended_time_all_sections"


class AchievementCriteria(BaseModel):
    type: CriteriaType
    module_id: Optional[int] = None
    percentage: Optional[int] = Field(default=None, ge=0, le=100)
    count: Optional[int] = Field(default=None, ge=1)
    days: Optional[int] = Field(default=None, ge=1)
    min_hour: Optional[int] = Field(default=None, ge=0, le=23)
    max_hour: Optional[int] = Field(default=None, ge=0, le=24)
    min_minutes: Optional[int] = Field(default=None, ge=0)
    max_minutes: Optional[int] = Field(default=None, ge=0)


class AchievementDefinition(BaseModel):
    id: str = Field(..., pattern=r'^[a-z0-9_]+$')
    title: str
    description: str = ""
    category: AchievementCategory
    points: int = Field(default=0, ge=0)
    hidden: bool = False
    criteria: AchievementCriteria


# -----------------------------------------------------------------------------
# Curriculum (root document)
# -----------------------------------------------------------------------------


class Curriculum(BaseModel):
    """
    Complete course catalog.

    Modules are kept in ascending id order; that order defines the
    lock chain and the default traversal order.
    """
    modules: list[ModuleDefinition]
    achievements: list[AchievementDefinition] = []
    meta: dict = {}

    @model_validator(mode='after')
    def check_structure(self):
        ids = [m.id for m in self.modules]
        if len(ids) != len(set(ids)):
            raise ValueError('module ids must be unique')
        self.modules.sort(key=lambda m: m.id)

        known = set(ids)
        for module in self.modules:
            unknown = [p for p in module.prerequisites if p not in known]
            if unknown:
                raise ValueError(f'module {module.id} has unknown prerequisites: {unknown}')

        achievement_ids = [a.id for a in self.achievements]
        if len(achievement_ids) != len(set(achievement_ids)):
            raise ValueError('achievement ids must be unique')
        return self

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @property
    def module_ids(self) -> list[int]:
        return [m.id for m in self.modules]

    @property
    def achievement_ids(self) -> list[str]:
        return [a.id for a in self.achievements]

    @property
    def total_sections(self) -> int:
        return sum(len(m.sections) for m in self.modules)

    def get_module(self, module_id: int) -> Optional[ModuleDefinition]:
        for module in self.modules:
            if module.id == module_id:
                return module
        return None

    def get_section(self, module_id: int, section_id: str) -> Optional[SectionDefinition]:
        module = self.get_module(module_id)
        if not module:
            return None
        for section in module.sections:
            if section.id == section_id:
                return section
        return None

    def section_ids(self, module_id: int) -> list[str]:
        module = self.get_module(module_id)
        return module.section_ids if module else []

    def get_predecessor(self, module_id: int) -> Optional[int]:
        """Module immediately before module_id in ascending id order."""
        ids = self.module_ids
        if module_id not in ids:
            return None
        idx = ids.index(module_id)
        return ids[idx - 1] if idx > 0 else None

    def get_successor(self, module_id: int) -> Optional[int]:
        ids = self.module_ids
        if module_id not in ids:
            return None
        idx = ids.index(module_id)
        return ids[idx + 1] if idx + 1 < len(ids) else None

    def get_module_total_time(self, module_id: int) -> int:
        """Estimated minutes for a module (0 if unknown)."""
        module = self.get_module(module_id)
        return module.total_minutes if module else 0

    def get_achievement(self, achievement_id: str) -> Optional[AchievementDefinition]:
        for achievement in self.achievements:
            if achievement.id == achievement_id:
                return achievement
        return None
