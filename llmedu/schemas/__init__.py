"""
LLMEdu Schemas - Pydantic models for the LLM learning app.

This module exports all schema classes for:
- Curriculum: modules, sections, achievement definitions
- Progress: persisted learner progress, resume point, operation results
"""

# Curriculum schemas
from .curriculum import (
    SectionDefinition,
    ModuleDefinition,
    AchievementCategory,
    CriteriaType,
    AchievementCriteria,
    AchievementDefinition,
    Curriculum,
)

# Progress schemas
from .progress import (
    SCHEMA_VERSION,
    compute_percentage,
    ModuleStatus,
    ResumeStatus,
    ThemePreference,
    SectionProgress,
    SessionRecord,
    ModuleProgress,
    ProgressSnapshot,
    ResumePoint,
    ProgressErrorCode,
    OperationResult,
    WalkthroughState,
)

__all__ = [
    # Curriculum
    'SectionDefinition',
    'ModuleDefinition',
    'AchievementCategory',
    'CriteriaType',
    'AchievementCriteria',
    'AchievementDefinition',
    'Curriculum',
    # Progress
    'SCHEMA_VERSION',
    'compute_percentage',
    'ModuleStatus',
    'ResumeStatus',
    'ThemePreference',
    'SectionProgress',
    'ModuleProgress',
    'SessionRecord',
    'ProgressSnapshot',
    'ResumePoint',
    'ProgressErrorCode',
    'OperationResult',
    'WalkthroughState',
]
