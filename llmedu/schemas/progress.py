"""
Progress tracking schemas for LLMEdu.

Defines Pydantic models for learner progress including:
- Section and module completion state (persisted document)
- Derived module status (locked / in-progress / completed)
- Resume point returned to the UI
- Operation results returned by the progress subsystem
- Walkthrough and theme preference documents
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    field_validator,
    model_validator,
)


# Current persisted document version. Bump together with a migration step
# in llmedu.classroom.codec.
SCHEMA_VERSION = 2


def compute_percentage(completed: int, total: int) -> int:
    """
    Percentage 0-100 rounded half up (12.5 -> 13).

    Returns 0 when total is 0.
    """
    if total <= 0:
        return 0
    # integer arithmetic: floor(100 * completed / total + 0.5)
    return (200 * completed + total) // (2 * total)


def _as_naive_local(v: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive local time; convert aware values."""
    if v is not None and v.tzinfo is not None:
        try:
            return v.astimezone().replace(tzinfo=None)
        except OverflowError as e:
            raise ValueError(f'timestamp {v.isoformat()} out of range: {e}') from e
    return v


class ModuleStatus(str, Enum):
    LOCKED = "locked"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class ResumeStatus(str, Enum):
    NO_PROGRESS = "no-progress"
    IN_PROGRESS = "in-progress"
    ALL_COMPLETE = "all-complete"


class ThemePreference(str, Enum):
    MALE = "male"
    FEMALE = "female"
    NEUTRAL = "neutral"


# -----------------------------------------------------------------------------
# Persisted progress document
# -----------------------------------------------------------------------------


class SectionProgress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str = ""
    completed: StrictBool
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")

    @field_validator('completed_at')
    @classmethod
    def naive_timestamp(cls, v):
        return _as_naive_local(v)

    @model_validator(mode='after')
    def timestamp_only_when_completed(self):
        if self.completed_at is not None and not self.completed:
            raise ValueError(f'section {self.id} has completedAt but is not completed')
        return self


class ModuleProgress(BaseModel):
    """
    Progress for one module.

    `status` is a cache of derived state. It is recomputed from section
    completion by ProgressSnapshot.refresh_statuses() and never trusted
    as loaded.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: StrictInt
    title: str
    status: ModuleStatus = ModuleStatus.LOCKED
    sections: list[SectionProgress]
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")

    @field_validator('started_at', 'completed_at')
    @classmethod
    def naive_timestamps(cls, v):
        return _as_naive_local(v)

    @field_validator('sections')
    @classmethod
    def section_ids_unique(cls, v):
        ids = [s.id for s in v]
        if len(ids) != len(set(ids)):
            raise ValueError('duplicate section ids')
        return v

    @property
    def completed_count(self) -> int:
        return sum(1 for s in self.sections if s.completed)

    @property
    def total_count(self) -> int:
        return len(self.sections)

    @property
    def completion_percentage(self) -> int:
        return compute_percentage(self.completed_count, self.total_count)

    @property
    def all_sections_complete(self) -> bool:
        return all(s.completed for s in self.sections)

    def get_section(self, section_id: str) -> Optional[SectionProgress]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def first_incomplete_section(self) -> Optional[SectionProgress]:
        for section in self.sections:
            if not section.completed:
                return section
        return None


class SessionRecord(BaseModel):
    """One study session. An open session has no end time."""
    model_config = ConfigDict(populate_by_name=True)

    session_start: datetime = Field(..., alias="sessionStart")
    session_end: Optional[datetime] = Field(default=None, alias="sessionEnd")
    modules_visited: list[StrictInt] = Field(default=[], alias="modulesVisited")

    @field_validator('session_start', 'session_end')
    @classmethod
    def naive_timestamps(cls, v):
        return _as_naive_local(v)

    @model_validator(mode='after')
    def end_after_start(self):
        if self.session_end is not None and self.session_end < self.session_start:
            raise ValueError('sessionEnd is before sessionStart')
        return self

    @property
    def is_active(self) -> bool:
        return self.session_end is None

    @property
    def duration(self) -> Optional[timedelta]:
        """Length of an ended session (None while active)."""
        if self.session_end is None:
            return None
        return self.session_end - self.session_start

    def contains(self, moment: datetime) -> bool:
        if moment < self.session_start:
            return False
        return self.session_end is None or moment <= self.session_end


class ProgressSnapshot(BaseModel):
    """Root persisted progress document."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: StrictInt = Field(default=SCHEMA_VERSION, alias="version")
    modules: dict[int, ModuleProgress]
    current_module: Optional[StrictInt] = Field(default=None, alias="currentModule")
    current_section: Optional[str] = Field(default=None, alias="currentSection")
    achievements: list[str] = []
    session_history: list[SessionRecord] = Field(default=[], alias="sessionHistory")
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")

    @field_validator('last_updated')
    @classmethod
    def naive_timestamp(cls, v):
        return _as_naive_local(v)

    @field_validator('achievements')
    @classmethod
    def achievements_unique(cls, v):
        # set semantics, first unlock wins the position
        return list(dict.fromkeys(v))

    @field_validator('session_history')
    @classmethod
    def only_last_session_open(cls, v):
        if any(session.is_active for session in v[:-1]):
            raise ValueError('only the most recent session may be active')
        return v

    @model_validator(mode='after')
    def module_keys_match_ids(self):
        for key, module in self.modules.items():
            if key != module.id:
                raise ValueError(f'module key {key} does not match module id {module.id}')
        return self

    @property
    def active_session(self) -> Optional[SessionRecord]:
        if self.session_history and self.session_history[-1].is_active:
            return self.session_history[-1]
        return None

    # -------------------------------------------------------------------------
    # Derived status
    # -------------------------------------------------------------------------

    @property
    def module_ids(self) -> list[int]:
        return sorted(self.modules)

    def derived_statuses(self) -> dict[int, ModuleStatus]:
        """
        Compute every module's status from section completion.

        The first module is never locked. Every later module is locked
        unless the module before it (ascending id order) is completed.
        """
        statuses: dict[int, ModuleStatus] = {}
        previous: Optional[ModuleStatus] = None
        for module_id in self.module_ids:
            module = self.modules[module_id]
            if previous is not None and previous != ModuleStatus.COMPLETED:
                status = ModuleStatus.LOCKED
            elif module.all_sections_complete:
                status = ModuleStatus.COMPLETED
            else:
                status = ModuleStatus.IN_PROGRESS
            statuses[module_id] = status
            previous = status
        return statuses

    def derive_module_status(self, module_id: int) -> ModuleStatus:
        """Derived status for one module (LOCKED for unknown ids)."""
        return self.derived_statuses().get(module_id, ModuleStatus.LOCKED)

    def refresh_statuses(self) -> "ProgressSnapshot":
        """Overwrite cached module statuses with derived values."""
        for module_id, status in self.derived_statuses().items():
            self.modules[module_id].status = status
        return self

    # -------------------------------------------------------------------------
    # Counts
    # -------------------------------------------------------------------------

    @property
    def completed_sections(self) -> int:
        return sum(m.completed_count for m in self.modules.values())

    @property
    def total_sections(self) -> int:
        return sum(m.total_count for m in self.modules.values())

    @property
    def overall_progress(self) -> int:
        return compute_percentage(self.completed_sections, self.total_sections)

    @property
    def all_complete(self) -> bool:
        return self.total_sections > 0 and self.completed_sections == self.total_sections

    @property
    def is_empty(self) -> bool:
        """True if nothing has ever been recorded (fresh document)."""
        return (
            self.completed_sections == 0
            and not self.achievements
            and self.current_module is None
            and self.current_section is None
        )

    def get_section(self, module_id: int, section_id: str) -> Optional[SectionProgress]:
        module = self.modules.get(module_id)
        return module.get_section(section_id) if module else None


# -----------------------------------------------------------------------------
# Computed views
# -----------------------------------------------------------------------------


class ResumePoint(BaseModel):
    """Where a returning learner should be sent. Never persisted."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    status: ResumeStatus
    module_id: Optional[int] = Field(default=None, alias="moduleId")
    section_id: Optional[str] = Field(default=None, alias="sectionId")
    overall_progress: int = Field(default=0, ge=0, le=100, alias="overallProgress")

    # Display-only fields
    module_title: Optional[str] = Field(default=None, alias="moduleTitle")
    section_title: Optional[str] = Field(default=None, alias="sectionTitle")
    message: str = ""


class ProgressErrorCode(str, Enum):
    UNKNOWN_MODULE = "unknown_module"
    UNKNOWN_SECTION = "unknown_section"
    UNKNOWN_ACHIEVEMENT = "unknown_achievement"
    CORRUPT_DOCUMENT = "corrupt_document"
    WRITE_FAILED = "write_failed"
    REMOVE_FAILED = "remove_failed"


class OperationResult(BaseModel):
    """
    Outcome of a progress operation.

    success: the operation was accepted (in-memory state is correct)
    persisted: the resulting state reached storage
    changed: the operation modified state (False for idempotent repeats)
    """
    model_config = ConfigDict(frozen=True)

    success: bool
    persisted: bool = False
    changed: bool = False
    error: Optional[ProgressErrorCode] = None
    detail: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, persisted: bool = True, changed: bool = True) -> "OperationResult":
        return cls(success=True, persisted=persisted, changed=changed)

    @classmethod
    def failed(cls, error: ProgressErrorCode, detail: Optional[str] = None) -> "OperationResult":
        return cls(success=False, error=error, detail=detail)


# -----------------------------------------------------------------------------
# Walkthrough
# -----------------------------------------------------------------------------


class WalkthroughState(BaseModel):
    """Persisted one-time onboarding walkthrough flag."""
    completed: StrictBool
    timestamp: Optional[datetime] = None

    @field_validator('timestamp')
    @classmethod
    def naive_timestamp(cls, v):
        return _as_naive_local(v)
