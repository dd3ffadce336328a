"""
LLMEdu Classroom - Runtime components for tracking and resuming progress.

This module provides:
- CurriculumLoader: Load the course catalog
- PersistenceAdapter: Failure-tolerant key-value storage
- ProgressManager: Track section/module completion and achievements
- Navigator: Resume point, module gating and navigation
- WalkthroughTracker / ThemePreferenceStore: small persisted flags
"""

from .loader import (
    CurriculumLoader,
    CurriculumError,
    load_curriculum,
)

from .storage import (
    KeyValueBackend,
    MemoryBackend,
    SQLiteBackend,
    PersistenceAdapter,
    StorageError,
    StorageQuotaExceeded,
    StorageDisabled,
    DEFAULT_STORAGE_DB,
)

from .codec import (
    PROGRESS_STORAGE_KEY,
    CorruptDocumentError,
    MigrationError,
    empty_snapshot,
    encode,
    decode,
    try_decode,
    migrate,
)

from .achievements import (
    evaluate_achievements,
    criteria_met,
)

from .progress import ProgressManager

from .navigator import (
    Navigator,
    NavigationModule,
    NavigationSection,
    get_resume_point,
    reset_progress,
    get_module_route,
)

from .walkthrough import (
    WalkthroughTracker,
    WALKTHROUGH_STORAGE_KEY,
)

from .preferences import (
    ThemePreferenceStore,
    THEME_STORAGE_KEY,
)

__all__ = [
    # Loader
    "CurriculumLoader",
    "CurriculumError",
    "load_curriculum",
    # Storage
    "KeyValueBackend",
    "MemoryBackend",
    "SQLiteBackend",
    "PersistenceAdapter",
    "StorageError",
    "StorageQuotaExceeded",
    "StorageDisabled",
    "DEFAULT_STORAGE_DB",
    # Codec
    "PROGRESS_STORAGE_KEY",
    "CorruptDocumentError",
    "MigrationError",
    "empty_snapshot",
    "encode",
    "decode",
    "try_decode",
    "migrate",
    # Achievements
    "evaluate_achievements",
    "criteria_met",
    # Progress
    "ProgressManager",
    # Navigator
    "Navigator",
    "NavigationModule",
    "NavigationSection",
    "get_resume_point",
    "reset_progress",
    "get_module_route",
    # Walkthrough / preferences
    "WalkthroughTracker",
    "WALKTHROUGH_STORAGE_KEY",
    "ThemePreferenceStore",
    "THEME_STORAGE_KEY",
]
