"""
ProgressManager - Track learner progress in a key-value store.

Stores the whole progress document as one JSON value under
"llm_edu_progress":
- Section completion (monotonic; only a full reset clears it)
- Derived module status (recomputed on every load and mutation)
- Achievements
- Last visited location (breadcrumb)
- Study session history (start/end times, modules visited)

Storage failures never raise: the in-memory snapshot stays authoritative
for the session and results report persisted=False.

Multiple processes (or browser tabs) writing the same store are not
coordinated; the last writer wins.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from llmedu.schemas import (
    Curriculum,
    ModuleProgress,
    ModuleStatus,
    OperationResult,
    ProgressErrorCode,
    ProgressSnapshot,
    SectionProgress,
    SessionRecord,
)

from .achievements import evaluate_achievements
from .codec import (
    PROGRESS_STORAGE_KEY,
    CorruptDocumentError,
    decode,
    document_version,
    encode,
    migrate,
    parse_document,
    try_decode,
)
from .loader import load_curriculum
from .storage import PersistenceAdapter


logger = logging.getLogger(__name__)


class ProgressManager:
    """
    Business logic over the persisted progress document.

    The manager owns an in-memory cache of the decoded snapshot. It is
    loaded lazily on first access and dropped by invalidate() or reset().
    """

    def __init__(
        self,
        adapter: Optional[PersistenceAdapter] = None,
        catalog: Optional[Curriculum] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize progress manager.

        Args:
            adapter: Storage adapter (default: in-memory storage)
            catalog: Curriculum (default: packaged curriculum.yaml)
            clock: Timestamp source for completion times
        """
        self.adapter = adapter if adapter is not None else PersistenceAdapter()
        self.catalog = catalog if catalog is not None else load_curriculum()
        self.clock = clock
        self._snapshot: Optional[ProgressSnapshot] = None
        self._unsaved = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.invalidate()

    # -------------------------------------------------------------------------
    # Cache
    # -------------------------------------------------------------------------

    def _get_snapshot(self) -> ProgressSnapshot:
        if self._snapshot is None:
            raw = self.adapter.read(PROGRESS_STORAGE_KEY)
            if raw is None:
                logger.debug("No progress data found - first-time learner")
            self._snapshot = decode(raw, self.catalog)
            self._unsaved = False
        return self._snapshot

    @property
    def snapshot(self) -> ProgressSnapshot:
        """Copy of the current snapshot (mutating it has no effect)."""
        return self._get_snapshot().model_copy(deep=True)

    @property
    def has_unsaved_changes(self) -> bool:
        """True if the last write failed and memory is ahead of storage."""
        return self._unsaved

    def invalidate(self):
        """Drop the cached snapshot; the next read reloads from storage."""
        self._snapshot = None
        self._unsaved = False

    def _persist(self) -> OperationResult:
        snapshot = self._get_snapshot()
        snapshot.last_updated = self.clock()
        if self.adapter.write(PROGRESS_STORAGE_KEY, encode(snapshot)):
            self._unsaved = False
            return OperationResult.ok()

        self._unsaved = True
        logger.warning("Progress could not be saved; keeping changes in memory for this session")
        return OperationResult(
            success=True,
            persisted=False,
            changed=True,
            error=ProgressErrorCode.WRITE_FAILED,
            detail="progress kept in memory only",
        )

    def _unchanged(self) -> OperationResult:
        return OperationResult.ok(persisted=not self._unsaved, changed=False)

    # -------------------------------------------------------------------------
    # Section / Module Progress
    # -------------------------------------------------------------------------

    def mark_section_complete(self, module_id: int, section_id: str) -> OperationResult:
        """
        Mark a section as completed.

        Completing an already completed section is a successful no-op.
        Unknown module or section IDs fail without creating anything.
        """
        snapshot = self._get_snapshot()
        module = snapshot.modules.get(module_id)
        if module is None:
            logger.warning(f"Module {module_id} not found in progress data")
            return OperationResult.failed(
                ProgressErrorCode.UNKNOWN_MODULE, f"module {module_id} does not exist"
            )

        section = module.get_section(section_id)
        if section is None:
            logger.warning(f"Section {section_id} not found in module {module_id}")
            return OperationResult.failed(
                ProgressErrorCode.UNKNOWN_SECTION,
                f"section {section_id} does not exist in module {module_id}",
            )

        if section.completed:
            logger.debug(f"Section {section_id} already completed")
            return self._unchanged()

        self._complete_sections(module, [section])
        logger.info(f"Section {section_id} in module {module_id} marked as complete")
        return self._persist()

    def mark_module_complete(self, module_id: int) -> OperationResult:
        """
        Mark every incomplete section of a module as completed.

        Saves once. A module that is already complete is a successful no-op.
        """
        snapshot = self._get_snapshot()
        module = snapshot.modules.get(module_id)
        if module is None:
            logger.warning(f"Module {module_id} not found in progress data")
            return OperationResult.failed(
                ProgressErrorCode.UNKNOWN_MODULE, f"module {module_id} does not exist"
            )

        pending = [s for s in module.sections if not s.completed]
        if not pending:
            logger.debug(f"Module {module_id} already completed")
            return self._unchanged()

        self._complete_sections(module, pending)
        logger.info(f"Module {module_id}: {len(pending)} remaining sections marked as complete")
        return self._persist()

    def _complete_sections(self, module: ModuleProgress, sections: list[SectionProgress]):
        """Complete sections of one module, then refresh derived state."""
        snapshot = self._get_snapshot()
        now = self.clock()
        for section in sections:
            section.completed = True
            section.completed_at = now
        if module.started_at is None:
            module.started_at = now
        if module.all_sections_complete and module.completed_at is None:
            module.completed_at = now
            logger.info(f"Module {module.id} completed")

        snapshot.current_module = module.id
        snapshot.current_section = sections[-1].id
        self._visit(module.id)
        snapshot.refresh_statuses()
        self._award_achievements()

    def _award_achievements(self):
        snapshot = self._get_snapshot()
        for achievement_id in evaluate_achievements(snapshot, self.catalog):
            snapshot.achievements.append(achievement_id)
            logger.info(f"Achievement unlocked: {achievement_id}")

    def _visit(self, module_id: int):
        """Add a module to the active session's visit list."""
        session = self._get_snapshot().active_session
        if session is not None and module_id not in session.modules_visited:
            session.modules_visited.append(module_id)

    def is_section_complete(self, module_id: int, section_id: str) -> bool:
        """Check if a section is completed (False for unknown IDs)."""
        section = self._get_snapshot().get_section(module_id, section_id)
        return section.completed if section else False

    def get_module_progress(self, module_id: int) -> Optional[ModuleProgress]:
        """Copy of one module's progress, or None for unknown IDs."""
        module = self._get_snapshot().modules.get(module_id)
        return module.model_copy(deep=True) if module else None

    def get_module_status(self, module_id: int) -> ModuleStatus:
        """
        Derived status for a module.

        The first module is never locked; any other module is locked until
        the module before it is completed. Unknown modules report LOCKED.
        """
        snapshot = self._get_snapshot()
        if module_id not in snapshot.modules:
            logger.warning(f"Module {module_id} not found")
            return ModuleStatus.LOCKED
        return snapshot.derive_module_status(module_id)

    def is_module_unlocked(self, module_id: int) -> bool:
        return self.get_module_status(module_id) != ModuleStatus.LOCKED

    def is_module_complete(self, module_id: int) -> bool:
        return self.get_module_status(module_id) == ModuleStatus.COMPLETED

    def calculate_progress_percentage(self, module_id: Optional[int] = None) -> int:
        """
        Completion percentage (0-100).

        Args:
            module_id: Module to measure, or None for the whole course
        """
        snapshot = self._get_snapshot()
        if module_id is None:
            return snapshot.overall_progress

        module = snapshot.modules.get(module_id)
        if module is None:
            logger.warning(f"Module {module_id} not found")
            return 0
        return module.completion_percentage

    def get_next_module(self, module_id: int) -> Optional[int]:
        """ID of the module after module_id if it is unlocked."""
        next_id = self.catalog.get_successor(module_id)
        if next_id is None or self.get_module_status(next_id) == ModuleStatus.LOCKED:
            return None
        return next_id

    def has_started_learning(self) -> bool:
        """True once any section has been completed."""
        return self._get_snapshot().completed_sections > 0

    # -------------------------------------------------------------------------
    # Achievements
    # -------------------------------------------------------------------------

    def unlock_achievement(self, achievement_id: str) -> OperationResult:
        """Unlock an achievement. Unlocking twice is a successful no-op."""
        if self.catalog.get_achievement(achievement_id) is None:
            logger.warning(f"Achievement {achievement_id} not found in curriculum")
            return OperationResult.failed(
                ProgressErrorCode.UNKNOWN_ACHIEVEMENT,
                f"achievement {achievement_id} does not exist",
            )

        snapshot = self._get_snapshot()
        if achievement_id in snapshot.achievements:
            logger.debug(f"Achievement {achievement_id} already unlocked")
            return self._unchanged()

        snapshot.achievements.append(achievement_id)
        logger.info(f"Achievement unlocked: {achievement_id}")
        return self._persist()

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self._get_snapshot().achievements

    def get_achievements(self) -> list[str]:
        return list(self._get_snapshot().achievements)

    # -------------------------------------------------------------------------
    # Location
    # -------------------------------------------------------------------------

    def record_session(self, module_id: int, section_id: Optional[str] = None) -> OperationResult:
        """Update the last visited location. Never touches completion."""
        snapshot = self._get_snapshot()
        module = snapshot.modules.get(module_id)
        if module is None:
            logger.warning(f"Cannot record visit to unknown module {module_id}")
            return OperationResult.failed(
                ProgressErrorCode.UNKNOWN_MODULE, f"module {module_id} does not exist"
            )
        if section_id is not None and module.get_section(section_id) is None:
            logger.warning(f"Cannot record visit to unknown section {section_id} in module {module_id}")
            return OperationResult.failed(
                ProgressErrorCode.UNKNOWN_SECTION,
                f"section {section_id} does not exist in module {module_id}",
            )

        session = snapshot.active_session
        new_visit = session is not None and module_id not in session.modules_visited
        if (snapshot.current_module == module_id and snapshot.current_section == section_id
                and not new_visit):
            return self._unchanged()

        snapshot.current_module = module_id
        snapshot.current_section = section_id
        self._visit(module_id)
        return self._persist()

    def get_last_visited_location(self) -> tuple[int, Optional[str]]:
        """Breadcrumb as (module_id, section_id); defaults to the first module."""
        snapshot = self._get_snapshot()
        module_id = snapshot.current_module or self.catalog.module_ids[0]
        return (module_id, snapshot.current_section)

    # -------------------------------------------------------------------------
    # Study Sessions
    # -------------------------------------------------------------------------

    def start_session(self) -> OperationResult:
        """
        Open a study session.

        Starting while a session is already open is a no-op (logged); end
        the open session first.
        """
        snapshot = self._get_snapshot()
        if snapshot.active_session is not None:
            logger.warning("Active session already exists. End it before starting a new one.")
            return self._unchanged()

        now = self.clock()
        visited = [snapshot.current_module] if snapshot.current_module is not None else []
        snapshot.session_history.append(SessionRecord(session_start=now, modules_visited=visited))
        logger.info(f"New session started at {now.isoformat()}")
        return self._persist()

    def end_session(self) -> OperationResult:
        """Close the open study session and evaluate session achievements."""
        snapshot = self._get_snapshot()
        session = snapshot.active_session
        if session is None:
            logger.warning("No active session to end")
            return self._unchanged()

        now = self.clock()
        session.session_end = max(now, session.session_start)
        self._award_achievements()
        logger.info(f"Session ended at {now.isoformat()} after {session.duration}")
        return self._persist()

    def has_active_session(self) -> bool:
        return self._get_snapshot().active_session is not None

    def get_session_history(self) -> list[SessionRecord]:
        """Copies of all recorded sessions, oldest first."""
        return [s.model_copy(deep=True) for s in self._get_snapshot().session_history]

    # -------------------------------------------------------------------------
    # Migration / Reset
    # -------------------------------------------------------------------------

    def migrate_progress_data(self) -> OperationResult:
        """Upgrade the stored document to the current schema version."""
        raw = self.adapter.read(PROGRESS_STORAGE_KEY)
        if raw is None:
            return OperationResult.ok(persisted=True, changed=False)

        try:
            document = parse_document(raw)
            old_version = document_version(document)
            new_version = document_version(migrate(document))
        except CorruptDocumentError as e:
            logger.warning(f"Migration failed: {e}")
            return OperationResult.failed(ProgressErrorCode.CORRUPT_DOCUMENT, str(e))

        if old_version == new_version:
            return OperationResult.ok(persisted=True, changed=False)

        snapshot = try_decode(raw, self.catalog)
        if snapshot is None:
            return OperationResult.failed(
                ProgressErrorCode.CORRUPT_DOCUMENT,
                f"version {old_version} document failed validation after migration",
            )

        logger.info(f"Migrating progress data from v{old_version} to v{new_version}")
        self._snapshot = snapshot
        return self._persist()

    def reset(self) -> OperationResult:
        """Remove all stored progress and drop the in-memory cache."""
        removed = self.adapter.remove(PROGRESS_STORAGE_KEY)
        self.invalidate()
        if not removed:
            return OperationResult.failed(
                ProgressErrorCode.REMOVE_FAILED, "stored progress could not be removed"
            )
        logger.info("Progress reset")
        return OperationResult.ok()

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def get_completion_stats(self) -> dict:
        """
        Get completion statistics.

        Returns:
            Dictionary with section counts, percentages and per-module status
        """
        snapshot = self._get_snapshot()
        statuses = snapshot.derived_statuses()
        return {
            "total_sections": snapshot.total_sections,
            "completed": snapshot.completed_sections,
            "not_started": snapshot.total_sections - snapshot.completed_sections,
            "completion_percent": snapshot.overall_progress,
            "modules": {
                module_id: {
                    "status": statuses[module_id].value,
                    "completed": module.completed_count,
                    "total": module.total_count,
                    "completion_percent": module.completion_percentage,
                }
                for module_id, module in sorted(snapshot.modules.items())
            },
            "achievements": len(snapshot.achievements),
        }
