"""
Navigator - Resume point, module gating, and section navigation.

Provides:
- Resume point for returning learners
- Module availability (locked / in progress / completed)
- Next/previous section navigation within a module
- Course tree with status indicators
- Progress reset for the settings screen
"""

import logging
from dataclasses import dataclass
from typing import Optional

from llmedu.schemas import (
    ModuleStatus,
    OperationResult,
    ProgressSnapshot,
    ResumePoint,
    ResumeStatus,
    SectionDefinition,
    compute_percentage,
)

from .progress import ProgressManager


logger = logging.getLogger(__name__)


@dataclass
class NavigationSection:
    """Section with navigation metadata."""
    section: SectionDefinition
    completed: bool
    is_current: bool


@dataclass
class NavigationModule:
    """Module with sections and navigation metadata."""
    module_id: int
    title: str
    status: ModuleStatus
    sections: list[NavigationSection]
    completed_count: int
    total_count: int
    estimated_minutes: int = 0
    unlocked_by: Optional[int] = None   # module that must be completed first

    @property
    def completion_percent(self) -> int:
        return compute_percentage(self.completed_count, self.total_count)


class Navigator:
    """
    Navigate through the course with module gating.

    Combines the curriculum (content order) with ProgressManager
    (learner state). Read-only except for reset().
    """

    def __init__(self, progress: ProgressManager):
        """
        Initialize navigator.

        Args:
            progress: ProgressManager instance for learner progress
        """
        self.progress = progress
        self.catalog = progress.catalog

    # -------------------------------------------------------------------------
    # Resume Point
    # -------------------------------------------------------------------------

    def get_resume_point(self) -> ResumePoint:
        """
        Compute where a returning learner should continue.

        Order:
        1. Nothing recorded yet: start of the first module
        2. Every section complete: all-complete
        3. First incomplete section (stored order) of the first unlocked
           module, scanning modules by ascending ID
        4. Breadcrumb, then first module (inconsistent data only)
        """
        snapshot = self.progress.snapshot
        first_module_id = self.catalog.module_ids[0]

        if snapshot.is_empty:
            return self._no_progress(first_module_id)

        overall = snapshot.overall_progress
        if snapshot.all_complete:
            return ResumePoint(
                status=ResumeStatus.ALL_COMPLETE,
                overall_progress=100,
                message="Congratulations! You have completed all modules",
            )

        statuses = snapshot.derived_statuses()
        for module_id in snapshot.module_ids:
            if statuses[module_id] == ModuleStatus.LOCKED:
                continue
            module = snapshot.modules[module_id]
            section = module.first_incomplete_section()
            if section is not None:
                return ResumePoint(
                    status=ResumeStatus.IN_PROGRESS,
                    module_id=module_id,
                    section_id=section.id,
                    overall_progress=overall,
                    module_title=module.title,
                    section_title=self._section_title(module_id, section.id),
                    message=f"Continue with {module.title}",
                )

        return self._fallback(snapshot, overall)

    def _no_progress(self, module_id: int) -> ResumePoint:
        module = self.catalog.get_module(module_id)
        return ResumePoint(
            status=ResumeStatus.NO_PROGRESS,
            module_id=module_id,
            section_id=None,
            overall_progress=0,
            module_title=module.title if module else None,
            message=f"Start your learning journey with {module.title if module else 'Module 1'}",
        )

    def _fallback(self, snapshot: ProgressSnapshot, overall: int) -> ResumePoint:
        """Resume from the breadcrumb when no unlocked section is left."""
        logger.warning(
            "Progress data is inconsistent: no incomplete section in any unlocked module "
            f"at {overall}% overall; falling back to last visited location"
        )
        module_id = snapshot.current_module
        section_id = snapshot.current_section
        if module_id is None or module_id not in snapshot.modules:
            module_id = self.catalog.module_ids[0]
            section_id = None
        elif section_id is not None and snapshot.get_section(module_id, section_id) is None:
            section_id = None

        module = self.catalog.get_module(module_id)
        return ResumePoint(
            status=ResumeStatus.IN_PROGRESS,
            module_id=module_id,
            section_id=section_id,
            overall_progress=overall,
            module_title=module.title if module else None,
            section_title=self._section_title(module_id, section_id) if section_id else None,
            message="Resume your learning",
        )

    def _section_title(self, module_id: int, section_id: str) -> Optional[str]:
        section = self.catalog.get_section(module_id, section_id)
        return section.title if section else None

    # -------------------------------------------------------------------------
    # Section Navigation
    # -------------------------------------------------------------------------

    def get_next_section_id(self, module_id: int, section_id: str) -> Optional[str]:
        """ID of the section after section_id in the same module."""
        ids = self.catalog.section_ids(module_id)
        if section_id not in ids:
            return None
        idx = ids.index(section_id)
        return ids[idx + 1] if idx + 1 < len(ids) else None

    def get_previous_section_id(self, module_id: int, section_id: str) -> Optional[str]:
        """ID of the section before section_id in the same module."""
        ids = self.catalog.section_ids(module_id)
        if section_id not in ids:
            return None
        idx = ids.index(section_id)
        return ids[idx - 1] if idx > 0 else None

    def get_first_incomplete_section_id(self, module_id: int) -> Optional[str]:
        """First section of a module not yet completed (None if all done)."""
        module = self.progress.get_module_progress(module_id)
        if module is None:
            return None
        section = module.first_incomplete_section()
        return section.id if section else None

    def get_section_position(self, module_id: int, section_id: str) -> tuple[int, int]:
        """
        Get section position as (current, total).

        Returns (0, total) if section not found.
        """
        ids = self.catalog.section_ids(module_id)
        if section_id not in ids:
            return (0, len(ids))
        return (ids.index(section_id) + 1, len(ids))

    # -------------------------------------------------------------------------
    # Course Tree
    # -------------------------------------------------------------------------

    def get_navigation_tree(self) -> list[NavigationModule]:
        """
        Get full course tree with navigation metadata.

        Returns list of modules with sections, each annotated with:
        - Derived module status
        - Section completion
        - Whether the section is the last visited one
        - Estimated minutes and the module that unlocks it
        """
        snapshot = self.progress.snapshot
        statuses = snapshot.derived_statuses()

        tree = []
        for module_def in self.catalog.modules:
            module = snapshot.modules[module_def.id]
            nav_sections = []
            for section_def in module_def.sections:
                section = module.get_section(section_def.id)
                nav_sections.append(NavigationSection(
                    section=section_def,
                    completed=bool(section and section.completed),
                    is_current=(
                        snapshot.current_module == module_def.id
                        and snapshot.current_section == section_def.id
                    ),
                ))

            tree.append(NavigationModule(
                module_id=module_def.id,
                title=module_def.title,
                status=statuses[module_def.id],
                sections=nav_sections,
                completed_count=module.completed_count,
                total_count=module.total_count,
                estimated_minutes=self.catalog.get_module_total_time(module_def.id),
                unlocked_by=self.catalog.get_predecessor(module_def.id),
            ))

        return tree

    def get_status_indicator(self, module_id: int, section_id: Optional[str] = None) -> str:
        """
        Get status indicator for sidebar display.

        Returns:
            ✓ for completed
            → for current (last visited, not completed)
            ○ for available
            ◌ for locked
        """
        status = self.progress.get_module_status(module_id)
        if status == ModuleStatus.LOCKED:
            return "◌"

        if section_id is None:
            if status == ModuleStatus.COMPLETED:
                return "✓"
            current_module, _ = self.progress.get_last_visited_location()
            return "→" if current_module == module_id else "○"

        if self.progress.is_section_complete(module_id, section_id):
            return "✓"
        current_module, current_section = self.progress.get_last_visited_location()
        if (current_module, current_section) == (module_id, section_id):
            return "→"
        return "○"

    # -------------------------------------------------------------------------
    # Progress Summary
    # -------------------------------------------------------------------------

    def get_progress_summary(self) -> dict:
        """Get progress summary for display."""
        stats = self.progress.get_completion_stats()
        resume = self.get_resume_point()
        return {
            **stats,
            "resume_status": resume.status.value,
            "resume_module_id": resume.module_id,
            "resume_section_id": resume.section_id,
        }


def get_resume_point(progress: ProgressManager) -> ResumePoint:
    """Resume point for the learner tracked by progress."""
    return Navigator(progress).get_resume_point()


def reset_progress(progress: ProgressManager) -> OperationResult:
    """
    Remove all stored progress.

    The caller handles confirmation and re-rendering; afterwards the resume
    point is the same as for a first-time learner.
    """
    result = progress.reset()
    if not result:
        logger.error(f"Failed to clear progress data: {result.detail}")
    return result


def get_module_route(module_id: Optional[int], section_id: Optional[str] = None) -> str:
    """URL path for a module (the course overview when module_id is None)."""
    if not module_id:
        return "/learn"
    if section_id:
        return f"/module/{module_id}#{section_id}"
    return f"/module/{module_id}"
