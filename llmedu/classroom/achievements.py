"""
Achievement criteria evaluation.

Checks criteria against a snapshot:
- Progress criteria use section and module completion
- Time-of-day and streak criteria use completion timestamps
- Session criteria use the recorded session history

Time spent on a section is measured inside the session it was completed
in: from the previous completion in that session (or the session start)
up to the section's own completion. Sections completed outside any
recorded session have no measured time.
"""

from collections import Counter
from datetime import date, datetime, timedelta
from typing import Callable

from llmedu.schemas import (
    AchievementCriteria,
    Curriculum,
    CriteriaType,
    ModuleStatus,
    ProgressSnapshot,
)


def _completion_dates(snapshot: ProgressSnapshot) -> list[date]:
    return [
        section.completed_at.date()
        for module in snapshot.modules.values()
        for section in module.sections
        if section.completed_at is not None
    ]


def longest_streak(days: list[date]) -> int:
    """Length of the longest run of consecutive calendar days."""
    unique = sorted(set(days))
    best = run = 0
    previous = None
    for day in unique:
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        best = max(best, run)
        previous = day
    return best


def section_durations(snapshot: ProgressSnapshot) -> dict[tuple[int, str], timedelta]:
    """
    Measured time per completed section, keyed by (module_id, section_id).

    Only sections completed inside a recorded session appear.
    """
    completions: list[tuple[datetime, int, str]] = sorted(
        (section.completed_at, module.id, section.id)
        for module in snapshot.modules.values()
        for section in module.sections
        if section.completed_at is not None
    )

    durations = {}
    for session in snapshot.session_history:
        started = session.session_start
        for completed_at, module_id, section_id in completions:
            if not session.contains(completed_at):
                continue
            durations[(module_id, section_id)] = completed_at - started
            started = completed_at
    return durations


# -----------------------------------------------------------------------------
# Criteria checks
# -----------------------------------------------------------------------------

def _module_complete(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    return snapshot.derive_module_status(criteria.module_id) == ModuleStatus.COMPLETED


def _module_perfect(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    module = snapshot.modules.get(criteria.module_id)
    return bool(module and module.total_count and module.all_sections_complete)


def _completion_percentage(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    return snapshot.overall_progress >= (criteria.percentage or 0)


def _all_modules_complete(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    return snapshot.all_complete


def _section_complete_hour(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    for module in snapshot.modules.values():
        for section in module.sections:
            if section.completed_at is None:
                continue
            hour = section.completed_at.hour
            if criteria.max_hour is not None and hour >= criteria.max_hour:
                continue
            if criteria.min_hour is not None and hour < criteria.min_hour:
                continue
            return True
    return False


def _sections_per_day(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    per_day = Counter(_completion_dates(snapshot))
    return bool(per_day) and max(per_day.values()) >= (criteria.count or 1)


def _consecutive_days(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    return longest_streak(_completion_dates(snapshot)) >= (criteria.days or 1)


def _module_complete_time(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    if criteria.max_minutes is None:
        return False
    limit = timedelta(minutes=criteria.max_minutes)
    return any(
        module.started_at is not None
        and module.completed_at is not None
        and module.completed_at - module.started_at < limit
        for module in snapshot.modules.values()
    )


def _section_complete_time(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    if criteria.max_minutes is None:
        return False
    limit = timedelta(minutes=criteria.max_minutes)
    return any(spent < limit for spent in section_durations(snapshot).values())


def _session_duration(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    # only ended sessions count
    minimum = timedelta(minutes=criteria.min_minutes or 0)
    return any(
        session.duration is not None and session.duration >= minimum
        for session in snapshot.session_history
    )


def _recommended_time_all_sections(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    if not snapshot.all_complete:
        return False
    durations = section_durations(snapshot)
    for module in catalog.modules:
        for section in module.sections:
            spent = durations.get((module.id, section.id))
            if spent is None or spent < timedelta(minutes=section.estimated_minutes):
                return False
    return True


CriteriaCheck = Callable[[ProgressSnapshot, AchievementCriteria, Curriculum], bool]

CRITERIA_CHECKS: dict[CriteriaType, CriteriaCheck] = {
    CriteriaType.MODULE_COMPLETE: _module_complete,
    CriteriaType.MODULE_PERFECT: _module_perfect,
    CriteriaType.COMPLETION_PERCENTAGE: _completion_percentage,
    CriteriaType.ALL_MODULES_COMPLETE: _all_modules_complete,
    CriteriaType.SECTION_COMPLETE_HOUR: _section_complete_hour,
    CriteriaType.SECTIONS_PER_DAY: _sections_per_day,
    CriteriaType.CONSECUTIVE_DAYS: _consecutive_days,
    CriteriaType.MODULE_COMPLETE_TIME: _module_complete_time,
    CriteriaType.SECTION_COMPLETE_TIME: _section_complete_time,
    CriteriaType.SESSION_DURATION: _session_duration,
    CriteriaType.RECOMMENDED_TIME_ALL_SECTIONS: _recommended_time_all_sections,
}


def criteria_met(snapshot: ProgressSnapshot, criteria: AchievementCriteria, catalog: Curriculum) -> bool:
    """Check one criteria block. Unsupported criteria types are never met."""
    check = CRITERIA_CHECKS.get(criteria.type)
    return check(snapshot, criteria, catalog) if check else False


def evaluate_achievements(snapshot: ProgressSnapshot, catalog: Curriculum) -> list[str]:
    """IDs of achievements newly earned by snapshot, in catalog order."""
    unlocked = set(snapshot.achievements)
    return [
        achievement.id
        for achievement in catalog.achievements
        if achievement.id not in unlocked and criteria_met(snapshot, achievement.criteria, catalog)
    ]
