"""
Tests for ProgressManager: completion, gating, achievements, persistence.
"""

import json
from datetime import datetime, timedelta

import pytest

from llmedu.classroom import (
    MemoryBackend,
    PersistenceAdapter,
    PROGRESS_STORAGE_KEY,
    ProgressManager,
)
from llmedu.schemas import ModuleStatus, ProgressErrorCode

from conftest import FakeClock, complete_sections


class TestMarkSectionComplete:
    """Test section completion."""

    def test_marks_and_persists(self, progress, backend):
        result = progress.mark_section_complete(1, "intro_what_are_llms")

        assert result.success and result.persisted and result.changed
        assert progress.is_section_complete(1, "intro_what_are_llms")
        stored = json.loads(backend.items[PROGRESS_STORAGE_KEY])
        assert stored["modules"]["1"]["sections"][0]["completed"] is True

    def test_sets_timestamps_and_breadcrumb(self, progress, clock):
        progress.mark_section_complete(1, "intro_brief_history")
        snapshot = progress.snapshot

        section = snapshot.get_section(1, "intro_brief_history")
        assert section.completed_at == clock.now
        assert snapshot.modules[1].started_at == clock.now
        assert snapshot.modules[1].completed_at is None
        assert snapshot.current_module == 1
        assert snapshot.current_section == "intro_brief_history"
        assert snapshot.last_updated == clock.now

    def test_idempotent(self, progress, clock, backend):
        progress.mark_section_complete(1, "intro_what_are_llms")
        first = progress.snapshot
        stored = backend.items[PROGRESS_STORAGE_KEY]

        clock.advance(hours=1)
        result = progress.mark_section_complete(1, "intro_what_are_llms")

        assert result.success
        assert not result.changed
        assert progress.snapshot == first
        assert backend.items[PROGRESS_STORAGE_KEY] == stored

    def test_unknown_module(self, progress, backend):
        result = progress.mark_section_complete(9, "intro_what_are_llms")
        assert not result
        assert result.error == ProgressErrorCode.UNKNOWN_MODULE
        assert 9 not in progress.snapshot.modules
        assert PROGRESS_STORAGE_KEY not in backend.items

    def test_unknown_section(self, progress, backend):
        result = progress.mark_section_complete(1, "no_such_section")
        assert not result
        assert result.error == ProgressErrorCode.UNKNOWN_SECTION
        assert progress.snapshot.modules[1].get_section("no_such_section") is None
        assert PROGRESS_STORAGE_KEY not in backend.items

    def test_section_from_other_module(self, progress):
        result = progress.mark_section_complete(2, "intro_what_are_llms")
        assert result.error == ProgressErrorCode.UNKNOWN_SECTION

    def test_completion_is_monotonic(self, progress, catalog):
        seen = 0
        for module_id in catalog.module_ids:
            for section_id in catalog.section_ids(module_id):
                progress.mark_section_complete(module_id, section_id)
                progress.mark_section_complete(module_id, section_id)
                percent = progress.calculate_progress_percentage()
                assert percent >= seen
                seen = percent
        assert seen == 100

    def test_module_completion_timestamp(self, progress, clock):
        complete_sections(progress, 1, 4)
        clock.advance(minutes=20)
        progress.mark_section_complete(1, "intro_basic_capabilities")
        module = progress.get_module_progress(1)
        assert module.completed_at == clock.now
        assert module.status == ModuleStatus.COMPLETED

    def test_locked_module_section_recorded_but_stays_locked(self, progress):
        result = progress.mark_section_complete(3, "overview_architecture_overview")
        assert result.success
        assert progress.is_section_complete(3, "overview_architecture_overview")
        assert progress.get_module_status(3) == ModuleStatus.LOCKED


class CountingBackend(MemoryBackend):
    """MemoryBackend that counts writes."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.writes = 0

    def set_item(self, key, value):
        super().set_item(key, value)
        if key == PROGRESS_STORAGE_KEY:
            self.writes += 1


class TestMarkModuleComplete:
    """Test completing a whole module at once."""

    def test_completes_module_and_unlocks_next(self, catalog, clock):
        backend = CountingBackend()
        progress = ProgressManager(PersistenceAdapter(backend), catalog, clock=clock)

        result = progress.mark_module_complete(1)

        assert result.success and result.persisted and result.changed
        assert backend.writes == 1
        assert progress.is_module_complete(1)
        assert progress.get_module_status(2) == ModuleStatus.IN_PROGRESS
        assert progress.get_last_visited_location() == (1, "intro_basic_capabilities")
        assert progress.has_achievement("first_steps")
        module = progress.snapshot.modules[1]
        assert module.started_at == clock.now
        assert module.completed_at == clock.now

    def test_keeps_earlier_timestamps(self, progress, clock):
        progress.mark_section_complete(1, "intro_what_are_llms")
        first = clock.now
        clock.advance(minutes=20)
        progress.mark_module_complete(1)

        module = progress.snapshot.modules[1]
        assert module.sections[0].completed_at == first
        assert module.sections[1].completed_at == clock.now
        assert module.started_at == first

    def test_idempotent(self, progress, backend, clock):
        progress.mark_module_complete(1)
        stored = backend.items[PROGRESS_STORAGE_KEY]

        clock.advance(hours=1)
        result = progress.mark_module_complete(1)

        assert result.success
        assert not result.changed
        assert backend.items[PROGRESS_STORAGE_KEY] == stored

    def test_unknown_module(self, progress, backend):
        result = progress.mark_module_complete(9)
        assert not result
        assert result.error == ProgressErrorCode.UNKNOWN_MODULE
        assert PROGRESS_STORAGE_KEY not in backend.items

    def test_write_failure(self, catalog):
        progress = ProgressManager(PersistenceAdapter(MemoryBackend(disabled=True)), catalog)
        result = progress.mark_module_complete(1)
        assert result.success
        assert not result.persisted
        assert result.error == ProgressErrorCode.WRITE_FAILED
        assert progress.is_module_complete(1)


class TestWriteFailures:
    """Storage failures keep the session going in memory."""

    def test_quota_exceeded(self, catalog, clock):
        backend = MemoryBackend(quota_bytes=100)
        progress = ProgressManager(PersistenceAdapter(backend), catalog, clock=clock)

        result = progress.mark_section_complete(1, "intro_what_are_llms")

        assert result.success
        assert not result.persisted
        assert result.error == ProgressErrorCode.WRITE_FAILED
        assert progress.is_section_complete(1, "intro_what_are_llms")
        assert progress.has_unsaved_changes
        assert PROGRESS_STORAGE_KEY not in backend.items

    def test_disabled_storage(self, catalog):
        progress = ProgressManager(PersistenceAdapter(MemoryBackend(disabled=True)), catalog)

        assert progress.calculate_progress_percentage() == 0
        result = progress.mark_section_complete(1, "intro_what_are_llms")
        assert result.success and not result.persisted
        assert progress.calculate_progress_percentage() == 4

    def test_repeat_after_failed_write_reports_unpersisted(self, catalog):
        progress = ProgressManager(PersistenceAdapter(MemoryBackend(disabled=True)), catalog)
        progress.mark_section_complete(1, "intro_what_are_llms")
        result = progress.mark_section_complete(1, "intro_what_are_llms")
        assert result.success
        assert not result.changed
        assert not result.persisted

    def test_recovers_when_storage_returns(self, catalog, clock):
        backend = MemoryBackend(disabled=True)
        progress = ProgressManager(PersistenceAdapter(backend), catalog, clock=clock)
        progress.mark_section_complete(1, "intro_what_are_llms")

        backend.disabled = False
        result = progress.mark_section_complete(1, "intro_brief_history")

        assert result.persisted
        assert not progress.has_unsaved_changes
        stored = json.loads(backend.items[PROGRESS_STORAGE_KEY])
        flags = [s["completed"] for s in stored["modules"]["1"]["sections"]]
        assert flags == [True, True, False, False, False]


class TestQueries:
    """Test read-only progress queries."""

    def test_fresh_learner(self, progress):
        assert not progress.has_started_learning()
        assert progress.calculate_progress_percentage() == 0
        assert progress.get_module_status(1) == ModuleStatus.IN_PROGRESS
        assert progress.get_module_status(2) == ModuleStatus.LOCKED
        assert progress.is_module_unlocked(1)
        assert not progress.is_module_unlocked(2)

    def test_unknown_ids(self, progress):
        assert progress.get_module_status(42) == ModuleStatus.LOCKED
        assert progress.get_module_progress(42) is None
        assert progress.calculate_progress_percentage(42) == 0
        assert not progress.is_section_complete(42, "anything")

    def test_module_percentage(self, progress):
        complete_sections(progress, 1, 2)
        assert progress.calculate_progress_percentage(1) == 40
        assert progress.calculate_progress_percentage(2) == 0
        assert progress.calculate_progress_percentage() == 8

    def test_completing_module_unlocks_next(self, progress):
        complete_sections(progress, 1)
        assert progress.is_module_complete(1)
        assert progress.get_module_status(2) == ModuleStatus.IN_PROGRESS
        assert progress.get_module_status(3) == ModuleStatus.LOCKED
        assert progress.get_next_module(1) == 2
        assert progress.get_next_module(2) is None
        assert progress.get_next_module(3) is None

    def test_returned_copies_are_detached(self, progress):
        module = progress.get_module_progress(1)
        module.sections[0].completed = True
        snapshot = progress.snapshot
        snapshot.achievements.append("first_steps")
        assert not progress.is_section_complete(1, module.sections[0].id)
        assert progress.get_achievements() == []

    def test_completion_stats(self, progress):
        complete_sections(progress, 1)
        stats = progress.get_completion_stats()
        assert stats["total_sections"] == 25
        assert stats["completed"] == 5
        assert stats["not_started"] == 20
        assert stats["completion_percent"] == 20
        assert stats["modules"][1] == {
            "status": "completed",
            "completed": 5,
            "total": 5,
            "completion_percent": 100,
        }
        assert stats["modules"][2]["status"] == "in-progress"
        assert stats["modules"][3]["status"] == "locked"

    def test_reload_from_storage(self, progress, adapter, catalog):
        complete_sections(progress, 1, 3)
        reloaded = ProgressManager(adapter, catalog)
        assert reloaded.snapshot == progress.snapshot

    def test_context_manager_invalidates(self, progress, backend):
        with progress as manager:
            manager.mark_section_complete(1, "intro_what_are_llms")
        del backend.items[PROGRESS_STORAGE_KEY]
        assert not progress.has_started_learning()


class TestAchievements:
    """Test explicit and automatic achievements."""

    def test_unlock(self, progress):
        result = progress.unlock_achievement("quick_start")
        assert result.success and result.changed
        assert progress.has_achievement("quick_start")
        assert progress.get_achievements() == ["quick_start"]

    def test_unlock_twice(self, progress):
        progress.unlock_achievement("quick_start")
        result = progress.unlock_achievement("quick_start")
        assert result.success
        assert not result.changed
        assert progress.get_achievements() == ["quick_start"]

    def test_unknown_achievement(self, progress):
        result = progress.unlock_achievement("no_such_badge")
        assert result.error == ProgressErrorCode.UNKNOWN_ACHIEVEMENT
        assert progress.get_achievements() == []

    def test_module_completion_awards(self, progress):
        complete_sections(progress, 1, 4)
        assert not progress.has_achievement("first_steps")

        complete_sections(progress, 1)

        assert progress.has_achievement("first_steps")
        assert progress.has_achievement("intro_master")
        assert not progress.has_achievement("core_learner")

    def test_same_day_and_speed_awards(self, progress):
        complete_sections(progress, 1)
        assert progress.has_achievement("dedicated_learner")
        assert progress.has_achievement("speed_learner")

    def test_slow_module_not_speed_learner(self, progress, clock):
        complete_sections(progress, 1, 4)
        clock.advance(hours=2)
        complete_sections(progress, 1)
        assert progress.has_achievement("first_steps")
        assert not progress.has_achievement("speed_learner")

    def test_time_of_day_awards(self, catalog):
        clock = FakeClock(datetime(2026, 3, 14, 6, 30))
        progress = ProgressManager(PersistenceAdapter(), catalog, clock=clock)
        progress.mark_section_complete(1, "intro_what_are_llms")
        assert progress.has_achievement("early_bird")
        assert not progress.has_achievement("night_owl")

        clock.now = datetime(2026, 3, 14, 23, 15)
        progress.mark_section_complete(1, "intro_brief_history")
        assert progress.has_achievement("night_owl")

    def test_consecutive_days(self, progress, clock):
        for section_id in progress.catalog.section_ids(2)[:7]:
            progress.mark_section_complete(2, section_id)
            clock.advance(days=1)
        assert progress.has_achievement("consistent_learner")

    def test_full_course(self, progress, catalog):
        for module_id in catalog.module_ids:
            complete_sections(progress, module_id)
        for achievement_id in (
            "first_steps", "core_learner", "comprehensive_master",
            "halfway_there", "course_complete",
        ):
            assert progress.has_achievement(achievement_id)
        # no study session was recorded, so no section time was measured
        assert not progress.has_achievement("quick_start")
        assert not progress.has_achievement("marathon_session")
        assert not progress.has_achievement("thorough_reader")

    def test_awards_are_persisted(self, progress, adapter, catalog):
        complete_sections(progress, 1)
        reloaded = ProgressManager(adapter, catalog)
        assert reloaded.has_achievement("first_steps")


class TestLocation:
    """Test the last visited location."""

    def test_default_location(self, progress):
        assert progress.get_last_visited_location() == (1, None)

    def test_record_session(self, progress, backend):
        result = progress.record_session(2, "mechanics_attention_intro")
        assert result.success and result.persisted
        assert progress.get_last_visited_location() == (2, "mechanics_attention_intro")
        assert not progress.has_started_learning()
        assert PROGRESS_STORAGE_KEY in backend.items

    def test_record_module_only(self, progress):
        progress.record_session(1, "intro_brief_history")
        progress.record_session(2)
        assert progress.get_last_visited_location() == (2, None)

    def test_record_same_location_twice(self, progress):
        progress.record_session(1, "intro_brief_history")
        result = progress.record_session(1, "intro_brief_history")
        assert result.success
        assert not result.changed

    def test_record_unknown(self, progress):
        assert progress.record_session(7).error == ProgressErrorCode.UNKNOWN_MODULE
        assert progress.record_session(1, "missing").error == ProgressErrorCode.UNKNOWN_SECTION
        assert progress.get_last_visited_location() == (1, None)


class TestStudySessions:
    """Test study session recording."""

    def test_start_and_end(self, progress, backend, clock):
        assert progress.start_session()
        assert progress.has_active_session()

        clock.advance(minutes=45)
        result = progress.end_session()

        assert result.success and result.persisted
        assert not progress.has_active_session()
        session = progress.get_session_history()[0]
        assert session.session_start == datetime(2026, 3, 14, 10, 0)
        assert session.duration == timedelta(minutes=45)
        stored = json.loads(backend.items[PROGRESS_STORAGE_KEY])
        assert stored["sessionHistory"][0]["sessionEnd"] == "2026-03-14T10:45:00"

    def test_start_twice(self, progress, clock):
        progress.start_session()
        clock.advance(minutes=5)
        result = progress.start_session()
        assert result.success
        assert not result.changed
        assert len(progress.get_session_history()) == 1

    def test_end_without_session(self, progress, backend):
        result = progress.end_session()
        assert result.success
        assert not result.changed
        assert progress.get_session_history() == []
        assert PROGRESS_STORAGE_KEY not in backend.items

    def test_starting_session_keeps_fresh_status(self, progress):
        progress.start_session()
        assert progress.snapshot.is_empty
        assert not progress.has_started_learning()

    def test_visited_modules(self, progress):
        progress.record_session(1, "intro_brief_history")
        progress.start_session()
        progress.record_session(2, "mechanics_tokenization_intro")
        progress.record_session(2, "mechanics_tokenization_intro")
        progress.mark_section_complete(3, "overview_architecture_overview")
        assert progress.get_session_history()[0].modules_visited == [1, 2, 3]

    def test_history_is_reloaded(self, progress, adapter, catalog, clock):
        progress.start_session()
        clock.advance(minutes=30)
        progress.end_session()
        progress.start_session()

        reloaded = ProgressManager(adapter, catalog, clock=clock)
        history = reloaded.get_session_history()
        assert len(history) == 2
        assert history[0].duration == timedelta(minutes=30)
        assert reloaded.has_active_session()

    def test_history_copies_are_detached(self, progress):
        progress.start_session()
        progress.get_session_history()[0].modules_visited.append(2)
        assert progress.get_session_history()[0].modules_visited == []

    def test_marathon_session(self, progress, clock):
        progress.start_session()
        clock.advance(minutes=119)
        progress.end_session()
        assert not progress.has_achievement("marathon_session")

        progress.start_session()
        clock.advance(minutes=120)
        progress.end_session()
        assert progress.has_achievement("marathon_session")

    def test_open_session_is_not_a_marathon(self, progress, clock):
        progress.start_session()
        clock.advance(hours=3)
        progress.mark_section_complete(1, "intro_what_are_llms")
        assert not progress.has_achievement("marathon_session")

    def test_quick_start(self, progress, clock):
        progress.start_session()
        clock.advance(minutes=9)
        progress.mark_section_complete(1, "intro_what_are_llms")
        assert progress.has_achievement("quick_start")

    def test_slow_section_is_not_quick_start(self, progress, clock):
        progress.start_session()
        clock.advance(minutes=10)
        progress.mark_section_complete(1, "intro_what_are_llms")
        assert not progress.has_achievement("quick_start")

    def test_completion_outside_session_is_not_timed(self, progress):
        progress.mark_section_complete(1, "intro_what_are_llms")
        assert not progress.has_achievement("quick_start")

    def test_thorough_reader(self, progress, catalog, clock):
        progress.start_session()
        for module in catalog.modules:
            for section in module.sections:
                clock.advance(minutes=section.estimated_minutes)
                progress.mark_section_complete(module.id, section.id)
        assert progress.has_achievement("thorough_reader")

    def test_rushed_section_is_not_thorough(self, progress, catalog, clock):
        progress.start_session()
        for module in catalog.modules:
            for section in module.sections:
                clock.advance(minutes=section.estimated_minutes)
                if section.id == "overview_putting_it_together":
                    clock.advance(minutes=-1)
                progress.mark_section_complete(module.id, section.id)
        assert progress.snapshot.all_complete
        assert not progress.has_achievement("thorough_reader")


class TestMigrationAndReset:
    """Test explicit migration and reset."""

    def test_migrate_without_data(self, progress):
        result = progress.migrate_progress_data()
        assert result.success
        assert not result.changed

    def test_migrate_current_document(self, progress):
        complete_sections(progress, 1, 1)
        result = progress.migrate_progress_data()
        assert result.success
        assert not result.changed

    def test_migrate_unversioned_document(self, progress, backend):
        complete_sections(progress, 1, 2)
        stored = json.loads(backend.items[PROGRESS_STORAGE_KEY])
        del stored["version"]
        backend.items[PROGRESS_STORAGE_KEY] = json.dumps(stored)
        progress.invalidate()

        result = progress.migrate_progress_data()

        assert result.success and result.changed and result.persisted
        assert json.loads(backend.items[PROGRESS_STORAGE_KEY])["version"] == 2
        assert progress.calculate_progress_percentage(1) == 40

    def test_migrate_corrupt_document(self, progress, backend):
        backend.items[PROGRESS_STORAGE_KEY] = '{"version": 99}'
        result = progress.migrate_progress_data()
        assert result.error == ProgressErrorCode.CORRUPT_DOCUMENT
        assert backend.items[PROGRESS_STORAGE_KEY] == '{"version": 99}'

    def test_corrupt_document_overwritten_on_next_write(self, progress, backend):
        backend.items[PROGRESS_STORAGE_KEY] = "garbage"
        assert progress.calculate_progress_percentage() == 0
        assert backend.items[PROGRESS_STORAGE_KEY] == "garbage"

        progress.mark_section_complete(1, "intro_what_are_llms")
        assert json.loads(backend.items[PROGRESS_STORAGE_KEY])["version"] == 2

    def test_reset(self, progress, backend):
        complete_sections(progress, 1)
        result = progress.reset()
        assert result.success
        assert PROGRESS_STORAGE_KEY not in backend.items
        assert not progress.has_started_learning()
        assert progress.get_achievements() == []
        assert progress.get_last_visited_location() == (1, None)

    def test_reset_failure(self, catalog):
        backend = MemoryBackend()
        progress = ProgressManager(PersistenceAdapter(backend), catalog)
        complete_sections(progress, 1, 1)
        backend.disabled = True
        result = progress.reset()
        assert not result
        assert result.error == ProgressErrorCode.REMOVE_FAILED


@pytest.mark.parametrize("module_id, count, expected", [
    (1, 1, 20),
    (1, 3, 60),
    (1, 5, 100),
])
def test_module_percentages(progress, module_id, count, expected):
    complete_sections(progress, module_id, count)
    assert progress.calculate_progress_percentage(module_id) == expected
