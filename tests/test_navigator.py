"""
Tests for the resume point resolver and course navigation.
"""

import logging

from llmedu.classroom import (
    PROGRESS_STORAGE_KEY,
    MemoryBackend,
    Navigator,
    PersistenceAdapter,
    ProgressManager,
    decode,
    get_module_route,
    get_resume_point,
    reset_progress,
)
from llmedu.schemas import (
    Curriculum,
    ModuleDefinition,
    ModuleStatus,
    ResumeStatus,
)

from conftest import complete_sections


class TestResumeScenarios:
    """End-to-end resume behaviour for returning learners."""

    def test_empty_storage(self, navigator):
        resume = navigator.get_resume_point()
        assert resume.status == ResumeStatus.NO_PROGRESS
        assert resume.module_id == 1
        assert resume.section_id is None
        assert resume.overall_progress == 0

    def test_partway_through_first_module(self, progress, navigator, catalog):
        complete_sections(progress, 1, 3)

        resume = navigator.get_resume_point()

        assert resume.status == ResumeStatus.IN_PROGRESS
        assert resume.module_id == 1
        assert resume.section_id == catalog.section_ids(1)[3]
        assert resume.overall_progress == 12
        assert resume.section_title == "Real-World Applications"

    def test_everything_complete(self, progress, navigator, catalog):
        for module_id in catalog.module_ids:
            complete_sections(progress, module_id)

        resume = navigator.get_resume_point()

        assert resume.status == ResumeStatus.ALL_COMPLETE
        assert resume.module_id is None
        assert resume.section_id is None
        assert resume.overall_progress == 100

    def test_first_module_done_unlocks_second(self, progress, navigator):
        complete_sections(progress, 1)

        assert progress.get_module_status(2) == ModuleStatus.IN_PROGRESS
        resume = navigator.get_resume_point()
        assert resume.module_id == 2
        assert resume.section_id == "mechanics_tokenization_intro"
        assert resume.overall_progress == 20

    def test_reset_matches_fresh_learner(self, progress, navigator, adapter, catalog):
        fresh = Navigator(ProgressManager(PersistenceAdapter(MemoryBackend()), catalog))
        complete_sections(progress, 1)
        progress.record_session(2, "mechanics_attention_intro")

        assert reset_progress(progress)

        assert navigator.get_resume_point() == fresh.get_resume_point()
        assert adapter.read(PROGRESS_STORAGE_KEY) is None

    def test_malformed_storage_behaves_like_fresh(self, catalog, clock):
        fresh_backend = MemoryBackend()
        corrupt_backend = MemoryBackend()
        corrupt_backend.items[PROGRESS_STORAGE_KEY] = '{"modules": [1, 2'

        assert decode(corrupt_backend.items[PROGRESS_STORAGE_KEY], catalog) == decode(None, catalog)

        fresh = ProgressManager(PersistenceAdapter(fresh_backend), catalog, clock=clock)
        recovered = ProgressManager(PersistenceAdapter(corrupt_backend), catalog, clock=clock)
        assert Navigator(recovered).get_resume_point() == Navigator(fresh).get_resume_point()

        assert fresh.mark_section_complete(1, "intro_what_are_llms") == \
            recovered.mark_section_complete(1, "intro_what_are_llms")
        assert recovered.snapshot == fresh.snapshot
        assert corrupt_backend.items[PROGRESS_STORAGE_KEY] == fresh_backend.items[PROGRESS_STORAGE_KEY]


class TestResumePoint:
    """Detailed resolver behaviour."""

    def test_breadcrumb_only_resumes_first_incomplete(self, progress, navigator):
        progress.record_session(1, "intro_why_they_matter")
        resume = navigator.get_resume_point()
        assert resume.status == ResumeStatus.IN_PROGRESS
        assert resume.module_id == 1
        assert resume.section_id == "intro_what_are_llms"

    def test_skips_gaps_in_stored_order(self, progress, navigator):
        progress.mark_section_complete(1, "intro_what_are_llms")
        progress.mark_section_complete(1, "intro_why_they_matter")
        resume = navigator.get_resume_point()
        assert resume.section_id == "intro_brief_history"

    def test_locked_progress_is_skipped(self, progress, navigator):
        progress.mark_section_complete(3, "overview_architecture_overview")
        resume = navigator.get_resume_point()
        assert resume.module_id == 1
        assert resume.section_id == "intro_what_are_llms"
        assert resume.overall_progress == 4

    def test_deterministic(self, progress, navigator):
        complete_sections(progress, 1, 2)
        assert navigator.get_resume_point() == navigator.get_resume_point()
        assert get_resume_point(progress) == navigator.get_resume_point()

    def test_fallback_to_breadcrumb(self, caplog):
        catalog = Curriculum(modules=[
            ModuleDefinition(id=1, title="Placeholder", sections=[]),
        ])
        progress = ProgressManager(PersistenceAdapter(), catalog)
        progress.record_session(1)

        with caplog.at_level(logging.WARNING):
            resume = Navigator(progress).get_resume_point()

        assert resume.status == ResumeStatus.IN_PROGRESS
        assert resume.module_id == 1
        assert resume.section_id is None
        assert "inconsistent" in caplog.text

    def test_resume_point_serialization(self, progress, navigator):
        complete_sections(progress, 1, 3)
        data = navigator.get_resume_point().model_dump(mode="json", by_alias=True)
        assert data["status"] == "in-progress"
        assert data["moduleId"] == 1
        assert data["sectionId"] == "intro_real_world_applications"
        assert data["overallProgress"] == 12


class TestSectionNavigation:
    """Test next/previous helpers."""

    def test_next_and_previous(self, navigator):
        assert navigator.get_next_section_id(1, "intro_what_are_llms") == "intro_brief_history"
        assert navigator.get_next_section_id(1, "intro_basic_capabilities") is None
        assert navigator.get_previous_section_id(1, "intro_brief_history") == "intro_what_are_llms"
        assert navigator.get_previous_section_id(1, "intro_what_are_llms") is None

    def test_unknown_section(self, navigator):
        assert navigator.get_next_section_id(1, "missing") is None
        assert navigator.get_previous_section_id(9, "missing") is None
        assert navigator.get_section_position(1, "missing") == (0, 5)

    def test_position(self, navigator):
        assert navigator.get_section_position(2, "mechanics_attention_visualization") == (9, 9)

    def test_first_incomplete(self, progress, navigator):
        complete_sections(progress, 1, 2)
        assert navigator.get_first_incomplete_section_id(1) == "intro_why_they_matter"
        complete_sections(progress, 1)
        assert navigator.get_first_incomplete_section_id(1) is None
        assert navigator.get_first_incomplete_section_id(9) is None


class TestNavigationTree:
    """Test the course tree and sidebar indicators."""

    def test_tree(self, progress, navigator):
        complete_sections(progress, 1)
        progress.record_session(2, "mechanics_tokenization_process")

        tree = navigator.get_navigation_tree()

        assert [m.module_id for m in tree] == [1, 2, 3]
        assert [m.status for m in tree] == [
            ModuleStatus.COMPLETED, ModuleStatus.IN_PROGRESS, ModuleStatus.LOCKED,
        ]
        assert tree[0].completion_percent == 100
        assert tree[1].completion_percent == 0
        current = [s.section.id for s in tree[1].sections if s.is_current]
        assert current == ["mechanics_tokenization_process"]

    def test_module_metadata(self, navigator, catalog):
        tree = navigator.get_navigation_tree()
        assert tree[0].estimated_minutes == 36
        assert [m.estimated_minutes for m in tree] == [
            catalog.get_module_total_time(m) for m in catalog.module_ids
        ]
        assert [m.unlocked_by for m in tree] == [None, 1, 2]

    def test_status_indicators(self, progress, navigator):
        complete_sections(progress, 1, 1)
        assert navigator.get_status_indicator(1, "intro_what_are_llms") == "✓"
        assert navigator.get_status_indicator(1, "intro_brief_history") == "○"
        assert navigator.get_status_indicator(2) == "◌"

        progress.record_session(1, "intro_brief_history")
        assert navigator.get_status_indicator(1, "intro_brief_history") == "→"
        assert navigator.get_status_indicator(1) == "→"

        complete_sections(progress, 1)
        assert navigator.get_status_indicator(1) == "✓"
        assert navigator.get_status_indicator(2) == "○"

    def test_progress_summary(self, progress, navigator):
        complete_sections(progress, 1, 3)
        summary = navigator.get_progress_summary()
        assert summary["completed"] == 3
        assert summary["resume_status"] == "in-progress"
        assert summary["resume_module_id"] == 1
        assert summary["resume_section_id"] == "intro_real_world_applications"


class TestRoutes:
    """Test route strings for the resume button."""

    def test_routes(self):
        assert get_module_route(None) == "/learn"
        assert get_module_route(2) == "/module/2"
        assert get_module_route(2, "mechanics_attention_intro") == "/module/2#mechanics_attention_intro"
