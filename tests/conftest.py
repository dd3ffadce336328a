"""
Shared fixtures: packaged curriculum, in-memory storage, fixed clock.
"""

from datetime import datetime, timedelta

import pytest

from llmedu.classroom import (
    MemoryBackend,
    Navigator,
    PersistenceAdapter,
    ProgressManager,
    load_curriculum,
)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def complete_sections(progress: ProgressManager, module_id: int, count: int | None = None):
    """Complete the first `count` sections of a module (all if None)."""
    section_ids = progress.catalog.section_ids(module_id)
    for section_id in section_ids[:count]:
        assert progress.mark_section_complete(module_id, section_id)


@pytest.fixture(scope="session")
def catalog():
    return load_curriculum()


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def adapter(backend):
    return PersistenceAdapter(backend)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 14, 10, 0))


@pytest.fixture
def progress(adapter, catalog, clock):
    return ProgressManager(adapter, catalog, clock=clock)


@pytest.fixture
def navigator(progress):
    return Navigator(progress)
