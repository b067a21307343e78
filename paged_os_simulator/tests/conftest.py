import os
import sys

import pytest


def pytest_sessionstart(session):
    # Ensure repository root is on sys.path so 'paged_os_simulator' can be imported
    here = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.abspath(os.path.join(here, os.pardir, os.pardir))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


@pytest.fixture
def check_memory():
    """Assert the frame table and residency list agree with each other."""
    def _check(memory):
        used = sum(1 for owner in memory.frames if owner is not None)
        assert used + memory.count_free() == memory.total_pages
        owners = {owner for owner in memory.frames if owner is not None}
        assert set(memory.resident) == owners
        assert len(memory.resident) == len(set(memory.resident))
        for pid in memory.resident:
            assert memory.resident_pages(pid) > 0
    return _check
