import time

import pytest


@pytest.fixture
def sleeps(monkeypatch):
    """Record requested sleep durations instead of waiting."""
    recorded = []
    monkeypatch.setattr(time, "sleep", recorded.append)
    return recorded


@pytest.fixture(autouse=True)
def default_base_url(monkeypatch):
    """Keep a developer's JIKAN_BASE_URL out of the script tests."""
    monkeypatch.delenv("JIKAN_BASE_URL", raising=False)
