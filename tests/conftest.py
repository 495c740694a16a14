from __future__ import annotations

import pytest

from cinescout.config import settings
from cinescout.services.keepalive import KeepaliveScheduler


@pytest.fixture(autouse=True)
def no_leaked_keepalive_timers():
    """Every test must leave zero live keepalive timers behind."""
    yield
    assert KeepaliveScheduler.active_count() == 0


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(settings, "anthropic_api_key", "test-key")
    return "test-key"


@pytest.fixture
def messages_file(tmp_path, monkeypatch):
    path = tmp_path / "data" / "messages.json"
    monkeypatch.setattr(settings, "messages_file", str(path))
    return path
