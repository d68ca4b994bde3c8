"""Fixtures that make thumbnail threads fail to start."""
import threading

import pytest


@pytest.fixture
def refused_thumbnail_threads(monkeypatch):
    """`Thread.start` raises for thumbnail threads, as when the process is out of threads."""
    original_start = threading.Thread.start

    def start(thread):
        if thread.name.startswith("thumbnail-"):
            raise RuntimeError("can't start new thread")
        return original_start(thread)

    monkeypatch.setattr(threading.Thread, "start", start)
