import logging
import threading

import pytest
from pydantic import ValidationError

from filestore_api.adapters.queue import DetachedThreadQueue, InlineQueue, QueueFactory
from tests.fixtures.app_client import make_settings


class RecordingWorker:
    """Stands in for ThumbnailWorker; optionally blocks until released."""

    def __init__(self, block: bool = False, fail: bool = False):
        self.tasks = []
        self.release = threading.Event()
        self.started = threading.Event()
        self.block = block
        self.fail = fail

    def process(self, task):
        self.started.set()
        if self.block:
            self.release.wait(5)
        if self.fail:
            raise RuntimeError("worker exploded")
        self.tasks.append(task)
        return True


def test__inline_queue__runs_before_returning(tmp_path):
    worker = RecordingWorker()
    queue = InlineQueue(worker)

    queue.submit(tmp_path / "cat.png", "cat.png")

    assert [task.name for task in worker.tasks] == ["cat.png"]
    assert worker.tasks[0].source_path == tmp_path / "cat.png"
    assert queue.drain(0) is True


def test__detached_queue__returns_without_waiting(tmp_path):
    worker = RecordingWorker(block=True)
    queue = DetachedThreadQueue(worker)

    queue.submit(tmp_path / "cat.png", "cat.png")

    assert worker.started.wait(5)
    assert worker.tasks == []
    assert queue.drain(0.05) is False

    worker.release.set()
    assert queue.drain(5) is True
    assert [task.name for task in worker.tasks] == ["cat.png"]


def test__detached_queue__runs_jobs_concurrently(tmp_path):
    worker = RecordingWorker(block=True)
    queue = DetachedThreadQueue(worker)

    for i in range(3):
        queue.submit(tmp_path / f"img{i}.png", f"img{i}.png")

    worker.release.set()
    assert queue.drain(5) is True
    assert sorted(task.name for task in worker.tasks) == ["img0.png", "img1.png", "img2.png"]


def test__detached_queue__worker_crash_does_not_leak_thread(tmp_path):
    worker = RecordingWorker(fail=True)
    queue = DetachedThreadQueue(worker)

    queue.submit(tmp_path / "cat.png", "cat.png")

    assert queue.drain(5) is True


@pytest.mark.parametrize(
    "mode, queue_class",
    [("thread", DetachedThreadQueue), ("inline", InlineQueue)],
)
def test__queue_factory__picks_class_from_settings(tmp_path, mode, queue_class):
    settings = make_settings(tmp_path, thumbnail_queue_mode=mode)
    queue = QueueFactory.get_queue_handler(settings, RecordingWorker())
    assert isinstance(queue, queue_class)


def test__settings__reject_unknown_queue_mode(tmp_path):
    with pytest.raises(ValidationError):
        make_settings(tmp_path, thumbnail_queue_mode="celery")


@pytest.mark.usefixtures("refused_thumbnail_threads")
def test__detached_queue__failed_thread_start_is_logged_not_raised(tmp_path, caplog):
    worker = RecordingWorker()
    queue = DetachedThreadQueue(worker)

    with caplog.at_level(logging.ERROR):
        queue.submit(tmp_path / "cat.png", "cat.png")

    assert "Could not schedule thumbnail for cat.png" in caplog.text
    assert worker.tasks == []
    assert queue.drain(1) is True
