import logging
import threading
import time
from pathlib import Path
from typing import Optional, Set

from filestore_api.config.settings import Settings
from thumbnail_workers.worker import ThumbnailTask, ThumbnailWorker

logger = logging.getLogger(__name__)


class BaseQueue:
    """Base class for thumbnail task handoff (to be extended by specific implementations)"""

    def __init__(self, worker: ThumbnailWorker):
        self.worker = worker

    def submit(self, source_path: Path, name: str) -> None:
        """Hand a task over. Never raises because of the task's outcome."""
        raise NotImplementedError

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for submitted tasks. Returns True if none are still running."""
        return True


class InlineQueue(BaseQueue):
    """Runs each task in the caller's thread. Used by tests and for debugging."""

    def submit(self, source_path: Path, name: str) -> None:
        self.worker.process(ThumbnailTask(source_path=Path(source_path), name=name))


class DetachedThreadQueue(BaseQueue):
    """Runs each task on its own daemon thread.

    There is no backlog and no concurrency cap; ``submit`` returns as soon as
    the thread is started.
    """

    def __init__(self, worker: ThumbnailWorker):
        super().__init__(worker)
        self._threads: Set[threading.Thread] = set()
        self._lock = threading.Lock()

    def submit(self, source_path: Path, name: str) -> None:
        task = ThumbnailTask(source_path=Path(source_path), name=name)
        thread = threading.Thread(
            target=self._run,
            args=(task,),
            name=f"thumbnail-{name}",
            daemon=True,
        )
        with self._lock:
            self._threads.add(thread)
        try:
            thread.start()
        except RuntimeError as e:
            with self._lock:
                self._threads.discard(thread)
            logger.error(f"Could not schedule thumbnail for {name}: {e}")
            return
        logger.info(f"Scheduled thumbnail for {name}")

    def _run(self, task: ThumbnailTask) -> None:
        try:
            self.worker.process(task)
        except Exception:
            logger.exception(f"Thumbnail job for {task.name} crashed")
        finally:
            with self._lock:
                self._threads.discard(threading.current_thread())

    def drain(self, timeout: Optional[float] = None) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = list(self._threads)
            if not pending:
                return True
            for thread in pending:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                thread.join(remaining)
            if deadline is not None and time.monotonic() >= deadline:
                with self._lock:
                    return not self._threads


class QueueFactory:
    """Factory to initialize the correct queue handler based on settings"""

    queue_classes = {
        "thread": DetachedThreadQueue,
        "inline": InlineQueue,
    }

    @staticmethod
    def get_queue_handler(settings: Settings, worker: ThumbnailWorker) -> BaseQueue:
        mode = settings.thumbnail_queue_mode
        if mode not in QueueFactory.queue_classes:
            raise ValueError(f"Invalid thumbnail_queue_mode: {mode}. Choose from {list(QueueFactory.queue_classes.keys())}")
        return QueueFactory.queue_classes[mode](worker)
