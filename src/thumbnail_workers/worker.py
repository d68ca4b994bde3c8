import logging
from dataclasses import dataclass
from pathlib import Path

from filestore_api.exceptions import DerivativeGenerationError
from thumbnail_workers.generator import ThumbnailGenerator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThumbnailTask:
    """One unit of work handed from the upload route to a worker."""
    source_path: Path
    name: str


class ThumbnailWorker:
    """Runs thumbnail tasks and absorbs their failures.

    Generation is best effort: errors are logged and dropped, never retried
    and never reported back to the uploader.
    """

    def __init__(self, generator: ThumbnailGenerator):
        self.generator = generator

    def process(self, task: ThumbnailTask) -> bool:
        """Run ``task``. Returns True if a thumbnail was written."""
        try:
            self.generator.generate(task.source_path, task.name)
            return True
        except DerivativeGenerationError as e:
            logger.error(f"Error generating thumbnail: {e}")
        except Exception:
            logger.exception(f"Unexpected error generating thumbnail for {task.name}")
        return False
