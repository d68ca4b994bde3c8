"""
Thumbnail generation for uploaded images.

The generator resizes one image; the worker wraps it with the best-effort
failure policy used by the upload queue.
"""

from thumbnail_workers.generator import ThumbnailGenerator, is_image
from thumbnail_workers.worker import ThumbnailTask, ThumbnailWorker

__all__ = ["ThumbnailGenerator", "ThumbnailTask", "ThumbnailWorker", "is_image"]
