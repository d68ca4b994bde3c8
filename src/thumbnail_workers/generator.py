import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional

from PIL import Image, UnidentifiedImageError

from filestore_api.exceptions import DerivativeGenerationError
from filestore_api.utils.decorators import log_execution_time

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif")
DEFAULT_THUMBNAIL_SIZE = 100

# Pillow format to use when the source format is unknown, keyed by extension.
EXTENSION_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".gif": "GIF",
}


def is_image(name: str, extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS) -> bool:
    """True if ``name`` carries one of ``extensions`` (case-insensitive)."""
    suffix = Path(name).suffix.lower()
    return bool(suffix) and suffix in {ext.lower() for ext in extensions}


class ThumbnailGenerator:
    """Writes a reduced copy of an image into the thumbnail directory.

    The thumbnail keeps the source's name and format and fits inside a
    ``size`` x ``size`` box with its aspect ratio preserved.
    """

    def __init__(self, thumbnail_dir: Path, size: int = DEFAULT_THUMBNAIL_SIZE):
        self.thumbnail_dir = Path(thumbnail_dir)
        # Temp files live here: outside the served directory, same filesystem.
        self.staging_dir = self.thumbnail_dir.parent / f".{self.thumbnail_dir.name}-staging"
        self.size = size

    def ensure_dir(self) -> None:
        self.thumbnail_dir.mkdir(parents=True, exist_ok=True)
        self.staging_dir.mkdir(parents=True, exist_ok=True)

    def thumbnail_path(self, name: str) -> Path:
        return self.thumbnail_dir / name

    @log_execution_time
    def generate(self, source_path: Path, name: str) -> Path:
        """Generate the thumbnail for ``source_path`` under ``name``.

        The image is written to a temp file in ``staging_dir`` and renamed into
        place, so a failure never leaves a truncated thumbnail behind and a
        partial one is never visible in ``thumbnail_dir``.

        :raises DerivativeGenerationError: on any failure.
        """
        target = self.thumbnail_path(name)
        temp_path: Optional[str] = None
        try:
            with Image.open(source_path) as img:
                img.load()
                image_format = img.format or EXTENSION_FORMATS.get(Path(name).suffix.lower())
                if image_format is None:
                    raise DerivativeGenerationError(name, "unknown image format")
                thumb = img.copy()

            thumb.thumbnail((self.size, self.size), Image.Resampling.LANCZOS)
            if image_format == "JPEG" and thumb.mode not in ("RGB", "L", "CMYK"):
                thumb = thumb.convert("RGB")

            fd, temp_path = tempfile.mkstemp(
                dir=self.staging_dir, prefix=".thumb-", suffix=target.suffix
            )
            with os.fdopen(fd, "wb") as out:
                thumb.save(out, format=image_format)
            os.replace(temp_path, target)
            temp_path = None
        except DerivativeGenerationError:
            raise
        except (OSError, EOFError, UnidentifiedImageError, ValueError, Image.DecompressionBombError) as e:
            raise DerivativeGenerationError(name, str(e)) from e
        finally:
            if temp_path is not None:
                _discard(temp_path)

        logger.info(f"Thumbnail written for {name} at {target}")
        return target


def _discard(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Could not remove partial thumbnail {path}: {e}")
