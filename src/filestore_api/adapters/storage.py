"""
Directory-backed file store shared by the HTTP and FTP gateways.

Every key is a single path segment inside ``root``. Writes go to a temp file in
the same directory and are renamed into place, so readers see either the old
or the new complete content.
"""

import logging
import os
import stat
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple

from filestore_api.exceptions import (
    FileNotFoundInStoreError,
    InvalidFileNameError,
    StorageIOError,
    UploadTooLargeError,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024  # 64KB

# Prefix of in-flight upload files; never listed or served.
TEMP_PREFIX = ".upload-"


@dataclass(frozen=True)
class StoredFile:
    """Metadata of a file as it sits in the store."""
    name: str
    size: int
    modified_at: datetime
    path: Path

    @classmethod
    def from_stat(cls, name: str, path: Path, st: os.stat_result) -> "StoredFile":
        return cls(
            name=name,
            size=st.st_size,
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            path=path,
        )


def sanitize_name(raw_name: Optional[str]) -> str:
    """Reduce a client supplied name to its final path segment.

    ``a/b/evil.txt`` and ``..\\evil.txt`` both become ``evil.txt``.

    :raises InvalidFileNameError: if nothing usable is left.
    """
    if raw_name is None:
        raise InvalidFileNameError("")
    name = _final_segment(raw_name)
    if name in ("", ".", "..") or "\x00" in name or name.startswith(TEMP_PREFIX):
        raise InvalidFileNameError(raw_name)
    return name


def _final_segment(raw_name: str) -> str:
    return raw_name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


class FileStore:
    """Named byte blobs stored flat in one directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def ensure_root(self) -> None:
        """Create the store directory. Failure here is fatal at startup."""
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        """Absolute location of ``name`` after sanitization."""
        return self.root / sanitize_name(name)

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def put(self, name: str, stream: BinaryIO, max_bytes: Optional[int] = None) -> StoredFile:
        """Write ``stream`` under ``name``, replacing any previous content.

        :param name: client supplied name, sanitized to a single segment.
        :param stream: binary file-like object read in chunks.
        :param max_bytes: optional upper bound; exceeding it aborts the write.
        :raises UploadTooLargeError: if more than ``max_bytes`` were read.
        :raises StorageIOError: on any disk or permission failure.
        """
        key = sanitize_name(name)
        target = self.root / key

        try:
            fd, temp_path = tempfile.mkstemp(dir=self.root, prefix=TEMP_PREFIX)
        except OSError as e:
            raise StorageIOError(key, str(e)) from e

        try:
            written = 0
            with os.fdopen(fd, "wb") as out:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise UploadTooLargeError(key, max_bytes)
                    out.write(chunk)
                out.flush()
                os.fsync(out.fileno())
            os.chmod(temp_path, 0o644)
            os.replace(temp_path, target)
            st = target.stat()
        except UploadTooLargeError:
            _discard(temp_path)
            raise
        except OSError as e:
            _discard(temp_path)
            raise StorageIOError(key, str(e)) from e

        logger.info(f"Stored {key} ({written} bytes)")
        return StoredFile.from_stat(key, target, st)

    def list(self) -> List[StoredFile]:
        """Regular files in the store, sorted by name.

        Entries whose metadata cannot be read (e.g. removed mid-listing) and
        entries whose names are not valid UTF-8 are skipped.

        :raises StorageIOError: if the directory itself cannot be read.
        """
        try:
            entries = sorted(os.scandir(self.root), key=lambda entry: entry.name)
        except OSError as e:
            raise StorageIOError(None, str(e)) from e

        files = []
        for entry in entries:
            if entry.name.startswith(TEMP_PREFIX):
                continue
            if not _is_utf8(entry.name):
                logger.warning(f"Skipping {entry.name!r}: name is not valid UTF-8")
                continue
            try:
                if entry.is_dir():
                    continue
                st = entry.stat()
            except OSError as e:
                logger.warning(f"Skipping {entry.name}: {e}")
                continue
            files.append(StoredFile.from_stat(entry.name, Path(entry.path), st))
        return files

    def open(self, name: str) -> Tuple[BinaryIO, StoredFile]:
        """Open ``name`` for reading.

        Metadata comes from the open descriptor, so the reported size always
        matches the bytes that will be read even if the name is replaced meanwhile.

        :raises FileNotFoundInStoreError: if there is no such file.
        :raises StorageIOError: on any other disk or permission failure.
        """
        segment = _final_segment(name)
        if segment.startswith(TEMP_PREFIX):
            # in-flight uploads are not files yet
            raise FileNotFoundInStoreError(segment)
        key = sanitize_name(name)
        path = self.root / key
        try:
            handle = open(path, "rb")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise FileNotFoundInStoreError(key) from e
        except OSError as e:
            raise StorageIOError(key, str(e)) from e

        try:
            st = os.fstat(handle.fileno())
        except OSError as e:
            handle.close()
            raise StorageIOError(key, str(e)) from e
        if not _is_regular(st):
            handle.close()
            raise FileNotFoundInStoreError(key)
        return handle, StoredFile.from_stat(key, path, st)


def _is_regular(st: os.stat_result) -> bool:
    return stat.S_ISREG(st.st_mode)


def _is_utf8(name: str) -> bool:
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _discard(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Could not remove temp file {path}: {e}")
