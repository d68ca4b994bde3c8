import logging
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from filestore_api.adapters.storage import FileStore
from filestore_api.schemas import FileRecord

logger = logging.getLogger(__name__)


class ListingAssembler:
    """Joins store entries with thumbnail presence into `FileRecord`s.

    Takes no locks: a listing racing an upload or a thumbnail job may report
    each field from a different moment, but never a torn value for one field.
    """

    def __init__(
        self,
        store: FileStore,
        thumbnail_dir: Optional[Path] = None,
        thumbnail_url_prefix: str = "/thumbnails",
    ):
        """
        :param store: the file store to enumerate.
        :param thumbnail_dir: where thumbnails live; None disables the probe.
        :param thumbnail_url_prefix: URL prefix the thumbnail directory is served under.
        """
        self.store = store
        self.thumbnail_dir = Path(thumbnail_dir) if thumbnail_dir is not None else None
        self.thumbnail_url_prefix = thumbnail_url_prefix.rstrip("/")

    def thumbnail_url(self, name: str) -> Optional[str]:
        """URL of the thumbnail for ``name``, or None if there is none right now."""
        if self.thumbnail_dir is None:
            return None
        if not (self.thumbnail_dir / name).is_file():
            return None
        return f"{self.thumbnail_url_prefix}/{quote(name)}"

    def list_files(self) -> List[FileRecord]:
        """
        Build the listing returned by `GET /files`.

        :raises StorageIOError: if the store directory cannot be read.
        """
        records = []
        for stored in self.store.list():
            records.append(
                FileRecord(
                    name=stored.name,
                    size=stored.size,
                    mod_time=stored.modified_at,
                    thumbnail_url=self.thumbnail_url(stored.name),
                )
            )
        logger.debug(f"Listed {len(records)} files")
        return records
