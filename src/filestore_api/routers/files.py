import logging
import mimetypes
from typing import BinaryIO, Iterator, List, Optional
from urllib.parse import quote

from fastapi import (
    APIRouter,
    Depends,
    File,
    Path,
    Response,
    UploadFile,
    status
)
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from filestore_api.adapters.queue import BaseQueue
from filestore_api.adapters.storage import CHUNK_SIZE, FileStore, sanitize_name
from filestore_api.config.settings import Settings
from filestore_api.dependencies import (
    get_app_settings,
    get_file_store,
    get_listing,
    get_thumbnail_queue,
)
from filestore_api.exceptions import (
    ClientInputError,
    MissingUploadError,
    UploadTooLargeError,
)
from filestore_api.schemas import FileRecord, UploadResponse
from filestore_api.services.listing import ListingAssembler
from thumbnail_workers.generator import is_image

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_200_OK: {"model": UploadResponse, "description": "Existing file replaced"},
        status.HTTP_400_BAD_REQUEST: {"description": "Missing, oversized or badly named upload"},
    },
)
async def upload_file(
    response: Response,
    file: Optional[UploadFile] = File(None, description="The file to upload"),
    settings: Settings = Depends(get_app_settings),
    store: FileStore = Depends(get_file_store),
    thumbnail_queue: Optional[BaseQueue] = Depends(get_thumbnail_queue),
) -> UploadResponse:
    """
    Upload a single file into the store.

    Only the final segment of the client's file name is used. Image uploads
    are handed to the thumbnail worker after the file is stored; the response
    does not wait for the thumbnail.

    Returns:
        UploadResponse: 201 for a new name, 200 when an existing file was replaced
    """
    if file is None:
        raise MissingUploadError()

    name = sanitize_name(file.filename)
    if file.size is not None and file.size > settings.max_upload_bytes:
        raise UploadTooLargeError(name, settings.max_upload_bytes)

    already_exists = await run_in_threadpool(store.exists, name)
    stored = await run_in_threadpool(store.put, name, file.file, settings.max_upload_bytes)

    if already_exists:
        message = f"Existing file updated: {stored.name}"
        response.status_code = status.HTTP_200_OK
    else:
        message = f"New file uploaded: {stored.name}"
        response.status_code = status.HTTP_201_CREATED
    logger.info(message)

    thumbnail_scheduled = False
    if thumbnail_queue is not None and is_image(stored.name, settings.image_extensions):
        await run_in_threadpool(thumbnail_queue.submit, stored.path, stored.name)
        thumbnail_scheduled = True

    return UploadResponse(
        name=stored.name,
        size=stored.size,
        message=message,
        thumbnail_scheduled=thumbnail_scheduled,
    )


@router.get(
    "/files",
    response_model=List[FileRecord],
    response_model_exclude_none=True,
)
async def list_files(listing: ListingAssembler = Depends(get_listing)) -> List[FileRecord]:
    """
    List the stored files, sorted by name.

    Files uploaded over FTP appear here as soon as they are written. A
    `thumbnailUrl` is present only once a thumbnail has been generated.
    """
    return await run_in_threadpool(listing.list_files)


@router.get(
    "/download/{file_name:path}",
    response_class=StreamingResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"description": "Missing file name"},
        status.HTTP_404_NOT_FOUND: {"description": "No such file"},
    },
)
async def download_file(
    file_name: str = Path(..., description="The name of the file to download"),
    store: FileStore = Depends(get_file_store),
) -> StreamingResponse:
    """
    Download a file from the store.

    Any directory part of the name is ignored: `a/b/evil.txt` serves `evil.txt`.
    """
    if not file_name.strip("/\\"):
        raise ClientInputError("Filename required")

    handle, stored = await run_in_threadpool(store.open, file_name)
    media_type = mimetypes.guess_type(stored.name)[0] or "application/octet-stream"
    return StreamingResponse(
        _iter_file(handle),
        media_type=media_type,
        headers={
            "Content-Length": str(stored.size),
            "Content-Disposition": _content_disposition(stored.name),
            "Last-Modified": stored.modified_at.strftime("%a, %d %b %Y %H:%M:%S GMT"),
        },
    )


def _iter_file(handle: BinaryIO) -> Iterator[bytes]:
    with handle:
        while True:
            chunk = handle.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


def _content_disposition(name: str) -> str:
    quoted = quote(name)
    if quoted != name:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{name}"'
