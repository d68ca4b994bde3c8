from fastapi import Request

from filestore_api.adapters.queue import BaseQueue
from filestore_api.adapters.storage import FileStore
from filestore_api.config.settings import Settings
from filestore_api.services.listing import ListingAssembler


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with."""
    return request.app.state.settings


def get_file_store(request: Request) -> FileStore:
    return request.app.state.file_store


def get_listing(request: Request) -> ListingAssembler:
    return request.app.state.listing


def get_thumbnail_queue(request: Request) -> BaseQueue | None:
    """Thumbnail queue, or None when thumbnails are disabled."""
    return request.app.state.thumbnail_queue
