from contextlib import asynccontextmanager
from textwrap import dedent
import logging
from typing import Optional

import pydantic
from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.routing import APIRoute
from fastapi.staticfiles import StaticFiles

from filestore_api.adapters.queue import BaseQueue, QueueFactory
from filestore_api.adapters.storage import FileStore
from filestore_api.config.settings import Settings, get_settings
from filestore_api.errors import (
    handle_broad_exceptions,
    handle_file_store_errors,
    handle_pydantic_validation_errors,
)
from filestore_api.exceptions import FileStoreError
from filestore_api.routers.files import router as files_router
from filestore_api.routers.health import router as health_router
from filestore_api.services.listing import ListingAssembler
from ftp_gateway.server import FTPGateway
from thumbnail_workers.generator import ThumbnailGenerator
from thumbnail_workers.worker import ThumbnailWorker

# Set up logging
logger = logging.getLogger(__name__)

# Seconds to wait for in-flight thumbnails on shutdown
SHUTDOWN_DRAIN_TIMEOUT = 10.0


def create_app(
    settings: Optional[Settings] = None,
    thumbnail_queue: Optional[BaseQueue] = None,
) -> FastAPI:
    """Create a FastAPI application.

    Directories are created here, so a store that cannot be created fails
    before any traffic is served. The FTP gateway is started by the app's
    lifespan.

    Args:
        settings: Application settings; defaults to `get_settings()`.
        thumbnail_queue: Overrides the queue picked from settings, e.g. with
            an `InlineQueue` in tests.
    """
    settings = settings or get_settings()

    store = FileStore(settings.store_dir)
    store.ensure_root()

    if settings.thumbnails_enabled:
        generator = ThumbnailGenerator(settings.thumbnail_dir, settings.thumbnail_size)
        generator.ensure_dir()
        if thumbnail_queue is None:
            thumbnail_queue = QueueFactory.get_queue_handler(settings, ThumbnailWorker(generator))
        listing = ListingAssembler(store, settings.thumbnail_dir, settings.thumbnail_url_prefix)
    else:
        thumbnail_queue = None
        listing = ListingAssembler(store)

    ftp_gateway = FTPGateway(settings, root=settings.store_dir) if settings.ftp_enabled else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if ftp_gateway is not None:
            ftp_gateway.start()
        logger.info(f"Serving files from {settings.store_dir}")
        yield
        if ftp_gateway is not None:
            ftp_gateway.stop()
        if thumbnail_queue is not None:
            drained = await run_in_threadpool(thumbnail_queue.drain, SHUTDOWN_DRAIN_TIMEOUT)
            if not drained:
                logger.warning("Shutting down with thumbnail jobs still running")

    app = FastAPI(
        title="File Store API",
        summary="Upload, list and download files shared with an FTP server",
        version="v1",
        description=dedent(
            """\
        | Endpoint | Notes |
        | --- | --- |
        | `POST /upload` | multipart upload, form field `file` |
        | `GET /files` | listing with optional `thumbnailUrl` |
        | `GET /download/{name}` | raw bytes of a stored file |
        | `GET /thumbnails/{name}` | generated thumbnails |
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.file_store = store
    app.state.listing = listing
    app.state.thumbnail_queue = thumbnail_queue
    app.state.ftp_gateway = ftp_gateway

    app.include_router(files_router, tags=["files"])
    app.include_router(health_router, tags=["health"])

    if settings.thumbnails_enabled:
        app.mount(
            settings.thumbnail_url_prefix,
            StaticFiles(directory=settings.thumbnail_dir),
            name="thumbnails",
        )
    if settings.public_dir is not None:
        app.mount("/", StaticFiles(directory=settings.public_dir, html=True), name="public")

    app.add_exception_handler(
        exc_class_or_status_code=FileStoreError,
        handler=handle_file_store_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.http_host, port=settings.http_port)
