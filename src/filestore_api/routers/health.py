import os
from pathlib import Path

from fastapi import APIRouter, Request

from filestore_api.schemas import HealthResponse

router = APIRouter()


def _directory_status(path: Path) -> str:
    if not path.is_dir():
        return "error: missing"
    if not os.access(path, os.W_OK):
        return "error: not writable"
    return "ready"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint for monitoring API status and component readiness.

    Reports the store and thumbnail directories and the FTP gateway.
    """
    settings = request.app.state.settings
    ftp_gateway = request.app.state.ftp_gateway

    components = {
        "api": "ready",
        "store": _directory_status(Path(settings.store_dir)),
    }
    if settings.thumbnails_enabled:
        components["thumbnails"] = _directory_status(Path(settings.thumbnail_dir))
    else:
        components["thumbnails"] = "disabled"

    if ftp_gateway is None:
        components["ftp"] = "disabled"
    elif ftp_gateway.running:
        components["ftp"] = "ready"
    else:
        components["ftp"] = "error: not running"

    ready = all(value in ("ready", "disabled") for value in components.values())
    return HealthResponse(
        status="ok" if ready else "degraded",
        components=components,
        thumbnail_mode=settings.thumbnail_queue_mode if settings.thumbnails_enabled else None,
        ready=ready,
    )
