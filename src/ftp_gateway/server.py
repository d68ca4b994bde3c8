"""
FTP front-end for the file store.

Serves the store directory with pyftpdlib under a single user that has full
read/write permissions. Files written here are visible to the HTTP listing as
soon as pyftpdlib closes them; this gateway never schedules thumbnails.
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Tuple

from pyftpdlib.authorizers import DummyAuthorizer
from pyftpdlib.handlers import FTPHandler
from pyftpdlib.servers import ThreadedFTPServer

from filestore_api.config.settings import Settings

logger = logging.getLogger(__name__)

# list, change dir, retrieve, append, delete, rename, mkdir, store, chmod, mtime
FULL_PERMISSIONS = "elradfmwMT"

POLL_INTERVAL = 0.05


def build_handler(settings: Settings, root: Path) -> type:
    """Create an FTPHandler subclass bound to ``root`` and the configured credentials.

    A fresh subclass keeps the authorizer and passive ports off the shared
    `FTPHandler` class attributes.
    """
    authorizer = DummyAuthorizer()
    authorizer.add_user(
        settings.ftp_username,
        settings.ftp_password.get_secret_value(),
        str(Path(root).resolve()),
        perm=FULL_PERMISSIONS,
    )

    attrs = {
        "authorizer": authorizer,
        "banner": f"{settings.app_name} FTP gateway ready.",
    }
    passive = settings.passive_port_range
    if passive is not None:
        attrs["passive_ports"] = range(passive[0], passive[1] + 1)
    return type("StoreFTPHandler", (FTPHandler,), attrs)


class FTPGateway:
    """Owns one pyftpdlib server and the thread that runs it."""

    def __init__(self, settings: Settings, root: Optional[Path] = None):
        self.settings = settings
        self.root = Path(root) if root is not None else Path(settings.store_dir)
        self._server: Optional[ThreadedFTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def address(self) -> Tuple[str, int]:
        """(host, port) the server is bound to. Only valid after `bind`."""
        if self._server is None:
            raise RuntimeError("FTP gateway is not bound")
        host, port = self._server.socket.getsockname()[:2]
        return host, port

    def bind(self) -> None:
        """Bind the listening socket. Raises OSError if the port is unavailable."""
        if self._server is not None:
            return
        handler = build_handler(self.settings, self.root)
        self._server = ThreadedFTPServer((self.settings.ftp_host, self.settings.ftp_port), handler)
        host, port = self.address
        logger.info(f"FTP gateway listening on {host}:{port}, root {self.root}")

    def start(self) -> None:
        """Bind in the caller's thread, then serve from a background thread."""
        self.bind()
        if self.running:
            return
        self._stopping.clear()
        self._thread = threading.Thread(
            target=self._serve,
            name="ftp-gateway",
            daemon=True,
        )
        self._thread.start()

    def _serve(self) -> None:
        server = self._server
        while not self._stopping.is_set():
            server.serve_forever(timeout=POLL_INTERVAL, blocking=False, handle_exit=False)

    def serve_forever(self) -> None:
        """Bind and serve in the caller's thread until interrupted."""
        self.bind()
        try:
            self._server.serve_forever()
        finally:
            self._server = None

    def stop(self, timeout: float = 5.0) -> None:
        if self._server is None:
            return
        logger.info("Stopping FTP gateway")
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self._server.close_all()
        self._server = None
