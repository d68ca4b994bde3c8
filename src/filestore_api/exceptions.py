"""Exceptions raised by the file store and its gateways.

Each exception carries the HTTP status code the API maps it to, so routers
can raise them directly and the handlers in `filestore_api.errors` turn them into
JSON responses.
"""

from fastapi import status


class FileStoreError(Exception):
    """Base exception for file store operations."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, name: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.name = name


class ClientInputError(FileStoreError):
    """The request is malformed; nothing was written."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidFileNameError(ClientInputError):
    """Name is empty or cannot be reduced to a single path segment."""

    def __init__(self, raw_name: str) -> None:
        super().__init__(f"Invalid file name: {raw_name!r}", raw_name)


class MissingUploadError(ClientInputError):
    """Multipart body carries no `file` part."""

    def __init__(self) -> None:
        super().__init__("Error retrieving file")


class UploadTooLargeError(ClientInputError):
    """Upload exceeds the configured maximum size."""

    def __init__(self, name: str, max_bytes: int) -> None:
        super().__init__(f"File too big: {name} exceeds {max_bytes} bytes", name)
        self.max_bytes = max_bytes


class NotFoundError(FileStoreError):
    """Requested key does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class FileNotFoundInStoreError(NotFoundError):
    def __init__(self, name: str) -> None:
        super().__init__(f"File not found: {name}", name)


class StorageIOError(FileStoreError):
    """Disk or permission failure while reading or writing the store."""

    def __init__(self, name: str | None, reason: str) -> None:
        target = name if name is not None else "<store>"
        super().__init__(f"Storage failure for {target}: {reason}", name)
        self.reason = reason


class DerivativeGenerationError(FileStoreError):
    """Thumbnail generation failed. Logged by the worker, never sent to a client."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Failed to generate thumbnail for {name}: {reason}", name)
        self.reason = reason
