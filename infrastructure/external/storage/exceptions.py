"""Storage service exceptions."""
from typing import Optional


class StorageError(Exception):
    """Base storage exception; ``message`` is suitable for direct display."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(StorageError):
    """Credentials or bucket missing; raised before any network call."""
    pass


class TransportError(StorageError):
    """Connection, timeout or TLS failure from the HTTP layer."""
    pass


class ProtocolError(StorageError):
    """Unexpected HTTP status from the storage service.

    The raw response body (S3 error XML) is kept verbatim for diagnostics.
    """

    def __init__(self, message: str, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class PermissionDeniedError(ProtocolError):
    """Storage service rejected the credentials or signature (401/403)."""
    pass


class NotFoundError(ProtocolError):
    """Bucket or object not found (404)."""
    pass


class FilesystemError(StorageError):
    """Local read/write failure for an upload source or download target."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class InvalidKeyError(StorageError):
    """Object key cannot be sent to the storage service (not valid UTF-8)."""
    pass
