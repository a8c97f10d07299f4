"""Object store entry point and lifecycle management."""
from typing import Optional

import httpx

from core.logging_config import get_logger
from .base import ObjectStoreProvider
from .providers.s3 import S3Provider

logger = get_logger(__name__)

# Global object store instance
_object_store: Optional[S3Provider] = None


async def init_object_store(client: Optional[httpx.AsyncClient] = None) -> S3Provider:
    """Initialize the shared object store client.

    The underlying HTTP connection pool is created lazily on first request.
    """
    global _object_store

    if _object_store is not None:
        logger.warning("Object store already initialized")
        return _object_store

    _object_store = S3Provider(client=client)
    logger.info("Object store initialized", provider="s3")
    return _object_store


def get_object_store_client() -> Optional[S3Provider]:
    """Get object store instance, or None if not initialized."""
    return _object_store


async def shutdown_object_store() -> None:
    """Close the shared HTTP client."""
    global _object_store

    if _object_store is None:
        return

    try:
        await _object_store.close()
        logger.info("Object store shutdown")
    finally:
        _object_store = None


def get_object_store() -> S3Provider:
    """Return the initialized object store.

    Raises:
        RuntimeError: If the object store was not initialized
    """
    store = get_object_store_client()
    if store is None:
        raise RuntimeError(
            "Object store not initialized. "
            "Call init_object_store() during startup."
        )
    return store


# Export public interface
__all__ = [
    # Lifecycle
    "init_object_store",
    "get_object_store_client",
    "shutdown_object_store",
    "get_object_store",

    # Providers
    "ObjectStoreProvider",
    "S3Provider",

    # Models
    "ProgressCallback",
    "UploadResult",

    # Exceptions
    "StorageError",
    "ConfigurationError",
    "TransportError",
    "ProtocolError",
    "PermissionDeniedError",
    "NotFoundError",
    "FilesystemError",
    "InvalidKeyError",

    # Signing
    "sign",
    "sign_request",
    "parse_authorization",

    # Utils
    "parse_list_response",
]

# Import models and exceptions for easier access
from .models import ProgressCallback, UploadResult
from .exceptions import (
    StorageError,
    ConfigurationError,
    TransportError,
    ProtocolError,
    PermissionDeniedError,
    NotFoundError,
    FilesystemError,
    InvalidKeyError,
)
from .signer import sign, sign_request, parse_authorization
from .list_parser import parse_list_response
