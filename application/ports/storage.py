"""Application-owned object store port abstraction (hexagonal architecture).

Defines the minimal methods needed by application use cases so that
the application layer does not depend on infrastructure details.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol, Union, runtime_checkable

from domain.bucket import BucketEndpointConfig, S3Object, URLTemplate

ProgressCallback = Callable[[float], None]


@dataclass
class StoredUpload:
    key: str
    url: str
    size: int
    content_type: Optional[str] = None
    payload_sha256: Optional[str] = None
    etag: Optional[str] = None


@runtime_checkable
class ObjectStorePort(Protocol):
    async def upload(
        self,
        data: bytes,
        key: str,
        content_type: str,
        config: BucketEndpointConfig,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StoredUpload: ...

    async def list_objects(
        self,
        config: BucketEndpointConfig,
        max_keys: Optional[int] = None,
    ) -> list[S3Object]: ...

    async def download(
        self,
        key: str,
        destination: Union[str, Path],
        config: BucketEndpointConfig,
        overwrite: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Path: ...

    async def delete(self, key: str, config: BucketEndpointConfig) -> bool: ...

    def build_url(
        self,
        key: str,
        config: BucketEndpointConfig,
        template: Union[URLTemplate, str, None] = None,
        basename: Optional[str] = None,
    ) -> str: ...
