"""Storage provider protocol definitions."""
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from domain.bucket import BucketEndpointConfig, S3Object, URLTemplate

from .models import ProgressCallback, UploadResult


@runtime_checkable
class ObjectStoreProvider(Protocol):
    """Operations an S3-compatible object store client exposes.

    Every call takes the bucket configuration explicitly; providers hold no
    per-bucket state.
    """

    async def upload(
        self,
        data: bytes,
        key: str,
        content_type: str,
        config: BucketEndpointConfig,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        """Upload bytes under ``key``."""
        ...

    async def list_objects(
        self,
        config: BucketEndpointConfig,
        max_keys: Optional[int] = None,
    ) -> list[S3Object]:
        """List objects under the config's key prefix, newest first."""
        ...

    async def download(
        self,
        key: str,
        destination: Union[str, Path],
        config: BucketEndpointConfig,
        overwrite: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Path:
        """Download ``key`` and return the path actually written."""
        ...

    async def delete(self, key: str, config: BucketEndpointConfig) -> bool:
        """Delete ``key``."""
        ...

    def build_url(
        self,
        key: str,
        config: BucketEndpointConfig,
        template: Union[URLTemplate, str, None] = None,
        basename: Optional[str] = None,
    ) -> str:
        """Shareable URL for ``key`` (no I/O)."""
        ...
