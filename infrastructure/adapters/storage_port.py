"""Infrastructure adapter that implements the application ObjectStorePort
by delegating to the concrete S3 provider and translating models.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from application.ports.storage import ObjectStorePort, ProgressCallback, StoredUpload
from domain.bucket import BucketEndpointConfig, S3Object, URLTemplate
from infrastructure.external.storage import ObjectStoreProvider


class ObjectStorePortAdapter(ObjectStorePort):
    def __init__(self, provider: ObjectStoreProvider):
        self.provider = provider

    async def upload(
        self,
        data: bytes,
        key: str,
        content_type: str,
        config: BucketEndpointConfig,
        on_progress: Optional[ProgressCallback] = None,
    ) -> StoredUpload:
        result = await self.provider.upload(data, key, content_type, config, on_progress=on_progress)
        return StoredUpload(
            key=getattr(result, "key", key),
            url=getattr(result, "url", ""),
            size=int(getattr(result, "size", len(data)) or 0),
            content_type=getattr(result, "content_type", content_type),
            payload_sha256=getattr(result, "payload_sha256", None),
            etag=getattr(result, "etag", None),
        )

    async def list_objects(
        self,
        config: BucketEndpointConfig,
        max_keys: Optional[int] = None,
    ) -> list[S3Object]:
        return await self.provider.list_objects(config, max_keys=max_keys)

    async def download(
        self,
        key: str,
        destination: Union[str, Path],
        config: BucketEndpointConfig,
        overwrite: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Path:
        return await self.provider.download(
            key, destination, config, overwrite=overwrite, on_progress=on_progress
        )

    async def delete(self, key: str, config: BucketEndpointConfig) -> bool:
        return await self.provider.delete(key, config)

    def build_url(
        self,
        key: str,
        config: BucketEndpointConfig,
        template: Union[URLTemplate, str, None] = None,
        basename: Optional[str] = None,
    ) -> str:
        return self.provider.build_url(key, config, template=template, basename=basename)
