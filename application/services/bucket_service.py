"""Application layer orchestration for bucket uploads, listings and downloads."""
from __future__ import annotations

from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

import anyio

from application.dto import BatchUploadItemDTO, UploadedFileDTO
from application.ports.storage import ObjectStorePort, ProgressCallback
from application.utils.storage import guess_content_type
from core.logging_config import get_logger
from domain.bucket import BucketEndpointConfig, S3Object, URLTemplate, bucket_uri, compute_key
from infrastructure.external.storage.exceptions import (
    ConfigurationError,
    FilesystemError,
    InvalidKeyError,
    StorageError,
)

logger = get_logger(__name__)

# Called with (item index, fraction) during a batch upload
BatchProgressCallback = Callable[[int, float], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _display_name(value: str) -> str:
    """``value`` with lone surrogates (undecodable filesystem bytes) shown as U+FFFD."""
    return "".join("\ufffd" if "\ud800" <= char <= "\udfff" else char for char in value)


class BucketService:
    """High-level bucket workflows used by UI and CLI collaborators.

    The service turns a filename and its bytes into a storage key (via the
    config's rename policy) and a content type, then delegates the transfer to
    the object store. Every operation checks the config before touching the
    filesystem or the network.
    """

    def __init__(
        self,
        store: ObjectStorePort,
        clock: Callable[[], datetime] = _utcnow,
        token_factory: Optional[Callable[[], str]] = None,
    ):
        self._store = store
        self._clock = clock
        self._token_factory = token_factory

    def _ensure_configured(self, config: BucketEndpointConfig) -> None:
        if not config.is_configured:
            raise ConfigurationError(
                f"{config.display_name()}: S3 not configured. "
                "Please add access key, secret key and bucket in settings."
            )

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------
    async def upload(
        self,
        data: bytes,
        filename: str,
        config: BucketEndpointConfig,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadedFileDTO:
        self._ensure_configured(config)

        now = self._clock()
        rename_kwargs = {} if self._token_factory is None else {"token_factory": self._token_factory}
        key, rename = compute_key(
            filename,
            data,
            config.rename_policy,
            key_prefix=config.key_prefix,
            now=now,
            **rename_kwargs,
        )
        try:
            key.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise InvalidKeyError(
                f"Cannot upload {_display_name(filename)}: the name is not valid UTF-8"
            ) from exc
        content_type = guess_content_type(filename)

        stored = await self._store.upload(data, key, content_type, config, on_progress=on_progress)
        logger.info("File uploaded", filename=filename, key=stored.key, bucket=config.bucket)
        return UploadedFileDTO(
            key=stored.key,
            url=stored.url,
            filename=filename,
            content_type=content_type,
            size=stored.size,
            content_hash=rename.content_hash or stored.payload_sha256,
            uploaded_at=now,
        )

    async def upload_file(
        self,
        path: Union[str, Path],
        config: BucketEndpointConfig,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadedFileDTO:
        self._ensure_configured(config)

        path = Path(path)
        try:
            data = await anyio.Path(path).read_bytes()
        except OSError as exc:
            raise FilesystemError(
                f"Could not read {_display_name(str(path))}: {exc.strerror or exc}", path=str(path)
            ) from exc
        return await self.upload(data, path.name, config, on_progress=on_progress)

    async def upload_many(
        self,
        paths: Iterable[Union[str, Path]],
        config: BucketEndpointConfig,
        concurrency: int = 1,
        on_progress: Optional[BatchProgressCallback] = None,
    ) -> list[BatchUploadItemDTO]:
        """Upload each path independently; results keep the input order.

        A failing item is recorded with its error message and never aborts
        its siblings. A configuration error fails the whole batch up front.
        """
        self._ensure_configured(config)

        paths = [Path(p) for p in paths]
        items: list[Optional[BatchUploadItemDTO]] = [None] * len(paths)
        limiter = anyio.CapacityLimiter(max(1, concurrency))

        async def run(index: int, path: Path) -> None:
            async with limiter:
                callback = partial(on_progress, index) if on_progress is not None else None
                name = _display_name(path.name)
                try:
                    result = await self.upload_file(path, config, on_progress=callback)
                except StorageError as exc:
                    logger.warning("Batch item failed", filename=name, error=exc.message)
                    items[index] = BatchUploadItemDTO(filename=name, path=_display_name(str(path)), error=exc.message)
                else:
                    items[index] = BatchUploadItemDTO(filename=name, path=_display_name(str(path)), result=result)

        async with anyio.create_task_group() as tg:
            for index, path in enumerate(paths):
                tg.start_soon(run, index, path)

        results = [item for item in items if item is not None]
        logger.info(
            "Batch upload finished",
            total=len(results),
            failed=sum(1 for item in results if not item.ok),
            bucket=config.bucket,
        )
        return results

    # ------------------------------------------------------------------
    # Listing, downloads and deletes
    # ------------------------------------------------------------------
    async def list(self, config: BucketEndpointConfig, max_keys: Optional[int] = None) -> list[S3Object]:
        self._ensure_configured(config)
        return await self._store.list_objects(config, max_keys=max_keys)

    async def download(
        self,
        key: str,
        destination: Union[str, Path],
        config: BucketEndpointConfig,
        overwrite: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Path:
        self._ensure_configured(config)
        return await self._store.download(key, destination, config, overwrite=overwrite, on_progress=on_progress)

    async def delete(self, key: str, config: BucketEndpointConfig) -> bool:
        self._ensure_configured(config)
        return await self._store.delete(key, config)

    # ------------------------------------------------------------------
    # Pure helpers
    # ------------------------------------------------------------------
    def build_url(
        self,
        key: str,
        config: BucketEndpointConfig,
        template: Union[URLTemplate, str, None] = None,
        basename: Optional[str] = None,
    ) -> str:
        return self._store.build_url(key, config, template=template, basename=basename)

    def template_urls(self, key: str, config: BucketEndpointConfig) -> dict[str, str]:
        """URL per non-blank template label, in config order."""
        return {
            template.label: self.build_url(key, config, template=template)
            for template in config.url_templates
            if not template.is_blank
        }

    def bucket_uri(self, config: BucketEndpointConfig) -> str:
        return bucket_uri(config)
