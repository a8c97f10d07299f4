"""S3-compatible storage provider over plain HTTPS with SigV4 signing."""
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

import anyio
import httpx

from core.config import S3Settings, settings
from core.logging_config import get_logger
from domain.bucket import (
    BucketEndpointConfig,
    S3Object,
    URLTemplate,
    build_endpoint,
    build_host,
    build_object_url,
    build_signing_path,
    build_url,
    canonical_query_string,
)
from ..exceptions import (
    ConfigurationError,
    FilesystemError,
    NotFoundError,
    PermissionDeniedError,
    ProtocolError,
    TransportError,
)
from ..list_parser import parse_list_response
from ..models import ProgressCallback, UploadResult
from ..signer import EMPTY_PAYLOAD_HASH, SignedRequestSpec, hash_payload, sign_request
from ..utils import ProgressReporter, iter_chunks, unique_destination

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class S3Provider:
    """Object store client for AWS S3 and S3-compatible services.

    Stateless apart from the pooled HTTP client: each call receives its own
    BucketEndpointConfig and signs with a freshly captured timestamp, so
    concurrent calls never interfere. Each call is a single attempt.
    """

    SERVICE = "s3"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        s3_settings: Optional[S3Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize S3 provider.

        Args:
            client: Pre-built HTTP client (owned by the caller); one is created
                lazily from settings when omitted
            s3_settings: Client tuning, defaults to ``settings.s3``
            clock: UTC clock used for request signing
        """
        self.settings = s3_settings or settings.s3
        self.clock = clock
        self._client = client
        self._owns_client = client is None

    @property
    async def client(self) -> httpx.AsyncClient:
        """获取或创建HTTP客户端"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.timeout, connect=self.settings.connect_timeout),
                verify=self.settings.verify_ssl,
                headers={"User-Agent": self.settings.user_agent},
            )
            self._owns_client = True
        return self._client

    async def close(self):
        """关闭HTTP客户端"""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def upload(
        self,
        data: bytes,
        key: str,
        content_type: str,
        config: BucketEndpointConfig,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        """PUT ``data`` under ``key``, streaming the body in fixed-size chunks."""
        self._ensure_configured(config)
        reporter = ProgressReporter(on_progress)

        payload_hash = hash_payload(data)
        headers = {"content-type": content_type}
        if config.acl:
            headers["x-amz-acl"] = config.acl
        signed = self._sign(
            config,
            "PUT",
            build_signing_path(config, key),
            headers=headers,
            payload_hash=payload_hash,
        )
        # Explicit length keeps httpx from switching to chunked encoding, which S3 rejects
        signed["content-length"] = str(len(data))

        response = await self._send(
            "Upload",
            "PUT",
            build_object_url(config, key),
            signed,
            content=iter_chunks(data, self.settings.progress_chunk_size, reporter),
        )
        self._raise_for_status("Upload", response, (200,))
        reporter.finish()

        logger.info("Uploaded to S3", key=key, bucket=config.bucket, size=len(data))
        return UploadResult(
            key=key,
            url=self.build_url(key, config),
            size=len(data),
            content_type=content_type,
            payload_sha256=payload_hash,
            etag=response.headers.get("etag", "").strip('"') or None,
        )

    async def list_objects(
        self,
        config: BucketEndpointConfig,
        max_keys: Optional[int] = None,
    ) -> list[S3Object]:
        """ListObjectsV2 scoped to the config's key prefix, newest first."""
        self._ensure_configured(config)

        params = [("list-type", "2"), ("max-keys", str(max_keys or self.settings.list_max_keys))]
        prefix = config.normalized_prefix
        if prefix:
            params.append(("prefix", prefix))
        query = canonical_query_string(params)

        signed = self._sign(
            config,
            "GET",
            build_signing_path(config),
            query=query,
            payload_hash=EMPTY_PAYLOAD_HASH,
        )
        response = await self._send("List", "GET", f"{build_endpoint(config)}/?{query}", signed)
        self._raise_for_status("List", response, (200,))

        objects = parse_list_response(response.content, now=self.clock())
        logger.info("Listed S3 objects", bucket=config.bucket, prefix=prefix, count=len(objects))
        return objects

    async def download(
        self,
        key: str,
        destination: Union[str, Path],
        config: BucketEndpointConfig,
        overwrite: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Path:
        """GET ``key`` into ``destination``.

        When ``overwrite`` is false and the destination exists, the first free
        ``name (n).ext`` sibling is used instead. Returns the path written.
        """
        self._ensure_configured(config)
        reporter = ProgressReporter(on_progress)

        signed = self._sign(
            config,
            "GET",
            build_signing_path(config, key),
            payload_hash=EMPTY_PAYLOAD_HASH,
        )
        url = build_object_url(config, key)
        client = await self.client
        self._log_request("GET", url, signed)

        buffer = bytearray()
        with self._transport_errors("Download"):
            async with client.stream("GET", url, headers=signed) as response:
                if response.status_code != 200:
                    await response.aread()
                    self._raise_for_status("Download", response, (200,))
                total = _content_length(response)
                async for chunk in response.aiter_bytes(self.settings.progress_chunk_size):
                    buffer.extend(chunk)
                    reporter.update(len(buffer), total)

        target = Path(destination)
        if not overwrite:
            target = await unique_destination(target)
        try:
            await anyio.Path(target).write_bytes(bytes(buffer))
        except OSError as exc:
            raise FilesystemError(
                f"Could not write {target}: {exc.strerror or exc}",
                path=str(target),
            ) from exc
        reporter.finish()

        logger.info("Downloaded from S3", key=key, bucket=config.bucket, size=len(buffer), path=str(target))
        return target

    async def delete(self, key: str, config: BucketEndpointConfig) -> bool:
        """DELETE ``key``; S3 answers 204, some compatible services 200."""
        self._ensure_configured(config)

        signed = self._sign(
            config,
            "DELETE",
            build_signing_path(config, key),
            payload_hash=EMPTY_PAYLOAD_HASH,
        )
        response = await self._send("Delete", "DELETE", build_object_url(config, key), signed)
        self._raise_for_status("Delete", response, (200, 204))

        logger.info("Deleted from S3", key=key, bucket=config.bucket)
        return True

    def build_url(
        self,
        key: str,
        config: BucketEndpointConfig,
        template: Union[URLTemplate, str, None] = None,
        basename: Optional[str] = None,
    ) -> str:
        return build_url(key, config, template=template, basename=basename)

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------
    def _ensure_configured(self, config: BucketEndpointConfig) -> None:
        if not config.is_configured:
            raise ConfigurationError(
                f"{config.display_name()}: S3 not configured. "
                "Please add access key, secret key and bucket in settings."
            )

    def _sign(
        self,
        config: BucketEndpointConfig,
        method: str,
        path: str,
        query: str = "",
        headers: Optional[dict[str, str]] = None,
        payload_hash: Optional[str] = None,
    ) -> dict[str, str]:
        spec = SignedRequestSpec(
            method=method,
            canonical_path=path,
            canonical_query=query,
            headers={"host": build_host(config), **(headers or {})},
            payload_hash=payload_hash,
        )
        result = sign_request(
            spec,
            config.access_key_id,
            config.secret_access_key,
            config.region,
            self.SERVICE,
            now=self.clock(),
        )
        return dict(result.headers)

    @contextmanager
    def _transport_errors(self, operation: str):
        try:
            yield
        except httpx.TimeoutException as exc:
            raise TransportError(f"{operation} timed out after {self.settings.timeout}s") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"{operation} failed: network error: {exc}") from exc

    async def _send(
        self,
        operation: str,
        method: str,
        url: str,
        headers: dict[str, str],
        content=None,
    ) -> httpx.Response:
        client = await self.client
        self._log_request(method, url, headers)
        start_time = time.monotonic()
        with self._transport_errors(operation):
            response = await client.request(method, url, headers=headers, content=content)
        self._log_response(operation, response, (time.monotonic() - start_time) * 1000)
        return response

    def _raise_for_status(self, operation: str, response: httpx.Response, expected: Iterable[int]) -> None:
        if response.status_code in expected:
            return

        body = response.text
        if response.status_code in (401, 403):
            error_class = PermissionDeniedError
        elif response.status_code == 404:
            error_class = NotFoundError
        else:
            error_class = ProtocolError

        logger.warning(
            "S3 request rejected",
            operation=operation,
            status=response.status_code,
            url=str(response.request.url),
        )
        raise error_class(
            f"{operation} failed: {response.status_code} - {body}",
            status_code=response.status_code,
            body=body,
        )

    def _log_request(self, method: str, url: str, headers: dict[str, str]) -> None:
        if self.settings.log_requests:
            logger.debug(
                "S3 request",
                method=method,
                url=url,
                headers={k: v for k, v in headers.items() if k.lower() != "authorization"},
            )

    def _log_response(self, operation: str, response: httpx.Response, elapsed_ms: float) -> None:
        if self.settings.log_requests:
            logger.debug(
                "S3 response",
                operation=operation,
                status=response.status_code,
                elapsed_ms=f"{elapsed_ms:.2f}",
                request_id=response.headers.get("x-amz-request-id"),
            )


def _content_length(response: httpx.Response) -> int:
    try:
        return int(response.headers.get("content-length", "0"))
    except ValueError:
        return 0
