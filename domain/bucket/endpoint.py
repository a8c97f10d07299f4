"""Endpoint resolution for virtual-hosted and path-style bucket addressing.

AWS S3 proper is addressed virtual-hosted style
(``https://{bucket}.s3.{region}.amazonaws.com/{key}``). Any configured custom
endpoint (R2, GCS, MinIO, ...) is addressed path-style
(``{endpoint}/{bucket}/{key}``), which every S3-compatible service accepts.
"""
from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import urlsplit

from .entity import BucketEndpointConfig

_UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)


def aws_uri_encode(value: str, encode_slash: bool = False) -> str:
    """Percent-encode ``value`` the way SigV4 canonicalization expects.

    Every UTF-8 byte outside ``A-Za-z0-9-_.~`` becomes ``%XX`` (upper hex).
    Unless ``encode_slash`` is set, ``/`` is kept as a segment separator and
    each segment is encoded on its own, so slashes are never double-encoded.
    """
    if not encode_slash:
        return "/".join(aws_uri_encode(segment, encode_slash=True) for segment in value.split("/"))
    return "".join(
        chr(byte) if byte in _UNRESERVED else f"%{byte:02X}"
        for byte in value.encode("utf-8")
    )


def canonical_query_string(params: Iterable[tuple[str, str]]) -> str:
    """Build a SigV4 canonical query: encoded pairs sorted by name, then value."""
    encoded = [
        (aws_uri_encode(name, encode_slash=True), aws_uri_encode(value, encode_slash=True))
        for name, value in params
    ]
    return "&".join(f"{name}={value}" for name, value in sorted(encoded))


def _custom_endpoint(config: BucketEndpointConfig) -> str:
    endpoint = config.endpoint.strip().rstrip("/")
    if "://" not in endpoint:
        endpoint = f"https://{endpoint}"
    return endpoint


def _aws_host(config: BucketEndpointConfig) -> str:
    return f"{config.bucket}.s3.{config.region}.amazonaws.com"


def build_host(config: BucketEndpointConfig) -> str:
    """Value of the signed ``host`` header for ``config``."""
    if config.is_custom_endpoint:
        netloc = urlsplit(_custom_endpoint(config)).netloc
        # Drop any userinfo; keep an explicit port, it is part of Host
        host = netloc.rsplit("@", 1)[-1]
        if host:
            return host
    return _aws_host(config)


def build_endpoint(config: BucketEndpointConfig) -> str:
    """Base URL every object path is appended to (no trailing slash)."""
    if config.is_custom_endpoint:
        return f"{_custom_endpoint(config)}/{config.bucket}"
    return f"https://{_aws_host(config)}"


def build_signing_path(config: BucketEndpointConfig, key: Optional[str] = None) -> str:
    """Canonical URI for a bucket-level (``key=None``) or object-level request."""
    bucket_part = f"/{config.bucket}" if config.is_custom_endpoint else ""
    if key is None:
        return f"{bucket_part}/"
    return f"{bucket_part}/{aws_uri_encode(key)}"


def build_object_url(config: BucketEndpointConfig, key: str) -> str:
    return f"{build_endpoint(config)}/{aws_uri_encode(key)}"


def bucket_uri(config: BucketEndpointConfig) -> str:
    """Human-readable ``scheme://bucket/prefix/`` location of ``config``."""
    scheme = config.uri_scheme.strip() or "s3"
    bucket = config.bucket.strip()
    if not bucket:
        return f"{scheme}://your-bucket/"
    return f"{scheme}://{bucket}/{config.normalized_prefix}"
