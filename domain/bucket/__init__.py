"""Bucket domain exports."""
from .entity import (
    BucketEndpointConfig,
    DateTimeFormat,
    HashAlgorithm,
    RenameMode,
    RenamePolicy,
    S3Object,
    URLTemplate,
    normalize_prefix,
)
from .endpoint import (
    aws_uri_encode,
    bucket_uri,
    build_endpoint,
    build_host,
    build_object_url,
    build_signing_path,
    canonical_query_string,
)
from .rename import RenameResult, compute_basename, compute_key, content_digest
from .url_template import build_url, resolve_template

__all__ = [
    "BucketEndpointConfig",
    "DateTimeFormat",
    "HashAlgorithm",
    "RenameMode",
    "RenamePolicy",
    "S3Object",
    "URLTemplate",
    "normalize_prefix",
    "aws_uri_encode",
    "bucket_uri",
    "build_endpoint",
    "build_host",
    "build_object_url",
    "build_signing_path",
    "canonical_query_string",
    "RenameResult",
    "compute_basename",
    "compute_key",
    "content_digest",
    "build_url",
    "resolve_template",
]
