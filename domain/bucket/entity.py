"""Domain value objects describing a bucket target and its stored objects."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_prefix(prefix: str) -> str:
    """Key prefix with surrounding whitespace/slashes removed and one trailing ``/``."""
    prefix = prefix.strip().strip("/")
    return f"{prefix}/" if prefix else ""


class RenameMode(str, Enum):
    ORIGINAL = "original"
    DATE_TIME = "dateTime"
    HASH = "hash"
    CUSTOM = "custom"


class DateTimeFormat(str, Enum):
    UNIX = "unix"
    ISO8601 = "iso8601"
    COMPACT = "compact"
    DATE_ONLY = "dateOnly"


class HashAlgorithm(str, Enum):
    SHA256 = "sha256"
    MD5 = "md5"


@dataclass(frozen=True)
class URLTemplate:
    """Labelled URL pattern used to build shareable links for a key."""

    label: str
    template: str

    @property
    def is_blank(self) -> bool:
        return not self.template.strip()

    @classmethod
    def presets(cls) -> list[URLTemplate]:
        return [
            cls(label="Public URL", template="https://example.com/${PATH}"),
            cls(label="S3 URI", template="s3://${BUCKET}/${PATH}"),
            cls(label="AWS Direct", template="https://${BUCKET}.s3.${REGION}.amazonaws.com/${PATH}"),
        ]


@dataclass(frozen=True)
class RenamePolicy:
    """How the basename of an uploaded object is derived.

    Only the fields relevant to ``mode`` are consulted; ``hash_algorithm`` is
    also used by the ``${hash}`` token of custom templates.
    """

    mode: RenameMode = RenameMode.ORIGINAL
    date_format: DateTimeFormat = DateTimeFormat.UNIX
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256
    template: str = "${original}"

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", RenameMode(self.mode))
        object.__setattr__(self, "date_format", DateTimeFormat(self.date_format))
        object.__setattr__(self, "hash_algorithm", HashAlgorithm(self.hash_algorithm))

    @classmethod
    def original(cls) -> RenamePolicy:
        return cls(mode=RenameMode.ORIGINAL)

    @classmethod
    def date_time(cls, date_format: DateTimeFormat | str = DateTimeFormat.UNIX) -> RenamePolicy:
        return cls(mode=RenameMode.DATE_TIME, date_format=DateTimeFormat(date_format))

    @classmethod
    def hash(cls, algorithm: HashAlgorithm | str = HashAlgorithm.SHA256) -> RenamePolicy:
        return cls(mode=RenameMode.HASH, hash_algorithm=HashAlgorithm(algorithm))

    @classmethod
    def custom(
        cls,
        template: str,
        hash_algorithm: HashAlgorithm | str = HashAlgorithm.SHA256,
    ) -> RenamePolicy:
        return cls(mode=RenameMode.CUSTOM, template=template, hash_algorithm=HashAlgorithm(hash_algorithm))


@dataclass(frozen=True)
class BucketEndpointConfig:
    """Fully resolved snapshot of one upload target.

    Immutable and passed explicitly into every storage call; two calls never
    share anything but this value.
    """

    access_key_id: str
    secret_access_key: str = field(repr=False)
    bucket: str
    region: str = "us-east-1"
    endpoint: str = ""
    key_prefix: str = ""
    uri_scheme: str = "s3"
    url_templates: Sequence[URLTemplate] = ()
    rename_policy: RenamePolicy = field(default_factory=RenamePolicy)
    acl: Optional[str] = None
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "url_templates", tuple(self.url_templates))

    @property
    def is_configured(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key and self.bucket)

    @property
    def is_custom_endpoint(self) -> bool:
        return bool(self.endpoint.strip())

    @property
    def normalized_prefix(self) -> str:
        return normalize_prefix(self.key_prefix)

    @property
    def default_template(self) -> Optional[URLTemplate]:
        for template in self.url_templates:
            if not template.is_blank:
                return template
        return None

    def display_name(self) -> str:
        return self.name.strip() or self.bucket or "Unnamed bucket"


@dataclass(frozen=True)
class S3Object:
    """Object entry as returned by a listing or synthesized after upload."""

    key: str
    size: int = 0
    last_modified: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "last_modified", ensure_utc(self.last_modified))

    @property
    def filename(self) -> str:
        # Keys are opaque: no de-duplication prefix is assumed or stripped
        return self.key.rstrip("/").rsplit("/", 1)[-1]
