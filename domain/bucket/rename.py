"""Storage key naming for uploads."""
from __future__ import annotations

import hashlib
import os
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from .entity import DateTimeFormat, HashAlgorithm, RenameMode, RenamePolicy, ensure_utc, normalize_prefix

_TOKEN_RE = re.compile(r"\$\{(\w+)\}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _short_token() -> str:
    return uuid.uuid4().hex[:8].upper()


@dataclass(frozen=True)
class RenameResult:
    basename: str
    content_hash: Optional[str] = None


def content_digest(data: bytes, algorithm: HashAlgorithm | str = HashAlgorithm.SHA256) -> str:
    if HashAlgorithm(algorithm) is HashAlgorithm.MD5:
        return hashlib.md5(data).hexdigest()
    return hashlib.sha256(data).hexdigest()


def format_timestamp(now: datetime, date_format: DateTimeFormat | str) -> str:
    now = ensure_utc(now)
    date_format = DateTimeFormat(date_format)
    if date_format is DateTimeFormat.UNIX:
        return str(int(now.timestamp()))
    if date_format is DateTimeFormat.ISO8601:
        # Internet date-time with colons made path friendly
        return now.strftime("%Y-%m-%dT%H-%M-%SZ")
    if date_format is DateTimeFormat.COMPACT:
        return now.strftime("%Y%m%d%H%M%S")
    return now.strftime("%Y-%m-%d")


def _render_custom(
    template: str,
    filename: str,
    data: bytes,
    policy: RenamePolicy,
    now: datetime,
    token_factory: Callable[[], str],
) -> RenameResult:
    stem, ext = os.path.splitext(filename)
    content_hash: Optional[str] = None
    if "${hash}" in template or "${HASH}" in template:
        content_hash = content_digest(data, policy.hash_algorithm)

    values = {
        "original": filename,
        "basename": stem,
        "ext": ext,
        "year": f"{now.year:04d}",
        "month": f"{now.month:02d}",
        "day": f"{now.day:02d}",
        "hour": f"{now.hour:02d}",
        "minute": f"{now.minute:02d}",
        "second": f"{now.second:02d}",
        "timestamp": str(int(now.timestamp())),
        "hash": content_hash or "",
    }
    token: Optional[str] = None

    def substitute(match: re.Match) -> str:
        nonlocal token
        name = match.group(1)
        lookup = name.lower()
        # Tokens are all-lowercase or all-uppercase; anything else stays literal
        if name not in (lookup, lookup.upper()):
            return match.group(0)
        if lookup == "uuid":
            # One token per upload, however often it appears
            if token is None:
                token = token_factory()
            return token
        return values.get(lookup, match.group(0))

    # Single pass: substituted text is never expanded again
    resolved = _TOKEN_RE.sub(substitute, template).strip()
    return RenameResult(basename=resolved or filename, content_hash=content_hash)


def compute_basename(
    filename: str,
    data: bytes,
    policy: RenamePolicy,
    now: Optional[datetime] = None,
    token_factory: Callable[[], str] = _short_token,
) -> RenameResult:
    """Basename (and content hash when one was computed) for an upload.

    Hash-based policies read the whole payload, so the key is only known
    once ``data`` is fully in memory.
    """
    now = ensure_utc(now or _utcnow())
    _, ext = os.path.splitext(filename)

    if policy.mode is RenameMode.DATE_TIME:
        return RenameResult(basename=format_timestamp(now, policy.date_format) + ext)

    if policy.mode is RenameMode.HASH:
        digest = content_digest(data, policy.hash_algorithm)
        return RenameResult(basename=digest + ext, content_hash=digest)

    if policy.mode is RenameMode.CUSTOM:
        return _render_custom(policy.template, filename, data, policy, now, token_factory)

    return RenameResult(basename=filename)


def compute_key(
    filename: str,
    data: bytes,
    policy: RenamePolicy,
    key_prefix: str = "",
    now: Optional[datetime] = None,
    token_factory: Callable[[], str] = _short_token,
) -> tuple[str, RenameResult]:
    """Full storage key (normalized prefix + basename) and the rename details."""
    result = compute_basename(filename, data, policy, now=now, token_factory=token_factory)
    return normalize_prefix(key_prefix) + result.basename, result
