"""Lenient parser for S3 ``ListObjectsV2`` XML responses.

Only the handful of ``<Contents>`` fields the client needs are extracted, by
plain pattern search rather than a DOM. A single bad entry never fails the
whole listing: a missing ``<Size>`` becomes 0 and a missing or unparseable
``<LastModified>`` becomes the current time.
"""
import html
import re
from datetime import datetime, timezone
from typing import Optional, Union

from core.logging_config import get_logger
from domain.bucket import S3Object

logger = get_logger(__name__)

_CONTENTS_RE = re.compile(r"<Contents>(.*?)</Contents>", re.DOTALL)
_TIMESTAMP_FORMATS = ("%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z")
# strptime's %f takes at most microseconds
_EXCESS_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _tag_text(block: str, tag: str) -> Optional[str]:
    start = block.find(f"<{tag}>")
    if start == -1:
        return None
    start += len(tag) + 2
    end = block.find(f"</{tag}>", start)
    if end == -1:
        return None
    return html.unescape(block[start:end])


def parse_last_modified(value: str) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp, fractional seconds first, then whole seconds."""
    value = _EXCESS_FRACTION_RE.sub(r"\1", value.strip())
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt).astimezone(timezone.utc)
        except ValueError:
            continue
    return None


def _parse_size(value: Optional[str]) -> int:
    if value is None:
        return 0
    try:
        return int(value.strip())
    except ValueError:
        return 0


def parse_list_response(body: Union[bytes, str], now: Optional[datetime] = None) -> list[S3Object]:
    """Objects in ``body``, most recently modified first."""
    xml = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    fallback_time = now or datetime.now(timezone.utc)

    objects = []
    for match in _CONTENTS_RE.finditer(xml):
        block = match.group(1)
        key = _tag_text(block, "Key")
        if key is None:
            continue

        last_modified = None
        raw_date = _tag_text(block, "LastModified")
        if raw_date is not None:
            last_modified = parse_last_modified(raw_date)
        if last_modified is None:
            logger.debug("List entry without a usable LastModified", key=key, value=raw_date)
            last_modified = fallback_time

        objects.append(S3Object(
            key=key,
            size=_parse_size(_tag_text(block, "Size")),
            last_modified=last_modified,
        ))

    objects.sort(key=lambda obj: obj.last_modified, reverse=True)
    return objects
