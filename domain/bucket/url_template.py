"""Resolve user-defined URL templates into shareable links."""
from __future__ import annotations

from typing import Optional, Union

from .endpoint import aws_uri_encode, build_object_url
from .entity import BucketEndpointConfig, URLTemplate


def resolve_template(
    template: str,
    key: str,
    config: BucketEndpointConfig,
    basename: Optional[str] = None,
) -> str:
    """Substitute the supported tokens in ``template`` (literal replacement).

    ``basename`` overrides the last key segment used for ``${KEY}`` and
    ``${BASENAME}``; it is encoded like the key itself.
    """
    last_segment = basename if basename is not None else key.rsplit("/", 1)[-1]
    encoded_segment = aws_uri_encode(last_segment, encode_slash=True)
    replacements = (
        ("${SCHEME}", config.uri_scheme),
        ("${BUCKET}", config.bucket),
        ("${PATH}", aws_uri_encode(key)),
        ("${BASENAME}", encoded_segment),
        ("${KEY}", encoded_segment),
        ("${REGION}", config.region),
        ("${ENDPOINT}", config.endpoint),
    )
    resolved = template
    for token, value in replacements:
        resolved = resolved.replace(token, value)
    return resolved


def build_url(
    key: str,
    config: BucketEndpointConfig,
    template: Union[URLTemplate, str, None] = None,
    basename: Optional[str] = None,
) -> str:
    """Shareable URL for ``key``.

    Without an explicit template the config's default (first non-blank)
    template is used. A missing template, or one resolving to blank text,
    falls back to the object's direct endpoint URL.
    """
    if template is None:
        template = config.default_template
    if isinstance(template, URLTemplate):
        template = template.template
    if template:
        resolved = resolve_template(template, key, config, basename).strip()
        if resolved:
            return resolved
    return build_object_url(config, key)
