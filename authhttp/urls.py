"""Query-string and URL helpers."""

from __future__ import annotations

import urllib.parse
from collections.abc import Callable, Mapping

from authhttp.errors import ConfigError, EncodingError


def url_text(url) -> str:
    """Accept a URL string or a urllib.parse result and return its text."""
    if hasattr(url, "geturl"):
        return url.geturl()
    return str(url)


def _well_formed(text: str) -> bool:
    try:
        parts = urllib.parse.urlsplit(text)
        parts.port  # raises on an out-of-range port
    except ValueError:
        return False
    return parts.scheme.lower() in ("http", "https") and bool(parts.hostname)


def constant_url(text: str) -> str:
    """Validate a URL literal that is known to be good, e.g. a module constant.

    A failure here is a programming error, never caller data.
    """
    if not isinstance(text, str) or not _well_formed(text):
        raise ConfigError(f"Couldn't create constant for {text}")
    return text


def build_query(
    params: Mapping[str, object] | None,
    observer: Callable[[str], None] | None = None,
    strict: bool = False,
) -> str:
    """Encode `params` as `k=v&k2` in iteration order.

    None values produce a bare key. A pair that cannot be encoded is skipped
    (and reported to `observer`) unless `strict` is set, which raises
    EncodingError instead.
    """
    if not params:
        return ""

    pairs: list[str] = []
    for key, value in params.items():
        try:
            pair = urllib.parse.quote_plus(str(key))
            if value is not None:
                pair += "=" + urllib.parse.quote_plus(str(value))
        except UnicodeEncodeError as exc:
            if strict:
                raise EncodingError(f"cannot encode query parameter {key!r}") from exc
            if observer is not None:
                observer(f"Skipping query parameter that cannot be encoded: {exc}")
            continue
        pairs.append(pair)

    return "&".join(pairs)


def concatenate_url(url, query: str) -> str:
    """Append `query` to `url` with `&` if it already has a query, else `?`."""
    parts = urllib.parse.urlsplit(url_text(url))
    joined = f"{parts.query}&{query}" if parts.query else query
    result = urllib.parse.urlunsplit(parts._replace(query=joined))
    if not _well_formed(result):
        raise ConfigError(f"Could not concatenate {url_text(url)!r} with GET arguments")
    return result
