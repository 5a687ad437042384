"""Canonical form for source URIs used as setting keys.

Purpose
-------
Per-source settings (credentials, mirrors, fallback timeouts) are keyed by the
source URI. Two spellings of the same source (``https://rubygems.org`` and
``https://rubygems.org/``) must land on the same key, so every URI-shaped key
passes through :func:`normalize_uri` before it is encoded.

Contents
--------
* :data:`PER_URI_OPTIONS` – option suffixes that may trail a URI key.
* :func:`normalize_uri` – canonicalise ``[prefix.]uri[.option]`` strings.
* :func:`uri_host` – host component helper used for credential fallbacks.
"""

from __future__ import annotations

import re
from typing import Final
from urllib.parse import urlsplit

from .errors import InvalidArgument

#: Option names that may follow a URI inside a key (``mirror.<uri>.fallback_timeout``).
PER_URI_OPTIONS: Final[tuple[str, ...]] = ("fallback_timeout",)

_ABSOLUTE_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})

_NORMALIZE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"""
    \A
    (\w+\.)?                          # optional prefix key
    (https?.*?)                       # URI
    (\.(?:{options}))?                # optional suffix key
    \Z
    """.format(options="|".join(re.escape(option) for option in PER_URI_OPTIONS)),
    re.IGNORECASE | re.VERBOSE,
)


def normalize_uri(uri: object) -> str:
    """Return the canonical spelling of *uri*, keeping any prefix/suffix keys.

    Why
    ----
    Keys such as ``mirror.https://rubygems.org`` and
    ``mirror.https://rubygems.org/`` must resolve to the same stored entry.

    What
    ----
    Splits an optional ``<word>.`` prefix and ``.<option>`` suffix away from the
    URI, appends a trailing slash when missing, validates that the URI is
    absolute, and reattaches the pieces.

    Raises
    ------
    InvalidArgument
        When the URI lacks an ``http``/``https`` scheme or a network location.

    Examples
    --------
    >>> normalize_uri("http://example.org")
    'http://example.org/'
    >>> normalize_uri("mirror.https://rubygems.org.fallback_timeout")
    'mirror.https://rubygems.org/.fallback_timeout'
    >>> normalize_uri(normalize_uri("https://gems.example/private"))
    'https://gems.example/private/'
    >>> normalize_uri("ftp://x")
    Traceback (most recent call last):
    ...
    bundle_settings.domain.errors.InvalidArgument: Gem sources must be absolute. You provided 'ftp://x/'.
    """

    text = str(uri)
    prefix = suffix = ""
    match = _NORMALIZE_PATTERN.match(text)
    if match:
        prefix = match.group(1) or ""
        text = match.group(2)
        suffix = match.group(3) or ""
    if not text.endswith("/"):
        text = f"{text}/"
    if not _is_absolute(text):
        raise InvalidArgument(f"Gem sources must be absolute. You provided '{text}'.")
    return f"{prefix}{text}{suffix}"


def uri_host(uri: object) -> str | None:
    """Return the host portion of *uri* or ``None`` when it has none.

    Examples
    --------
    >>> uri_host("https://user@gems.example.com:8443/private")
    'gems.example.com'
    >>> uri_host("not a uri") is None
    True
    """

    return urlsplit(str(uri)).hostname


def _is_absolute(uri: str) -> bool:
    """Return ``True`` when *uri* carries an http(s) scheme and a network location."""

    try:
        parts = urlsplit(uri)
    except ValueError:
        return False
    return parts.scheme.lower() in _ABSOLUTE_SCHEMES and bool(parts.netloc)
