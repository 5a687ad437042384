"""Bidirectional mapping between exposed and internal setting keys.

Purpose
-------
Users type dotted, lowercase names (``mirror.https://rubygems.org``,
``build.nokogiri``); files and the environment store uppercase, prefixed names
(``BUNDLE_MIRROR__HTTPS://RUBYGEMS__ORG/``). This module owns the translation
in both directions.

Contents
--------
* :data:`SETTINGS_PREFIX` – namespace shared by files and environment variables.
* :func:`key_for` – exposed → internal.
* :func:`exposed_key_for` – internal → exposed.
* :func:`is_internal_key` – recognise names that belong to the namespace.
* :func:`parent_setting_for` / :func:`specific_gem_for` – split ``<setting>.<gem>``.

System Role
-----------
Pure functions consulted by the layered store on every read and write.
"""

from __future__ import annotations

import re
from typing import Final

from .uri import normalize_uri

#: Upper-case namespace shared by settings files and environment variables.
SETTINGS_PREFIX: Final[str] = "BUNDLE"

_INTERNAL_PREFIX: Final[str] = f"{SETTINGS_PREFIX}_"
_URI_MARKER: Final[re.Pattern[str]] = re.compile(r"https?:")
_INTERNAL_KEY: Final[re.Pattern[str]] = re.compile(rf"\A{_INTERNAL_PREFIX}.+")


def key_for(key: object) -> str:
    """Return the internal storage key for the exposed *key*.

    URI-shaped keys are normalised first so trailing-slash variants collapse.

    Examples
    --------
    >>> key_for("timeout")
    'BUNDLE_TIMEOUT'
    >>> key_for("build.nokogiri")
    'BUNDLE_BUILD__NOKOGIRI'
    >>> key_for("mirror.https://rubygems.org")
    'BUNDLE_MIRROR__HTTPS://RUBYGEMS__ORG/'
    """

    text = str(key)
    if isinstance(key, str) and _URI_MARKER.search(text):
        text = normalize_uri(text)
    return _INTERNAL_PREFIX + text.replace(".", "__").upper()


def exposed_key_for(internal_key: str) -> str:
    """Return the dotted, lowercase name for *internal_key*.

    Examples
    --------
    >>> exposed_key_for("BUNDLE_MIRROR__HTTPS://RUBYGEMS__ORG/")
    'mirror.https://rubygems.org/'
    >>> exposed_key_for(key_for("local.rack"))
    'local.rack'
    """

    stripped = internal_key[len(_INTERNAL_PREFIX) :] if internal_key.startswith(_INTERNAL_PREFIX) else internal_key
    return stripped.replace("__", ".").lower()


def is_internal_key(name: str) -> bool:
    """Return ``True`` when *name* is a ``BUNDLE_<something>`` variable.

    >>> is_internal_key("BUNDLE_PATH"), is_internal_key("BUNDLE_"), is_internal_key("PATH")
    (True, False, False)
    """

    return _INTERNAL_KEY.match(name) is not None


def parent_setting_for(name: str) -> str:
    """Return the leading segment of a ``<setting>.<gem>`` name.

    >>> parent_setting_for("build.nokogiri")
    'build'
    """

    return _split_specific_setting(name)[0]


def specific_gem_for(name: str) -> str | None:
    """Return the trailing gem segment of a ``<setting>.<gem>`` name, if any.

    >>> specific_gem_for("build.nokogiri"), specific_gem_for("timeout")
    ('nokogiri', None)
    """

    parts = _split_specific_setting(name)
    return parts[1] if len(parts) > 1 else None


def _split_specific_setting(name: str) -> list[str]:
    return name.split(".")
