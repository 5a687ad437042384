"""Mirror table derived from ``mirror.*`` settings.

Purpose
-------
Users can redirect a gem source to a mirror, either per source
(``mirror.https://rubygems.org``) or for every source (``mirror.all``), and may
attach a fallback timeout (``mirror.<uri>.fallback_timeout``) so an unreachable
mirror falls back to the original source.

Contents
--------
* :class:`Mirror` – replacement URI plus fallback timeout.
* :class:`MirrorConfig` – one parsed ``mirror.*`` key/value pair.
* :class:`Mirrors` – registry answering "which URI should I fetch *uri* from?".
* :func:`build_mirrors` – scan exposed keys and populate a :class:`Mirrors`.

System Role
-----------
Pure domain logic. Reachability checks are delegated to a
:class:`~bundle_settings.application.ports.MirrorProbe` supplied by the caller.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Final, Iterable

from .coercion import to_int
from .uri import normalize_uri, uri_host
from .errors import InvalidArgument

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..application.ports import MirrorProbe

MIRROR_PREFIX: Final[str] = "mirror."

#: Timeout used when ``fallback_timeout`` is set to ``true``.
DEFAULT_FALLBACK_TIMEOUT: Final[float] = 0.1

_MIRROR_KEY: Final[re.Pattern[str]] = re.compile(r"\Amirror\.(all|.+?)(\.fallback_timeout)?/?\Z")


@dataclass(slots=True)
class Mirror:
    """A replacement URI for a source plus the fallback timeout.

    A mirror with a zero timeout is used unconditionally; a positive timeout
    means the mirror must answer a probe within that many seconds.

    Examples
    --------
    >>> Mirror("https://mirror.example", "true").fallback_timeout
    0.1
    >>> Mirror("https://mirror.example", "false").fallback_timeout
    0
    >>> Mirror("https://mirror.example", "3").fallback_timeout
    3
    """

    uri: str | None = None
    fallback_timeout: float = 0
    _valid: bool | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.set_uri(self.uri)
        self.set_fallback_timeout(self.fallback_timeout)

    def set_uri(self, uri: object) -> None:
        self.uri = None if uri is None else str(uri).strip()
        self._valid = None

    def set_fallback_timeout(self, timeout: object) -> None:
        if timeout is True or timeout == "true":
            self.fallback_timeout = DEFAULT_FALLBACK_TIMEOUT
        elif timeout is False or timeout == "false" or timeout is None:
            self.fallback_timeout = 0
        elif isinstance(timeout, float):
            self.fallback_timeout = timeout
        else:
            self.fallback_timeout = to_int(timeout)
        self._valid = None

    @property
    def valid(self) -> bool:
        """``True`` once :meth:`validate` confirmed the mirror is usable."""

        if self.uri is None:
            return False
        return bool(self._valid)

    def validate(self, probe: "MirrorProbe | None") -> "Mirror":
        """Decide (once) whether the mirror may be used and return ``self``."""

        if self.uri is None:
            self._valid = False
        if self._valid is None:
            self._valid = self.fallback_timeout == 0 or (probe is not None and probe.replies(self))
        return self


@dataclass(slots=True)
class MirrorConfig:
    """One ``mirror.*`` setting split into source, option and value.

    Examples
    --------
    >>> config = MirrorConfig.parse("mirror.https://rubygems.org/.fallback_timeout", "true")
    >>> config.uri, config.fallback, config.is_all
    ('https://rubygems.org/', True, False)
    >>> MirrorConfig.parse("mirror.all", "https://mirror.example").is_all
    True
    """

    uri: str | None
    value: Any
    fallback: bool = False
    is_all: bool = False

    @classmethod
    def parse(cls, key: str, value: Any) -> "MirrorConfig":
        match = _MIRROR_KEY.match(key)
        if match is None:
            raise InvalidArgument(f"Not a mirror setting: '{key}'")
        source, fallback = match.group(1), match.group(2)
        if source == "all":
            return cls(None, value, fallback is not None, True)
        return cls(_normalize_source(source), value, fallback is not None)

    def update_mirror(self, mirror: Mirror) -> None:
        if self.fallback:
            mirror.set_fallback_timeout(self.value)
        else:
            mirror.set_uri(self.value)


@dataclass(slots=True)
class Mirrors:
    """Registry of configured mirrors keyed by normalised source URI (or host)."""

    probe: "MirrorProbe | None" = None
    all: Mirror = field(default_factory=Mirror)
    _mirrors: dict[str, Mirror] = field(default_factory=dict)

    def parse(self, key: str, value: Any) -> None:
        """Fold one ``mirror.*`` setting into the registry."""

        config = MirrorConfig.parse(key, value)
        if config.is_all:
            mirror = self.all
        else:
            mirror = self._mirrors.setdefault(str(config.uri), Mirror())
        config.update_mirror(mirror)

    def for_uri(self, uri: object) -> Mirror:
        """Return the mirror to use for *uri*.

        The ``all`` mirror wins when it is valid; otherwise the mirror for the
        exact source, then for its host, and finally the source itself.

        Examples
        --------
        >>> mirrors = Mirrors()
        >>> mirrors.parse("mirror.https://rubygems.org/", "https://mirror.example")
        >>> mirrors.for_uri("https://rubygems.org").uri
        'https://mirror.example'
        >>> mirrors.for_uri("https://other.example").uri
        'https://other.example/'
        """

        if self.all.validate(self.probe).valid:
            return self.all
        return self._fetch_valid_mirror_for(normalize_uri(uri))

    def _fetch_valid_mirror_for(self, uri: str) -> Mirror:
        downcased = uri.lower()
        mirror = self._mirrors.get(downcased) or self._mirrors.get(uri_host(downcased) or "") or Mirror(uri)
        mirror.validate(self.probe)
        if not mirror.valid:
            mirror = Mirror(uri)
        return mirror


def build_mirrors(
    keys: Iterable[str],
    lookup: Callable[[str], Any],
    probe: "MirrorProbe | None" = None,
) -> Mirrors:
    """Scan exposed *keys* and build the mirror registry.

    *keys* is consumed in the order given; when two keys name the same source
    the later one wins, so callers pass a stable (sorted) sequence.

    Examples
    --------
    >>> values = {"mirror.https://rubygems.org/": "https://mirror.example", "timeout": 5}
    >>> mirrors = build_mirrors(sorted(values), values.get)
    >>> mirrors.for_uri("https://rubygems.org").uri
    'https://mirror.example'
    """

    mirrors = Mirrors(probe=probe)
    for key in keys:
        if key.startswith(MIRROR_PREFIX):
            mirrors.parse(key, lookup(key))
    return mirrors


def _normalize_source(source: str) -> str:
    """Normalise absolute sources; bare host names are kept verbatim."""

    try:
        return normalize_uri(source)
    except InvalidArgument:
        return source
