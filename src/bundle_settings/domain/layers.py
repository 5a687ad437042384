"""Precedence layers holding raw setting values.

Purpose
-------
Model the five named sources a lookup consults, in order, as explicit objects
rather than ambient state. The layered store receives a :class:`LayerStack` at
construction so tests can assemble any combination of layers without touching
the process environment or the filesystem.

Contents
--------
* :data:`PRECEDENCE` – layer names from highest to lowest precedence.
* :class:`Layer` – named mapping of internal key → raw string plus its backing file.
* :class:`LayerStack` – the ordered set of five layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Iterator, Mapping

TEMPORARY: Final[str] = "temporary"
LOCAL: Final[str] = "local"
ENV: Final[str] = "env"
GLOBAL: Final[str] = "global"
DEFAULT: Final[str] = "default"

#: Layer names ordered from highest to lowest precedence.
PRECEDENCE: Final[tuple[str, ...]] = (TEMPORARY, LOCAL, ENV, GLOBAL, DEFAULT)


@dataclass(slots=True)
class Layer:
    """One precedence-ordered source of raw values.

    Attributes
    ----------
    name:
        One of :data:`PRECEDENCE`.
    values:
        Internal key → raw string. Mutated in place by the store for mutable layers.
    path:
        Backing file for persisted layers; ``None`` for in-memory layers or when
        the file location could not be determined.
    mutable:
        ``False`` for ``env`` and ``default``.
    persisted:
        ``True`` for ``local`` and ``global``: writes go through to :attr:`path`.
    """

    name: str
    values: dict[str, str] = field(default_factory=dict)
    path: Path | None = None
    mutable: bool = True
    persisted: bool = False

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def keys(self) -> Iterator[str]:
        return iter(self.values)


@dataclass(slots=True)
class LayerStack:
    """The five layers a lookup walks through, highest precedence first.

    Examples
    --------
    >>> stack = LayerStack.build(environ={"BUNDLE_PATH": "/env"}, defaults={"BUNDLE_TIMEOUT": "10"})
    >>> [layer.name for layer in stack]
    ['temporary', 'local', 'env', 'global', 'default']
    >>> stack.env.get("BUNDLE_PATH")
    '/env'
    """

    temporary: Layer
    local: Layer
    env: Layer
    global_: Layer
    default: Layer

    @classmethod
    def build(
        cls,
        *,
        local: Mapping[str, str] | None = None,
        local_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
        global_: Mapping[str, str] | None = None,
        global_path: Path | None = None,
        defaults: Mapping[str, str] | None = None,
    ) -> "LayerStack":
        """Assemble a stack from plain mappings; the temporary layer starts empty."""

        return cls(
            temporary=Layer(TEMPORARY),
            local=Layer(LOCAL, dict(local or {}), local_path, persisted=True),
            env=Layer(ENV, dict(environ or {}), mutable=False),
            global_=Layer(GLOBAL, dict(global_ or {}), global_path, persisted=True),
            default=Layer(DEFAULT, dict(defaults or {}), mutable=False),
        )

    def __iter__(self) -> Iterator[Layer]:
        return iter((self.temporary, self.local, self.env, self.global_, self.default))
