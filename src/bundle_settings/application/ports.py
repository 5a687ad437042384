"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts that adapters must satisfy so the layered
store and the composition root can orchestrate behaviour without depending on
concrete implementations.

Contents
--------
* :class:`SettingsFileStore` – reads and writes a settings file.
* :class:`MirrorProbe` – checks whether a mirror answers within its timeout.

System Role
-----------
These protocols enforce Dependency Inversion. Tests substitute in-memory
implementations (see ``tests/support.py``) to observe writes without touching
the filesystem.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..domain.mirror import Mirror


@runtime_checkable
class SettingsFileStore(Protocol):
    """Persist a layer's raw values.

    Why
    ----
    Segregate the textual file format from precedence and write-through logic.
    """

    def load(self, path: Path | None) -> dict[str, str]:
        """Return internal key → raw value; empty when *path* is unset, missing or empty."""

    def save(self, path: Path, values: Mapping[str, str]) -> None:
        """Rewrite *path* with *values*, creating parent directories."""


@runtime_checkable
class MirrorProbe(Protocol):
    """Decide whether a mirror is reachable within its fallback timeout."""

    def replies(self, mirror: "Mirror") -> bool:
        """Return ``True`` when the mirror host accepted a connection in time."""
