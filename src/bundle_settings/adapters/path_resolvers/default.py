"""Filesystem locations of the settings files.

Purpose
-------
Decide where the ``local`` and ``global`` layers live. This adapter is the only
component that knows about home directories and the environment overrides that
relocate them.

Contents
--------
* :data:`CONFIG_FILENAME` – name of the settings file inside its directory.
* :class:`DefaultPathResolver` – resolves the local and global settings files.

System Role
-----------
Feeds :class:`bundle_settings.core.Settings`. A global location that cannot be
determined (no home directory, permission failure) is reported as ``None`` so
the global layer loads as empty instead of failing the command.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Final

from ...observability import log_debug
from ..env.default import EnvSnapshot

CONFIG_FILENAME: Final[str] = "config"
USER_DIRNAME: Final[str] = ".bundle"


class DefaultPathResolver:
    """Resolve the settings files for the local and global layers.

    Examples
    --------
    >>> resolver = DefaultPathResolver(root=Path("/work/app/.bundle"), env=EnvSnapshot(environ={}), home=lambda: Path("/home/dev"))
    >>> resolver.local_config_file().as_posix()
    '/work/app/.bundle/config'
    >>> resolver.global_config_file().as_posix()
    '/home/dev/.bundle/config'
    >>> DefaultPathResolver(root=None, env=EnvSnapshot(environ={"BUNDLE_CONFIG": "/etc/gems.cfg"})).global_config_file().as_posix()
    '/etc/gems.cfg'
    """

    def __init__(
        self,
        *,
        root: Path | str | None,
        env: EnvSnapshot,
        home: Callable[[], Path] | None = None,
    ) -> None:
        """Store the project *root*, the environment snapshot and a home-directory lookup.

        Parameters
        ----------
        root:
            Directory holding the project's settings (``<project>/.bundle``);
            ``None`` when no project is known.
        env:
            Snapshot consulted for ``BUNDLE_CONFIG`` and ``BUNDLE_USER_HOME``.
        home:
            Callable returning the user's home directory. Defaults to
            :meth:`pathlib.Path.home`; injectable for tests.
        """

        self.root = Path(root) if root is not None else None
        self.env = env
        self._home = home or Path.home

    def local_config_file(self) -> Path | None:
        """Return ``<root>/config`` or ``None`` without a project root."""

        if self.root is None:
            return None
        return self.root / CONFIG_FILENAME

    def global_config_file(self) -> Path | None:
        """Return the global settings file, honouring ``BUNDLE_CONFIG``.

        ``None`` means the user directory could not be determined.
        """

        override = self.env.config_override()
        if override:
            return Path(override)
        user_dir = self.user_bundle_path()
        if user_dir is None:
            return None
        return user_dir / CONFIG_FILENAME

    def user_bundle_path(self) -> Path | None:
        """Return the per-user settings directory or ``None`` when unavailable."""

        override = self.env.user_home_override()
        if override:
            return Path(override)
        try:
            return self._home() / USER_DIRNAME
        except (OSError, RuntimeError, KeyError) as exc:
            log_debug("global_config_unavailable", layer="global", path=None, error=str(exc))
            return None
