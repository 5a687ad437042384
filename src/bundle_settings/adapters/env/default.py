"""Environment variable adapter.

Purpose
-------
Capture the process environment once, as an explicit snapshot, and expose the
pieces the settings store cares about: the ``BUNDLE_*`` variables forming the
``env`` layer and the handful of variables that steer file loading.

Key behaviours
--------------
* Only names matching ``BUNDLE_.+`` join the ``env`` layer; values stay raw
  strings (coercion happens on lookup, like every other layer).
* ``BUNDLE_IGNORE_CONFIG`` disables both file-backed layers when truthy.
* ``BUNDLE_CONFIG`` overrides the global settings file location.
* ``BUNDLE_USER_HOME`` overrides the per-user settings directory.
"""

from __future__ import annotations

import os
from typing import Final, Mapping

from ...domain.coercion import to_bool
from ...domain.keys import SETTINGS_PREFIX, is_internal_key
from ...observability import log_debug

IGNORE_CONFIG_VAR: Final[str] = f"{SETTINGS_PREFIX}_IGNORE_CONFIG"
CONFIG_VAR: Final[str] = f"{SETTINGS_PREFIX}_CONFIG"
USER_HOME_VAR: Final[str] = f"{SETTINGS_PREFIX}_USER_HOME"


class EnvSnapshot:
    """Immutable copy of the environment consulted by the settings store."""

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        """Copy ``environ`` (defaults to :data:`os.environ`) so later mutations do not leak in."""

        self._environ = dict(os.environ if environ is None else environ)

    def get(self, name: str) -> str | None:
        return self._environ.get(name)

    def settings_variables(self) -> dict[str, str]:
        """Return the variables that form the ``env`` layer.

        Examples
        --------
        >>> snapshot = EnvSnapshot(environ={"BUNDLE_PATH": "/tmp/gems", "BUNDLE_": "x", "HOME": "/root"})
        >>> snapshot.settings_variables()
        {'BUNDLE_PATH': '/tmp/gems'}
        """

        collected = {name: value for name, value in self._environ.items() if is_internal_key(name)}
        log_debug("env_variables_loaded", layer="env", path=None, keys=sorted(collected))
        return collected

    def ignore_config(self) -> bool:
        """Return ``True`` when ``BUNDLE_IGNORE_CONFIG`` is set to a truthy value.

        >>> EnvSnapshot(environ={"BUNDLE_IGNORE_CONFIG": "1"}).ignore_config()
        True
        >>> EnvSnapshot(environ={"BUNDLE_IGNORE_CONFIG": "false"}).ignore_config()
        False
        """

        return to_bool(self._environ.get(IGNORE_CONFIG_VAR))

    def config_override(self) -> str | None:
        """Return ``BUNDLE_CONFIG`` when it is set and non-empty."""

        return self._environ.get(CONFIG_VAR) or None

    def user_home_override(self) -> str | None:
        """Return ``BUNDLE_USER_HOME`` when it is set and non-empty."""

        return self._environ.get(USER_HOME_VAR) or None
