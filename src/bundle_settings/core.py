"""Composition root for ``bundle_settings``.

Purpose
-------
Provide the single entry point that wires path resolution, settings-file
loading, the environment snapshot and the layered store into the
:class:`Settings` facade consumed by commands.

Contents
--------
* :class:`LayerLoadError` – a settings file exists but could not be loaded.
* :class:`Settings` – lookup, mutation, introspection and policy helpers.

System Role
-----------
This module connects adapters (filesystem, environment, mirror probe) with the
application store while emitting structured observability signals. It is the
canonical place for adjusting precedence wiring or adding new adapters.
"""

from __future__ import annotations

import sys
import sysconfig
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

from .adapters.env.default import EnvSnapshot
from .adapters.file_store.default import DefaultSettingsFileStore
from .adapters.path_resolvers.default import DefaultPathResolver
from .adapters.probes.tcp import TCPSocketProbe
from .application.ports import MirrorProbe, SettingsFileStore
from .application.store import LayeredStore
from .domain.coercion import DEFAULT_SETTINGS, converted_value
from .domain.errors import InvalidFormat, SettingsError
from .domain.keys import key_for
from .domain.layers import LayerStack
from .domain.mirror import Mirrors, build_mirrors
from .domain.uri import uri_host
from .observability import bind_trace_id, log_debug, log_warning, make_event

LOCAL_OVERRIDE_PREFIX = "local."
DEFAULT_APP_CACHE_PATH = "vendor/cache"


class LayerLoadError(SettingsError):
    """Raised when a settings file exists but cannot be read.

    Wraps :class:`~bundle_settings.domain.errors.InvalidFormat` with the layer name.
    """


class Settings:
    """Layered settings for one command invocation.

    Why
    ----
    Commands ask one object for every setting and never care which of the five
    layers answered.

    Parameters
    ----------
    root:
        Project settings directory; its ``config`` file is the local layer.
        ``None`` when the command runs outside a project.
    environ:
        Environment mapping; defaults to a snapshot of :data:`os.environ`.
    file_store:
        Settings-file adapter; defaults to :class:`DefaultSettingsFileStore`.
    mirror_probe:
        Reachability probe for mirrors with a fallback timeout.
    home:
        Home-directory lookup forwarded to the path resolver.
    install_scope:
        Sub-directory appended to a configured ``path`` (interpreter scoped).
    system_install_path:
        Install location used when no ``path`` is configured.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> settings = Settings(Path(tmp.name) / ".bundle", environ={"BUNDLE_USER_HOME": tmp.name})
    >>> settings["timeout"]
    10
    >>> _ = settings.set_local("timeout", 20)
    >>> settings["timeout"], settings.locations("timeout")
    (20, {'local': '20', 'default': '10'})
    >>> tmp.cleanup()
    """

    def __init__(
        self,
        root: Path | str | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        file_store: SettingsFileStore | None = None,
        mirror_probe: MirrorProbe | None = None,
        home: Callable[[], Path] | None = None,
        install_scope: str | None = None,
        system_install_path: str | None = None,
    ) -> None:
        self.root = Path(root) if root is not None else None
        self.env = EnvSnapshot(environ=environ)
        self._resolver = DefaultPathResolver(root=self.root, env=self.env, home=home)
        self._file_store = file_store or DefaultSettingsFileStore()
        self._mirror_probe = mirror_probe if mirror_probe is not None else TCPSocketProbe()
        self._install_scope = install_scope or _default_install_scope()
        self._system_install_path = system_install_path or sysconfig.get_paths()["purelib"]
        self._app_cache_path: str | None = None

        bind_trace_id(None)
        self.local_config_file = self._resolver.local_config_file()
        self.global_config_file = self._resolver.global_config_file()
        self.store = LayeredStore(
            LayerStack.build(
                local=self._load("local", self.local_config_file),
                local_path=self.local_config_file,
                environ=self.env.settings_variables(),
                global_=self._load("global", self.global_config_file),
                global_path=self.global_config_file,
                defaults={key_for(name): value for name, value in DEFAULT_SETTINGS.items()},
            ),
            file_store=self._file_store,
        )

    # -- lookup ---------------------------------------------------------

    def __getitem__(self, key: object) -> Any:
        return self.store.get(key)

    def get(self, key: object) -> Any:
        """Return the effective, typed value of *key* or ``None``."""

        return self.store.get(key)

    def all(self) -> list[str]:
        """Return every exposed key set outside the defaults, sorted."""

        return self.store.all_keys()

    def local_overrides(self) -> dict[str, Any]:
        """Return ``{gem_name: path}`` for every ``local.<gem_name>`` setting."""

        return {
            key[len(LOCAL_OVERRIDE_PREFIX) :]: self.get(key)
            for key in self.all()
            if key.startswith(LOCAL_OVERRIDE_PREFIX)
        }

    def credentials_for(self, uri: object) -> Any:
        """Return credentials stored for the full *uri*, else for its host."""

        credentials = self.get(str(uri))
        if credentials is None:
            host = uri_host(uri)
            if host:
                credentials = self.get(host)
        return credentials

    def gem_mirrors(self) -> Mirrors:
        """Build the mirror table from every ``mirror.*`` setting."""

        return build_mirrors(self.all(), self.get, self._mirror_probe)

    def mirror_for(self, uri: object) -> str | None:
        """Return the URI that should be fetched instead of *uri*."""

        return self.gem_mirrors().for_uri(uri).uri

    def locations(self, key: object) -> dict[str, str]:
        """Return the raw value of *key* in every layer that defines it."""

        return self.store.locations(key)

    def pretty_values_for(self, exposed_key: str) -> list[str]:
        """Describe, one line per layer, where *exposed_key* is set and to what.

        Examples
        --------
        >>> settings = Settings(None, environ={"BUNDLE_FROZEN": "1"}, home=lambda: Path("/nonexistent"))
        >>> settings.pretty_values_for("frozen")
        ['Set via BUNDLE_FROZEN: True']
        >>> settings.pretty_values_for("jobs")
        ['You have not configured a value for `jobs`']
        """

        key = key_for(exposed_key)
        layers = self.store.layers
        lines: list[str] = []

        if key in layers.temporary:
            lines.append(f"Set for the current command: {self._render(layers.temporary.values[key], exposed_key)}")
        if key in layers.local:
            lines.append(
                f"Set for your local app ({self.local_config_file}): "
                f"{self._render(layers.local.values[key], exposed_key)}"
            )
        if key in layers.env:
            lines.append(f"Set via {key}: {self._render(layers.env.values[key], exposed_key)}")
        if key in layers.global_:
            lines.append(
                f"Set for the current user ({self.global_config_file}): "
                f"{self._render(layers.global_.values[key], exposed_key)}"
            )

        if not lines:
            return [f"You have not configured a value for `{exposed_key}`"]
        return lines

    # -- mutation -------------------------------------------------------

    def set_local(self, key: object, value: object) -> str | None:
        return self.store.set_local(key, value)

    def set_global(self, key: object, value: object) -> str | None:
        return self.store.set_global(key, value)

    def temporary(self, update: Mapping[object, object]) -> dict[object, str | None]:
        """Set command-scoped overrides; returns the values they replaced."""

        return self.store.temporary(update)

    @contextmanager
    def temporarily(self, update: Mapping[object, object]) -> Iterator["Settings"]:
        """Apply command-scoped overrides for the duration of a ``with`` block."""

        with self.store.temporarily(update):
            yield self

    def set_command_option(self, key: str, value: Any) -> Any:
        """Record a command-line option.

        With ``forget_cli_options`` on, the option only lasts for this command.
        Otherwise it is remembered in the local settings file and a deprecation
        warning names the equivalent ``bundle config`` command.
        """

        if self.get("forget_cli_options"):
            self.temporary({key: value})
            return value

        if value is None:
            command = f"bundle config --delete {key}"
        else:
            items = value if isinstance(value, (list, tuple)) else [value]
            command = f"bundle config {key} {':'.join(str(item) for item in items)}"
        log_warning(
            "deprecation",
            layer="local",
            path=str(self.local_config_file) if self.local_config_file else None,
            notice=(
                "flags passed to commands will no longer be automatically remembered. "
                "Instead please set flags you want remembered between commands using "
                f"`bundle config <setting name> <setting value>`, i.e. `{command}`"
            ),
        )
        self.set_local(key, value)
        return value

    def set_command_option_if_given(self, key: str, value: Any) -> Any:
        """Like :meth:`set_command_option` but ignore ``None`` values."""

        if value is None:
            return None
        return self.set_command_option(key, value)

    # -- policy helpers -------------------------------------------------

    @property
    def path(self) -> str:
        """Return the install path.

        ``BUNDLE_PATH`` from the environment or the user settings wins verbatim
        unless the project settings set ``path`` too; a configured ``path`` is
        scoped with the interpreter directory; otherwise the system location.
        """

        key = key_for("path")
        layers = self.store.layers
        configured = layers.env.get(key)
        if configured is None:
            configured = layers.global_.get(key)
        if configured is not None and key not in layers.local:
            return configured

        configured = self.get("path")
        if configured is not None:
            return f"{configured}/{self._install_scope}"
        return self._system_install_path

    @property
    def allow_sudo(self) -> bool:
        """``False`` when the project pins its own install ``path``."""

        return key_for("path") not in self.store.layers.local

    @property
    def ignore_config(self) -> bool:
        return self.env.ignore_config()

    @property
    def app_cache_path(self) -> str:
        """Return the package cache directory, ``vendor/cache`` unless configured."""

        if self._app_cache_path is None:
            self._app_cache_path = self.get("cache_path") or DEFAULT_APP_CACHE_PATH
        return self._app_cache_path

    # -- internals ------------------------------------------------------

    def _load(self, layer: str, path: Path | None) -> dict[str, str]:
        if path is None or self.ignore_config:
            return {}
        try:
            values = self._file_store.load(path)
        except InvalidFormat as exc:
            raise LayerLoadError(f"Failed to load {layer} settings file {path}: {exc}") from exc
        if values:
            log_debug("layer_loaded", **make_event(layer, str(path), {"keys": len(values)}))
        return values

    @staticmethod
    def _render(raw: str, exposed_key: str) -> str:
        return repr(converted_value(raw, exposed_key))


def _default_install_scope() -> str:
    """Return ``<implementation>/<major>.<minor>`` for the running interpreter."""

    return f"{sys.implementation.name}/{sys.version_info.major}.{sys.version_info.minor}"


__all__ = [
    "LayerLoadError",
    "Settings",
]
