"""Layered settings store: precedence lookup and write-through mutation.

Purpose
-------
Resolve a setting by walking the layers ``temporary → local → env → global →
default`` and apply writes to the mutable layers, persisting file-backed layers
only when a value actually changes.

Contents
--------
* :class:`LayeredStore` – lookup, mutation, scoped overrides and introspection.

System Role
-----------
Sits between the facade (:class:`bundle_settings.core.Settings`) and the
domain helpers: keys are encoded with :mod:`bundle_settings.domain.keys`,
values converted with :mod:`bundle_settings.domain.coercion`, and files written
through a :class:`~bundle_settings.application.ports.SettingsFileStore`.

Concurrency
-----------
Single-threaded and unlocked. Two processes mutating the same settings file
race; the last full rewrite wins.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from ..domain.coercion import KeyKind, array_to_raw, converted_value, kind_for, to_raw
from ..domain.errors import ConfigRootMissing, InvalidArgument
from ..domain.keys import exposed_key_for, is_internal_key, key_for
from ..domain.layers import Layer, LayerStack
from ..observability import log_debug
from .ports import SettingsFileStore


class LayeredStore:
    """Five-layer settings store.

    Examples
    --------
    >>> from bundle_settings.adapters.file_store.default import DefaultSettingsFileStore
    >>> store = LayeredStore(LayerStack.build(defaults={"BUNDLE_TIMEOUT": "10"}), file_store=DefaultSettingsFileStore())
    >>> store.get("timeout")
    10
    >>> _ = store.temporary({"timeout": 30})
    >>> store.get("timeout"), store.locations("timeout")
    (30, {'temporary': '30', 'default': '10'})
    """

    def __init__(self, layers: LayerStack, *, file_store: SettingsFileStore) -> None:
        self.layers = layers
        self._file_store = file_store

    def get_raw(self, key: object) -> str | None:
        """Return the raw value of the highest-precedence layer defining *key*."""

        internal = key_for(key)
        for layer in self.layers:
            if internal in layer:
                return layer.get(internal)
        return None

    def get(self, key: object) -> Any:
        """Return the effective, typed value of *key* (``None`` when unset)."""

        return converted_value(self.get_raw(key), key)

    def set_local(self, key: object, value: object) -> str | None:
        """Write *key* to the project settings file.

        Raises
        ------
        ConfigRootMissing
            When no project root is known.
        """

        if self.layers.local.path is None:
            raise ConfigRootMissing("Could not locate Gemfile")
        return self.set_key(key, value, self.layers.local)

    def set_global(self, key: object, value: object) -> str | None:
        """Write *key* to the user settings file."""

        return self.set_key(key, value, self.layers.global_)

    def temporary(self, update: Mapping[object, object]) -> dict[object, str | None]:
        """Apply *update* to the temporary layer and return the values it replaced.

        The returned mapping uses the keys of *update* and holds the previous
        raw values (``None`` for keys that were not set), ready to be passed
        back to :meth:`temporary` to restore them.
        """

        existing = {key: self.layers.temporary.get(key_for(key)) for key in update}
        for key, value in update.items():
            self.set_key(key, value, self.layers.temporary)
        return existing

    @contextmanager
    def temporarily(self, update: Mapping[object, object]) -> Iterator["LayeredStore"]:
        """Apply *update* for the duration of a ``with`` block.

        The previous temporary values are restored when the block exits,
        whether it returns normally or raises.

        Examples
        --------
        >>> from bundle_settings.adapters.file_store.default import DefaultSettingsFileStore
        >>> store = LayeredStore(LayerStack.build(), file_store=DefaultSettingsFileStore())
        >>> with store.temporarily({"frozen": True}):
        ...     store.get("frozen")
        True
        >>> store.get("frozen") is None
        True
        """

        existing = self.temporary(update)
        try:
            yield self
        finally:
            self.temporary(existing)

    def locations(self, key: object) -> dict[str, str]:
        """Return ``{layer_name: raw_value}`` for every layer defining *key*."""

        internal = key_for(key)
        return {layer.name: layer.values[internal] for layer in self.layers if internal in layer}

    def all_keys(self) -> list[str]:
        """Return every exposed key set in the temporary, local, env or global layers.

        The result is sorted so callers iterating it (mirror derivation, listings)
        behave the same on every run.
        """

        internal: set[str] = set()
        for layer in (self.layers.temporary, self.layers.global_, self.layers.local, self.layers.env):
            internal.update(layer.keys())
        return sorted({exposed_key_for(key) for key in internal if is_internal_key(key)})

    def set_key(self, key: object, value: object, layer: Layer) -> str | None:
        """Store *value* for *key* in *layer*, persisting when the raw value changes.

        Array settings are colon-encoded first; ``None`` (or an empty array)
        deletes the key. Returns the raw value now stored. When persisting
        fails the layer keeps its previous value and the error propagates.

        Raises
        ------
        InvalidArgument
            When *layer* is read-only (``env`` or ``default``).
        """

        if not layer.mutable:
            raise InvalidArgument(f"The {layer.name} settings layer is read-only")

        raw = array_to_raw(value) if kind_for(key) is KeyKind.ARRAY else to_raw(value)
        internal = key_for(key)
        previous = layer.values.get(internal)

        if previous == raw:
            log_debug("setting_unchanged", layer=layer.name, path=_path_text(layer), key=internal)
            return raw

        _assign(layer, internal, raw)
        if layer.persisted:
            try:
                self._persist(layer)
            except Exception:
                _assign(layer, internal, previous)
                raise
        log_debug("setting_changed", layer=layer.name, path=_path_text(layer), key=internal, deleted=raw is None)
        return raw

    def _persist(self, layer: Layer) -> None:
        if layer.path is None:
            log_debug("global_config_unavailable", layer=layer.name, path=None, persisted=False)
            return
        self._file_store.save(layer.path, layer.values)


def _assign(layer: Layer, internal: str, raw: str | None) -> None:
    if raw is None:
        layer.values.pop(internal, None)
    else:
        layer.values[internal] = raw


def _path_text(layer: Layer) -> str | None:
    return str(layer.path) if layer.path is not None else None
