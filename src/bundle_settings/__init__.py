"""Public package surface for ``bundle_settings``.

Exports the :class:`Settings` facade, the error taxonomy, and the logging hooks
applications use to observe configuration decisions. ``python -m
bundle_settings`` runs the same CLI as the ``bundle-settings`` console script.
"""

from __future__ import annotations

from .core import LayerLoadError, Settings
from .domain.errors import ConfigRootMissing, InvalidArgument, InvalidFormat, InvalidOption, SettingsError
from .domain.uri import normalize_uri
from .observability import bind_trace_id, get_logger

__all__ = [
    "ConfigRootMissing",
    "InvalidArgument",
    "InvalidFormat",
    "InvalidOption",
    "LayerLoadError",
    "Settings",
    "SettingsError",
    "bind_trace_id",
    "get_logger",
    "normalize_uri",
]
