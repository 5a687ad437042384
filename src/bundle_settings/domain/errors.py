"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by adapters, the layered store, the
composition root, and consuming commands. The hierarchy lives in the domain
layer so outer layers may depend on it without creating import cycles.

Contents
--------
* :class:`SettingsError` – umbrella base class for all settings failures.
* :class:`ConfigRootMissing` – a local write was attempted without a project root.
* :class:`InvalidArgument` – a source URI used as a key or mirror is not absolute.
* :class:`InvalidFormat` – a settings file could not be read or decoded.
* :class:`InvalidOption` – command options that contradict each other.

System Role
-----------
Mutations raise these exceptions and the facade lets them propagate unchanged.
Lookups never raise; absent values flow through as ``None``.
"""

from __future__ import annotations


class SettingsError(Exception):
    """Base type for all exceptions emitted by ``bundle_settings``.

    Why
    ----
    Provide a single catch-all type for commands that only need to report the
    failure message to the user.
    """


class ConfigRootMissing(SettingsError):
    """Raised when the local layer is written but no project root is known.

    Why
    ----
    The local settings file lives at ``<root>/config``; without a root there is
    nowhere to persist the value.
    """


class InvalidArgument(SettingsError, ValueError):
    """Raised when a source URI is not absolute.

    Subclasses :class:`ValueError` as well so callers treating bad input
    generically keep working.
    """


class InvalidFormat(SettingsError):
    """Raised when a settings file exists but cannot be read or decoded."""


class InvalidOption(SettingsError):
    """Raised when command options contradict each other (``--all`` with gems)."""
