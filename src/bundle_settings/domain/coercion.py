"""Key classification and raw-value coercion.

Purpose
-------
Every layer stores plain strings. Callers, however, expect ``frozen`` to be a
``bool``, ``timeout`` an ``int`` and ``without`` a list of group names. This
module classifies keys once and converts raw strings in both directions.

Contents
--------
* :class:`KeyKind` – the four value shapes a setting may have.
* :data:`KEY_KINDS` – classification table built once from the key sets.
* :data:`DEFAULT_SETTINGS` – compiled-in defaults (raw strings).
* :func:`kind_for` – classify a key, inheriting from its parent setting.
* :func:`converted_value` – raw string → typed value.
* :func:`to_bool` / :func:`to_int` / :func:`to_array` – individual decoders.
* :func:`array_to_raw` / :func:`to_raw` – typed value → raw string.

Array encoding quirk
--------------------
:func:`array_to_raw` replaces spaces inside elements with ``:``, so
``["a b"]`` is stored as ``"a:b"`` and decodes as ``["a", "b"]``. Existing
settings files depend on this, so it stays.
"""

from __future__ import annotations

import re
from enum import Enum
from types import MappingProxyType
from typing import Any, Final, Iterable, Mapping

from .keys import parent_setting_for


class KeyKind(Enum):
    """Value shape of a setting."""

    BOOLEAN = "boolean"
    NUMBER = "number"
    ARRAY = "array"
    STRING = "string"


BOOL_KEYS: Final[tuple[str, ...]] = (
    "allow_bundler_dependency_conflicts",
    "allow_offline_install",
    "auto_install",
    "cache_all",
    "cache_all_platforms",
    "cache_command_is_package",
    "console_command",
    "deployment",
    "deployment_means_frozen",
    "disable_checksum_validation",
    "disable_exec_load",
    "disable_local_branch_check",
    "disable_multisource",
    "disable_shared_gems",
    "disable_version_check",
    "error_on_stderr",
    "force_ruby_platform",
    "forget_cli_options",
    "frozen",
    "gem.coc",
    "gem.mit",
    "global_gem_cache",
    "ignore_messages",
    "init_gems_rb",
    "lockfile_uses_separate_rubygems_sources",
    "major_deprecations",
    "no_install",
    "no_prune",
    "only_update_to_newer_versions",
    "plugins",
    "prefer_gems_rb",
    "setup_makes_kernel_gem_public",
    "silence_root_warning",
    "skip_default_git_sources",
    "specific_platform",
    "suppress_install_using_messages",
    "unlock_source_unlocks_spec",
    "update_requires_all_flag",
)

NUMBER_KEYS: Final[tuple[str, ...]] = ("redirect", "retry", "ssl_verify_mode", "timeout")

ARRAY_KEYS: Final[tuple[str, ...]] = ("with", "without")

#: Compiled-in defaults keyed by exposed name. Values are raw strings like every other layer.
DEFAULT_SETTINGS: Final[Mapping[str, str]] = MappingProxyType({"redirect": "5", "retry": "3", "timeout": "10"})


def _build_kind_table() -> Mapping[str, KeyKind]:
    table: dict[str, KeyKind] = {}
    for kind, names in ((KeyKind.BOOLEAN, BOOL_KEYS), (KeyKind.NUMBER, NUMBER_KEYS), (KeyKind.ARRAY, ARRAY_KEYS)):
        for name in names:
            table[name] = kind
    return MappingProxyType(table)


KEY_KINDS: Final[Mapping[str, KeyKind]] = _build_kind_table()

_FALSE_PATTERN: Final[re.Pattern[str]] = re.compile(r"\A(?:false|f|no|n|0|)\Z", re.IGNORECASE)
_LEADING_INT: Final[re.Pattern[str]] = re.compile(r"\A\s*([+-]?\d+(?:_\d+)*)")


def kind_for(key: object) -> KeyKind:
    """Classify *key*, falling back to its parent setting for ``<setting>.<gem>`` names.

    Examples
    --------
    >>> kind_for("frozen"), kind_for("timeout"), kind_for("without")
    (<KeyKind.BOOLEAN: 'boolean'>, <KeyKind.NUMBER: 'number'>, <KeyKind.ARRAY: 'array'>)
    >>> kind_for("plugins.my_plugin")
    <KeyKind.BOOLEAN: 'boolean'>
    >>> kind_for("path")
    <KeyKind.STRING: 'string'>
    """

    name = str(key)
    kind = KEY_KINDS.get(name)
    if kind is None:
        kind = KEY_KINDS.get(parent_setting_for(name), KeyKind.STRING)
    return kind


def converted_value(value: str | None, key: object) -> Any:
    """Convert the raw *value* stored for *key* into its typed form.

    Order matters: array keys always decode to a list (even when absent), a
    literal ``"false"`` is a boolean whatever the key, and unknown keys keep
    their raw string.

    Examples
    --------
    >>> converted_value("development:test", "with")
    ['development', 'test']
    >>> converted_value(None, "without")
    []
    >>> converted_value("20", "timeout"), converted_value("no", "frozen")
    (20, False)
    >>> converted_value("false", "path"), converted_value("vendor/bundle", "path")
    (False, 'vendor/bundle')
    >>> converted_value(None, "path") is None
    True
    """

    kind = kind_for(key)
    if kind is KeyKind.ARRAY:
        return to_array(value)
    if value is None:
        return None
    if kind is KeyKind.BOOLEAN or value == "false":
        return to_bool(value)
    if kind is KeyKind.NUMBER:
        return to_int(value)
    return str(value)


def to_bool(value: object) -> bool:
    """Return the truthiness of a raw value.

    Absent, empty and ``false|f|no|n|0`` (any case) are false; everything else is true.

    >>> [to_bool(v) for v in (None, "", "0", "No", "F", "true", "anything")]
    [False, False, False, False, False, True, True]
    """

    if value is None or value is False:
        return False
    if value is True:
        return True
    return _FALSE_PATTERN.match(str(value)) is None


def to_int(value: object) -> int:
    """Parse the leading integer of *value*, returning ``0`` when there is none.

    >>> to_int("10"), to_int(" 7 seconds"), to_int("abc"), to_int("-3")
    (10, 7, 0, -3)
    """

    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    if match is None:
        return 0
    return int(match.group(1).replace("_", ""))


def to_array(value: str | None) -> list[str]:
    """Split a colon-joined raw value into its elements.

    Trailing empty pieces are dropped; an absent or empty value is an empty list.

    >>> to_array("a:b:c"), to_array(""), to_array(None), to_array("a::b:")
    (['a', 'b', 'c'], [], [], ['a', '', 'b'])
    """

    if not value:
        return []
    pieces = str(value).split(":")
    while pieces and not pieces[-1]:
        pieces.pop()
    return pieces


def array_to_raw(value: object) -> str | None:
    """Encode *value* as a colon-joined raw string.

    A bare string counts as a one-element list. Empty input encodes as absent.

    >>> array_to_raw(["development", "test"])
    'development:test'
    >>> array_to_raw("staging ci")
    'staging:ci'
    >>> array_to_raw([]) is None, array_to_raw(None) is None
    (True, True)
    """

    elements = _as_list(value)
    if not elements:
        return None
    return ":".join(str(element) for element in elements).replace(" ", ":")


def to_raw(value: object) -> str | None:
    """Stringify a scalar for storage; ``None`` stays absent.

    >>> to_raw(True), to_raw(20), to_raw("vendor"), to_raw(None)
    ('true', '20', 'vendor', None)
    """

    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_list(value: object) -> list[object]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)):
        return [value]
    if isinstance(value, Iterable):
        return list(value)
    return [value]
