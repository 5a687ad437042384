"""Settings file adapter.

Purpose
-------
Implement :class:`bundle_settings.application.ports.SettingsFileStore` for the
line-oriented settings format shared with older tool releases::

    ---
    BUNDLE_PATH: "vendor/bundle"
    BUNDLE_MIRROR__HTTPS://RUBYGEMS__ORG/: "https://mirror.example"

Format rules
------------
* One ``KEY: value`` entry per line; ``KEY`` is a ``BUNDLE_`` name without
  whitespace and ends at the first colon followed by whitespace, so URI keys
  keep their own ``://``.
* Values may be wrapped in matching single or double quotes. Double-quoted
  values written by :meth:`DefaultSettingsFileStore.save` are JSON-escaped.
* A legacy ``! `` marker after the colon is tolerated.
* Lines that do not start a new key continue the previous value.
* A leading ``---`` document marker, blank lines and ``#`` comments are ignored.

System Role
-----------
Loaded once per layer at construction; rewritten in full whenever the layered
store changes a value. There is no file locking: two processes writing the
same file may overwrite each other's changes.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Final, Mapping

from ...domain.errors import InvalidFormat
from ...domain.keys import SETTINGS_PREFIX
from ...observability import log_debug, log_error

_DOCUMENT_MARKER: Final[str] = "---"

_ENTRY: Final[re.Pattern[str]] = re.compile(
    rf"""
    \A
    ({SETTINGS_PREFIX}_\S+?):(?=\s|\Z)   # the key
    [ \t]*
    (?:![ \t]+)?                         # optional legacy exclamation mark
    (.*)                                 # value, possibly quoted
    \Z
    """,
    re.VERBOSE,
)


class DefaultSettingsFileStore:
    """Read and write settings files in the ``KEY: "value"`` format."""

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def load(self, path: Path | None) -> dict[str, str]:
        """Return the entries stored in *path*.

        Why
        ----
        Missing settings files are normal (fresh projects, fresh users), so
        absence never raises.

        Returns
        -------
        dict[str, str]
            Internal key → raw value. Empty when *path* is ``None``, missing or
            zero length.

        Raises
        ------
        InvalidFormat
            When the file exists but cannot be read or decoded.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> target = Path(tmp.name) / "config"
        >>> _ = target.write_text('---\\nBUNDLE_PATH: "vendor/bundle"\\n', encoding="utf-8")
        >>> DefaultSettingsFileStore().load(target)
        {'BUNDLE_PATH': 'vendor/bundle'}
        >>> DefaultSettingsFileStore().load(Path(tmp.name) / "missing")
        {}
        >>> tmp.cleanup()
        """

        if path is None:
            return {}
        file_path = Path(path)
        try:
            if not file_path.is_file() or file_path.stat().st_size == 0:
                return {}
            text = file_path.read_text(encoding=self._encoding)
        except (OSError, UnicodeDecodeError) as exc:
            log_error("settings_file_invalid", layer="file", path=str(file_path), error=str(exc))
            raise InvalidFormat(f"Cannot read settings file {file_path}: {exc}") from exc
        values = parse_settings(text)
        log_debug("settings_file_read", layer="file", path=str(file_path), keys=len(values))
        return values

    def save(self, path: Path, values: Mapping[str, str]) -> None:
        """Rewrite *path* with *values*, creating missing parent directories.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> target = Path(tmp.name) / "nested" / "config"
        >>> DefaultSettingsFileStore().save(target, {"BUNDLE_WITH": "development:test"})
        >>> print(target.read_text(encoding="utf-8"), end="")
        ---
        BUNDLE_WITH: "development:test"
        >>> tmp.cleanup()
        """

        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(dump_settings(values), encoding=self._encoding)
        log_debug("settings_file_written", layer="file", path=str(file_path), keys=len(values))


def parse_settings(text: str) -> dict[str, str]:
    """Parse the textual settings format into a mapping.

    Examples
    --------
    >>> parse_settings("BUNDLE_A: ! 'one'\\nBUNDLE_B: two\\n  continued\\n")
    {'BUNDLE_A': 'one', 'BUNDLE_B': 'two\\n  continued'}
    """

    entries: list[tuple[str, list[str]]] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped == _DOCUMENT_MARKER or stripped.startswith("#"):
            continue
        match = _ENTRY.match(line)
        if match is not None:
            entries.append((match.group(1), [match.group(2)]))
        elif entries:
            entries[-1][1].append(line)
    return {key: _unquote("\n".join(parts).rstrip()) for key, parts in entries}


def dump_settings(values: Mapping[str, str]) -> str:
    """Serialise *values* back into the textual settings format.

    Whitespace runs inside values collapse to a single space so each entry
    stays on one line.

    >>> dump_settings({"BUNDLE_PATH": "vendor/bundle"})
    '---\\nBUNDLE_PATH: "vendor/bundle"\\n'
    """

    lines = [_DOCUMENT_MARKER]
    for key, value in values.items():
        flattened = re.sub(r"\s+", " ", str(value))
        lines.append(f"{key}: {json.dumps(flattened, ensure_ascii=False)}")
    return "\n".join(lines) + "\n"


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        inner = value[1:-1]
        if value[0] == '"':
            try:
                decoded = json.loads(value)
            except ValueError:
                return inner
            if isinstance(decoded, str):
                return decoded
        return inner
    return value
