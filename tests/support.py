"""Shared helpers for the settings test-suite.

Provides a sandbox that lays out a project settings directory and a user home
under ``tmp_path`` and builds :class:`bundle_settings.Settings` against an
explicit environment, so no test reads the real home directory or mutates
``os.environ``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from bundle_settings import Settings
from bundle_settings.adapters.file_store.default import DefaultSettingsFileStore


class RecordingFileStore(DefaultSettingsFileStore):
    """File store that remembers every save so tests can assert on write-through."""

    def __init__(self) -> None:
        super().__init__()
        self.saves: list[tuple[Path, dict[str, str]]] = []

    def save(self, path: Path, values: Mapping[str, str]) -> None:
        self.saves.append((Path(path), dict(values)))
        super().save(path, values)


class StaticProbe:
    """Mirror probe answering with a fixed verdict and counting calls."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.calls = 0

    def replies(self, mirror) -> bool:
        self.calls += 1
        return self.answer


@dataclass
class SettingsSandbox:
    """Project and user directories for one test."""

    project: Path
    home: Path
    env: dict[str, str] = field(default_factory=dict)
    file_store: RecordingFileStore = field(default_factory=RecordingFileStore)

    @property
    def root(self) -> Path:
        return self.project / ".bundle"

    @property
    def local_file(self) -> Path:
        return self.root / "config"

    @property
    def global_file(self) -> Path:
        return self.home / ".bundle" / "config"

    def write_local(self, body: str) -> Path:
        return _write(self.local_file, body)

    def write_global(self, body: str) -> Path:
        return _write(self.global_file, body)

    def settings(self, *, with_root: bool = True, probe=None, **overrides) -> Settings:
        return Settings(
            self.root if with_root else None,
            environ=self.env,
            file_store=self.file_store,
            mirror_probe=probe if probe is not None else StaticProbe(False),
            home=lambda: self.home,
            install_scope="cpython/3.12",
            system_install_path="/usr/lib/gems",
            **overrides,
        )


def create_settings_sandbox(tmp_path: Path, env: Mapping[str, str] | None = None) -> SettingsSandbox:
    project = tmp_path / "project"
    home = tmp_path / "home"
    project.mkdir(parents=True, exist_ok=True)
    home.mkdir(parents=True, exist_ok=True)
    return SettingsSandbox(project=project, home=home, env=dict(env or {}))


def _write(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    return path
