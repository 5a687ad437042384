"""Layered store tests: precedence, write-through, idempotent writes and scoped overrides."""

from __future__ import annotations

from pathlib import Path

import pytest
from hypothesis import given
from hypothesis import strategies as st

from bundle_settings.application.store import LayeredStore
from bundle_settings.domain.errors import ConfigRootMissing, InvalidArgument
from bundle_settings.domain.layers import LayerStack
from tests.support import RecordingFileStore


def make_store(tmp_path: Path | None = None, **layers) -> tuple[LayeredStore, RecordingFileStore]:
    file_store = RecordingFileStore()
    if tmp_path is not None:
        layers.setdefault("local_path", tmp_path / "local" / "config")
        layers.setdefault("global_path", tmp_path / "global" / "config")
    layers.setdefault("defaults", {"BUNDLE_TIMEOUT": "10"})
    return LayeredStore(LayerStack.build(**layers), file_store=file_store), file_store


def test_precedence_order() -> None:
    store, _ = make_store(
        local={"BUNDLE_PATH": "local"},
        environ={"BUNDLE_PATH": "env", "BUNDLE_JOBS": "env-jobs"},
        global_={"BUNDLE_PATH": "global", "BUNDLE_JOBS": "global-jobs", "BUNDLE_GEMFILE": "global-gemfile"},
    )
    assert store.get("path") == "local"
    assert store.get("jobs") == "env-jobs"
    assert store.get("gemfile") == "global-gemfile"
    assert store.get("timeout") == 10
    assert store.get("unset") is None


def test_temporary_beats_local_until_cleared(tmp_path: Path) -> None:
    store, _ = make_store(tmp_path)
    store.set_local("timeout", 20)
    store.temporary({"timeout": 30})
    assert store.get("timeout") == 30
    store.temporary({"timeout": None})
    assert store.get("timeout") == 20


def test_set_local_requires_root() -> None:
    store, file_store = make_store()
    with pytest.raises(ConfigRootMissing):
        store.set_local("timeout", 20)
    assert file_store.saves == []


def test_set_local_writes_through(tmp_path: Path) -> None:
    store, file_store = make_store(tmp_path)
    store.set_local("with", ["development", "test"])
    assert store.get("with") == ["development", "test"]
    path, values = file_store.saves[-1]
    assert path == tmp_path / "local" / "config"
    assert values == {"BUNDLE_WITH": "development:test"}
    assert path.read_text(encoding="utf-8") == '---\nBUNDLE_WITH: "development:test"\n'


def test_writing_the_same_value_does_not_touch_the_file(tmp_path: Path) -> None:
    store, file_store = make_store(tmp_path)
    store.set_global("jobs", 4)
    target = tmp_path / "global" / "config"
    before = target.stat().st_mtime_ns
    store.set_global("jobs", "4")
    assert len(file_store.saves) == 1
    assert target.stat().st_mtime_ns == before


def test_deleting_an_absent_key_is_a_no_op(tmp_path: Path) -> None:
    store, file_store = make_store(tmp_path)
    store.set_global("jobs", None)
    assert file_store.saves == []


def test_delete_falls_back_to_default(tmp_path: Path) -> None:
    store, file_store = make_store(tmp_path)
    store.set_local("timeout", 20)
    assert store.get("timeout") == 20
    store.set_local("timeout", None)
    assert store.get("timeout") == 10
    assert file_store.saves[-1][1] == {}


def test_temporary_layer_is_never_persisted(tmp_path: Path) -> None:
    store, file_store = make_store(tmp_path)
    store.temporary({"frozen": True, "without": ["test"]})
    assert store.get("frozen") is True
    assert store.get("without") == ["test"]
    assert file_store.saves == []


def test_temporary_returns_previous_values() -> None:
    store, _ = make_store()
    assert store.temporary({"jobs": 2}) == {"jobs": None}
    assert store.temporary({"jobs": 3}) == {"jobs": "2"}


def test_scoped_override_restores_after_success() -> None:
    store, _ = make_store()
    store.temporary({"jobs": 2})
    with store.temporarily({"jobs": 8}):
        assert store.get("jobs") == "8"
    assert store.get("jobs") == "2"


def test_scoped_override_restores_after_exception() -> None:
    store, _ = make_store()
    with pytest.raises(RuntimeError):
        with store.temporarily({"frozen": True}):
            assert store.get("frozen") is True
            raise RuntimeError("install failed")
    assert store.get("frozen") is None
    assert "BUNDLE_FROZEN" not in store.layers.temporary


def test_env_layer_is_read_only_input() -> None:
    store, _ = make_store(environ={"BUNDLE_PATH": "/env"})
    store.temporary({"path": "/tmp"})
    assert store.layers.env.values == {"BUNDLE_PATH": "/env"}


def test_locations_reports_raw_values_per_layer() -> None:
    store, _ = make_store(
        local={"BUNDLE_TIMEOUT": "20"},
        environ={"BUNDLE_TIMEOUT": "30"},
    )
    assert store.locations("timeout") == {"local": "20", "env": "30", "default": "10"}
    assert store.locations("unset") == {}


def test_all_keys_is_sorted_union_without_defaults() -> None:
    store, _ = make_store(
        local={"BUNDLE_LOCAL__RACK": "/src/rack"},
        environ={"BUNDLE_PATH": "vendor", "HOME": "/root"},
        global_={"BUNDLE_MIRROR__HTTPS://RUBYGEMS__ORG/": "https://mirror.example"},
    )
    store.temporary({"jobs": 4})
    assert store.all_keys() == ["jobs", "local.rack", "mirror.https://rubygems.org/", "path"]


def test_global_without_path_updates_memory_only() -> None:
    store, file_store = make_store()
    store.set_global("jobs", 4)
    assert store.get("jobs") == "4"
    assert file_store.saves == []


class FailingFileStore(RecordingFileStore):
    """File store whose writes always fail, like a read-only filesystem."""

    def save(self, path: Path, values) -> None:
        raise PermissionError(f"Permission denied: '{path}'")


def test_failed_write_keeps_previous_value(tmp_path: Path) -> None:
    store = LayeredStore(
        LayerStack.build(local_path=tmp_path / "config", defaults={"BUNDLE_TIMEOUT": "10"}),
        file_store=FailingFileStore(),
    )
    with pytest.raises(PermissionError):
        store.set_local("timeout", 20)
    assert store.get("timeout") == 10
    assert store.locations("timeout") == {"default": "10"}


def test_failed_delete_keeps_previous_value(tmp_path: Path) -> None:
    store = LayeredStore(
        LayerStack.build(global_={"BUNDLE_JOBS": "4"}, global_path=tmp_path / "config"),
        file_store=FailingFileStore(),
    )
    with pytest.raises(PermissionError):
        store.set_global("jobs", None)
    assert store.get("jobs") == "4"


def test_read_only_layers_reject_writes() -> None:
    store, file_store = make_store(environ={"BUNDLE_PATH": "/env"})
    with pytest.raises(InvalidArgument, match="read-only"):
        store.set_key("path", "/elsewhere", store.layers.env)
    with pytest.raises(InvalidArgument, match="read-only"):
        store.set_key("timeout", 1, store.layers.default)
    assert store.get("path") == "/env"
    assert store.get("timeout") == 10
    assert file_store.saves == []


@given(st.lists(st.sampled_from(["default", "development", "test", "ci"]), min_size=1, max_size=4, unique=True))
def test_array_settings_round_trip_through_the_store(groups: list[str]) -> None:
    store, _ = make_store()
    store.temporary({"without": groups})
    assert store.get("without") == groups
