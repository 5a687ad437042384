"""End-to-end CLI coverage for the ``config``-style commands.

Each test points ``--root`` and ``HOME`` into ``tmp_path`` so the
project and user settings files live in the sandbox, then checks both the
echoed output and the files left on disk.
"""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

import lib_cli_exit_tools

from bundle_settings import ConfigRootMissing, cli


def _runner() -> CliRunner:
    """Return a fresh CLI runner so each test starts from a clean state."""

    return CliRunner()


def _env(tmp_path: Path, **extra: str) -> dict[str, str]:
    home = tmp_path / "home"
    home.mkdir(exist_ok=True)
    return {"HOME": str(home), **extra}


def _root(tmp_path: Path) -> str:
    return str(tmp_path / "project" / ".bundle")


def test_cli_set_local_then_get(tmp_path: Path) -> None:
    """`cli set --local` writes the project file and `cli get` reports it."""

    env = _env(tmp_path)
    result = _runner().invoke(cli.cli, ["--root", _root(tmp_path), "set", "--local", "timeout", "20"], env=env)
    assert result.exit_code == 0, result.output
    assert "Set timeout to '20'" in result.output
    assert (tmp_path / "project" / ".bundle" / "config").read_text(encoding="utf-8") == '---\nBUNDLE_TIMEOUT: "20"\n'

    shown = _runner().invoke(cli.cli, ["--root", _root(tmp_path), "get", "timeout"], env=env)
    assert shown.exit_code == 0
    assert shown.output.strip().endswith("config): 20")


def test_cli_set_global_array_keeps_each_value(tmp_path: Path) -> None:
    """Array settings store every positional value as one element."""

    env = _env(tmp_path)
    result = _runner().invoke(cli.cli, ["--root", _root(tmp_path), "set", "without", "development", "test"], env=env)
    assert result.exit_code == 0, result.output
    global_file = tmp_path / "home" / ".bundle" / "config"
    assert global_file.read_text(encoding="utf-8") == '---\nBUNDLE_WITHOUT: "development:test"\n'


def test_cli_unset_removes_value(tmp_path: Path) -> None:
    """`cli unset` deletes the key and the default shows through again."""

    env = _env(tmp_path)
    _runner().invoke(cli.cli, ["--root", _root(tmp_path), "set", "--local", "jobs", "4"], env=env)
    result = _runner().invoke(cli.cli, ["--root", _root(tmp_path), "unset", "--local", "jobs"], env=env)
    assert result.exit_code == 0
    assert result.output.strip() == "Removed jobs from the local settings"

    shown = _runner().invoke(cli.cli, ["--root", _root(tmp_path), "get", "jobs"], env=env)
    assert shown.output.strip() == "You have not configured a value for `jobs`"


def test_cli_list_reports_empty_configuration(tmp_path: Path) -> None:
    result = _runner().invoke(cli.cli, ["--root", _root(tmp_path), "list"], env=_env(tmp_path))
    assert result.exit_code == 0
    assert result.output.strip() == "You have not configured any settings."


def test_cli_list_includes_environment_overrides(tmp_path: Path) -> None:
    """Every BUNDLE_* variable counts as a setting, including BUNDLE_USER_HOME."""

    home = tmp_path / "bundle-home"
    env = _env(tmp_path, BUNDLE_USER_HOME=str(home))
    result = _runner().invoke(cli.cli, ["--root", _root(tmp_path), "list"], env=env)
    assert result.exit_code == 0
    assert "user_home" in result.output.splitlines()
    assert f"  Set via BUNDLE_USER_HOME: '{home}'" in result.output.splitlines()


def test_cli_list_shows_each_key_with_its_layers(tmp_path: Path) -> None:
    """`cli list` prints every key followed by its indented layer lines."""

    env = _env(tmp_path, BUNDLE_FROZEN="true")
    result = _runner().invoke(cli.cli, ["--root", _root(tmp_path), "list"], env=env)
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].startswith("Settings are listed in order of priority")
    assert "frozen" in lines
    assert "  Set via BUNDLE_FROZEN: True" in lines


def test_cli_mirror_resolves_configured_mirror(tmp_path: Path) -> None:
    env = _env(tmp_path)
    runner = _runner()
    runner.invoke(
        cli.cli,
        ["--root", _root(tmp_path), "set", "mirror.https://rubygems.org", "https://mirror.example"],
        env=env,
    )
    result = runner.invoke(cli.cli, ["--root", _root(tmp_path), "mirror", "https://rubygems.org"], env=env)
    assert result.exit_code == 0
    assert result.output.strip() == "https://mirror.example"


def test_cli_set_local_outside_project_fails(tmp_path: Path) -> None:
    """Without a Gemfile nearby there is no project settings file to write."""

    runner = _runner()
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(cli.cli, ["set", "--local", "timeout", "5"], env=_env(tmp_path))
    assert result.exit_code != 0
    assert isinstance(result.exception, ConfigRootMissing)


def test_cli_discovers_root_from_gemfile(tmp_path: Path) -> None:
    """A Gemfile in the working directory makes ``./.bundle`` the project root."""

    runner = _runner()
    with runner.isolated_filesystem(temp_dir=tmp_path) as workdir:
        Path(workdir, "Gemfile").write_text("source 'https://rubygems.org'\n", encoding="utf-8")
        result = runner.invoke(cli.cli, ["set", "--local", "retry", "1"], env=_env(tmp_path))
        assert result.exit_code == 0, result.output
        assert Path(workdir, ".bundle", "config").is_file()


def test_cli_info_handles_missing_metadata(monkeypatch) -> None:
    """`cli info` must degrade gracefully when package metadata is unavailable."""

    def _raise_pkg_not_found(*_args, **_kwargs):
        raise cli.metadata.PackageNotFoundError()

    monkeypatch.setattr(cli.metadata, "metadata", _raise_pkg_not_found)
    result = _runner().invoke(cli.cli, ["info"])
    assert result.exit_code == 0
    assert "metadata unavailable" in result.output


def test_cli_main_restores_traceback_flag(tmp_path: Path, monkeypatch) -> None:
    """`cli main` should restore lib_cli_exit_tools tracebacks after execution."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    for name, value in _env(tmp_path).items():
        monkeypatch.setenv(name, value)
    exit_code = cli.main(["--traceback", "--root", _root(tmp_path), "get", "timeout"], restore_traceback=True)
    assert exit_code == 0
    assert getattr(lib_cli_exit_tools.config, "traceback", False) == previous_traceback
