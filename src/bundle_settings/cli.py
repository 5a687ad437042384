"""CLI adapter for ``bundle_settings`` built on ``lib_cli_exit_tools``.

Purpose
-------
Expose the layered settings store as a ``config``-style command line so users
can inspect and change settings without writing Python code.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command wiring traceback handling and the project root.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_get` – shows where a setting is defined and its typed value.
* :func:`cli_set` / :func:`cli_unset` – change the local or global settings file.
* :func:`cli_list` – lists every configured setting.
* :func:`cli_mirror` – shows which URI is fetched for a source.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
Outermost layer. It builds one :class:`bundle_settings.core.Settings` per
invocation and never reaches into adapters directly. ``lib_cli_exit_tools``
centralises the exit code strategy so errors such as
:class:`~bundle_settings.domain.errors.ConfigRootMissing` surface with their
original message.
"""

from __future__ import annotations

import sys
from importlib import metadata
from pathlib import Path
from typing import Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .core import Settings
from .domain.coercion import KeyKind, kind_for

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000
_DISTRIBUTION: Final[str] = "bundle_settings"
_PROJECT_MARKERS: Final[tuple[str, ...]] = ("Gemfile", "gems.rb")


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` for source checkouts."""

    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Layered settings for the package manager",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=_DISTRIBUTION,
    message=f"{_DISTRIBUTION} version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option(
    "--root",
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True),
    default=None,
    help="Project settings directory (defaults to ./.bundle when a Gemfile is present)",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool, root: Optional[Path]) -> None:
    """Root command storing the traceback preference and project root.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    ctx.obj["root"] = root if root is not None else _discover_root(Path.cwd())
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        click.echo(f"{_DISTRIBUTION} (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', _DISTRIBUTION)}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("get", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("name")
@click.pass_context
def cli_get(ctx: click.Context, name: str) -> None:
    """Show every layer that sets NAME and the value it holds.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["get", "timeout"], env={"BUNDLE_TIMEOUT": "15"})
    >>> result.output.strip()
    'Set via BUNDLE_TIMEOUT: 15'
    """

    for line in _settings(ctx).pretty_values_for(name):
        click.echo(line)


@cli.command("set", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--global", "scope", flag_value="global", default=True, help="Write to the user settings file")
@click.option("--local", "scope", flag_value="local", help="Write to the project settings file")
@click.argument("name")
@click.argument("values", nargs=-1, required=True)
@click.pass_context
def cli_set(ctx: click.Context, scope: str, name: str, values: Sequence[str]) -> None:
    """Set NAME to VALUES in the chosen settings file.

    Array settings (``with``, ``without``) take each value as one element;
    other settings join the values with spaces.
    """

    settings = _settings(ctx)
    value: object = list(values) if kind_for(name) is KeyKind.ARRAY else " ".join(values)
    if scope == "local":
        settings.set_local(name, value)
        location = settings.local_config_file
    else:
        settings.set_global(name, value)
        location = settings.global_config_file
    click.echo(f"Set {name} to {settings.locations(name).get(scope)!r} in {location}")


@cli.command("unset", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--global", "scope", flag_value="global", default=True, help="Remove from the user settings file")
@click.option("--local", "scope", flag_value="local", help="Remove from the project settings file")
@click.argument("name")
@click.pass_context
def cli_unset(ctx: click.Context, scope: str, name: str) -> None:
    """Remove NAME from the chosen settings file."""

    settings = _settings(ctx)
    if scope == "local":
        settings.set_local(name, None)
    else:
        settings.set_global(name, None)
    click.echo(f"Removed {name} from the {scope} settings")


@cli.command("list", context_settings=CLICK_CONTEXT_SETTINGS)
@click.pass_context
def cli_list(ctx: click.Context) -> None:
    """List every configured setting with the layers that define it."""

    settings = _settings(ctx)
    keys = settings.all()
    if not keys:
        click.echo("You have not configured any settings.")
        return
    click.echo("Settings are listed in order of priority. The top value will be used.")
    for key in keys:
        click.echo(key)
        for line in settings.pretty_values_for(key):
            click.echo(f"  {line}")


@cli.command("mirror", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("uri")
@click.pass_context
def cli_mirror(ctx: click.Context, uri: str) -> None:
    """Print the URI that is fetched in place of source URI."""

    click.echo(_settings(ctx).mirror_for(uri))


def _settings(ctx: click.Context) -> Settings:
    """Return the per-invocation :class:`Settings`, building it on first use."""

    root_ctx = ctx.find_root()
    root_ctx.ensure_object(dict)
    if "settings" not in root_ctx.obj:
        root_ctx.obj["settings"] = Settings(root_ctx.obj.get("root"))
    return root_ctx.obj["settings"]


def _discover_root(start: Path) -> Optional[Path]:
    """Return ``<dir>/.bundle`` for the nearest directory holding a Gemfile."""

    for directory in (start, *start.parents):
        if any((directory / marker).is_file() for marker in _PROJECT_MARKERS):
            return directory / ".bundle"
    return None


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name=_DISTRIBUTION,
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
