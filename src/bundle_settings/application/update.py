"""Settings-driven decisions for the ``update`` command.

Purpose
-------
The update command itself (resolution, installation, lockfile handling) lives
outside this package. What it needs from the settings store is narrow: decide
whether a full update was requested and whether it is allowed, remember the
``--jobs`` option, and find out whether a clean-up should follow.

Contents
--------
* :class:`UpdatePlan` – the decisions the command acts on.
* :func:`plan_update` – derive an :class:`UpdatePlan` from options and settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from ..domain.errors import InvalidOption
from ..observability import log_warning

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..core import Settings


@dataclass(frozen=True, slots=True)
class UpdatePlan:
    """What the update command should do.

    Attributes
    ----------
    full_update:
        ``True`` when no gem, source, group, ``ruby`` or ``bundler`` target was given.
    gems / sources / groups:
        Explicit targets, in the order given.
    clean:
        ``True`` when both the ``clean`` and ``path`` settings are set, so stale
        gems should be removed after installing.
    """

    full_update: bool
    gems: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()
    clean: bool = False
    options: Mapping[str, Any] = field(default_factory=dict)


def plan_update(settings: "Settings", options: Mapping[str, Any], gems: Sequence[str] = ()) -> UpdatePlan:
    """Validate update *options* against *settings* and return the plan.

    Raises
    ------
    InvalidOption
        ``--all`` is missing for a full update while ``update_requires_all_flag``
        is on, or ``--all`` was combined with explicit targets.

    Side Effects
    ------------
    Records ``jobs`` through :meth:`Settings.set_command_option_if_given` and logs
    a deprecation warning for a full update without ``--all``.
    """

    sources = _as_tuple(options.get("source"))
    groups = _as_tuple(options.get("group"))
    targets = tuple(gems)

    full_update = not targets and not sources and not groups and not options.get("ruby") and not options.get("bundler")

    if full_update and not options.get("all"):
        if settings.get("update_requires_all_flag"):
            raise InvalidOption("To update everything, pass the `--all` flag.")
        log_warning("deprecation", layer="update", path=None, notice="Pass --all to `bundle update` to update everything")
    elif not full_update and options.get("all"):
        raise InvalidOption("Cannot specify --all along with specific options.")

    settings.set_command_option_if_given("jobs", options.get("jobs"))

    return UpdatePlan(
        full_update=full_update,
        gems=targets,
        sources=sources,
        groups=groups,
        clean=bool(settings.get("clean") and settings.get("path")),
        options={**options, "update": True},
    )


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)
