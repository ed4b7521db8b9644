"""Helpers deciding how and whether applications get deployed."""

from __future__ import annotations

import enum
from typing import Iterable

from deploymonkey.models import ApplicationDefinition


class DeployStyle(enum.IntEnum):
    """Which applications take the new deployment code path."""

    NEVER = 0
    PER_AUTODEPLOYER = 1
    ALWAYS = 2


def split_by_style(
    apps: Iterable[ApplicationDefinition], style: DeployStyle | int
) -> tuple[list[ApplicationDefinition], list[ApplicationDefinition]]:
    """Split applications into (new-style, old-style) lists."""
    style = DeployStyle(style)
    new_path: list[ApplicationDefinition] = []
    old_path: list[ApplicationDefinition] = []
    for app in apps:
        if style is DeployStyle.ALWAYS or (
            style is DeployStyle.PER_AUTODEPLOYER
            and app.instances != 0
            and app.instances_means_per_autodeployer
        ):
            new_path.append(app)
        else:
            old_path.append(app)
    return new_path, old_path


def replace_vars(text: str, variables: dict[str, str]) -> str:
    """Replace every ${NAME} in text with its value from variables."""
    for name, value in variables.items():
        text = text.replace(f"${{{name}}}", value)
    return text


def contains_group(groups: Iterable[str], name: str) -> bool:
    """True if the named machine group is among groups."""
    return name in groups


def check_build_ids(apps: Iterable[ApplicationDefinition]) -> None:
    """Raise ValueError if any application has build id 0."""
    for app in apps:
        if app.build_id == 0:
            raise ValueError(
                f"Refusing to deploy application {app.binary} with buildid #0"
            )


def precache_percent(total: int, done: int) -> float:
    """Percentage of a pre-cache download completed; 0 if the size is unknown."""
    if total == 0:
        return 0.0
    return done / total * 100