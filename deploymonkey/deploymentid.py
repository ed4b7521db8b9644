"""Encoding and decoding of deployment identifiers."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

DEPLOY_PREFIX = "DM-APPDEF-"
DEPLOY_PREFIX_V2 = "DM-APPDEF2-"

_log = logging.getLogger(__name__)
_INT = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class DeploymentID:
    """The parts of a deployment identifier; app_id is 0 if not encoded."""

    group_id: int
    build_id: int
    app_id: int = 0


def _parse_int(text: str, what: str, deplid: str) -> int:
    if not _INT.fullmatch(text):
        raise ValueError(f"{what} invalid in deployment id {deplid!r}")
    return int(text)


def decode_deployment_id(deplid: str) -> DeploymentID:
    """Decode a deployment id into group, build and app id.

    Version-2 identifiers are not parsed yet and decode to all zeros.
    Raises ValueError for anything that is not a valid deployment id.
    """
    if deplid.startswith(DEPLOY_PREFIX_V2):
        _log.info("Unable to parse v2 atm (%s)", deplid)
        return DeploymentID(0, 0, 0)
    if not deplid.startswith(DEPLOY_PREFIX):
        raise ValueError(f"Not a valid deploy_prefix: {deplid!r}")
    parts = deplid[len(DEPLOY_PREFIX) + 1 :].split("-")
    if len(parts) not in (2, 3):
        raise ValueError(f"Not a valid deploy_id: {deplid!r}")
    group_id = _parse_int(parts[0], "group", deplid)
    build_id = _parse_int(parts[1], "build", deplid)
    app_id = _parse_int(parts[2], "version", deplid) if len(parts) == 3 else 0
    return DeploymentID(group_id, build_id, app_id)


def make_deployment_id(group_id: int, build_id: int, app_id: int | None = None) -> str:
    """Build a deployment id; the app id is included when given."""
    deplid = f"{DEPLOY_PREFIX}-{group_id}-{build_id}"
    if app_id is not None:
        deplid = f"{deplid}-{app_id}"
    return deplid


def stop_prefix(group_id: int) -> str:
    """The prefix shared by all deployment ids of a group."""
    return f"{DEPLOY_PREFIX}-{group_id}-"