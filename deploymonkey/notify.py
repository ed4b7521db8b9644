"""Human-readable notifications about deployments and cancelled stops."""

from __future__ import annotations

from typing import Iterable

from deploymonkey.models import ApplicationDefinition
from deploymonkey.stopper import StopRequest

NOTIFY_ON_DEPLOY = False
NOTIFY_CHANNEL = "deployments"


def format_deploy_message(apps: Iterable[ApplicationDefinition], version: int) -> str:
    """The message announcing that a group version was applied."""
    lines = [f"Datacenter update:\nApplied change #{version}, containing: \n"]
    lines.extend(
        f"   {app.instances} instances: build #{app.build_id} of application {app.binary}\n"
        for app in apps
    )
    return "".join(lines)


def _request_name(request: StopRequest) -> str:
    info = request.deploy_info
    if info is None:
        return "unknown"
    detail = f"({info.namespace})"
    if info.app_definition is not None:
        detail = f"({info.app_definition.binary})"
    return f"Repository #{info.repository_id}{detail}"


def format_cancel_message(
    request: StopRequest, user_messages: Iterable[str], error_message: str
) -> str:
    """The message announcing that an update was cancelled, with its log lines."""
    lines = [
        f'Datacenter update of "{_request_name(request)}" cancelled: {error_message}\n'
    ]
    for message in user_messages:
        if message.endswith("\n"):
            message = message[:-1]
        lines.append(message + "\n")
    return "".join(lines)