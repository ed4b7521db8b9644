"""Time series answering dashboard queries about deployments and versions."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable

from deploymonkey.autodeployers import ScanResult
from deploymonkey.models import ApplicationDefinition


class QueryType(enum.Enum):
    """Whether a query wants numeric series or text annotations."""

    TIMESERIES = "timeseries"
    ANNOTATIONS = "annotations"


@dataclass
class DataPoint:
    """One value (numeric or text) at a point in time."""

    timestamp: int = 0
    field_name: str = ""
    value: float = 0.0
    string_value: str = ""
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class QueryRequest:
    """A dashboard query over the time range start..end (unix seconds)."""

    query: str = ""
    start: int = 0
    end: int = 0
    query_type: QueryType = QueryType.TIMESERIES
    value_map: dict[str, list[str]] = field(default_factory=dict)


@dataclass
class DeploymentLog:
    """A record of a deployment being started."""

    binary: str = ""
    build_id: int = 0
    started: int = 0
    deploy_algorithm: int = 0
    autodeployer_host: str = ""
    app_definition: ApplicationDefinition | None = None


def short_binary(binary: str) -> str:
    """The last element of a binary's path."""
    if not binary:
        return "."
    stripped = binary.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def query_deployment_count(scan: ScanResult, request: QueryRequest) -> list[DataPoint]:
    """The number of deployments seen in the last scan, at the end of the range."""
    return [DataPoint(timestamp=request.end, value=float(scan.deployment_count()))]


def query_deployment_history(
    logs: Iterable[DeploymentLog], request: QueryRequest
) -> list[DataPoint]:
    """Deployments started since the start of the range, optionally by binary.

    Raises ValueError if more than one binary is asked for.
    """
    binaries = request.value_map.get("binary") or []
    if len(binaries) > 1:
        raise ValueError("cannot yet handle multiple values")
    needle = binaries[0].lower() if binaries else None
    relevant = [
        log
        for log in logs
        if log.started >= request.start
        and (needle is None or needle in log.binary.lower())
    ]
    if request.query_type is QueryType.ANNOTATIONS:
        return [
            DataPoint(
                field_name="text",
                timestamp=log.started,
                string_value=f"{short_binary(log.binary)} #{log.build_id}",
            )
            for log in relevant
        ]
    return [
        DataPoint(
            field_name="version",
            timestamp=log.started,
            value=float(log.build_id),
            labels={"binary": short_binary(log.binary)},
        )
        for log in relevant
    ]


def query_version_history(
    apps: Iterable[ApplicationDefinition], request: QueryRequest
) -> list[DataPoint]:
    """Application versions created within the range."""
    relevant = [app for app in apps if request.start <= app.created <= request.end]
    if request.query_type is QueryType.ANNOTATIONS:
        return [
            DataPoint(
                field_name="text",
                timestamp=app.created,
                string_value=f"{short_binary(app.binary)} Build #{app.build_id}",
            )
            for app in relevant
        ]
    return [
        DataPoint(
            field_name="version",
            timestamp=app.created,
            value=float(app.id),
            labels={"binary": short_binary(app.binary)},
        )
        for app in relevant
    ]


def query_timeseries(
    request: QueryRequest,
    scan: ScanResult,
    logs: Iterable[DeploymentLog],
    apps: Iterable[ApplicationDefinition],
) -> list[DataPoint]:
    """Answer a named query; raises ValueError for unknown queries."""
    if request.query == "deployment_count":
        return query_deployment_count(scan, request)
    if request.query == "version_history":
        return query_version_history(apps, request)
    if request.query == "deployments":
        return query_deployment_history(logs, request)
    raise ValueError(f'deploymonkey does not implement query "{request.query}"')