"""Suggested fixes that bring the actual deployments in line with the configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from deploymonkey.models import (
    ApplicationDefinition,
    Config,
    DeployAppRequest,
    Deployer,
    Deployers,
    Deployment,
    DeploymentList,
    GroupDefinitionRequest,
    UndeployAppRequest,
)

_log = logging.getLogger(__name__)

PRIO_SERVICES = (
    "logservice-server",
    "errorlogger-server",
    "secureargs-server",
    "objectauth-server",
    "objectstore-server",
)

DEFAULT_MACHINE_GROUP = "worker"


@dataclass
class StartApp:
    """A suggestion to start an application on a host."""

    host: str
    app: ApplicationDefinition

    def deploy_request(self) -> DeployAppRequest:
        """The request that carries out this suggestion."""
        return DeployAppRequest(app_id=self.app.id, host=self.host)

    def __str__(self) -> str:
        app = self.app
        return f"Start App #{app.id} ({app.repository_id}/{app.binary}) on {self.host}\n"


@dataclass
class StopApp:
    """A suggestion to stop an application instance on a host."""

    host: str
    app: ApplicationDefinition

    def undeploy_request(self) -> UndeployAppRequest:
        """The request that carries out this suggestion."""
        return UndeployAppRequest(deployment_id=self.app.deployment_id, host=self.host)

    def __str__(self) -> str:
        app = self.app
        return (
            f"Stop App #{app.id} ({app.repository_id}/{app.binary}) on {self.host} "
            f"(deploymentid {app.deployment_id})\n"
        )


@dataclass
class Suggestion:
    """A list of fixes together with the state they were worked out from."""

    deployments: DeploymentList
    config: Config
    starts: list[StartApp] = field(default_factory=list)
    stops: list[StopApp] = field(default_factory=list)
    missing_deployers: list[str] = field(default_factory=list)

    def add_missing_deployer(self, machine_group: str) -> None:
        """Record a machine group that has no deployers (once)."""
        if machine_group not in self.missing_deployers:
            self.missing_deployers.append(machine_group)

    def add_start(self, start: StartApp) -> None:
        self.starts.append(start)

    def add_stop(self, stop: StopApp) -> None:
        self.stops.append(stop)

    def _stopped(self, host: str, app: ApplicationDefinition) -> bool:
        return any(stop.host == host and stop.app.id == app.id for stop in self.stops)

    def projected_deployments(self) -> DeploymentList:
        """The current deployments with all suggested starts and stops applied."""
        result = DeploymentList()
        for deployment in self.deployments.deployments:
            projected = Deployment(host=deployment.host)
            result.deployments.append(projected)
            for group in deployment.apps:
                projected.apps.append(
                    GroupDefinitionRequest(
                        namespace=group.namespace,
                        group_id=group.group_id,
                        applications=[
                            app
                            for app in group.applications
                            if not self._stopped(projected.host, app)
                        ],
                    )
                )
        for start in self.starts:
            result.deployments.append(
                Deployment(
                    host=start.host,
                    apps=[GroupDefinitionRequest(applications=[start.app])],
                )
            )
        return result

    def count(self) -> int:
        """Number of suggested starts and stops."""
        return len(self.starts) + len(self.stops)

    def equals(self, other: Suggestion | None) -> bool:
        """True if both suggestions propose exactly the same fixes."""
        if other is None:
            return False
        return str(self) == str(other)

    def __str__(self) -> str:
        lines = ["Suggestions:\n"]
        lines.extend(str(start) for start in self.starts)
        lines.extend(str(stop) for stop in self.stops)
        return "".join(lines)

    def _instances_on_host(self, host: str, app: ApplicationDefinition):
        for deployment in self.projected_deployments().deployments:
            if deployment.host != host:
                continue
            for group in deployment.apps:
                yield from (a for a in group.applications if a.id == app.id)

    def _count_instances_on_target(
        self, deployer: Deployer, app: ApplicationDefinition
    ) -> int:
        return sum(1 for _ in self._instances_on_host(deployer.host, app))

    def get_instances_on_target(
        self, deployer: Deployer, app: ApplicationDefinition
    ) -> list[ApplicationDefinition]:
        """Projected instances of the application on the deployer's host."""
        return list(self._instances_on_host(deployer.host, app))

    def _count_deployments_on_target(self, deployer: Deployer) -> int:
        return sum(
            len(d.apps)
            for d in self.projected_deployments().deployments
            if d.host == deployer.host
        )

    def by_least_instances(
        self, deployers: Deployers, app: ApplicationDefinition
    ) -> Deployers:
        """Deployers running the fewest instances of app, fewest deployments first."""
        empty = [t for t in deployers.targets if self._count_deployments_on_target(t) == 0]
        if empty:
            return Deployers(empty)

        targets: list[Deployer] = []
        lowest = -1
        for deployment in self.projected_deployments().deployments:
            matching = deployers.by_ip(deployment.host)
            if not matching.targets:
                continue
            candidate = matching.targets[0]
            if any(candidate is t for t in targets):
                continue
            count = self._count_instances_on_target(candidate, app)
            if lowest == -1 or count == lowest:
                targets.append(candidate)
                lowest = count
            elif count < lowest:
                targets = [candidate]
                lowest = count

        if not targets and deployers.targets:
            _log.info("No least count - using all deployers")
            targets.append(deployers.targets[0])
        targets.sort(key=self._count_deployments_on_target)
        return Deployers(targets)

    def by_most_instances(
        self, deployers: Deployers, app: ApplicationDefinition
    ) -> Deployers:
        """Deployers running the most instances of app."""
        targets: list[Deployer] = []
        highest = -1
        for deployment in self.projected_deployments().deployments:
            matching = deployers.by_ip(deployment.host)
            if not matching.targets:
                continue
            candidate = matching.targets[0]
            count = self._count_instances_on_target(candidate, app)
            if highest == -1 or count == highest:
                targets.append(candidate)
                highest = count
            elif count > highest:
                targets = [candidate]
                highest = count
        return Deployers(targets)


def count_instances(deployments: DeploymentList, app: ApplicationDefinition) -> int:
    """How many running instances match the application's id."""
    return sum(
        1
        for deployment in deployments.deployments
        for group in deployment.apps
        for a in group.applications
        if a.id == app.id
    )


def fix_missing(suggestion: Suggestion, count_missing_as_zero: bool = True) -> None:
    """Suggest starts and stops for always-on apps with the wrong instance count.

    With count_missing_as_zero false, the search stops at the first machine
    group that has no deployers.
    """
    for info in suggestion.config.app_iterator():
        app = info.app
        if not app.always_on or app.instances_means_per_autodeployer:
            continue
        actual = count_instances(suggestion.projected_deployments(), app)
        wanted = app.instances
        if actual == wanted:
            continue
        _log.debug("%s: actual %d, wanted %d", app.binary, actual, wanted)

        while actual < wanted:
            machine_group = app.machines or DEFAULT_MACHINE_GROUP
            deployers = suggestion.config.deployers.by_group(machine_group)
            if not deployers.targets:
                _log.warning('Failed to find any deployers for type "%s"', machine_group)
                suggestion.add_missing_deployer(machine_group)
                if not count_missing_as_zero:
                    return
            deployers = suggestion.by_least_instances(deployers, app)
            if not deployers.targets:
                _log.warning('Failed to find least-instance deployer for "%s"', app.binary)
                if count_missing_as_zero:
                    break
                return
            suggestion.add_start(StartApp(host=deployers.targets[0].host, app=app))
            actual += 1

        while actual > wanted:
            deployers = suggestion.config.deployers.by_group(app.machines)
            if not deployers.targets:
                _log.warning('Failed to find any deployers for type "%s"', app.machines)
                if count_missing_as_zero:
                    break
                return
            deployers = suggestion.by_most_instances(deployers, app)
            if not deployers.targets:
                _log.warning("Failed to find most-instance deployer for %s", app.binary)
                if count_missing_as_zero:
                    break
                return
            target = deployers.targets[0]
            instances = suggestion.get_instances_on_target(target, app)
            if instances:
                suggestion.add_stop(StopApp(host=target.host, app=instances[0]))
            actual -= 1


def _base_name(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def get_prio(binary_name: str) -> int:
    """Priority of a binary; known important services come first."""
    try:
        return PRIO_SERVICES.index(binary_name)
    except ValueError:
        return len(PRIO_SERVICES) + 1


def sort_suggestions(suggestion: Suggestion) -> None:
    """Order starts by service priority, then by binary name."""

    def key(start: StartApp) -> tuple[int, str]:
        name = _base_name(start.app.binary)
        return get_prio(name), name

    suggestion.starts.sort(key=key)


def analyse(
    config: Config, deployments: DeploymentList, count_missing_as_zero: bool = True
) -> Suggestion:
    """Work out fixes from the configured state and what is actually deployed."""
    suggestion = Suggestion(deployments=deployments, config=config)
    fix_missing(suggestion, count_missing_as_zero)
    _log.debug("%s", suggestion)
    sort_suggestions(suggestion)
    return suggestion