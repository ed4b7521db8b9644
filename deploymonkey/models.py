"""Data types shared across the deployment manager."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class AutoRegistration:
    """A service the autodeployer registers on behalf of an application."""

    portdef: str = ""
    service_name: str = ""
    api_types: str = ""


@dataclass
class Limits:
    """Runtime limits applied to a deployed process."""

    max_memory: int = 0
    priority: int = 0


@dataclass
class ApplicationDefinition:
    """Everything needed to deploy one application."""

    id: int = 0
    repository_id: int = 0
    build_id: int = 0
    artefact_id: int = 0
    binary: str = ""
    download_url: str = ""
    download_user: str = ""
    download_password: str = ""
    args: list[str] = field(default_factory=list)
    auto_regs: list[AutoRegistration] = field(default_factory=list)
    instances: int = 0
    instances_means_per_autodeployer: bool = False
    machines: str = ""
    deploy_type: str = ""
    deployment_id: str = ""
    critical: bool = False
    always_on: bool = False
    as_root: bool = False
    static_target_dir: str = ""
    public: bool = False
    java: bool = False
    created: int = 0
    limits: Limits | None = None


@dataclass
class DeployInfo:
    """What an autodeployer reports about one of its deployments."""

    binary: str = ""
    namespace: str = ""
    groupname: str = ""
    repository_id: int = 0
    build_id: int = 0
    deployment_id: str = ""
    status: str = ""
    ports: list[int] = field(default_factory=list)
    runtime_seconds: int = 0
    app_definition: ApplicationDefinition | None = None


@dataclass
class Deployer:
    """An autodeployer host and the machine groups it serves."""

    host: str = ""
    machine_groups: list[str] = field(default_factory=list)


@dataclass
class Deployers:
    """A list of deployment targets."""

    targets: list[Deployer] = field(default_factory=list)

    def by_group(self, group: str) -> Deployers:
        """Targets that serve the given machine group."""
        return Deployers([t for t in self.targets if group in t.machine_groups])

    def by_ip(self, ip: str) -> Deployers:
        """Targets running on the given host."""
        return Deployers([t for t in self.targets if t.host == ip])

    def __iter__(self) -> Iterator[Deployer]:
        return iter(self.targets)

    def __len__(self) -> int:
        return len(self.targets)


@dataclass
class GroupDefinitionRequest:
    """A group of applications within a namespace."""

    namespace: str = ""
    group_id: str = ""
    applications: list[ApplicationDefinition] = field(default_factory=list)


@dataclass
class Deployment:
    """The application groups deployed on one host."""

    host: str = ""
    apps: list[GroupDefinitionRequest] = field(default_factory=list)


@dataclass
class DeploymentList:
    """Deployments across all hosts."""

    deployments: list[Deployment] = field(default_factory=list)


@dataclass
class DeployAppRequest:
    """Request to deploy an application on a given host."""

    app_id: int = 0
    host: str = ""


@dataclass
class UndeployAppRequest:
    """Request to undeploy a deployment on a given host."""

    deployment_id: str = ""
    host: str = ""


@dataclass
class AppInfo:
    """An application together with the group it belongs to."""

    group: GroupDefinitionRequest
    app: ApplicationDefinition


@dataclass
class Config:
    """The configured state: available deployers and application groups."""

    deployers: Deployers = field(default_factory=Deployers)
    groups: list[GroupDefinitionRequest] = field(default_factory=list)

    def app_iterator(self) -> list[AppInfo]:
        """All configured applications, in group order."""
        return [AppInfo(group, app) for group in self.groups for app in group.applications]


def app_to_string(app: ApplicationDefinition) -> str:
    """A short human-readable description of an application build."""
    return f"Build #{app.build_id} in {app.repository_id}({app.binary})"