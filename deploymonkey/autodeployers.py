"""In-memory cache of the autodeployers found by scanning the registry."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping

from deploymonkey.models import DeployInfo

_log = logging.getLogger(__name__)

MAX_QUERY_FAILURES = 5


@dataclass
class AutoDeployer:
    """A known autodeployer and what it had deployed when last seen.

    Apps map the deployment's startup id to its information.
    """

    ip: str
    port: int
    groups: list[str] = field(default_factory=list)
    last_seen: datetime | None = None
    query_failures: int = 0
    apps: dict[str, DeployInfo] = field(default_factory=dict)
    broken: bool = False
    available: bool = True

    def __str__(self) -> str:
        return (
            f"{self.ip}:{self.port} {self.groups} "
            f"(broken={self.broken},available={self.available})"
        )


@dataclass
class ScanResult:
    """Deployments collected during one scan of all autodeployers."""

    deployments: list[dict[str, DeployInfo]] = field(default_factory=list)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def add_deployments(self, info: Mapping[str, DeployInfo]) -> None:
        """Record what one autodeployer reported."""
        with self._lock:
            self.deployments.append(dict(info))

    def deployment_count(self) -> int:
        """Total number of deployments seen in this scan."""
        with self._lock:
            return sum(len(d) for d in self.deployments)


class AutodeployerCache:
    """The list of autodeployers, matched on ip and port."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._deployers: list[AutoDeployer] = []

    def __iter__(self):
        with self._lock:
            return iter(list(self._deployers))

    def __len__(self) -> int:
        with self._lock:
            return len(self._deployers)

    def get(self, ip: str, port: int) -> AutoDeployer | None:
        """The cached autodeployer at ip:port, or None."""
        with self._lock:
            return next(
                (d for d in self._deployers if d.ip == ip and d.port == port), None
            )

    def mark_registered(self, addresses: Iterable[tuple[str, int]]) -> None:
        """Mark deployers as available exactly if they are among addresses."""
        registered = set(addresses)
        with self._lock:
            for deployer in self._deployers:
                deployer.available = (deployer.ip, deployer.port) in registered

    def update(self, deployer: AutoDeployer) -> None:
        """Add a deployer, or refresh the apps of the cached one at its address."""
        with self._lock:
            existing = self.get(deployer.ip, deployer.port)
            if existing is not None:
                existing.apps = deployer.apps
                return
            self._deployers.append(deployer)

    def inc_failure(self, ip: str, port: int) -> None:
        """Count a failed query against the deployer at ip:port, if known."""
        _log.debug("Errorcounter increased on %s:%d", ip, port)
        with self._lock:
            deployer = self.get(ip, port)
            if deployer is not None:
                deployer.query_failures += 1

    def set_brokenness(self, ip: str, port: int) -> None:
        """Mark a deployer broken after too many consecutive failures."""
        with self._lock:
            deployer = self.get(ip, port)
            if deployer is not None:
                deployer.broken = deployer.query_failures > MAX_QUERY_FAILURES

    def available(self) -> list[AutoDeployer]:
        """Deployers that are neither broken nor unavailable."""
        with self._lock:
            return [d for d in self._deployers if not d.broken and d.available]

    def non_broken_addresses(self) -> list[tuple[str, int]]:
        """Addresses of all deployers that are not broken."""
        with self._lock:
            return [(d.ip, d.port) for d in self._deployers if not d.broken]

    def deployments(self, ip: str, port: int, prefix: str) -> dict[str, DeployInfo]:
        """Deployments at ip:port whose id starts with prefix; none if broken."""
        with self._lock:
            result: dict[str, DeployInfo] = {}
            for deployer in self._deployers:
                if deployer.ip != ip or deployer.port != port or deployer.broken:
                    continue
                result.update(
                    (app_id, info)
                    for app_id, info in deployer.apps.items()
                    if info.deployment_id.startswith(prefix)
                )
            return result

    def machine_group_counts(self) -> Counter[str]:
        """Number of deployers serving each machine group."""
        with self._lock:
            return Counter(g for d in self._deployers for g in d.groups)