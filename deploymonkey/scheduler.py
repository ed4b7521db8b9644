"""Decides when suggested fixes may be applied without getting in the way.

Suggestions are only applied once a grace period has passed after the
last deployment, configuration change and change in suggestions.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timedelta
from typing import Callable, Protocol

from deploymonkey.models import DeployAppRequest, UndeployAppRequest
from deploymonkey.suggest import Suggestion

_log = logging.getLogger(__name__)

DEFAULT_GRACE = timedelta(minutes=10)


class SchedulerStatus(enum.IntEnum):
    """What the scheduler last decided."""

    IDLE = 0
    DEPLOY_GRACE = 1
    CONFIG_GRACE = 2
    SUGGESTIONS_GRACE = 3
    APPLYING = 20


class DeployClient(Protocol):
    """The service that carries out deploy and undeploy requests."""

    def deploy_app_on_target(self, request: DeployAppRequest) -> object: ...

    def undeploy_app_on_target(self, request: UndeployAppRequest) -> object: ...


class Scheduler:
    """Tracks recent state changes and applies suggestions when things are calm."""

    def __init__(
        self,
        client: DeployClient | None = None,
        *,
        dry_run: bool = False,
        deploy_wait: timedelta = DEFAULT_GRACE,
        config_wait: timedelta = DEFAULT_GRACE,
        suggestions_wait: timedelta = DEFAULT_GRACE,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.client = client
        self.dry_run = dry_run
        self.deploy_wait = deploy_wait
        self.config_wait = config_wait
        self.suggestions_wait = suggestions_wait
        self._clock = clock
        self.last_deploy_requested: datetime | None = None
        self.last_config_changed: datetime | None = None
        self.last_suggestions_changed: datetime | None = None
        self.last_suggestion: Suggestion | None = None
        self.status = SchedulerStatus.IDLE

    def deploy_requested(self) -> None:
        """Note that a deployment was just requested."""
        self.last_deploy_requested = self._clock()

    def config_changed(self) -> None:
        """Note that the configuration just changed."""
        self.last_config_changed = self._clock()

    def suggestions_changed(self, suggestion: Suggestion) -> None:
        """Note that the suggestions just changed to the given ones."""
        self.last_suggestions_changed = self._clock()
        self.last_suggestion = suggestion

    def _within(self, since: datetime | None, grace: timedelta, now: datetime) -> bool:
        return since is not None and now - since <= grace

    def check(self) -> SchedulerStatus:
        """Apply the latest suggestions unless a grace period is still running."""
        _log.debug("[scheduler] checking status...")
        if self.last_suggestion is None or self.last_suggestion.count() == 0:
            _log.debug("[scheduler] No suggestions currently")
            self.status = SchedulerStatus.IDLE
            return self.status
        now = self._clock()
        if self._within(self.last_deploy_requested, self.deploy_wait, now):
            _log.debug(
                "[scheduler] blocked because deploy was at %s", self.last_deploy_requested
            )
            self.status = SchedulerStatus.DEPLOY_GRACE
            return self.status
        if self._within(self.last_config_changed, self.config_wait, now):
            _log.debug(
                "[scheduler] blocked because config change was at %s",
                self.last_config_changed,
            )
            self.status = SchedulerStatus.CONFIG_GRACE
            return self.status
        if self._within(self.last_suggestions_changed, self.suggestions_wait, now):
            _log.debug(
                "[scheduler] blocked because suggestions changed at %s",
                self.last_suggestions_changed,
            )
            self.status = SchedulerStatus.SUGGESTIONS_GRACE
            return self.status
        self.apply_suggestions()
        return self.status

    def apply_suggestions(self) -> list[Exception]:
        """Start, then stop, what the latest suggestion asks for.

        Stops are skipped if any start failed. Returns the errors met.
        """
        suggestion = self.last_suggestion
        self.status = SchedulerStatus.APPLYING
        if suggestion is None:
            return []
        _log.info("[scheduler] Applying %s", suggestion)
        if self.dry_run:
            _log.info("[scheduler] Abort applying - dry-run is set")
            return []
        if self.client is None:
            raise RuntimeError("scheduler has no deploy client")
        errors: list[Exception] = []
        for start in suggestion.starts:
            try:
                self.client.deploy_app_on_target(start.deploy_request())
            except Exception as exc:
                _log.warning("Error deploying app: %s", exc)
                errors.append(exc)
        if errors:
            _log.warning("Not undeploying stuff, because we had errors deploying stuff")
            return errors
        for stop in suggestion.stops:
            try:
                self.client.undeploy_app_on_target(stop.undeploy_request())
            except Exception as exc:
                _log.warning("Error undeploying app: %s", exc)
                errors.append(exc)
        return errors