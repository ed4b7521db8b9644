"""Delayed, conditional shutdown of instances that are no longer needed.

Stop requests are queued per transaction. Conditions attached to a request
decide whether the old instances may be filtered and stopped early, or
whether the whole transaction must be abandoned.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, Mapping, Protocol

from deploymonkey.models import DeployInfo

_log = logging.getLogger(__name__)

MAX_TRANSACTION = 10000
MAX_REQUEST_AGE = timedelta(minutes=30)
DEFAULT_FILTER_LEAD = timedelta(seconds=45)
DEFAULT_AUTODEPLOYER_PORT = 4000
CANCEL_MESSAGE = "Deployment did not succeed fully. Current Version NOT undeployed."


class ConditionResult(enum.IntEnum):
    """Outcome of evaluating stop conditions."""

    NOT_APPLICABLE = 0
    INCONCLUSIVE = 1
    FALSE = 2
    TRUE = 3


class StopperCondition(Protocol):
    """Something that decides whether a stop request may proceed."""

    def evaluate(self, request: StopRequest) -> ConditionResult: ...


@dataclass
class StopRequest:
    """A request to stop one instance on an autodeployer."""

    id: str
    host: str
    port: int = DEFAULT_AUTODEPLOYER_PORT
    transaction: int = 0
    prefix: str = ""
    submitted: datetime = field(default_factory=datetime.now)
    wait_until_ready: datetime = datetime.min
    execute_at: datetime = datetime.min
    filter_at: datetime = datetime.min
    ports: list[int] = field(default_factory=list)
    done: bool = False
    cancelled: bool = False
    failure_count: int = 0
    filtered: bool = False
    deploy_info: DeployInfo | None = None
    conditions: list[StopperCondition] = field(default_factory=list)
    last_eval: ConditionResult = ConditionResult.NOT_APPLICABLE

    def add_condition(self, condition: StopperCondition) -> None:
        """Attach a condition that is evaluated before stopping."""
        self.conditions.append(condition)

    def __str__(self) -> str:
        ports = "".join(f"{p} " for p in self.ports)
        return f"{self.host}:{ports}"


DeploymentLookup = Callable[[str], Mapping[str, DeployInfo]]


@dataclass
class StopperRunningCondition:
    """True once a newly started instance has run for min_runtime seconds.

    False if that instance is no longer deployed. The lookup maps a host to
    its deployments, keyed by startup id, and raises if the host cannot be
    queried.
    """

    startup_id: str
    host: str
    min_runtime: int
    lookup: DeploymentLookup

    def evaluate(self, request: StopRequest) -> ConditionResult:
        """Check the started instance on its host."""
        _log.debug("Evaluating cond for %s", request)
        info = self.lookup(self.host).get(self.startup_id)
        if info is None:
            return ConditionResult.FALSE
        if info.runtime_seconds >= self.min_runtime:
            return ConditionResult.TRUE
        return ConditionResult.INCONCLUSIVE

    def __str__(self) -> str:
        return f"App {self.startup_id} on {self.host} running for {self.min_runtime}s?"


def condition_execute(request: StopRequest) -> ConditionResult:
    """Evaluate all conditions of a request.

    NOT_APPLICABLE without conditions, FALSE as soon as one is false, TRUE if
    all are true, INCONCLUSIVE otherwise. Errors from a condition propagate.
    """
    if not request.conditions:
        return ConditionResult.NOT_APPLICABLE
    for condition in request.conditions:
        result = ConditionResult(condition.evaluate(request))
        _log.debug('Condition "%s" returned %d', condition, result)
        if result is ConditionResult.FALSE:
            return ConditionResult.FALSE
        if result is ConditionResult.TRUE:
            continue
        _log.info("Conditions evaluated to INCONCLUSIVE")
        return ConditionResult.INCONCLUSIVE
    return ConditionResult.TRUE


@dataclass(frozen=True)
class Schedule:
    """When a queued stop is filtered, executed, and given up on."""

    execute_at: datetime
    wait_until_ready: datetime
    filter_at: datetime


def compute_schedule(
    now: datetime,
    stop_delay: timedelta = timedelta(0),
    filter_delay: timedelta = timedelta(0),
    wait_delay: timedelta = timedelta(minutes=10),
) -> Schedule:
    """Work out the timers for stopping instances.

    With a stop delay and no (or a too late) filter delay, filtering starts
    45 seconds before the stop, but never before 5 seconds nor at or after
    the stop itself.
    """
    filter_at = now + filter_delay
    zero = timedelta(0)
    if stop_delay != zero and (filter_delay == zero or filter_delay >= stop_delay):
        lead = zero
        if filter_delay == zero:
            lead = stop_delay - DEFAULT_FILTER_LEAD
        if lead < zero:
            lead = timedelta(seconds=5)
        if lead >= stop_delay:
            lead = timedelta(seconds=1)
        filter_at = now + lead
    return Schedule(
        execute_at=now + stop_delay,
        wait_until_ready=now + wait_delay,
        filter_at=filter_at,
    )


def _no_filter(request: StopRequest) -> None:
    return None


def _no_notify(request: StopRequest, messages: list[str], error_message: str) -> None:
    return None


def _no_lookup(host: str) -> Mapping[str, DeployInfo]:
    raise LookupError(f"no deployment lookup configured for {host}")


class StopQueue:
    """Queue of pending stop requests and the logic that works through it.

    The executor stops an instance and raises on failure; the filter hides
    an instance from the registry; the notifier is told about cancelled
    transactions.
    """

    def __init__(
        self,
        executor: Callable[[StopRequest], None],
        *,
        filter_executor: Callable[[StopRequest], None] = _no_filter,
        notifier: Callable[[StopRequest, list[str], str], None] = _no_notify,
        lookup: DeploymentLookup = _no_lookup,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._executor = executor
        self._filter = filter_executor
        self._notifier = notifier
        self._lookup = lookup
        self._clock = clock
        self._lock = threading.Lock()
        self._trans_lock = threading.Lock()
        self._transaction = 0
        self.requests: list[StopRequest] = []

    def next_transaction(self) -> int:
        """A new transaction number, wrapping after MAX_TRANSACTION."""
        with self._trans_lock:
            if self._transaction > MAX_TRANSACTION:
                self._transaction = 0
            self._transaction += 1
            return self._transaction

    def add(self, request: StopRequest) -> None:
        """Queue a stop request."""
        _log.info("Queueing request to stop %s", request)
        with self._lock:
            self.requests.append(request)

    def cancel(
        self, transaction: int, messages: Iterable[str], error_message: str
    ) -> StopRequest | None:
        """Cancel all not yet cancelled requests of a transaction.

        Notifies once if anything was cancelled and returns the request the
        notification was about, or None.
        """
        cancelled: StopRequest | None = None
        with self._lock:
            for request in self.requests:
                if request.transaction == transaction and not request.cancelled:
                    request.cancelled = True
                    cancelled = request
        if cancelled is not None:
            self._notifier(cancelled, list(messages), error_message)
        return cancelled

    def add_running_condition(
        self, transaction: int, startup_id: str, host: str, min_runtime: int
    ) -> StopperRunningCondition:
        """Make every request of a transaction wait for a new instance to run."""
        condition = StopperRunningCondition(
            startup_id=startup_id, host=host, min_runtime=min_runtime, lookup=self._lookup
        )
        with self._lock:
            for request in self.requests:
                if request.transaction == transaction:
                    request.add_condition(condition)
        return condition

    def clean(self) -> None:
        """Drop requests that are too old, finished, cancelled or failed."""
        too_old = self._clock() - MAX_REQUEST_AGE
        with self._lock:
            kept = []
            for request in self.requests:
                if request.submitted < too_old:
                    _log.info("Dropped %s - too old (%s)", request, request.submitted)
                    continue
                if request.done or request.cancelled:
                    continue
                if request.last_eval is ConditionResult.FALSE:
                    continue
                kept.append(request)
            self.requests = kept

    def run_once(self) -> None:
        """Evaluate conditions, filter and stop whatever is due."""
        self.clean()

        messages: list[str] = []
        for request in list(self.requests):
            try:
                result = condition_execute(request)
            except Exception as exc:
                _log.warning("failed to eval condition %s: %s", request.prefix, exc)
                continue
            messages.append(f'Result of condition "{request}": {int(result)}\n')
            request.last_eval = result
            if result is ConditionResult.FALSE:
                self.cancel(request.transaction, messages, CANCEL_MESSAGE)
        self.clean()

        now = self._clock()
        with self._lock:
            to_filter = [
                r
                for r in self.requests
                if r.last_eval is ConditionResult.TRUE or r.filter_at <= now
            ]
        for request in to_filter:
            try:
                self._filter(request)
            except Exception as exc:
                _log.warning("failed to filter %s: %s", request.prefix, exc)
            else:
                request.filtered = True
        self.clean()

        now = self._clock()
        to_stop = []
        with self._lock:
            for request in self.requests:
                if request.execute_at > now:
                    continue
                if not request.filtered:
                    _log.info("Not stopping %s - it is not filtered yet", request)
                    continue
                to_stop.append(request)
        for request in to_stop:
            try:
                self._executor(request)
            except Exception as exc:
                _log.warning("failed to stop %s: %s", request.prefix, exc)
            else:
                request.done = True
        self.clean()