"""In-process registry of workflows suspended on an external webhook."""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping

import structlog

from workflow_webhooks.errors import AlreadyPendingError, SuspensionTimeoutError
from workflow_webhooks.webhooks.kinds import WebhookKind


@dataclass(frozen=True)
class ResolvedEvent:
    """Webhook response delivered to a suspended workflow."""

    kind: WebhookKind
    correlation_id: str
    response: Mapping[str, Any]
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class ResolveOutcome(str, Enum):
    DELIVERED = "delivered"
    NO_MATCH = "no_match"


@dataclass
class _PendingEntry:
    future: Future
    kind: WebhookKind | None
    deadline: float | None


class SuspensionRegistry:
    """Map correlation ids to the single future awaiting each of them.

    Every transition out of the pending state (resolve, cancel, expiry) first
    claims the entry by removing it under the lock, so exactly one of them
    completes the future.
    """

    def __init__(
        self,
        *,
        default_timeout: timedelta | None = None,
        timer: Callable[[], float] | None = None,
    ) -> None:
        if default_timeout is not None and default_timeout.total_seconds() <= 0:
            raise ValueError("Suspension timeout must be greater than zero seconds.")

        self._default_timeout = default_timeout
        self._timer = timer or time.monotonic
        self._lock = threading.Lock()
        self._pending: Dict[str, _PendingEntry] = {}
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    @property
    def _log(self):
        return structlog.get_logger().bind(component="suspension_registry")

    def __contains__(self, correlation_id: object) -> bool:
        with self._lock:
            return correlation_id in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def pending_ids(self) -> List[str]:
        with self._lock:
            return list(self._pending)

    def suspend(
        self,
        correlation_id: str,
        *,
        kind: WebhookKind | None = None,
        timeout: timedelta | None = None,
    ) -> Future:
        """Register a waiter for *correlation_id* and return its future.

        When *kind* is given only events of that kind resolve the entry.
        """

        if not correlation_id:
            raise ValueError("A correlation id is required to suspend.")

        effective_timeout = timeout if timeout is not None else self._default_timeout
        deadline = None
        if effective_timeout is not None:
            deadline = self._timer() + effective_timeout.total_seconds()

        future: Future = Future()
        with self._lock:
            if correlation_id in self._pending:
                raise AlreadyPendingError(correlation_id)
            self._pending[correlation_id] = _PendingEntry(future=future, kind=kind, deadline=deadline)

        future.add_done_callback(lambda done: self._discard(correlation_id, done))
        self._log.info(
            "suspension_registered",
            correlation_id=correlation_id,
            kind=kind.value if kind else None,
            timeout_seconds=effective_timeout.total_seconds() if effective_timeout else None,
        )
        return future

    def resolve(self, correlation_id: str, event: ResolvedEvent) -> ResolveOutcome:
        """Deliver *event* to the waiter on *correlation_id*, if there is one."""

        with self._lock:
            entry = self._pending.get(correlation_id)
            if entry is None or (entry.kind is not None and entry.kind != event.kind):
                entry = None
            else:
                del self._pending[correlation_id]

        if entry is None:
            self._log.warning(
                "suspension_not_found",
                correlation_id=correlation_id,
                kind=event.kind.value,
            )
            return ResolveOutcome.NO_MATCH

        if not entry.future.set_running_or_notify_cancel():
            # The waiter cancelled between the claim and delivery.
            return ResolveOutcome.NO_MATCH

        entry.future.set_result(event)
        self._log.info("suspension_resolved", correlation_id=correlation_id, kind=event.kind.value)
        return ResolveOutcome.DELIVERED

    def cancel(self, correlation_id: str) -> bool:
        """Drop the waiter on *correlation_id*; return False when none was pending."""

        with self._lock:
            entry = self._pending.pop(correlation_id, None)

        if entry is None:
            return False

        entry.future.cancel()
        self._log.info("suspension_cancelled", correlation_id=correlation_id)
        return True

    def expire(self) -> List[str]:
        """Fail every waiter whose deadline has passed and return their ids."""

        now = self._timer()
        expired: List[tuple[str, _PendingEntry]] = []
        with self._lock:
            for correlation_id, entry in list(self._pending.items()):
                if entry.deadline is not None and entry.deadline <= now:
                    expired.append((correlation_id, self._pending.pop(correlation_id)))

        for correlation_id, entry in expired:
            if entry.future.set_running_or_notify_cancel():
                entry.future.set_exception(SuspensionTimeoutError(correlation_id))
            self._log.warning("suspension_expired", correlation_id=correlation_id)

        return [correlation_id for correlation_id, _ in expired]

    def start_sweeper(self, interval: timedelta) -> None:
        """Run :meth:`expire` every *interval* on a daemon thread."""

        if interval.total_seconds() <= 0:
            raise ValueError("Sweep interval must be greater than zero seconds.")
        if self._sweeper is not None and self._sweeper.is_alive():
            return

        self._stop.clear()

        def sweep() -> None:
            while not self._stop.wait(interval.total_seconds()):
                try:
                    self.expire()
                except Exception:  # pragma: no cover - keep the sweeper alive
                    self._log.exception("suspension_sweep_failed")

        self._sweeper = threading.Thread(target=sweep, name="suspension-sweeper", daemon=True)
        self._sweeper.start()

    def shutdown(self) -> None:
        """Stop the sweeper and cancel every pending waiter."""

        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()

        for entry in entries:
            entry.future.cancel()

    def _discard(self, correlation_id: str, future: Future) -> None:
        # Runs when a waiter cancels its own future without going through cancel().
        with self._lock:
            entry = self._pending.get(correlation_id)
            if entry is not None and entry.future is future:
                del self._pending[correlation_id]
