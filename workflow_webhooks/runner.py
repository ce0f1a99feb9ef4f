"""Minimal step runner for workflows that pause on an external webhook."""

from __future__ import annotations

import threading
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, List
from uuid import uuid4

import structlog

from workflow_webhooks.background import run_async
from workflow_webhooks.errors import AlreadyPendingError, SuspensionTimeoutError
from workflow_webhooks.registry import ResolvedEvent, SuspensionRegistry
from workflow_webhooks.webhooks.kinds import WebhookKind

RUNNING = "running"
WAITING = "waiting"
COMPLETED = "completed"
FAILED = "failed"
TIMED_OUT = "timed_out"
CANCELLED = "cancelled"

_FINAL_STATUSES = {COMPLETED, FAILED, TIMED_OUT, CANCELLED}


@dataclass(frozen=True)
class WaitFor:
    """Pause the workflow until a webhook of *kind* resolves *correlation_id*."""

    kind: WebhookKind
    correlation_id: str
    timeout: timedelta | None = None


@dataclass(frozen=True)
class StepResult:
    state: Dict[str, Any]
    wait_for: WaitFor | None = None


StepFn = Callable[[Dict[str, Any], Any], "Dict[str, Any] | StepResult"]


@dataclass(frozen=True)
class Step:
    title: str
    run: StepFn


class Workflow:
    """Ordered list of steps; each receives the state and the last webhook response."""

    def __init__(self, title: str) -> None:
        if not title:
            raise ValueError("Workflow title is required.")
        self.title = title
        self.steps: List[Step] = []

    def step(self, title: str, run: StepFn) -> "Workflow":
        self.steps.append(Step(title=title, run=run))
        return self


@dataclass
class WorkflowRun:
    workflow: Workflow
    state: Dict[str, Any]
    id: str = field(default_factory=lambda: str(uuid4()))
    status: str = RUNNING
    step_index: int = 0
    waiting_on: str | None = None
    error: BaseException | None = None
    completion: Future = field(default_factory=Future)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def is_finished(self) -> bool:
        return self.status in _FINAL_STATUSES


class WorkflowRunner:
    """Run workflows on the background pool, suspending through the registry."""

    def __init__(
        self,
        registry: SuspensionRegistry,
        *,
        submit: Callable[..., Any] = run_async,
    ) -> None:
        self._registry = registry
        self._submit = submit
        self._runs: Dict[str, WorkflowRun] = {}
        self._runs_lock = threading.Lock()

    def get(self, run_id: str) -> WorkflowRun | None:
        with self._runs_lock:
            return self._runs.get(run_id)

    def start(self, workflow: Workflow, state: Dict[str, Any] | None = None) -> WorkflowRun:
        run = WorkflowRun(workflow=workflow, state=dict(state or {}))
        with self._runs_lock:
            self._runs[run.id] = run
        structlog.get_logger().info("workflow_started", run_id=run.id, workflow=workflow.title)
        self._submit(self._advance, run, None)
        return run

    def cancel(self, run: WorkflowRun) -> bool:
        """Cancel *run*; a webhook arriving later for its wait is not delivered."""

        with run.lock:
            if run.is_finished:
                return False
            waiting_on = run.waiting_on if run.status == WAITING else None
            run.status = CANCELLED
            run.waiting_on = None

        if waiting_on is not None:
            self._registry.cancel(waiting_on)
        run.completion.cancel()
        structlog.get_logger().info("workflow_cancelled", run_id=run.id, workflow=run.workflow.title)
        return True

    def _advance(self, run: WorkflowRun, response: Any) -> None:
        log = structlog.get_logger().bind(run_id=run.id, workflow=run.workflow.title)

        while True:
            with run.lock:
                if run.status == CANCELLED:
                    return
                if run.step_index >= len(run.workflow.steps):
                    run.status = COMPLETED
                    break
                step = run.workflow.steps[run.step_index]

            try:
                result = step.run(dict(run.state), response)
            except Exception as exc:
                log.exception("workflow_step_failed", step=step.title)
                self._finish(run, FAILED, error=exc)
                return

            response = None
            if isinstance(result, StepResult):
                state, wait_for = result.state, result.wait_for
            else:
                state, wait_for = result, None

            with run.lock:
                if run.status == CANCELLED:
                    return
                run.state = dict(state)
                run.step_index += 1

            log.info("workflow_step_completed", step=step.title)
            if wait_for is not None:
                self._suspend(run, wait_for, log)
                return

        log.info("workflow_completed")
        run.completion.set_result(run.state)

    def _suspend(self, run: WorkflowRun, wait_for: WaitFor, log) -> None:
        with run.lock:
            if run.status == CANCELLED:
                return
            try:
                waiter = self._registry.suspend(
                    wait_for.correlation_id,
                    kind=wait_for.kind,
                    timeout=wait_for.timeout,
                )
            except AlreadyPendingError as exc:
                log.error("workflow_wait_rejected", correlation_id=wait_for.correlation_id)
                run.status = FAILED
                run.error = exc
                failed = True
            else:
                run.status = WAITING
                run.waiting_on = wait_for.correlation_id
                failed = False

        if failed:
            run.completion.set_exception(run.error)
            return

        log.info("workflow_waiting", correlation_id=wait_for.correlation_id, kind=wait_for.kind.value)
        waiter.add_done_callback(lambda done: self._on_resume(run, done))

    def _on_resume(self, run: WorkflowRun, waiter: Future) -> None:
        try:
            event: ResolvedEvent = waiter.result()
        except CancelledError:
            self._abandon(run)
            return
        except SuspensionTimeoutError as exc:
            self._finish(run, TIMED_OUT, error=exc)
            return

        with run.lock:
            if run.status != WAITING:
                return
            run.status = RUNNING
            run.waiting_on = None

        self._submit(self._advance, run, event.response)

    def _abandon(self, run: WorkflowRun) -> None:
        """Settle a run whose wait was cancelled outside :meth:`cancel`, e.g. at registry shutdown."""

        with run.lock:
            if run.is_finished:
                return
            run.status = CANCELLED
            run.waiting_on = None

        run.completion.cancel()
        structlog.get_logger().warning(
            "workflow_cancelled",
            run_id=run.id,
            workflow=run.workflow.title,
            reason="wait_cancelled",
        )

    def _finish(self, run: WorkflowRun, status: str, *, error: BaseException) -> None:
        with run.lock:
            if run.is_finished:
                return
            run.status = status
            run.waiting_on = None
            run.error = error

        structlog.get_logger().warning(
            "workflow_finished",
            run_id=run.id,
            workflow=run.workflow.title,
            status=status,
            error=str(error),
        )
        run.completion.set_exception(error)
