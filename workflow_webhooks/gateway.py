"""Single entry point turning inbound webhook deliveries into workflow resumptions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping

import structlog

from workflow_webhooks.errors import CorrelationError, DecodeError, ValidationError
from workflow_webhooks.registry import ResolvedEvent, ResolveOutcome, SuspensionRegistry
from workflow_webhooks.webhooks import (
    FORM_JSON_FIELDS,
    InboundRequest,
    WebhookKind,
    decode,
    resolve_id,
    validate,
)

OUTCOME_HANDSHAKE = "handshake"
OUTCOME_IGNORED = "ignored"
OUTCOME_REJECTED = "rejected"

DeliveryRecorder = Callable[..., Any]


@dataclass(frozen=True)
class GatewayResponse:
    """HTTP answer for the external sender plus the internal outcome."""

    status_code: int
    body: Dict[str, Any]
    outcome: str
    correlation_id: str | None = None


def _acknowledge(outcome: str, correlation_id: str | None = None) -> GatewayResponse:
    return GatewayResponse(status_code=200, body={"ok": True}, outcome=outcome, correlation_id=correlation_id)


def _reject(error: str, reason: str, **extra: Any) -> GatewayResponse:
    body: Dict[str, Any] = {"error": error, "reason": reason, **extra}
    return GatewayResponse(status_code=400, body=body, outcome=OUTCOME_REJECTED)


class DispatchGateway:
    """Decode, validate and correlate a delivery, then hand it to the registry."""

    def __init__(
        self,
        registry: SuspensionRegistry,
        *,
        delivery_recorder: DeliveryRecorder | None = None,
    ) -> None:
        self._registry = registry
        self._recorder = delivery_recorder

    @property
    def registry(self) -> SuspensionRegistry:
        return self._registry

    def handle(self, kind: WebhookKind, request: InboundRequest) -> GatewayResponse:
        log = structlog.get_logger().bind(webhook_kind=kind.value)

        try:
            payload = decode(request, json_fields=FORM_JSON_FIELDS[kind])
        except DecodeError as exc:
            log.warning("webhook_rejected", stage="decode", reason=exc.reason, content_type=request.content_type)
            return _reject("decode_error", exc.reason)

        try:
            event = validate(kind, payload)
        except ValidationError as exc:
            log.warning(
                "webhook_rejected",
                stage="validate",
                field=exc.field,
                reason=exc.reason,
                errors=[f"{field}: {reason}" for field, reason in exc.errors],
            )
            return _reject("validation_error", exc.reason, field=exc.field)

        if event.is_handshake:
            log.info("webhook_handshake")
            return GatewayResponse(
                status_code=200,
                body={"challenge": event.model.challenge},
                outcome=OUTCOME_HANDSHAKE,
            )

        if event.is_ignorable:
            log.info("webhook_ignored", reason="bot_or_edited_message")
            self._record(kind, None, OUTCOME_IGNORED, payload, log)
            return _acknowledge(OUTCOME_IGNORED)

        try:
            correlation_id = resolve_id(kind, event)
        except CorrelationError as exc:
            log.warning("webhook_rejected", stage="correlate", reason=exc.reason)
            self._record(kind, None, OUTCOME_REJECTED, payload, log)
            return _reject("correlation_error", exc.reason)

        log = log.bind(correlation_id=correlation_id)
        resolved = ResolvedEvent(kind=kind, correlation_id=correlation_id, response=event.response())
        outcome = self._registry.resolve(correlation_id, resolved)

        if outcome is ResolveOutcome.NO_MATCH:
            log.warning("webhook_unmatched")
        else:
            log.info("webhook_delivered")

        self._record(kind, correlation_id, outcome.value, payload, log)
        return _acknowledge(outcome.value, correlation_id)

    def _record(
        self,
        kind: WebhookKind,
        correlation_id: str | None,
        outcome: str,
        payload: Mapping[str, Any],
        log,
    ) -> None:
        if self._recorder is None:
            return
        try:
            self._recorder(kind=kind.value, correlation_id=correlation_id, outcome=outcome, payload=payload)
        except Exception:
            log.exception("delivery_record_failed", outcome=outcome)
