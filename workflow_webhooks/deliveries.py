"""Services for recording and listing webhook deliveries."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, Dict, List, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from workflow_webhooks.db import session_scope
from workflow_webhooks.models import DELIVERY_OUTCOMES, WebhookDelivery

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 500


def canonical_json(data: Mapping[str, Any]) -> str:
    """Return a canonical JSON string with stable ordering and whitespace."""

    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


def record_delivery(
    *,
    kind: str,
    correlation_id: str | None,
    outcome: str,
    payload: Mapping[str, Any],
    received_at: datetime | None = None,
) -> WebhookDelivery:
    """Persist a delivery outcome and return the saved entity."""

    if outcome not in DELIVERY_OUTCOMES:
        raise ValueError(f"Unknown delivery outcome '{outcome}'")

    with session_scope() as session:
        delivery = WebhookDelivery(
            kind=kind,
            correlation_id=correlation_id,
            outcome=outcome,
            payload_json=canonical_json(payload),
            received_at=received_at or datetime.now(UTC),
        )
        session.add(delivery)
        session.flush()
        session.refresh(delivery)
        session.expunge(delivery)
        return delivery


def list_deliveries(
    session: Session,
    *,
    outcome: str | None = None,
    kind: str | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
) -> List[WebhookDelivery]:
    """Return recorded deliveries, newest first."""

    limit = max(1, min(limit, MAX_LIST_LIMIT))
    stmt = select(WebhookDelivery)
    if outcome is not None:
        stmt = stmt.where(WebhookDelivery.outcome == outcome)
    if kind is not None:
        stmt = stmt.where(WebhookDelivery.kind == kind)
    stmt = stmt.order_by(WebhookDelivery.received_at.desc(), WebhookDelivery.id.desc()).limit(limit)
    return list(session.execute(stmt).scalars())


def serialise_delivery(delivery: WebhookDelivery) -> Dict[str, Any]:
    return {
        "id": delivery.id,
        "kind": delivery.kind,
        "correlation_id": delivery.correlation_id,
        "outcome": delivery.outcome,
        "payload": json.loads(delivery.payload_json),
        "received_at": delivery.received_at.isoformat(),
    }
