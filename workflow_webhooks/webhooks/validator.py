"""Validation of decoded payloads against the schema declared for each kind."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from workflow_webhooks.errors import ValidationError

from .kinds import WebhookKind
from .schemas import (
    SLACK_INTERACTION_TYPES,
    ArchiveEvent,
    EventCallback,
    MercuryReceiptsEvent,
    ReviewEmailsEvent,
    SessionEvent,
    UrlVerification,
)

DISCRIMINATOR_FIELD = "type"

_SESSION_SCHEMAS: Dict[WebhookKind, type[SessionEvent]] = {
    WebhookKind.ARCHIVE: ArchiveEvent,
    WebhookKind.MERCURY_RECEIPTS: MercuryReceiptsEvent,
    WebhookKind.REVIEW_EMAILS: ReviewEmailsEvent,
}


@dataclass(frozen=True)
class ValidatedEvent:
    """A payload that passed its kind's schema."""

    kind: WebhookKind
    model: BaseModel
    payload: Mapping[str, Any]

    @property
    def is_handshake(self) -> bool:
        return isinstance(self.model, UrlVerification)

    @property
    def is_ignorable(self) -> bool:
        return isinstance(self.model, EventCallback) and self.model.is_ignorable

    def response(self) -> Dict[str, Any]:
        """Shape the payload delivered to the waiting workflow."""

        if isinstance(self.model, SessionEvent):
            return self.model.response()

        response = dict(self.payload)
        if isinstance(self.model, EventCallback):
            response["message"] = self.model.reply_message()
        return response


def _error_pairs(exc: PydanticValidationError) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "__root__"
        pairs.append((field, error["msg"]))
    return pairs


def _apply(schema: type[BaseModel], payload: Mapping[str, Any]) -> BaseModel:
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        pairs = _error_pairs(exc)
        field, reason = pairs[0]
        raise ValidationError(field, reason, pairs) from exc


def _select_slack_schema(payload: Mapping[str, Any]) -> type[BaseModel]:
    interaction_type = payload.get(DISCRIMINATOR_FIELD)
    if not isinstance(interaction_type, str) or not interaction_type:
        raise ValidationError(DISCRIMINATOR_FIELD, "missing interaction type discriminator")

    schema = SLACK_INTERACTION_TYPES.get(interaction_type)
    if schema is None:
        raise ValidationError(DISCRIMINATOR_FIELD, f"unhandled interaction type: {interaction_type}")
    return schema


def validate(kind: WebhookKind, payload: Mapping[str, Any]) -> ValidatedEvent:
    """Validate *payload* for *kind*, raising ValidationError on mismatch."""

    if kind == WebhookKind.SLACK:
        schema = _select_slack_schema(payload)
    else:
        schema = _SESSION_SCHEMAS[kind]

    model = _apply(schema, payload)
    return ValidatedEvent(kind=kind, model=model, payload=payload)
