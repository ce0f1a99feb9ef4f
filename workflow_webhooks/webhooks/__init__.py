"""Inbound webhook decoding, validation and correlation."""

from .correlation import resolve_id
from .decoder import InboundRequest, decode
from .kinds import FORM_JSON_FIELDS, WebhookKind, parse_kind
from .validator import ValidatedEvent, validate

__all__ = [
    "FORM_JSON_FIELDS",
    "InboundRequest",
    "ValidatedEvent",
    "WebhookKind",
    "decode",
    "parse_kind",
    "resolve_id",
    "validate",
]
