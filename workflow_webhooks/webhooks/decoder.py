"""Decoding of raw inbound webhook bodies into plain payload dictionaries."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping
from urllib.parse import parse_qsl

from workflow_webhooks.errors import DecodeError

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"
ENVELOPE_FIELD = "payload"

UNSUPPORTED_CONTENT_TYPE = "unsupported content-type"
MALFORMED_BODY = "malformed body"


@dataclass(frozen=True)
class InboundRequest:
    """Raw webhook delivery as received over HTTP."""

    body: bytes
    content_type: str
    headers: Mapping[str, str] = field(default_factory=dict)


def _text(body: bytes) -> str:
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(MALFORMED_BODY) from exc


def _loads(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(MALFORMED_BODY) from exc


def _loads_envelope(raw: str) -> Any:
    # A ``payload`` that is not JSON text stays an ordinary string field.
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _unwrap_envelope(payload: Dict[str, Any]) -> Dict[str, Any]:
    inner = payload.get(ENVELOPE_FIELD)
    if isinstance(inner, dict):
        return inner
    return payload


def _decode_form(text: str, json_fields: Iterable[str]) -> Dict[str, Any]:
    if not text.strip():
        return {}

    structured = set(json_fields)
    payload: Dict[str, Any] = {}
    seen = set()
    for key, value in parse_qsl(text, keep_blank_values=True):
        if key in seen:
            # First occurrence wins.
            continue
        seen.add(key)

        if key == ENVELOPE_FIELD:
            payload[key] = _loads_envelope(value)
        elif key in structured:
            if not value.strip():
                # Blank is absent; the schema default applies.
                continue
            payload[key] = _loads(value)
        else:
            payload[key] = value

    return _unwrap_envelope(payload)


def _decode_json(text: str) -> Dict[str, Any]:
    body = _loads(text)
    if not isinstance(body, dict):
        raise DecodeError(MALFORMED_BODY)

    envelope = body.get(ENVELOPE_FIELD)
    if isinstance(envelope, str):
        body = dict(body)
        body[ENVELOPE_FIELD] = _loads_envelope(envelope)

    return _unwrap_envelope(body)


def decode(request: InboundRequest, *, json_fields: Iterable[str] = ()) -> Dict[str, Any]:
    """Decode *request* into a payload dictionary.

    Form bodies are parsed as URL-encoded pairs. Empty segments are skipped and
    a bare key decodes to an empty string. Fields named in *json_fields* hold
    JSON text and are parsed into structures; a blank one is left out. JSON
    bodies must be objects. In both cases a ``payload`` field holding JSON text
    is parsed, and when it decodes to an object it replaces the outer body.
    """

    content_type = (request.content_type or "").lower()

    if FORM_CONTENT_TYPE in content_type:
        return _decode_form(_text(request.body), json_fields)
    if JSON_CONTENT_TYPE in content_type:
        return _decode_json(_text(request.body))

    raise DecodeError(UNSUPPORTED_CONTENT_TYPE)
