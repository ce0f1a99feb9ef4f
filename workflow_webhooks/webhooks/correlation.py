"""Derivation of correlation ids linking an inbound event to a suspended workflow."""

from __future__ import annotations

from typing import Callable, Dict

from pydantic import BaseModel

from workflow_webhooks.errors import CorrelationError

from .kinds import WebhookKind
from .schemas import BlockActions, EventCallback, SessionEvent, UrlVerification
from .validator import ValidatedEvent

ACTION_SEPARATOR = "-"


def _session_id(model: SessionEvent) -> str:
    if not model.session_id:
        raise CorrelationError("missing sessionId")
    return model.session_id


def _message_action(model: BlockActions) -> str:
    message_ts = model.message_ts
    if not message_ts:
        raise CorrelationError("missing message timestamp")
    return f"{message_ts}{ACTION_SEPARATOR}{model.actions[0].action_id}"


def _thread_root(model: EventCallback) -> str:
    if not model.event.thread_ts:
        raise CorrelationError("missing thread_ts")
    return model.event.thread_ts


def _handshake(model: UrlVerification) -> str:
    raise CorrelationError("verification requests do not correlate to a workflow")


_RULES: Dict[type[BaseModel], Callable[[BaseModel], str]] = {
    SessionEvent: _session_id,
    BlockActions: _message_action,
    EventCallback: _thread_root,
    UrlVerification: _handshake,
}


def _rule_for(model: BaseModel) -> Callable[[BaseModel], str]:
    for model_type in type(model).__mro__:
        rule = _RULES.get(model_type)
        if rule is not None:
            return rule
    raise CorrelationError(f"no correlation rule for {type(model).__name__}")


def resolve_id(kind: WebhookKind, event: ValidatedEvent) -> str:
    """Return the correlation id for *event*, which must belong to *kind*."""

    if event.kind != kind:
        raise CorrelationError(f"event of kind '{event.kind.value}' cannot correlate as '{kind.value}'")
    return _rule_for(event.model)(event.model)
