"""Workflow Webhooks package initialisation."""

from .background import run_async  # noqa: F401
from .config import AppSettings, get_settings  # noqa: F401
from .db import Base, get_engine, get_session_factory, session_scope  # noqa: F401
from .gateway import DispatchGateway, GatewayResponse  # noqa: F401
from .logging_config import configure_logging  # noqa: F401
from .models import WebhookDelivery  # noqa: F401
from .registry import ResolvedEvent, ResolveOutcome, SuspensionRegistry  # noqa: F401
from .runner import StepResult, WaitFor, Workflow, WorkflowRunner  # noqa: F401

__all__ = [
    "AppSettings",
    "get_settings",
    "run_async",
    "Base",
    "get_engine",
    "get_session_factory",
    "session_scope",
    "DispatchGateway",
    "GatewayResponse",
    "configure_logging",
    "WebhookDelivery",
    "ResolvedEvent",
    "ResolveOutcome",
    "SuspensionRegistry",
    "StepResult",
    "WaitFor",
    "Workflow",
    "WorkflowRunner",
]
