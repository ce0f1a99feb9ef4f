"""Application entry point for the workflow webhook gateway."""

from __future__ import annotations

import atexit
from datetime import timedelta
from pathlib import Path
from uuid import uuid4

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from sqlalchemy import text
import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars

from workflow_webhooks.background import shutdown_background
from workflow_webhooks.config import AppSettings, get_settings
from workflow_webhooks.db import create_schema, session_scope
from workflow_webhooks.deliveries import (
    DEFAULT_LIST_LIMIT,
    list_deliveries,
    record_delivery,
    serialise_delivery,
)
from workflow_webhooks.gateway import DispatchGateway
from workflow_webhooks.logging_config import configure_logging
from workflow_webhooks.models import DELIVERY_OUTCOMES
from workflow_webhooks.registry import SuspensionRegistry
from workflow_webhooks.runner import WorkflowRunner
from workflow_webhooks.security import SlackSignatureVerifier
from workflow_webhooks.webhooks import InboundRequest, WebhookKind, parse_kind

_LOGGING_CONFIGURED = False
_DEFAULT_REGISTRY: SuspensionRegistry | None = None


def _load_version() -> str:
    version_file = Path(__file__).resolve().parent / "VERSION"
    if version_file.exists():
        return version_file.read_text(encoding="utf-8").strip()
    return "unknown"


def _create_registry(settings: AppSettings) -> SuspensionRegistry:
    """Return the process-wide registry, building it and its sweeper on first use."""

    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is not None:
        return _DEFAULT_REGISTRY

    registry = SuspensionRegistry(default_timeout=timedelta(seconds=settings.suspension_timeout_seconds))
    registry.start_sweeper(timedelta(seconds=settings.sweep_interval_seconds))
    # Exit hooks run last-registered first: waiters are cancelled before the pool stops.
    atexit.register(shutdown_background)
    atexit.register(registry.shutdown)
    _DEFAULT_REGISTRY = registry
    return registry


def _register_error_handlers(flask_app: Flask) -> None:
    """Register a JSON error handler that attaches a trace identifier."""

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        if isinstance(error, HTTPException):
            return error
        trace_id = str(uuid4())
        structlog.get_logger().exception("unhandled_application_error", trace_id=trace_id, exc_info=error)
        response = jsonify({"error": "internal_server_error", "trace_id": trace_id})
        response.status_code = 500
        return response


def create_app(registry: SuspensionRegistry | None = None) -> Flask:
    """Create and configure the Flask application.

    The suspension registry lives as long as the application. Pass one in to
    share it with workflows started elsewhere in the process.
    """

    global _LOGGING_CONFIGURED
    settings = get_settings()
    if not _LOGGING_CONFIGURED:
        configure_logging(settings.log_level)
        _LOGGING_CONFIGURED = True

    create_schema()

    if registry is None:
        registry = _create_registry(settings)
    gateway = DispatchGateway(registry, delivery_recorder=record_delivery)
    runner = WorkflowRunner(registry)

    verifier = None
    if settings.slack_signing_secret:
        verifier = SlackSignatureVerifier(settings.slack_signing_secret)

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = _load_version()
    flask_app.extensions["suspension_registry"] = registry
    flask_app.extensions["dispatch_gateway"] = gateway
    flask_app.extensions["workflow_runner"] = runner
    flask_app.logger.setLevel(settings.log_level)

    _register_error_handlers(flask_app)

    @flask_app.before_request
    def bind_trace_id():
        bind_contextvars(trace_id=request.headers.get("X-Request-Id") or str(uuid4()))

    @flask_app.teardown_request
    def unbind_trace_id(_exc):
        unbind_contextvars("trace_id")

    @flask_app.route("/webhooks/<kind_name>", methods=["POST"])
    def receive_webhook(kind_name: str):
        try:
            kind = parse_kind(kind_name)
        except ValueError:
            response = jsonify({"error": "unknown_webhook"})
            response.status_code = 404
            return response

        raw_body = request.get_data(cache=True)

        if kind is WebhookKind.SLACK and verifier is not None:
            if not verifier.verify(request.headers, raw_body):
                structlog.get_logger().warning("webhook_rejected", webhook_kind=kind.value, stage="signature")
                response = jsonify({"error": "invalid_signature"})
                response.status_code = 401
                return response

        inbound = InboundRequest(
            body=raw_body,
            content_type=request.headers.get("Content-Type", ""),
            headers=dict(request.headers),
        )
        result = gateway.handle(kind, inbound)
        return jsonify(result.body), result.status_code

    @flask_app.route("/deliveries", methods=["GET"])
    def deliveries():
        outcome = request.args.get("outcome") or None
        if outcome is not None and outcome not in DELIVERY_OUTCOMES:
            return jsonify({"error": "invalid_outcome", "allowed": list(DELIVERY_OUTCOMES)}), 400

        kind = request.args.get("kind") or None
        if kind is not None:
            try:
                kind = parse_kind(kind).value
            except ValueError:
                return jsonify({"error": "unknown_webhook"}), 400

        try:
            limit = int(request.args.get("limit", DEFAULT_LIST_LIMIT))
        except ValueError:
            return jsonify({"error": "invalid_limit"}), 400

        with session_scope() as session:
            rows = list_deliveries(session, outcome=outcome, kind=kind, limit=limit)
            items = [serialise_delivery(row) for row in rows]
        return jsonify({"deliveries": items})

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        health: dict[str, object] = {"ok": True}
        health["version"] = flask_app.config.get("APP_VERSION", "unknown")
        health["pending_suspensions"] = len(registry)

        try:
            get_settings()
            health["config"] = "valid"
        except Exception as exc:  # pragma: no cover - settings were loaded at startup
            health["config"] = "invalid"
            health["config_error"] = str(exc)
            health["ok"] = False

        try:
            with session_scope() as session:
                session.execute(text("SELECT 1"))
            health["db"] = "up"
        except Exception as exc:
            health["db"] = "down"
            health["db_error"] = str(exc)
            health["ok"] = False

        status = 200 if health["ok"] else 503
        return jsonify(health), status

    return flask_app


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    application = create_app()
    application.run(host="0.0.0.0", port=3000, debug=True)
