"""Utility script to reset the local delivery-log database.

Usage:
    python scripts/reset_local_db.py

Environment:
    Ensure DATABASE_URL is available in the current shell before running
    this script.
"""

from __future__ import annotations

import structlog

from workflow_webhooks.db import Base, get_engine
from workflow_webhooks.logging_config import configure_logging
from workflow_webhooks.models import WebhookDelivery


def reset_database() -> None:
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    structlog.get_logger().info("database_reset", tables=[WebhookDelivery.__tablename__])


if __name__ == "__main__":
    configure_logging()
    reset_database()
