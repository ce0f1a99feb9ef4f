"""Webhook kinds accepted by the gateway."""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class WebhookKind(str, Enum):
    SLACK = "slack"
    ARCHIVE = "archive"
    MERCURY_RECEIPTS = "mercury-receipts"
    REVIEW_EMAILS = "review-emails"


# Form fields carrying JSON text, beyond the conventional ``payload`` envelope.
FORM_JSON_FIELDS: Dict[WebhookKind, FrozenSet[str]] = {
    WebhookKind.SLACK: frozenset(),
    WebhookKind.ARCHIVE: frozenset({"emailIds", "threadIds", "allEmailIds", "confirmed"}),
    WebhookKind.MERCURY_RECEIPTS: frozenset(
        {"selections", "mercuryEmailIds", "mercuryThreadIds", "confirmed"}
    ),
    WebhookKind.REVIEW_EMAILS: frozenset(),
}


def parse_kind(value: str) -> WebhookKind:
    """Return the kind named by *value*, raising ValueError when unknown."""

    normalised = (value or "").strip().lower()
    try:
        return WebhookKind(normalised)
    except ValueError:
        raise ValueError(f"Unknown webhook kind '{value}'") from None
