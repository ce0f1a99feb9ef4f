"""Slack request signature verification for the ``slack`` webhook kind."""

from __future__ import annotations

import hmac
import time
from hashlib import sha256
from typing import Mapping

SLACK_SIGNATURE_HEADER = "X-Slack-Signature"
SLACK_TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
VERSION = "v0"
DEFAULT_TOLERANCE = 60 * 5  # five minutes


def compute_signature(signing_secret: str, timestamp: str, body: bytes) -> str:
    """Return the Slack ``v0=`` signature of *body* sent at *timestamp*."""

    basestring = f"{VERSION}:{timestamp}:".encode("utf-8") + body
    digest = hmac.new(signing_secret.encode("utf-8"), basestring, sha256).hexdigest()
    return f"{VERSION}={digest}"


class SlackSignatureVerifier:
    """Reject Slack deliveries that are unsigned, forged, or replayed."""

    def __init__(self, signing_secret: str, *, tolerance: int = DEFAULT_TOLERANCE) -> None:
        if not signing_secret:
            raise ValueError("A signing secret is required.")
        self._signing_secret = signing_secret
        self._tolerance = tolerance

    def verify(self, headers: Mapping[str, str], body: bytes) -> bool:
        timestamp = headers.get(SLACK_TIMESTAMP_HEADER, "")
        signature = headers.get(SLACK_SIGNATURE_HEADER, "")
        if not timestamp or not signature:
            return False

        try:
            request_ts = int(timestamp)
        except (TypeError, ValueError):
            return False

        if abs(int(time.time()) - request_ts) > self._tolerance:
            return False

        expected = compute_signature(self._signing_secret, timestamp, body)
        return hmac.compare_digest(expected, signature)
