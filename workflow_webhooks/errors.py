"""Exceptions raised along the webhook decode, validate, correlate and resume path."""

from __future__ import annotations

from typing import List, Sequence, Tuple


class DecodeError(Exception):
    """Raised when an inbound body cannot be decoded."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ValidationError(Exception):
    """Raised when a decoded payload does not match its webhook schema.

    ``field`` and ``reason`` describe the first failing field; ``errors`` holds
    every ``(field, reason)`` pair that was reported.
    """

    def __init__(self, field: str, reason: str, errors: Sequence[Tuple[str, str]] | None = None) -> None:
        super().__init__(f"{field}: {reason}" if field else reason)
        self.field = field
        self.reason = reason
        self.errors: List[Tuple[str, str]] = list(errors) if errors else [(field, reason)]


class CorrelationError(Exception):
    """Raised when no correlation id can be derived from a validated event."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class AlreadyPendingError(Exception):
    """Raised when a workflow suspends on an id that already has a live waiter."""

    def __init__(self, correlation_id: str) -> None:
        super().__init__(f"A continuation is already pending for '{correlation_id}'")
        self.correlation_id = correlation_id


class SuspensionTimeoutError(TimeoutError):
    """Delivered to a waiter whose suspension expired before a webhook arrived."""

    def __init__(self, correlation_id: str) -> None:
        super().__init__(f"Suspension for '{correlation_id}' expired")
        self.correlation_id = correlation_id
