"""Tests for webhook schema validation."""

import pytest

from workflow_webhooks.errors import ValidationError
from workflow_webhooks.webhooks import WebhookKind, validate
from workflow_webhooks.webhooks.schemas import (
    ArchiveEvent,
    BlockActions,
    EventCallback,
    MercuryReceiptsEvent,
    ReviewEmailsEvent,
    UrlVerification,
)


def _block_actions(**overrides):
    payload = {
        "type": "block_actions",
        "user": {"id": "U123"},
        "container": {"type": "message", "message_ts": "111.222"},
        "actions": [{"action_id": "archive_btn", "value": "go"}],
    }
    payload.update(overrides)
    return payload


def test_archive_payload_applies_defaults():
    event = validate(WebhookKind.ARCHIVE, {"sessionId": "s1", "emailIds": ["e1", "e2"]})

    assert isinstance(event.model, ArchiveEvent)
    assert event.model.session_id == "s1"
    assert event.response() == {
        "emailIds": ["e1", "e2"],
        "threadIds": [],
        "allEmailIds": [],
        "confirmed": True,
    }


def test_mercury_selection_with_empty_receipt_means_skip():
    payload = {
        "sessionId": "abc",
        "selections": [
            {"mercuryRequestId": "r1", "selectedReceiptId": "e9"},
            {"mercuryRequestId": "r2", "selectedReceiptId": ""},
        ],
        "confirmed": True,
    }

    event = validate(WebhookKind.MERCURY_RECEIPTS, payload)

    assert isinstance(event.model, MercuryReceiptsEvent)
    assert event.response()["selections"] == [
        {"mercuryRequestId": "r1", "selectedReceiptId": "e9"},
        {"mercuryRequestId": "r2", "selectedReceiptId": None},
    ]


def test_review_action_accepts_known_values():
    event = validate(WebhookKind.REVIEW_EMAILS, {"sessionId": "s1", "action": "draft_response"})

    assert isinstance(event.model, ReviewEmailsEvent)
    assert event.response() == {"action": "draft_response"}


def test_session_id_is_optional_at_validation():
    event = validate(WebhookKind.REVIEW_EMAILS, {"action": "dismiss"})

    assert event.model.session_id is None


def test_missing_required_field_names_the_field():
    with pytest.raises(ValidationError) as err:
        validate(WebhookKind.ARCHIVE, {"sessionId": "s1"})

    assert err.value.field == "emailIds"
    assert "required" in err.value.reason.lower()


def test_wrong_item_type_reports_its_position():
    with pytest.raises(ValidationError) as err:
        validate(WebhookKind.ARCHIVE, {"sessionId": "s1", "emailIds": ["e1", 7]})

    assert err.value.field == "emailIds.1"


def test_strings_are_not_coerced_to_booleans():
    with pytest.raises(ValidationError) as err:
        validate(WebhookKind.ARCHIVE, {"sessionId": "s1", "emailIds": [], "confirmed": "yes"})

    assert err.value.field == "confirmed"


def test_unknown_review_action_is_rejected():
    with pytest.raises(ValidationError) as err:
        validate(WebhookKind.REVIEW_EMAILS, {"sessionId": "s1", "action": "forward"})

    assert err.value.field == "action"


def test_all_failing_fields_are_collected():
    with pytest.raises(ValidationError) as err:
        validate(
            WebhookKind.MERCURY_RECEIPTS,
            {"sessionId": 5, "selections": [{"mercuryRequestId": "r1"}]},
        )

    fields = {field for field, _reason in err.value.errors}
    assert fields == {"sessionId", "selections.0.selectedReceiptId"}


def test_slack_block_actions_are_selected_by_type():
    event = validate(WebhookKind.SLACK, _block_actions())

    assert isinstance(event.model, BlockActions)
    assert event.model.message_ts == "111.222"
    assert event.response()["user"] == {"id": "U123"}
    assert event.is_handshake is False


def test_slack_url_verification_is_a_handshake():
    event = validate(WebhookKind.SLACK, {"type": "url_verification", "challenge": "xyz", "token": "t"})

    assert isinstance(event.model, UrlVerification)
    assert event.is_handshake is True


def test_slack_thread_reply_response_includes_message():
    payload = {
        "type": "event_callback",
        "event": {
            "type": "message",
            "text": "Ship it",
            "ts": "1700000001.000200",
            "thread_ts": "1700000000.000100",
            "user": "U42",
            "channel": "C1",
        },
    }

    event = validate(WebhookKind.SLACK, payload)

    assert isinstance(event.model, EventCallback)
    assert event.is_ignorable is False
    assert event.response()["message"] == {
        "text": "Ship it",
        "ts": "1700000001.000200",
        "thread_ts": "1700000000.000100",
        "user": "U42",
        "channel": "C1",
    }


@pytest.mark.parametrize("extra", [{"bot_id": "B1"}, {"subtype": "message_changed"}])
def test_bot_and_edited_messages_are_ignorable(extra):
    message = {"type": "message", "ts": "2.0", "thread_ts": "1.0", "text": "hi", **extra}

    event = validate(WebhookKind.SLACK, {"type": "event_callback", "event": message})

    assert event.is_ignorable is True


@pytest.mark.parametrize("payload", [{}, {"type": ""}, {"type": 3}])
def test_slack_payload_without_type_is_rejected(payload):
    with pytest.raises(ValidationError) as err:
        validate(WebhookKind.SLACK, payload)

    assert err.value.field == "type"
    assert err.value.reason == "missing interaction type discriminator"


def test_unhandled_slack_interaction_type_is_rejected():
    with pytest.raises(ValidationError) as err:
        validate(WebhookKind.SLACK, {"type": "view_submission"})

    assert err.value.reason == "unhandled interaction type: view_submission"


def test_block_actions_require_at_least_one_action():
    with pytest.raises(ValidationError) as err:
        validate(WebhookKind.SLACK, _block_actions(actions=[]))

    assert err.value.field == "actions"


def test_thread_reply_requires_message_timestamp():
    with pytest.raises(ValidationError) as err:
        validate(WebhookKind.SLACK, {"type": "event_callback", "event": {"type": "message", "text": "hi"}})

    assert err.value.field == "event.ts"
