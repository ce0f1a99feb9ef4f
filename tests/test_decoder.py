"""Tests for decoding raw webhook bodies."""

import json
from urllib.parse import urlencode

import pytest

from workflow_webhooks.errors import DecodeError
from workflow_webhooks.webhooks.decoder import InboundRequest, decode

FORM = "application/x-www-form-urlencoded"
JSON = "application/json"


def _form(body: str, **kwargs):
    return decode(InboundRequest(body=body.encode("utf-8"), content_type=FORM), **kwargs)


def _json(body, content_type: str = JSON):
    raw = body if isinstance(body, str) else json.dumps(body)
    return decode(InboundRequest(body=raw.encode("utf-8"), content_type=content_type))


def test_form_body_parses_declared_json_fields():
    body = 'sessionId=abc&selections=[{"mercuryRequestId":"r1","selectedReceiptId":"e9"}]&confirmed=true'

    payload = _form(body, json_fields={"selections", "confirmed"})

    assert payload == {
        "sessionId": "abc",
        "selections": [{"mercuryRequestId": "r1", "selectedReceiptId": "e9"}],
        "confirmed": True,
    }


def test_form_fields_not_declared_as_json_stay_strings():
    payload = _form("sessionId=abc&action=dismiss&count=3")

    assert payload == {"sessionId": "abc", "action": "dismiss", "count": "3"}


@pytest.mark.parametrize(
    "email_ids",
    [
        [],
        ["18c2a"],
        ["18c2a", "18c2b", "with space", "ünïcode&=?"],
    ],
)
def test_form_json_array_survives_reencoding(email_ids):
    body = urlencode({"sessionId": "s1", "emailIds": json.dumps(email_ids)})
    first = _form(body, json_fields={"emailIds"})

    again = _form(urlencode({"emailIds": json.dumps(first["emailIds"])}), json_fields={"emailIds"})

    assert first["emailIds"] == email_ids
    assert again["emailIds"] == email_ids


def test_form_payload_envelope_replaces_outer_body():
    inner = {"type": "block_actions", "actions": [{"action_id": "archive_btn"}]}

    payload = _form(urlencode({"payload": json.dumps(inner)}))

    assert payload == inner


def test_form_first_occurrence_of_repeated_key_wins():
    payload = _form("sessionId=first&sessionId=second")

    assert payload["sessionId"] == "first"


def test_empty_form_body_decodes_to_empty_mapping():
    assert _form("") == {}


def test_form_with_invalid_json_field_is_malformed():
    with pytest.raises(DecodeError) as err:
        _form("sessionId=abc&emailIds=[not-json", json_fields={"emailIds"})

    assert err.value.reason == "malformed body"


def test_form_bare_key_decodes_to_blank_string():
    payload = _form("sessionId=abc&flag")

    assert payload == {"sessionId": "abc", "flag": ""}


@pytest.mark.parametrize("body", ["sessionId=abc&selections=[]&", "&sessionId=abc&&selections=[]"])
def test_form_empty_segments_are_skipped(body):
    payload = _form(body, json_fields={"selections"})

    assert payload == {"sessionId": "abc", "selections": []}


def test_form_blank_json_field_is_left_out():
    payload = _form("sessionId=abc&selections=&mercuryEmailIds=[]", json_fields={"selections", "mercuryEmailIds"})

    assert payload == {"sessionId": "abc", "mercuryEmailIds": []}


def test_form_plain_text_payload_field_is_kept_as_string():
    payload = _form("sessionId=abc&action=dismiss&payload=note")

    assert payload == {"sessionId": "abc", "action": "dismiss", "payload": "note"}


def test_json_body_is_returned_as_mapping():
    payload = _json({"sessionId": "abc", "action": "acknowledge"}, content_type="application/json; charset=utf-8")

    assert payload == {"sessionId": "abc", "action": "acknowledge"}


def test_json_double_encoded_envelope_is_unwrapped():
    inner = {"type": "url_verification", "challenge": "xyz"}

    payload = _json({"payload": json.dumps(inner)})

    assert payload == inner


def test_json_envelope_that_is_not_an_object_is_kept_in_place():
    payload = _json({"payload": json.dumps(["a", "b"]), "sessionId": "abc"})

    assert payload == {"payload": ["a", "b"], "sessionId": "abc"}


def test_json_plain_text_payload_field_is_kept_as_string():
    payload = _json({"sessionId": "abc", "action": "dismiss", "payload": "note"})

    assert payload == {"sessionId": "abc", "action": "dismiss", "payload": "note"}


@pytest.mark.parametrize("body", ["{not json", "[1, 2, 3]", '"just a string"'])
def test_malformed_json_bodies_raise(body):
    with pytest.raises(DecodeError) as err:
        _json(body)

    assert err.value.reason == "malformed body"


def test_invalid_utf8_is_malformed():
    with pytest.raises(DecodeError) as err:
        decode(InboundRequest(body=b"\xff\xfe{}", content_type=JSON))

    assert err.value.reason == "malformed body"


@pytest.mark.parametrize("content_type", ["text/plain", "multipart/form-data; boundary=x", ""])
def test_unsupported_content_type_raises(content_type):
    with pytest.raises(DecodeError) as err:
        decode(InboundRequest(body=b"{}", content_type=content_type))

    assert err.value.reason == "unsupported content-type"


def test_content_type_match_ignores_case():
    payload = decode(InboundRequest(body=b'{"a": 1}', content_type="Application/JSON"))

    assert payload == {"a": 1}
