"""Pydantic models describing the payload accepted by each webhook kind."""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator


class SessionEvent(BaseModel):
    """Base for kinds submitted from a page or client that carries a session id."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: StrictStr | None = Field(None, alias="sessionId")

    def response(self) -> Dict[str, Any]:
        """Return the payload delivered to the waiting workflow."""

        return self.model_dump(by_alias=True, exclude={"session_id"})


class ArchiveEvent(SessionEvent):
    email_ids: List[StrictStr] = Field(..., alias="emailIds")
    thread_ids: List[StrictStr] = Field(default_factory=list, alias="threadIds")
    all_email_ids: List[StrictStr] = Field(default_factory=list, alias="allEmailIds")
    confirmed: StrictBool = True


class ReceiptSelection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mercury_request_id: StrictStr = Field(..., alias="mercuryRequestId")
    selected_receipt_id: StrictStr | None = Field(..., alias="selectedReceiptId")

    @field_validator("selected_receipt_id")
    @classmethod
    def _empty_is_skip(cls, value: str | None) -> str | None:
        # The confirmation page submits "" for "skip this request".
        return value or None


class MercuryReceiptsEvent(SessionEvent):
    selections: List[ReceiptSelection] = Field(default_factory=list)
    mercury_email_ids: List[StrictStr] = Field(default_factory=list, alias="mercuryEmailIds")
    mercury_thread_ids: List[StrictStr] = Field(default_factory=list, alias="mercuryThreadIds")
    confirmed: StrictBool = True


ReviewAction = Literal["acknowledge", "draft_response", "dismiss"]


class ReviewEmailsEvent(SessionEvent):
    action: ReviewAction


class SlackPayload(BaseModel):
    """Base for Slack sub-shapes; unknown fields are kept as sent."""

    model_config = ConfigDict(extra="allow")

    type: StrictStr


class UrlVerification(SlackPayload):
    type: Literal["url_verification"]
    challenge: StrictStr


class SlackMessageEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: StrictStr
    ts: StrictStr
    thread_ts: StrictStr | None = None
    text: StrictStr | None = None
    user: StrictStr | None = None
    channel: StrictStr | None = None
    bot_id: StrictStr | None = None
    subtype: StrictStr | None = None


class EventCallback(SlackPayload):
    type: Literal["event_callback"]
    event: SlackMessageEvent

    @property
    def is_ignorable(self) -> bool:
        """Bot-authored and edited messages never answer a pending wait."""

        return self.event.bot_id is not None or self.event.subtype is not None

    def reply_message(self) -> Dict[str, Any]:
        """Return the thread reply in the shape workflows read it."""

        return {
            "text": self.event.text or "",
            "ts": self.event.ts,
            "thread_ts": self.event.thread_ts,
            "user": self.event.user,
            "channel": self.event.channel,
        }


class SlackAction(BaseModel):
    model_config = ConfigDict(extra="allow")

    action_id: StrictStr
    block_id: StrictStr | None = None
    value: StrictStr | None = None


class SlackContainer(BaseModel):
    model_config = ConfigDict(extra="allow")

    message_ts: StrictStr | None = None


class SlackMessageRef(BaseModel):
    model_config = ConfigDict(extra="allow")

    ts: StrictStr | None = None


class BlockActions(SlackPayload):
    type: Literal["block_actions"]
    actions: List[SlackAction] = Field(..., min_length=1)
    container: SlackContainer | None = None
    message: SlackMessageRef | None = None

    @property
    def message_ts(self) -> str | None:
        if self.container is not None and self.container.message_ts:
            return self.container.message_ts
        if self.message is not None and self.message.ts:
            return self.message.ts
        return None


SLACK_INTERACTION_TYPES: Dict[str, type[SlackPayload]] = {
    "url_verification": UrlVerification,
    "event_callback": EventCallback,
    "block_actions": BlockActions,
}
