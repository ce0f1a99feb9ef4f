"""Thin wrapper around the Slack WebClient for workflows that talk to people."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping

from slack_sdk import WebClient


@dataclass(frozen=True)
class SlackMessageRef:
    ts: str
    channel: str


@dataclass(frozen=True)
class ThreadReply:
    text: str
    unfurl_links: bool | None = None
    unfurl_media: bool | None = None


class SlackClient:
    """Encapsulate Slack WebClient interactions for easier testing."""

    def __init__(self, *, token: str | None = None, client: WebClient | None = None) -> None:
        if client is None and token is None:
            raise ValueError("Either an instantiated client or a bot token must be provided.")

        self._client = client or WebClient(token=token)

    @property
    def client(self) -> WebClient:
        """Expose the underlying WebClient for advanced use cases."""

        return self._client

    def send_message(
        self,
        channel: str,
        text: str,
        *,
        thread_ts: str | None = None,
        unfurl_links: bool | None = None,
        unfurl_media: bool | None = None,
    ) -> SlackMessageRef:
        """Post *text* to a channel, or into a thread when *thread_ts* is given.

        The returned ``ts`` of a top-level message is the thread root that
        replies correlate to.
        """

        kwargs: Dict[str, Any] = {"channel": channel, "text": text}
        if thread_ts:
            kwargs["thread_ts"] = thread_ts
        if unfurl_links is not None:
            kwargs["unfurl_links"] = unfurl_links
        if unfurl_media is not None:
            kwargs["unfurl_media"] = unfurl_media

        response: Mapping[str, Any] = self._client.chat_postMessage(**kwargs)
        return SlackMessageRef(ts=response["ts"], channel=response["channel"])

    def open_dm(self, user_id: str) -> str:
        """Open (or reuse) a direct message channel with *user_id*."""

        response: Mapping[str, Any] = self._client.conversations_open(users=user_id)
        return response["channel"]["id"]

    def post_thread(self, channel: str, text: str, replies: Iterable[ThreadReply]) -> SlackMessageRef:
        """Post a top-level message followed by each reply in its thread."""

        root = self.send_message(channel, text)
        for reply in replies:
            self.send_message(
                root.channel,
                reply.text,
                thread_ts=root.ts,
                unfurl_links=reply.unfurl_links,
                unfurl_media=reply.unfurl_media,
            )
        return root
