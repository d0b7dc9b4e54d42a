"""Thin wrapper utilities around the Slack WebClient."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from autotracker.errors import RecipientNotFound, UpstreamApiError


def _slack_error(exc: SlackApiError, operation: str) -> UpstreamApiError:
    response = getattr(exc, "response", None)
    error_code = response.get("error") if response is not None else str(exc)
    status = getattr(response, "status_code", None) if response is not None else None
    return UpstreamApiError(f"Slack {operation} failed: {error_code}", service="slack", status=status)


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

    def post_message(
        self,
        *,
        channel: str,
        text: str,
        blocks: Sequence[Mapping[str, Any]],
    ) -> Mapping[str, Any]:
        """Post a message with Block Kit content to a channel or user id."""

        try:
            return self._client.chat_postMessage(channel=channel, text=text, blocks=list(blocks))
        except SlackApiError as exc:
            raise _slack_error(exc, "chat.postMessage") from exc

    def find_user_by_display_name(self, display_name: str) -> Mapping[str, Any]:
        """Return the workspace member whose profile display name matches, ignoring case."""

        wanted = display_name.strip().casefold()
        cursor: str | None = None
        while True:
            try:
                response = self._client.users_list(cursor=cursor, limit=200)
            except SlackApiError as exc:
                raise _slack_error(exc, "users.list") from exc

            for member in response.get("members") or []:
                profile = member.get("profile") or {}
                if (profile.get("display_name") or "").strip().casefold() == wanted:
                    return member

            cursor = (response.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor:
                break

        raise RecipientNotFound(f"No Slack member with display name {display_name!r}", service="slack")
