"""A minimal client for the Telegram Bot API."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterator

import requests

API_URL = "https://api.telegram.org"
MODE_MARKDOWN_V2 = "MarkdownV2"
_RETRY_DELAY = 3.0

logger = logging.getLogger(__name__)


class TelegramError(Exception):
    """Raised when a Bot API call fails."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass
class Message:
    """An incoming chat message."""

    chat_id: int
    text: str = ""
    message_id: int = 0
    entities: list[dict[str, Any]] = field(default_factory=list)

    def is_command(self) -> bool:
        """True when the message starts with a bot command entity."""
        if not self.entities:
            return False
        first = self.entities[0]
        return first.get("offset") == 0 and first.get("type") == "bot_command"

    def command(self) -> str:
        """The command name without the leading slash and bot mention."""
        if not self.is_command():
            return ""
        length = self.entities[0].get("length", 0)
        name = self.text[1:length]
        return name.split("@", 1)[0]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        chat = data.get("chat") or {}
        return cls(
            chat_id=chat.get("id", 0),
            text=data.get("text", ""),
            message_id=data.get("message_id", 0),
            entities=list(data.get("entities") or []),
        )


@dataclass
class Update:
    """One update received from the Bot API."""

    update_id: int
    message: Message | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Update:
        message = data.get("message")
        return cls(
            update_id=data.get("update_id", 0),
            message=Message.from_dict(message) if message else None,
        )


def reply_keyboard(labels: list[str]) -> dict[str, Any]:
    """A one-time reply keyboard with all labels in a single row."""
    return {
        "keyboard": [[{"text": label} for label in labels]],
        "resize_keyboard": False,
        "one_time_keyboard": True,
    }


def remove_keyboard() -> dict[str, Any]:
    """Markup that removes a previously shown reply keyboard."""
    return {"remove_keyboard": True, "selective": False}


class TelegramClient:
    """Calls Bot API methods over HTTPS."""

    def __init__(self, token: str, session: requests.Session | None = None) -> None:
        self._base = f"{API_URL}/bot{token}"
        self._session = session if session is not None else requests.Session()

    def _call(
        self, method: str, params: dict[str, Any] | None = None, timeout: float = 30
    ) -> Any:
        try:
            response = self._session.post(
                f"{self._base}/{method}", json=params or {}, timeout=timeout
            )
        except requests.RequestException as exc:
            raise TelegramError(f"{method}: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise TelegramError(
                f"{method}: invalid response", response.status_code
            ) from exc
        if not payload.get("ok"):
            raise TelegramError(
                payload.get("description", f"{method} failed"),
                payload.get("error_code", response.status_code),
            )
        return payload.get("result")

    def get_me(self) -> dict[str, Any]:
        """Information about the bot; also checks the token."""
        return self._call("getMe")

    def send_message(
        self,
        chat_id: int,
        text: str,
        parse_mode: str | None = None,
        reply_markup: dict[str, Any] | None = None,
    ) -> Message:
        """Send a text message to a chat."""
        params: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            params["parse_mode"] = parse_mode
        if reply_markup is not None:
            params["reply_markup"] = reply_markup
        return Message.from_dict(self._call("sendMessage", params))

    def get_updates(self, offset: int = 0, timeout: int = 30) -> list[Update]:
        """Long-poll for updates starting at ``offset``."""
        result = self._call(
            "getUpdates", {"offset": offset, "timeout": timeout}, timeout=timeout + 10
        )
        return [Update.from_dict(item) for item in result or []]

    def iter_updates(self, timeout: int = 30) -> Iterator[Update]:
        """Yield updates forever, retrying after failed polls."""
        offset = 0
        while True:
            try:
                updates = self.get_updates(offset, timeout)
            except TelegramError as exc:
                logger.error("failed to get updates, retrying: %s", exc)
                time.sleep(_RETRY_DELAY)
                continue
            for update in updates:
                offset = max(offset, update.update_id + 1)
                yield update