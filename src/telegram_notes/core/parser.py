"""Bot API update parser: turns raw update dicts into typed messages."""

from __future__ import annotations

import logging
from typing import Any

from telegram_notes.core.exceptions import ParseError
from telegram_notes.core.models import (
    DocumentMessage,
    IncomingMessage,
    MediaRef,
    MessageOrigin,
    PhotoMessage,
    TextMessage,
)

logger = logging.getLogger(__name__)

MESSAGE_KEYS = ("message", "channel_post")


class UpdateParser:
    """Parses raw Bot API update dicts into IncomingMessage objects."""

    def parse(self, update: dict[str, Any]) -> IncomingMessage | None:
        """Parse a raw update.

        Args:
            update: One element of the getUpdates result.

        Returns:
            The parsed message, or None for updates that carry no message.

        Raises:
            ParseError: If the message structure is invalid.
        """
        raw = next((update[key] for key in MESSAGE_KEYS if key in update), None)
        if raw is None:
            logger.debug("Ignoring update %s without a message", update.get("update_id"))
            return None

        try:
            origin = self._extract_origin(raw)
            text = raw.get("text") or raw.get("caption") or ""

            if raw.get("photo"):
                photos = tuple(self._media_ref(size) for size in raw["photo"])
                return PhotoMessage(origin=origin, photos=photos, text=text)
            if raw.get("document"):
                return DocumentMessage(
                    origin=origin, document=self._media_ref(raw["document"]), text=text
                )
            return TextMessage(origin=origin, text=text)
        except ParseError:
            raise
        except Exception as e:
            raise ParseError(
                f"Failed to parse update {update.get('update_id', '?')}: {e}"
            ) from e

    def _extract_origin(self, raw: dict[str, Any]) -> MessageOrigin:
        chat = raw.get("chat")
        if not isinstance(chat, dict) or "id" not in chat:
            raise ParseError("Message has no chat")

        chat_name = chat.get("title") or chat.get("username") or "unknown"

        sender = raw.get("from") or {}
        author = f"{sender.get('first_name', '')} {sender.get('last_name', '')}".strip()
        if not author:
            author = raw.get("author_signature", "")

        return MessageOrigin(
            chat_id=int(chat["id"]),
            chat_name=chat_name,
            author=author,
            timestamp=int(raw.get("date", 0)),
            message_id=int(raw.get("message_id", 0)),
        )

    @staticmethod
    def _media_ref(raw: dict[str, Any]) -> MediaRef:
        if "file_id" not in raw:
            raise ParseError("Attachment has no file_id")
        return MediaRef(file_id=raw["file_id"], file_name=raw.get("file_name"))
