"""Telegram Bot API client for long polling, file lookup, downloads and replies."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import aiohttp

from telegram_notes.core.exceptions import DownloadError, TelegramApiError

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


class TelegramClient:
    """Thin async wrapper around the Telegram Bot API."""

    def __init__(
        self,
        token: str,
        *,
        api_base: str = "https://api.telegram.org",
        file_base: str = "https://api.telegram.org/file",
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._file_base = file_base.rstrip("/")
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    def _endpoint(self, method: str) -> str:
        return f"{self._api_base}/bot{self._token}/{method}"

    def file_url(self, file_path: str) -> str:
        """Download URL for a server-relative file path returned by getFile."""
        return f"{self._file_base}/bot{self._token}/{file_path}"

    async def _call(
        self,
        method: str,
        payload: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Call a Bot API method and return its ``result`` field.

        Raises:
            TelegramApiError: On transport errors or a response with ok=false.
        """
        kwargs: dict[str, Any] = {"json": payload or {}}
        if timeout:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)
        try:
            async with self._get_session().post(self._endpoint(method), **kwargs) as resp:
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError, ValueError) as e:
            raise TelegramApiError(f"Failed to call {method}: {e!r}") from e

        if not isinstance(data, dict) or not data.get("ok"):
            description = data.get("description") if isinstance(data, dict) else data
            raise TelegramApiError(f"{method} failed: {description}")
        return data.get("result")

    async def get_me(self) -> dict[str, Any]:
        """Return the bot's own user object."""
        return await self._call("getMe")

    async def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[dict[str, Any]]:
        """Long-poll for new updates.

        Args:
            offset: Identifier of the first update to return.
            timeout: Long-poll timeout in seconds.

        Returns:
            List of raw update dicts, possibly empty.
        """
        payload: dict[str, Any] = {
            "timeout": timeout,
            "allowed_updates": ["message", "channel_post"],
        }
        if offset is not None:
            payload["offset"] = offset
        # Leave headroom over the server-side poll timeout
        return await self._call("getUpdates", payload, timeout=timeout + 10)

    async def get_file(self, file_id: str) -> str:
        """Resolve a file id to its server-relative path.

        Raises:
            TelegramApiError: If the file is unknown or the call fails.
        """
        result = await self._call("getFile", {"file_id": file_id})
        file_path = (result or {}).get("file_path")
        if not file_path:
            raise TelegramApiError(f"No file_path returned for file {file_id}")
        return file_path

    async def send_message(self, chat_id: int, text: str) -> None:
        """Send a plain-text message to a chat."""
        await self._call("sendMessage", {"chat_id": chat_id, "text": text})

    async def download(self, url: str, dest: Path, *, timeout: float = 30.0) -> Path:
        """Stream a remote file to ``dest``.

        Returns only after the file has been fully written and closed.

        Raises:
            DownloadError: On HTTP errors, timeouts or local write errors.
        """
        try:
            async with self._get_session().get(
                url, timeout=aiohttp.ClientTimeout(total=timeout)
            ) as resp:
                resp.raise_for_status()
                with dest.open("wb") as fh:
                    async for chunk in resp.content.iter_chunked(DOWNLOAD_CHUNK_SIZE):
                        await asyncio.to_thread(fh.write, chunk)
        except aiohttp.ClientResponseError as e:
            # The request URL embeds the bot token; keep it out of the message
            raise DownloadError(f"Failed to download to {dest}: HTTP {e.status}") from e
        except (aiohttp.ClientError, TimeoutError, OSError) as e:
            raise DownloadError(f"Failed to download to {dest}: {e!r}") from e

        logger.debug("Downloaded %s", dest)
        return dest

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None
