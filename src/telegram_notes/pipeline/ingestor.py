"""Pipeline orchestrator: filter → extract → fetch assets → render → write → mirror."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Coroutine
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from telegram_notes.config.settings import BridgeSettings
from telegram_notes.core.exceptions import ParseError, TelegramApiError
from telegram_notes.core.extractor import extract_meta
from telegram_notes.core.models import (
    IncomingMessage,
    IngestStats,
    LocalAsset,
    NoteFields,
    media_refs,
)
from telegram_notes.core.parser import UpdateParser
from telegram_notes.core.renderer import NoteRenderer
from telegram_notes.core.telegram_client import TelegramClient
from telegram_notes.remote.drive_mirror import DriveMirror
from telegram_notes.storage.asset_fetcher import AssetFetcher
from telegram_notes.storage.writer import NoteWriter

logger = logging.getLogger(__name__)

SAVED_REPLY = "Saved to Obsidian: {filename}"
FAILED_REPLY = "Failed to save note: {error}"


def _iso_date(timestamp: int) -> str:
    moment = datetime.fromtimestamp(timestamp, UTC) if timestamp else datetime.now(UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class NoteIngestor:
    """Turns incoming Telegram messages into vault notes.

    Per message:
    1. Filter:  drop chats outside the allow-list (no reply)
    2. Extract: title, URLs and hashtags from the text
    3. Fetch:   download every attachment into assets/
    4. Render:  build the Markdown note
    5. Write:   persist the note locally; this is the durability boundary
    6. Mirror:  detached, best-effort upload to Drive
    7. Reply:   acknowledge with the note filename

    Failures in steps 2-5 are answered with an error reply; the ingestor keeps
    serving subsequent messages.
    """

    def __init__(
        self,
        settings: BridgeSettings,
        client: TelegramClient,
        *,
        mirror: DriveMirror | None = None,
        writer: NoteWriter | None = None,
        fetcher: AssetFetcher | None = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._mirror = mirror or DriveMirror()
        self._writer = writer or NoteWriter(settings.notes_root)
        self._fetcher = fetcher or AssetFetcher(
            client, self._writer, timeout_seconds=settings.download_timeout_seconds
        )
        self._parser = UpdateParser()
        self._renderer = NoteRenderer()
        self._allowed_chats = settings.allowed_chats
        self._stats = IngestStats()

        self._tasks: set[asyncio.Task[Any]] = set()
        self._stop_event = asyncio.Event()
        self._poll_task: asyncio.Task[list[dict[str, Any]]] | None = None

    @property
    def stats(self) -> IngestStats:
        return self._stats

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def handle(self, message: IncomingMessage) -> Path | None:
        """Process one message end to end.

        Returns:
            Path of the written note, or None if the message was dropped or
            failed.
        """
        origin = message.origin
        self._stats.received += 1

        if self._allowed_chats and origin.chat_id not in self._allowed_chats:
            self._stats.filtered += 1
            logger.debug("Dropping message from chat %s (not allow-listed)", origin.chat_id)
            return None

        try:
            note_path, assets = await self._save_note(message)
        except Exception as e:
            self._stats.failed += 1
            logger.exception(
                "Error handling message %s from chat %s", origin.message_id, origin.chat_id
            )
            await self._reply(origin.chat_id, FAILED_REPLY.format(error=e))
            return None

        self._stats.saved += 1
        logger.info("Saved note: %s", note_path)

        if self._mirror.enabled:
            self.spawn(self._mirror_note(note_path, [asset.path for asset in assets]))

        await self._reply(origin.chat_id, SAVED_REPLY.format(filename=note_path.name))
        return note_path

    async def _save_note(self, message: IncomingMessage) -> tuple[Path, list[LocalAsset]]:
        """Steps 2-5. Assets already downloaded stay on disk if a later step fails."""
        origin = message.origin
        meta = extract_meta(message.text)

        assets: list[LocalAsset] = []
        for media in media_refs(message):
            assets.append(await self._fetcher.fetch(media, origin.chat_name))

        fields = NoteFields(
            title=meta.title_candidate,
            text=message.text,
            channel=origin.chat_name,
            author=origin.author,
            date_iso=_iso_date(origin.timestamp),
            media_paths=tuple(asset.relative_path for asset in assets),
            urls=meta.urls,
            tags=meta.tags,
        )
        markdown = self._renderer.render(fields)

        path = self._writer.note_path(meta.title_candidate)
        await asyncio.to_thread(self._writer.write, path, markdown)
        return path, assets

    async def _mirror_note(self, note_path: Path, asset_paths: list[Path]) -> None:
        result = await self._mirror.mirror(note_path, asset_paths)
        if result is None or result.failures:
            self._stats.mirror_failed += 1
        else:
            self._stats.mirrored += 1

    async def _reply(self, chat_id: int, text: str) -> None:
        try:
            await self._client.send_message(chat_id, text)
        except TelegramApiError as e:
            logger.warning("Failed to reply to chat %s: %s", chat_id, e)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run a coroutine detached; its failure only reaches the log."""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed: %s", exc, exc_info=exc)

    def dispatch(self, update: dict[str, Any]) -> asyncio.Task[Any] | None:
        """Parse an update and start handling it concurrently."""
        try:
            message = self._parser.parse(update)
        except ParseError as e:
            logger.warning("Skipping update: %s", e)
            return None
        if message is None:
            return None
        return self.spawn(self.handle(message))

    async def run(self) -> None:
        """Long-poll for updates until stop() is called."""
        offset: int | None = None
        self._stop_event.clear()
        logger.info("Polling for updates")

        while not self._stop_event.is_set():
            self._poll_task = asyncio.create_task(
                self._client.get_updates(offset, timeout=self._settings.poll_timeout_seconds)
            )
            try:
                updates = await self._poll_task
            except asyncio.CancelledError:
                if self._stop_event.is_set():
                    break
                raise
            except TelegramApiError as e:
                logger.error("Polling failed: %s", e)
                await self._pause(self._settings.poll_error_delay_seconds)
                continue
            finally:
                self._poll_task = None

            for update in updates:
                offset = int(update["update_id"]) + 1
                self.dispatch(update)

        logger.info("Polling stopped")

    def stop(self) -> None:
        """Stop accepting new updates. In-flight handlers are not awaited."""
        self._stop_event.set()
        if self._poll_task is not None:
            self._poll_task.cancel()

    async def _pause(self, seconds: float) -> None:
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)

    async def close(self) -> None:
        """Cancel leftover background tasks and release the HTTP session."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self._client.close()
        logger.info(
            "Ingestor closed: received=%d filtered=%d saved=%d failed=%d "
            "mirrored=%d mirror_failed=%d",
            self._stats.received, self._stats.filtered, self._stats.saved,
            self._stats.failed, self._stats.mirrored, self._stats.mirror_failed,
        )
