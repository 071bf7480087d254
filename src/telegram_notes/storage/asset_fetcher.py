"""Download Telegram attachments into the vault's assets directory."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import PurePosixPath

from telegram_notes.core.models import LocalAsset, MediaRef
from telegram_notes.core.telegram_client import TelegramClient
from telegram_notes.storage.writer import NoteWriter, file_timestamp, slugify

logger = logging.getLogger(__name__)


class AssetFetcher:
    """Resolve, name and stream Telegram files to local disk."""

    def __init__(
        self,
        client: TelegramClient,
        writer: NoteWriter,
        *,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._client = client
        self._assets_dir = writer.assets_dir
        # Embeds are relative to the vault, which is the notes root's parent
        self._relative_prefix = PurePosixPath(writer.notes_root.name, "assets")
        self._timeout = timeout_seconds

    def asset_name(self, media: MediaRef, file_path: str, channel: str, now: datetime | None = None) -> str:
        """File naming: {timestamp}-{channel-slug}-{basename}.

        The basename comes from the server path, falling back to the declared
        file name.
        """
        basename = PurePosixPath(file_path).name or media.file_name or media.file_id
        return f"{file_timestamp(now)}-{slugify(channel)}-{basename}"

    async def fetch(self, media: MediaRef, channel: str) -> LocalAsset:
        """Download one attachment.

        Args:
            media: Attachment reference from the message.
            channel: Display name of the originating chat.

        Returns:
            The downloaded asset.

        Raises:
            TelegramApiError: If the file cannot be resolved.
            DownloadError: If the download or local write fails.
        """
        started = datetime.now()
        file_path = await self._client.get_file(media.file_id)
        name = self.asset_name(media, file_path, channel, started)
        dest = self._assets_dir / name

        await self._client.download(
            self._client.file_url(file_path), dest, timeout=self._timeout
        )
        logger.info("Saved asset: %s", dest)

        return LocalAsset(path=dest, relative_path=str(self._relative_prefix / name))
