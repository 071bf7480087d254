"""Best-effort mirror of notes and assets to dated Google Drive folders."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar

from googleapiclient.discovery import Resource
from googleapiclient.http import MediaFileUpload

from telegram_notes.config.settings import BridgeSettings
from telegram_notes.core.models import MirrorResult
from telegram_notes.remote.auth import build_drive_service, load_service_account

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
NOTE_MIME_TYPE = "text/markdown"
DEFAULT_MIME_TYPE = "application/octet-stream"

T = TypeVar("T")


def bucket_name(now: datetime | None = None) -> str:
    """Name of the dated folder for uploads made at ``now`` (UTC)."""
    return (now or datetime.now(UTC)).astimezone(UTC).strftime("%Y-%m-%d")


class DriveMirror:
    """Upload notes and their assets into one Drive folder per UTC day.

    A mirror without a service is disabled: every call is a no-op and no
    network traffic happens. Nothing here raises; failures are logged.
    """

    def __init__(self, service: Resource | None = None, parent_folder_id: str = "") -> None:
        self._service = service if parent_folder_id else None
        self._parent_id = parent_folder_id
        # The client's httplib2 transport is not thread-safe
        self._drive_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: BridgeSettings) -> DriveMirror:
        """Authorize against Drive, or return a disabled mirror.

        Missing configuration and authorization failures both disable the
        mirror; the latter is logged.
        """
        if not settings.mirror_configured:
            logger.info("Drive mirror disabled: folder id or credentials not set")
            return cls()

        try:
            creds = load_service_account(settings.gdrive_credentials_b64)
            service = build_drive_service(creds)
        except Exception as e:
            logger.error("Drive mirror disabled, authorization failed: %s", e)
            return cls()

        logger.info("Drive mirror enabled for folder %s", settings.gdrive_folder_id)
        return cls(service, settings.gdrive_folder_id)

    @property
    def enabled(self) -> bool:
        return self._service is not None

    async def mirror(self, note_path: Path, asset_paths: Sequence[Path] = ()) -> MirrorResult | None:
        """Upload assets and then the note into today's folder.

        Returns:
            The upload outcome, or None when disabled or when the dated
            folder could not be resolved.
        """
        if not self.enabled:
            return None

        name = bucket_name()
        try:
            folder_id = await self._call(self._find_or_create_folder, name)
        except Exception as e:
            logger.error("Drive mirror: could not resolve folder %s: %s", name, e)
            return None

        uploaded: list[str] = []
        failures = 0
        uploads = [(path, self._guess_mime_type(path)) for path in asset_paths]
        uploads.append((note_path, NOTE_MIME_TYPE))

        for path, mime_type in uploads:
            try:
                file_id = await self._call(self._upload, path, folder_id, mime_type)
            except Exception as e:
                failures += 1
                logger.warning("Drive upload failed for %s: %s", path.name, e)
                continue
            uploaded.append(file_id)
            logger.debug("Uploaded %s to Drive as %s", path.name, file_id)

        logger.info(
            "Drive mirror: %d uploaded, %d failed in %s", len(uploaded), failures, name
        )
        return MirrorResult(bucket_id=folder_id, uploaded_ids=tuple(uploaded), failures=failures)

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking Drive call in a worker thread, one at a time.

        Holding the lock across list-then-create also gives one folder per day.
        """
        async with self._drive_lock:
            return await asyncio.to_thread(func, *args)

    def _find_or_create_folder(self, name: str) -> str:
        """Return the id of the child folder ``name``, creating it if absent."""
        query = (
            f"name = '{name}' and mimeType = '{FOLDER_MIME_TYPE}' "
            f"and '{self._parent_id}' in parents and trashed = false"
        )
        response = self._service.files().list(
            q=query,
            fields="files(id, name)",
            spaces="drive",
            supportsAllDrives=True,
            includeItemsFromAllDrives=True,
        ).execute()
        files = response.get("files", [])
        if files:
            return files[0]["id"]

        folder = self._service.files().create(
            body={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [self._parent_id]},
            fields="id",
            supportsAllDrives=True,
        ).execute()
        logger.info("Created Drive folder %s (%s)", name, folder["id"])
        return folder["id"]

    def _upload(self, path: Path, folder_id: str, mime_type: str) -> str:
        media = MediaFileUpload(str(path), mimetype=mime_type, resumable=False)
        created = self._service.files().create(
            body={"name": path.name, "parents": [folder_id]},
            media_body=media,
            fields="id",
            supportsAllDrives=True,
        ).execute()
        return created["id"]

    @staticmethod
    def _guess_mime_type(path: Path) -> str:
        mime_type, _ = mimetypes.guess_type(path.name)
        return mime_type or DEFAULT_MIME_TYPE
