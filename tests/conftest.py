"""Shared fixtures and in-memory fakes for Telegram Notes Bridge tests."""

from __future__ import annotations

import asyncio
import re
import threading
import time
from pathlib import Path
from typing import Any

import pytest

from telegram_notes.config.settings import BridgeSettings
from telegram_notes.core.exceptions import TelegramApiError
from telegram_notes.core.models import (
    MediaRef,
    MessageOrigin,
    NoteFields,
    PhotoMessage,
    TextMessage,
)

BOT_TOKEN = "123456:TEST-TOKEN"


class FakeTelegramClient:
    """In-memory stand-in for TelegramClient."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []
        self.downloads: list[tuple[str, Path]] = []
        self.file_ids: list[str] = []
        self.missing_files: set[str] = set()
        self.updates: list[list[dict[str, Any]]] = []
        self.on_exhausted: Any = None
        self.closed = False

    def file_url(self, file_path: str) -> str:
        return f"https://files.example/bot{BOT_TOKEN}/{file_path}"

    async def get_file(self, file_id: str) -> str:
        self.file_ids.append(file_id)
        if file_id in self.missing_files:
            raise TelegramApiError(f"getFile failed: file {file_id} not found")
        return f"photos/{file_id}.jpg"

    async def download(self, url: str, dest: Path, *, timeout: float = 30.0) -> Path:
        dest.write_bytes(b"\xff\xd8fake-jpeg")
        self.downloads.append((url, dest))
        return dest

    async def send_message(self, chat_id: int, text: str) -> None:
        self.sent.append((chat_id, text))

    async def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[dict[str, Any]]:
        if self.updates:
            return self.updates.pop(0)
        if self.on_exhausted is not None:
            self.on_exhausted()
        await asyncio.Event().wait()
        return []

    async def close(self) -> None:
        self.closed = True


class FakeRequest:
    """Deferred Drive call; records how many executions overlap."""

    def __init__(self, drive: FakeDriveService, result: Any) -> None:
        self._drive = drive
        self._result = result

    def execute(self) -> Any:
        with self._drive.guard:
            self._drive.in_flight += 1
            self._drive.peak_in_flight = max(self._drive.peak_in_flight, self._drive.in_flight)
        try:
            # Long enough for a second worker thread to overlap if allowed
            time.sleep(0.01)
            if isinstance(self._result, Exception):
                raise self._result
            return self._result
        finally:
            with self._drive.guard:
                self._drive.in_flight -= 1


class FakeFiles:
    """Mimics ``service.files()`` with list/create on an in-memory folder tree."""

    def __init__(self, drive: FakeDriveService) -> None:
        self._drive = drive

    def list(self, **kwargs: Any) -> FakeRequest:
        self._drive.list_calls += 1
        if self._drive.fail_list:
            return FakeRequest(self._drive, RuntimeError("list failed"))
        name = re.search(r"name = '([^']+)'", kwargs["q"]).group(1)
        matches = [f for f in self._drive.folders if f["name"] == name]
        return FakeRequest(self._drive, {"files": matches})

    def create(self, body: dict[str, Any], media_body: Any = None, **kwargs: Any) -> FakeRequest:
        if media_body is None:
            self._drive.folder_creates += 1
            folder = {"id": f"folder-{len(self._drive.folders) + 1}", "name": body["name"]}
            self._drive.folders.append(folder)
            return FakeRequest(self._drive, {"id": folder["id"]})
        if body["name"] in self._drive.fail_uploads:
            return FakeRequest(self._drive, RuntimeError(f"upload of {body['name']} failed"))
        file_id = f"file-{len(self._drive.uploads) + 1}"
        self._drive.uploads.append(
            {"id": file_id, "name": body["name"], "parent": body["parents"][0],
             "mimetype": media_body.mimetype()}
        )
        return FakeRequest(self._drive, {"id": file_id})


class FakeDriveService:
    """Stub Drive v3 service counting folder lookups and creations."""

    def __init__(self) -> None:
        self.folders: list[dict[str, str]] = []
        self.uploads: list[dict[str, str]] = []
        self.list_calls = 0
        self.folder_creates = 0
        self.fail_list = False
        self.fail_uploads: set[str] = set()
        self.guard = threading.Lock()
        self.in_flight = 0
        self.peak_in_flight = 0

    def files(self) -> FakeFiles:
        return FakeFiles(self)


@pytest.fixture
def bot_token() -> str:
    return BOT_TOKEN


@pytest.fixture
def notes_root(tmp_path: Path) -> Path:
    """Notes root inside a temporary vault."""
    return tmp_path / "vault" / "telegram-posts"


@pytest.fixture
def assets_dir(notes_root: Path) -> Path:
    return notes_root / "assets"


@pytest.fixture
def settings(notes_root: Path) -> BridgeSettings:
    """Settings pointing to temporary directories, mirror not configured."""
    return BridgeSettings(
        _env_file=None,
        bot_token=BOT_TOKEN,
        notes_root=notes_root,
        allowed_chat_ids="",
        gdrive_folder_id="",
        gdrive_credentials_b64="",
        poll_error_delay_seconds=0.01,
    )


@pytest.fixture
def fake_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def fake_drive() -> FakeDriveService:
    return FakeDriveService()


@pytest.fixture
def origin() -> MessageOrigin:
    """Origin of a message posted in "TestChan"."""
    return MessageOrigin(
        chat_id=111,
        chat_name="TestChan",
        author="Ada Lovelace",
        timestamp=1705314600,  # 2024-01-15T10:30:00.000Z
        message_id=42,
    )


@pytest.fixture
def text_message(origin: MessageOrigin) -> TextMessage:
    return TextMessage(origin=origin, text="Hello #news\nmore text https://example.com")


@pytest.fixture
def photo_message(origin: MessageOrigin) -> PhotoMessage:
    """A photo message offered in two resolutions."""
    return PhotoMessage(
        origin=origin,
        photos=(MediaRef(file_id="small"), MediaRef(file_id="large")),
        text="Sunset #photo",
    )


@pytest.fixture
def sample_fields() -> NoteFields:
    return NoteFields(
        title="Hello #news",
        text="Hello #news\nmore text https://example.com",
        channel="TestChan",
        author="Ada Lovelace",
        date_iso="2024-01-15T10:30:00.000Z",
        urls=("https://example.com",),
        tags=("news",),
    )
