"""Frozen dataclasses for the Telegram notes bridge domain model."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import assert_never


@dataclass(frozen=True)
class MediaRef:
    """Reference to a file stored on Telegram's servers."""

    file_id: str
    file_name: str | None = None


@dataclass(frozen=True)
class MessageOrigin:
    """Where a message came from and who sent it."""

    chat_id: int
    chat_name: str
    author: str
    timestamp: int
    message_id: int = 0


@dataclass(frozen=True)
class TextMessage:
    """A message without attachments."""

    origin: MessageOrigin
    text: str = ""


@dataclass(frozen=True)
class PhotoMessage:
    """A message carrying a photo. Every offered resolution is kept."""

    origin: MessageOrigin
    photos: tuple[MediaRef, ...]
    text: str = ""


@dataclass(frozen=True)
class DocumentMessage:
    """A message carrying a single document attachment."""

    origin: MessageOrigin
    document: MediaRef
    text: str = ""


IncomingMessage = TextMessage | PhotoMessage | DocumentMessage


def media_refs(message: IncomingMessage) -> tuple[MediaRef, ...]:
    """Return the attachments of a message in download order."""
    if isinstance(message, TextMessage):
        return ()
    if isinstance(message, PhotoMessage):
        return message.photos
    if isinstance(message, DocumentMessage):
        return (message.document,)
    assert_never(message)


@dataclass(frozen=True)
class ExtractedMeta:
    """Metadata derived from a message body."""

    title_candidate: str
    urls: tuple[str, ...] = field(default_factory=tuple)
    tags: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LocalAsset:
    """A downloaded media file inside the assets directory."""

    path: Path
    relative_path: str


@dataclass(frozen=True)
class NoteFields:
    """Everything the renderer needs to build a note."""

    title: str
    text: str
    channel: str
    author: str
    date_iso: str
    media_paths: tuple[str, ...] = field(default_factory=tuple)
    urls: tuple[str, ...] = field(default_factory=tuple)
    tags: tuple[str, ...] = field(default_factory=tuple)
    topic: str = ""


@dataclass(frozen=True)
class MirrorResult:
    """Outcome of one best-effort upload to the remote mirror."""

    bucket_id: str
    uploaded_ids: tuple[str, ...] = field(default_factory=tuple)
    failures: int = 0


@dataclass
class IngestStats:
    """Mutable counters for the running ingestor."""

    received: int = 0
    filtered: int = 0
    saved: int = 0
    failed: int = 0
    mirrored: int = 0
    mirror_failed: int = 0
