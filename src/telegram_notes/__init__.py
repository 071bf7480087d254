"""Telegram Notes Bridge - Save Telegram messages as Obsidian notes, mirrored to Google Drive."""

from telegram_notes.core.models import (
    DocumentMessage,
    ExtractedMeta,
    IncomingMessage,
    IngestStats,
    LocalAsset,
    MediaRef,
    MessageOrigin,
    NoteFields,
    PhotoMessage,
    TextMessage,
)
from telegram_notes.pipeline.ingestor import NoteIngestor

__all__ = [
    "DocumentMessage",
    "ExtractedMeta",
    "IncomingMessage",
    "IngestStats",
    "LocalAsset",
    "MediaRef",
    "MessageOrigin",
    "NoteFields",
    "NoteIngestor",
    "PhotoMessage",
    "TextMessage",
]
