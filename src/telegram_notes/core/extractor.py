"""Title, link and hashtag extraction from message text."""

from __future__ import annotations

import re

from telegram_notes.core.models import ExtractedMeta

FALLBACK_TITLE = "Telegram post"
MAX_TITLE_LENGTH = 120

URL_RE = re.compile(r"https?://\S+")
TAG_RE = re.compile(r"#([A-Za-zА-Яа-яЁё0-9_-]+)")


def extract_meta(text: str | None) -> ExtractedMeta:
    """Extract a title candidate, URLs and hashtags from a message body.

    URLs and tags keep their order of appearance and are not deduplicated.
    Empty input yields the fallback title and empty collections.
    """
    text = text or ""
    lines = [line.strip() for line in text.split("\n")]
    lines = [line for line in lines if line]
    title = lines[0][:MAX_TITLE_LENGTH] if lines else FALLBACK_TITLE

    return ExtractedMeta(
        title_candidate=title,
        urls=tuple(URL_RE.findall(text)),
        tags=tuple(TAG_RE.findall(text)),
    )
