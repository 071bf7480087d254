"""Markdown note writer with timestamp/slug naming convention."""

from __future__ import annotations

import logging
import re
import unicodedata
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 80

_CYRILLIC = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d", "е": "e", "ё": "yo",
    "ж": "zh", "з": "z", "и": "i", "й": "j", "к": "k", "л": "l", "м": "m",
    "н": "n", "о": "o", "п": "p", "р": "r", "с": "s", "т": "t", "у": "u",
    "ф": "f", "х": "h", "ц": "c", "ч": "ch", "ш": "sh", "щ": "shch", "ъ": "",
    "ы": "y", "ь": "", "э": "e", "ю": "yu", "я": "ya",
}


def file_timestamp(now: datetime | None = None) -> str:
    """Local-clock timestamp used as a filename prefix, e.g. 20240115-103000."""
    return (now or datetime.now()).strftime("%Y%m%d-%H%M%S")


def slugify(text: str, max_length: int | None = None) -> str:
    """Convert text to a filesystem-safe slug.

    Args:
        text: Input text (a note title or channel name).
        max_length: Optional maximum slug length.

    Returns:
        Lowercase, hyphenated, ASCII-safe slug, or "untitled".
    """
    text = "".join(_CYRILLIC.get(ch, ch) for ch in text.lower())
    # Normalize unicode characters
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", "-", text).strip("-")
    if max_length is not None:
        text = text[:max_length].rstrip("-")
    return text or "untitled"


class NoteWriter:
    """Write rendered notes under the notes root.

    Layout:
        <notes_root>/<timestamp>-<slug>.md
        <notes_root>/assets/<downloaded media>
    """

    def __init__(self, notes_root: Path) -> None:
        self._notes_root = notes_root

    @property
    def notes_root(self) -> Path:
        return self._notes_root

    @property
    def assets_dir(self) -> Path:
        return self._notes_root / "assets"

    def ensure_directories(self) -> None:
        """Create the notes root and assets directory. Safe to call repeatedly."""
        self.assets_dir.mkdir(parents=True, exist_ok=True)

    def note_path(self, title: str, now: datetime | None = None) -> Path:
        """Compute the target path for a note.

        File naming: {timestamp}-{slug}.md
        Example: 20240115-103000-weekly-digest.md

        The same title within the same clock second yields the same path.
        """
        filename = f"{file_timestamp(now)}-{slugify(title, MAX_SLUG_LENGTH)}.md"
        return self._notes_root / filename

    def write(self, path: Path, content: str) -> Path:
        """Create or overwrite a note file.

        Raises:
            OSError: If the file cannot be written.
        """
        if path.exists():
            logger.warning("Overwriting existing note: %s", path)
        path.write_text(content, encoding="utf-8")
        logger.debug("Wrote markdown: %s", path)
        return path
