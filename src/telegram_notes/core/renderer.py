"""Markdown note renderer with YAML front matter for Obsidian."""

from __future__ import annotations

from telegram_notes.core.models import NoteFields

SOURCE_TYPE = "telegram-post"
PLATFORM = "Telegram"


def escape_value(value: str) -> str:
    """Escape a string for use inside a double-quoted YAML scalar."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _quoted_list(values: tuple[str, ...]) -> str:
    return "[" + ", ".join(f'"{escape_value(v)}"' for v in values) + "]"


class NoteRenderer:
    """Render note fields into a Markdown document.

    The output is a pure function of the fields: identical input always gives
    byte-identical output.
    """

    def render(self, fields: NoteFields) -> str:
        """Render a note.

        Layout:
        1. YAML front matter with a fixed key order.
        2. Title heading, then one embed line per media file.
        3. Description section with the raw message text.
        4. Source section and a flat summary section.

        Args:
            fields: Note content.

        Returns:
            The full Markdown document.
        """
        front_matter = self._build_front_matter(fields)
        body = self._build_body(fields)
        return f"{front_matter}\n\n{body}"

    @staticmethod
    def _build_front_matter(fields: NoteFields) -> str:
        """Build YAML front matter from note fields."""
        original_url = fields.urls[0] if fields.urls else ""

        lines = [
            "---",
            f'source-type: "{SOURCE_TYPE}"',
            f'platform: "{PLATFORM}"',
            f'channel: "{escape_value(fields.channel)}"',
            f'author: "{escape_value(fields.author)}"',
            f'date: "{escape_value(fields.date_iso)}"',
            f'original-url: "{escape_value(original_url)}"',
            f"media-image: {_quoted_list(fields.media_paths)}",
            f'topic: "{escape_value(fields.topic)}"',
            f"tags: {_quoted_list(fields.tags)}",
            "---",
        ]
        return "\n".join(lines)

    @staticmethod
    def _build_body(fields: NoteFields) -> str:
        original_url = fields.urls[0] if fields.urls else ""

        lines = [f"# {fields.title}", ""]
        for media_path in fields.media_paths:
            lines.extend([f"![[{media_path}]]", ""])

        lines.extend([
            "---",
            "",
            "## Description",
            "",
            fields.text,
            "",
            "---",
            "",
            "## Source",
            "",
            f"- Channel: {fields.channel}",
            f"- Author: {fields.author}",
            f"- Original link: {original_url}",
            "",
            "## Summary",
            "",
            f"- source-type: {SOURCE_TYPE}",
            f"- date: {fields.date_iso}",
            f"- tags: {', '.join(fields.tags)}",
            f"- links: {', '.join(fields.urls)}",
            "",
        ])
        return "\n".join(lines)
