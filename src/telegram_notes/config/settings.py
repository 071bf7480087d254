"""Configuration via pydantic-settings with .env support."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from telegram_notes.core.exceptions import ConfigurationError


class BridgeSettings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Telegram Bot API
    bot_token: str = ""
    telegram_api_base: str = "https://api.telegram.org"
    telegram_file_base: str = "https://api.telegram.org/file"
    poll_timeout_seconds: int = 30
    poll_error_delay_seconds: float = 5.0
    download_timeout_seconds: float = 30.0

    # Comma-separated chat ids; empty means every chat is accepted
    allowed_chat_ids: str = ""

    # Output paths
    notes_root: Path = Path("ObsidianVault/telegram-posts")

    # Google Drive mirror
    gdrive_folder_id: str = ""
    gdrive_credentials_b64: str = ""

    # Logging
    log_level: str = "INFO"

    @field_validator("allowed_chat_ids")
    @classmethod
    def _check_chat_ids(cls, value: str) -> str:
        for part in value.split(","):
            part = part.strip()
            if part and not part.lstrip("-").isdigit():
                raise ValueError(f"Invalid chat id in allow-list: {part!r}")
        return value

    @property
    def allowed_chats(self) -> frozenset[int]:
        """Parsed allow-list. Empty when no filtering is configured."""
        return frozenset(
            int(part) for part in self.allowed_chat_ids.split(",") if part.strip()
        )

    @property
    def mirror_configured(self) -> bool:
        return bool(self.gdrive_folder_id and self.gdrive_credentials_b64)

    def require_token(self) -> str:
        """Return the bot token or raise if it is not set."""
        if not self.bot_token:
            raise ConfigurationError("BOT_TOKEN is not set")
        return self.bot_token
