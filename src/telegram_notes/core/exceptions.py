"""Custom exceptions for the Telegram notes bridge."""


class BridgeError(Exception):
    """Base exception for all bridge errors."""


class ConfigurationError(BridgeError):
    """Required configuration is missing or invalid."""


class AuthenticationError(BridgeError):
    """Failed to authenticate with Google Drive."""


class TelegramApiError(BridgeError):
    """The Telegram Bot API returned an error or could not be reached."""


class DownloadError(BridgeError):
    """Failed to download a Telegram file to disk."""


class ParseError(BridgeError):
    """Failed to parse a Bot API update."""
