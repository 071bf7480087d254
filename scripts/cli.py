"""CLI entry point for the Telegram Notes Bridge."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from pydantic import ValidationError

from telegram_notes.config.settings import BridgeSettings
from telegram_notes.core.exceptions import BridgeError
from telegram_notes.core.telegram_client import TelegramClient
from telegram_notes.pipeline.ingestor import NoteIngestor
from telegram_notes.remote.drive_mirror import DriveMirror
from telegram_notes.storage.writer import NoteWriter

logger = logging.getLogger("telegram_notes.cli")


def setup_logging(level: str) -> None:
    """Configure logging with timestamp and module info."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with its subcommands."""
    parser = argparse.ArgumentParser(
        description="Telegram Notes Bridge - Save Telegram messages as Obsidian notes"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        dest="log_level",
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Listen for messages and save them as notes")
    subparsers.add_parser(
        "check", help="Validate configuration, create directories, report mirror state"
    )
    return parser


def load_settings() -> BridgeSettings:
    """Load settings and make sure the bot token is present.

    Exits with status 1 on any configuration problem.
    """
    try:
        settings = BridgeSettings()
        settings.require_token()
    except (ValidationError, BridgeError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    return settings


def prepare_writer(settings: BridgeSettings) -> NoteWriter:
    """Create the notes directories. An unwritable notes root is fatal."""
    writer = NoteWriter(settings.notes_root)
    try:
        writer.ensure_directories()
    except OSError as e:
        print(f"Cannot create notes directory {settings.notes_root}: {e}", file=sys.stderr)
        sys.exit(1)
    return writer


async def serve(settings: BridgeSettings, writer: NoteWriter) -> None:
    """Run the ingestor until SIGINT/SIGTERM."""
    client = TelegramClient(
        settings.bot_token,
        api_base=settings.telegram_api_base,
        file_base=settings.telegram_file_base,
    )
    mirror = DriveMirror.from_settings(settings)
    ingestor = NoteIngestor(settings, client, mirror=mirror, writer=writer)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, ingestor.stop)

    logger.info("Bot started, saving notes to %s", settings.notes_root)
    try:
        await ingestor.run()
    finally:
        await ingestor.close()


async def check(settings: BridgeSettings) -> None:
    """Print the bot identity and mirror state."""
    client = TelegramClient(
        settings.bot_token,
        api_base=settings.telegram_api_base,
        file_base=settings.telegram_file_base,
    )
    try:
        me = await client.get_me()
    finally:
        await client.close()
    mirror = DriveMirror.from_settings(settings)

    print(f"\nBot:          @{me.get('username', '?')}")
    print(f"Notes root:   {settings.notes_root}")
    allowed = sorted(settings.allowed_chats)
    print(f"Allow-list:   {', '.join(map(str, allowed)) if allowed else '(all chats)'}")
    print(f"Drive mirror: {'enabled' if mirror.enabled else 'disabled'}")


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    settings = load_settings()
    setup_logging(args.log_level or settings.log_level)
    writer = prepare_writer(settings)

    try:
        if args.command == "run":
            asyncio.run(serve(settings, writer))
        elif args.command == "check":
            asyncio.run(check(settings))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
