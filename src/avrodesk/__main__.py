"""
Entry point for the avrodesk terminal.

Usage:
    # Run with the default profile
    avrodesk

    # Choose, create or edit a profile first
    avrodesk --select-config

    # Debug logging to a custom directory
    avrodesk --log-level DEBUG --log-dir /tmp/avrodesk-logs

Configuration:
    Profiles live in ~/.config/avrodesk/config.yaml (AVRODESK_CONFIG overrides
    the path). Without a usable profile the SCHEMA_REGISTRY_* and KAFKA_*
    environment variables are used. A .env file in the working directory is
    loaded first.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console

from avrodesk import __version__
from avrodesk.ui.app import AvrodeskApp
from avrodesk.ui.config_selector import select_profile
from config.config import load_config_file, resolve_profile
from core.errors.exceptions import ConfigurationError
from core.logging.setup import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="avrodesk",
        description="Browse schema registry subjects, draft and publish Avro messages, "
        "and inspect topics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-s",
        "--select-config",
        action="store_true",
        help="Choose, create or edit a connection profile before starting",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("AVRODESK_LOG_LEVEL", "INFO"),
        help="File logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-dir",
        type=str,
        default=os.getenv("AVRODESK_LOG_DIR"),
        help="Log directory path (default: ~/.config/avrodesk/logs)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)

    setup_logging(
        log_dir=Path(args.log_dir) if args.log_dir else None,
        file_level=getattr(logging, args.log_level),
    )

    console = Console()
    try:
        config_file = load_config_file()
        if args.select_config:
            profile = select_profile(config_file, console)
            if profile is None:
                return 0
        else:
            profile = resolve_profile(config_file)
        profile.validate()
    except ConfigurationError as e:
        logger.error("Configuration error", extra={"error_message": e.message})
        console.print(f"[bold red]Configuration error:[/bold red] {e.message}")
        return 1

    try:
        asyncio.run(AvrodeskApp(profile, console=console).run())
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
