"""Entry point for `python -m relay` and the ``discord-relay`` script."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import TYPE_CHECKING

from dotenv import load_dotenv

if TYPE_CHECKING:
    from relay.config import RelaySettings


def _preprocess_env() -> None:
    """Convert comma-separated env values to JSON.

    pydantic-settings tries ``json.loads()`` on environment values for
    ``list`` and ``dict`` fields, so ``CONTENT_KEYWORDS=buy,sell`` and
    ``EXTRA_CHANNELS=123:alerts`` must become JSON before the settings are
    built.
    """
    val = os.environ.get("CONTENT_KEYWORDS", "")
    if val and not val.lstrip().startswith("["):
        os.environ["CONTENT_KEYWORDS"] = json.dumps(
            [k.strip() for k in val.split(",") if k.strip()]
        )

    val = os.environ.get("EXTRA_CHANNELS", "")
    if val and not val.lstrip().startswith("{"):
        from relay.config import parse_channel_pairs

        try:
            os.environ["EXTRA_CHANNELS"] = json.dumps(parse_channel_pairs(val))
        except ValueError:
            # Left as-is so settings validation reports it.
            pass


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="discord-relay",
        description="Relay Discord channel messages to an HTTP API.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate configuration and exit without connecting to Discord.",
    )
    return parser.parse_args(argv)


def _log_config_status(log: logging.Logger, settings: RelaySettings) -> None:
    from relay.config import describe_config

    status = describe_config()
    if all(status.values()):
        return
    if not settings.forwarding_configured:
        log.warning("Forwarding disabled: messages will be logged, not posted")
    log.warning("Environment variables not fully set:")
    for name, is_set in status.items():
        log.warning("   %s: %s", name, "set" if is_set else "MISSING")


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    # Load .env from canonical locations before anything else.
    from relay.config import ENV_PATHS

    for env_path in ENV_PATHS:
        load_dotenv(env_path)

    # Normalise list/map env vars for pydantic-settings compatibility.
    _preprocess_env()

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    log = logging.getLogger("relay")

    # Validate config early
    from relay.config import FatalStartupError, get_settings

    try:
        settings = get_settings()
    except FatalStartupError as e:
        log.error("Configuration error: %s", e)
        log.error("")
        log.error("  How to fix:")
        log.error("  1. Edit config/.env (or set environment variables)")
        log.error("  2. Ensure DISCORD_TOKEN is set")
        log.error("  3. EXTRA_CHANNELS should be id:tag pairs, e.g. EXTRA_CHANNELS=123:alerts,456:news")
        sys.exit(1)

    logging.getLogger().setLevel(settings.LOG_LEVEL)
    _log_config_status(log, settings)

    if args.check:
        log.info("Configuration OK: %r", settings)
        sys.exit(0)

    log.info("Starting Discord relay...")
    log.info("Delivery mode: %s", settings.DELIVERY_MODE.value)

    # Create and run the bot
    import discord

    from relay.bot import RelayBot

    bot = RelayBot(settings)
    try:
        bot.run(settings.DISCORD_TOKEN, log_handler=None)
    except discord.LoginFailure as e:
        log.error("Failed to log in: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
