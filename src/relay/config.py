"""Central configuration for the Discord relay.

All settings are loaded from environment variables (with ``.env`` file support
via *python-dotenv*).  Validation and type coercion are handled by
``pydantic-settings``.  The resulting :class:`RelaySettings` is frozen: it is
built once at startup and passed explicitly to the bot, the forwarder and
the pipeline.

Usage::

    from relay.config import get_settings

    settings = get_settings()
    print(settings.NEXT_API_URL)
"""

from __future__ import annotations

import functools
import logging
import os
from typing import Any, ClassVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay.forwarding.delivery import DeliveryMode

logger = logging.getLogger(__name__)

# Canonical .env locations (checked in order of priority).
ENV_PATHS: list[str] = ["config/.env", ".env"]

# Variables that degrade forwarding or backfill when missing.
FORWARDING_VARS: tuple[str, ...] = ("NEXT_API_URL", "DISCORD_POST_SECRET", "CHANNEL_ID")


class FatalStartupError(Exception):
    """The relay cannot start: credentials missing or configuration invalid."""


# ---------------------------------------------------------------------------
# Settings model
# ---------------------------------------------------------------------------


class RelaySettings(BaseSettings):
    """Validated configuration for the relay.

    Required fields (no defaults):
        ``DISCORD_TOKEN``

    Everything else has a default.  Without ``NEXT_API_URL`` and
    ``DISCORD_POST_SECRET`` the relay runs but posts nothing; without
    ``CHANNEL_ID`` it skips backfill and relays every channel it can see.
    """

    model_config = SettingsConfigDict(
        # .env loading is handled by load_dotenv() in __main__.py so that
        # comma-separated values can be converted before parsing.
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Required -- no defaults
    # ------------------------------------------------------------------
    DISCORD_TOKEN: str = Field(
        ...,
        min_length=1,
        description="Discord bot token from the Developer Portal.",
    )

    # ------------------------------------------------------------------
    # Downstream API
    # ------------------------------------------------------------------
    NEXT_API_URL: str | None = Field(
        default=None,
        description="Base URL of the downstream API, e.g. https://example.com.",
    )
    DISCORD_POST_SECRET: str | None = Field(
        default=None,
        description="Shared secret sent with every POST.",
    )
    API_RESOURCE: str = Field(
        default="discord",
        description="Resource name; messages are posted to {NEXT_API_URL}/api/{API_RESOURCE}.",
    )
    SECRET_HEADER: str = Field(
        default="x-bot-secret",
        description="Header that carries DISCORD_POST_SECRET.",
    )
    REQUEST_TIMEOUT: float = Field(
        default=15.0,
        gt=0,
        description="Total timeout in seconds for one POST.",
    )

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------
    CHANNEL_ID: str | None = Field(
        default=None,
        description="Primary monitored channel.  Unset disables backfill and channel filtering.",
    )
    PRIMARY_CHANNEL_TAG: str = Field(
        default="main",
        description="Tag identifying the primary channel in batch envelopes.",
    )
    EXTRA_CHANNELS: dict[str, str] = Field(
        default_factory=dict,
        description="Additional monitored channels as 'id:tag,id:tag'.",
    )

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------
    DELIVERY_MODE: DeliveryMode = Field(
        default=DeliveryMode.SINGLE,
        description="'single' posts each message; 'batch' posts one envelope per channel batch.",
    )
    BACKFILL_LIMIT: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Recent messages fetched per channel at startup.",
    )
    BACKFILL_DELAY: float = Field(
        default=0.1,
        ge=0.0,
        description="Seconds between consecutive posts in single mode.",
    )
    INCLUDE_PREVIOUS_MESSAGE: bool = Field(
        default=False,
        description="Send the channel's previous message along with each new one.",
    )

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------
    IGNORE_BOT_MESSAGES: bool = Field(
        default=False,
        description="Drop messages written by any bot account.",
    )
    IGNORE_OWN_MESSAGES: bool = Field(
        default=False,
        description="Drop messages written by this bot.",
    )
    CONTENT_KEYWORDS: list[str] = Field(
        default_factory=list,
        description="Comma-separated keywords; when set, only matching messages are relayed.",
    )

    # ------------------------------------------------------------------
    # Presentation / runtime
    # ------------------------------------------------------------------
    DISPLAY_TIMEZONE: str | None = Field(
        default=None,
        description="IANA time zone for rendering Discord timestamps.  Unset uses local time.",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root logging level.",
    )

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("NEXT_API_URL", "DISCORD_POST_SECRET", "CHANNEL_ID", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("NEXT_API_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        return value.rstrip("/") if value else value

    @field_validator("CONTENT_KEYWORDS", mode="before")
    @classmethod
    def _split_comma_separated_keywords(cls, value: Any) -> list[str]:
        """Accept a comma-separated string from the environment."""
        if isinstance(value, str):
            return [k.strip() for k in value.split(",") if k.strip()]
        if isinstance(value, (list, tuple)):
            return [str(k).strip() for k in value if str(k).strip()]
        raise ValueError(
            f"CONTENT_KEYWORDS must be a comma-separated string or list, got {type(value).__name__}"
        )

    @field_validator("EXTRA_CHANNELS", mode="before")
    @classmethod
    def _parse_channel_pairs(cls, value: Any) -> dict[str, str]:
        """Accept ``id:tag,id:tag`` from the environment."""
        if isinstance(value, dict):
            return {str(k).strip(): str(v).strip() for k, v in value.items()}
        if not isinstance(value, str):
            raise ValueError(
                f"EXTRA_CHANNELS must be 'id:tag' pairs or a mapping, got {type(value).__name__}"
            )
        return parse_channel_pairs(value)

    @field_validator("DELIVERY_MODE", mode="before")
    @classmethod
    def _casefold_mode(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown LOG_LEVEL {value!r}")
        return level

    @field_validator("DISPLAY_TIMEZONE")
    @classmethod
    def _check_timezone(cls, value: str | None) -> str | None:
        if value:
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"Unknown time zone {value!r}") from exc
        return value or None

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def forwarding_configured(self) -> bool:
        return bool(self.NEXT_API_URL and self.DISCORD_POST_SECRET)

    @property
    def display_tz(self) -> ZoneInfo | None:
        return ZoneInfo(self.DISPLAY_TIMEZONE) if self.DISPLAY_TIMEZONE else None

    # ------------------------------------------------------------------
    # Repr safety -- redact secrets in logs / debug output
    # ------------------------------------------------------------------

    _SENSITIVE_FIELDS: ClassVar[set[str]] = {"DISCORD_TOKEN", "DISCORD_POST_SECRET"}

    def __repr__(self) -> str:
        fields = []
        for name in type(self).model_fields:
            val = getattr(self, name)
            if name in self._SENSITIVE_FIELDS:
                val = "***" if val else None
            fields.append(f"{name}={val!r}")
        return f"RelaySettings({', '.join(fields)})"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_channel_pairs(text: str) -> dict[str, str]:
    """Parse ``"123:main,456:topics"`` into ``{"123": "main", "456": "topics"}``."""
    pairs: dict[str, str] = {}
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        channel_id, sep, tag = item.partition(":")
        channel_id, tag = channel_id.strip(), tag.strip()
        if not sep or not channel_id or not tag:
            raise ValueError(f"Expected 'channel_id:tag', got {item!r}")
        pairs[channel_id] = tag
    return pairs


def describe_config(environ: dict[str, str] | None = None) -> dict[str, bool]:
    """Return whether each forwarding-related variable is set."""
    env = os.environ if environ is None else environ
    return {name: bool(env.get(name, "").strip()) for name in FORWARDING_VARS}


def load_settings() -> RelaySettings:
    """Build settings, converting validation failures to :class:`FatalStartupError`."""
    try:
        return RelaySettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise FatalStartupError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Lazy singleton accessor
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=1)
def get_settings() -> RelaySettings:
    """Return the process-wide :class:`RelaySettings`, built on first call.

    Raises:
        FatalStartupError: If ``DISCORD_TOKEN`` is missing or any value
            fails validation.
    """
    logger.debug("Initialising RelaySettings from environment.")
    return load_settings()
