"""Startup backfill: fetch a channel's most recent messages.

:func:`fetch_recent_messages` resolves a channel by ID and reads its latest
messages.  Any reason the channel cannot be read is reported as
:class:`ChannelUnavailable` so the caller can skip that channel and keep
running.
"""

from __future__ import annotations

import logging

import discord

log = logging.getLogger(__name__)


class ChannelUnavailable(Exception):
    """A configured channel could not be resolved or read.

    Attributes:
        channel_id: The configured channel ID.
        reason: Human-readable cause.
    """

    def __init__(self, channel_id: str, reason: str) -> None:
        self.channel_id = channel_id
        self.reason = reason
        super().__init__(f"Channel {channel_id} unavailable: {reason}")


async def resolve_channel(client: discord.Client, channel_id: str) -> discord.abc.Messageable:
    """Return the channel for *channel_id*, from cache or the API.

    Raises:
        ChannelUnavailable: If the ID is invalid, the channel does not
            exist, the bot lacks access, or the channel holds no messages.
    """
    try:
        snowflake = int(channel_id)
    except ValueError:
        raise ChannelUnavailable(channel_id, "not a valid channel ID") from None

    channel = client.get_channel(snowflake)
    if channel is None:
        try:
            channel = await client.fetch_channel(snowflake)
        except discord.NotFound:
            raise ChannelUnavailable(channel_id, "channel not found") from None
        except discord.Forbidden:
            raise ChannelUnavailable(channel_id, "bot doesn't have access") from None
        except discord.HTTPException as exc:
            raise ChannelUnavailable(channel_id, f"fetch failed ({exc.status})") from exc

    if not hasattr(channel, "history"):
        raise ChannelUnavailable(channel_id, f"{type(channel).__name__} has no message history")
    return channel


async def fetch_recent_messages(
    client: discord.Client, channel_id: str, limit: int,
) -> list[discord.Message]:
    """Return up to *limit* of the channel's newest messages, newest first.

    Raises:
        ChannelUnavailable: If the channel cannot be resolved or read.
    """
    channel = await resolve_channel(client, channel_id)
    log.info("Fetching %d recent message(s) from #%s", limit, getattr(channel, "name", channel_id))
    try:
        messages = [m async for m in channel.history(limit=limit)]
    except discord.Forbidden:
        raise ChannelUnavailable(channel_id, "bot can't read message history") from None
    except discord.HTTPException as exc:
        raise ChannelUnavailable(channel_id, f"history fetch failed ({exc.status})") from exc
    log.info("Fetched %d message(s) from #%s", len(messages), getattr(channel, "name", channel_id))
    return messages
