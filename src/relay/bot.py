"""RelayBot: the Discord client that feeds messages into the relay pipeline."""

from __future__ import annotations

import logging

import discord

from relay.backfill import ChannelUnavailable, fetch_recent_messages
from relay.channels.adapter import raw_message_from_discord
from relay.channels.filters import MessageFilter
from relay.channels.router import ChannelRouter
from relay.config import RelaySettings
from relay.forwarding.client import ForwardClient
from relay.models import RawMessage
from relay.pipeline import ChannelBatch, RelayPipeline

log = logging.getLogger(__name__)


class RelayBot(discord.Client):
    """Watches the configured channels and relays their messages downstream.

    On first ready the bot backfills each monitored channel's recent
    messages.  Afterwards every new message in a monitored channel is
    relayed as it arrives.  All delivery happens on the pipeline worker, one
    batch at a time.

    Args:
        settings: Startup configuration.
        forwarder: Optional pre-built client; built from *settings* if
            omitted.
    """

    def __init__(self, settings: RelaySettings, *, forwarder: ForwardClient | None = None) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        intents.guilds = True
        intents.guild_messages = True

        super().__init__(intents=intents)

        self.settings = settings
        self.router = ChannelRouter.from_settings(settings)
        self.message_filter = MessageFilter.from_settings(settings)
        self.forwarder = forwarder or ForwardClient(
            settings.NEXT_API_URL,
            settings.DISCORD_POST_SECRET,
            resource=settings.API_RESOURCE,
            secret_header=settings.SECRET_HEADER,
            timeout=settings.REQUEST_TIMEOUT,
        )
        self.pipeline = RelayPipeline(
            self.forwarder,
            mode=settings.DELIVERY_MODE,
            pause=settings.BACKFILL_DELAY,
            tz=settings.display_tz,
        )
        self._backfilled: bool = False

    async def setup_hook(self) -> None:
        """Called after login, before the bot starts processing events."""
        self.pipeline.start()

    async def on_ready(self) -> None:
        """Called when the bot is fully connected to Discord."""
        log.info("Logged in as %s (ID: %s)", self.user, self.user.id if self.user else "?")
        if self.user is not None:
            self.message_filter = self.message_filter.with_own_id(str(self.user.id))

        if self._backfilled:
            log.info("Reconnected; backfill already done")
            return
        self._backfilled = True

        if not self.router.filtering_enabled:
            log.warning("CHANNEL_ID not set -- cannot fetch initial messages; relaying all channels")
            return

        log.info("Monitoring channels: %s", self.router.channels)
        await self.backfill()

    async def backfill(self) -> None:
        """Queue the recent messages of every monitored channel."""
        for channel_id, tag in self.router.backfill_targets():
            try:
                messages = await fetch_recent_messages(
                    self, channel_id, self.settings.BACKFILL_LIMIT,
                )
            except ChannelUnavailable as exc:
                log.error("Skipping backfill for %r: %s", tag, exc)
                continue
            except Exception:
                log.exception("Backfill failed for %r (channel %s), skipping", tag, channel_id)
                continue

            try:
                raws = [raw_message_from_discord(m) for m in messages]
            except Exception:
                log.exception("Could not read backfilled messages from %r, skipping", tag)
                continue
            accepted = tuple(r for r in raws if self.message_filter.accepts(r))
            if not accepted:
                log.info("No messages to backfill from %r", tag)
                continue
            await self.pipeline.submit(ChannelBatch(tag=tag, messages=accepted, source="backfill"))

    async def on_message(self, message: discord.Message) -> None:
        """Relay a new message from a monitored channel."""
        channel_id = str(message.channel.id)
        if not self.router.is_monitored(channel_id):
            log.debug("Skipping message from other channel %s", channel_id)
            return

        raw = raw_message_from_discord(message)
        if not self.message_filter.accepts(raw):
            return

        messages: tuple[RawMessage, ...] = (raw,)
        if self.settings.INCLUDE_PREVIOUS_MESSAGE:
            previous = await self._previous_message(message)
            if previous is not None:
                messages = (previous, raw)

        tag = self.router.tag_for(channel_id, getattr(message.channel, "name", None))
        await self.pipeline.submit(ChannelBatch(tag=tag, messages=messages))

    async def _previous_message(self, message: discord.Message) -> RawMessage | None:
        """Return the message posted just before *message*, if readable."""
        try:
            async for prev in message.channel.history(limit=1, before=message):
                return raw_message_from_discord(prev)
        except discord.HTTPException as exc:
            log.warning("Could not fetch previous message in %s: %s", message.channel.id, exc)
        return None

    async def on_error(self, event_method: str, /, *args, **kwargs) -> None:
        log.exception("Unhandled error in %s", event_method)

    async def close(self) -> None:
        """Clean shutdown."""
        log.info("Shutting down relay...")
        await self.pipeline.stop()
        await self.forwarder.close()
        await super().close()
