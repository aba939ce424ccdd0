"""Monitored-channel routing for the relay.

The relay watches a primary channel (``CHANNEL_ID``) and, in multi-channel
deployments, any number of extra channels.  Each monitored channel carries a
short *tag* that identifies it in batch envelopes sent downstream.

When no channel is configured at all the router monitors nothing for
backfill and lets every live message through.

Usage::

    router = ChannelRouter.from_settings(settings)
    if router.is_monitored(str(message.channel.id)):
        tag = router.tag_for(str(message.channel.id))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final, Mapping

if TYPE_CHECKING:
    from relay.config import RelaySettings

log: Final = logging.getLogger(__name__)


class ChannelRouter:
    """Maps monitored channel IDs to their tags.

    Attributes:
        channels: Channel ID to tag, in configuration order with the primary
            channel first.
    """

    def __init__(self, channels: Mapping[str, str] | None = None) -> None:
        self.channels: dict[str, str] = dict(channels or {})

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> ChannelRouter:
        channels: dict[str, str] = {}
        if settings.CHANNEL_ID:
            channels[settings.CHANNEL_ID] = settings.PRIMARY_CHANNEL_TAG
        for channel_id, tag in settings.EXTRA_CHANNELS.items():
            if channel_id in channels:
                log.warning(
                    "Channel %s is configured twice; keeping tag %r.",
                    channel_id, channels[channel_id],
                )
                continue
            channels[channel_id] = tag
        return cls(channels)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def filtering_enabled(self) -> bool:
        """``False`` when no channel is configured and everything is relayed."""
        return bool(self.channels)

    def is_monitored(self, channel_id: str | None) -> bool:
        """Return ``True`` if messages from *channel_id* should be relayed."""
        if not self.filtering_enabled:
            return True
        return channel_id is not None and channel_id in self.channels

    def tag_for(self, channel_id: str | None, fallback: str | None = None) -> str:
        """Return the tag of *channel_id*.

        Unmonitored channels (only reachable when filtering is disabled) use
        *fallback*, then the channel ID itself.
        """
        if channel_id is not None and channel_id in self.channels:
            return self.channels[channel_id]
        return fallback or channel_id or "unknown"

    def backfill_targets(self) -> list[tuple[str, str]]:
        """Channels to backfill at startup, as ``(channel_id, tag)`` pairs."""
        return list(self.channels.items())
