"""Discord-side message handling: markup translation and normalization.

Public API:
    :func:`normalize` -- build a :class:`~relay.models.NormalizedPayload`.
    :func:`translate_markup` -- Discord markup to inline HTML.
    :func:`raw_message_from_discord` -- discord.py message to ``RawMessage``.
    :class:`ChannelRouter` -- monitored channels and their tags.
    :class:`MessageFilter` -- relevance predicate.
"""

from relay.channels.adapter import raw_message_from_discord
from relay.channels.filters import MessageFilter
from relay.channels.markup import translate_markup
from relay.channels.normalizer import normalize
from relay.channels.router import ChannelRouter

__all__ = [
    "ChannelRouter",
    "MessageFilter",
    "normalize",
    "raw_message_from_discord",
    "translate_markup",
]
