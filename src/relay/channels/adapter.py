"""Conversion from discord.py objects to relay records."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import discord

from relay.models import Attachment, Author, Embed, EmbedField, RawMessage

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def _author(user: discord.abc.User | None) -> Author | None:
    if user is None:
        return None
    return Author(
        username=user.name,
        tag=str(user),
        id=str(user.id),
        is_bot=bool(user.bot),
    )


def _embed(embed: discord.Embed) -> Embed:
    return Embed(
        title=embed.title or None,
        description=embed.description or None,
        fields=tuple(
            EmbedField(name=str(f.name), value=str(f.value)) for f in embed.fields
        ),
    )


def _epoch_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // _ONE_MS


def raw_message_from_discord(message: discord.Message) -> RawMessage:
    """Snapshot the parts of *message* the relay cares about."""
    channel = message.channel
    return RawMessage(
        id=str(message.id),
        author=_author(message.author),
        content=message.content or "",
        created_at=_epoch_ms(message.created_at),
        channel_id=str(channel.id) if channel is not None else None,
        channel_name=getattr(channel, "name", None),
        embeds=tuple(_embed(e) for e in message.embeds),
        attachments=tuple(
            Attachment(url=a.url, name=a.filename, content_type=a.content_type)
            for a in message.attachments
        ),
    )
