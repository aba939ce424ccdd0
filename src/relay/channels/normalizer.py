"""Turn a :class:`~relay.models.RawMessage` into a :class:`~relay.models.NormalizedPayload`.

Normalization is pure: it performs no I/O and returns the same payload for
the same message, given the same display time zone.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Iterable

from relay.channels.markup import translate_markup
from relay.models import Embed, NormalizedPayload, RawMessage

UNKNOWN_AUTHOR = "Unknown"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def render_embed(embed: Embed) -> str:
    """Flatten one embed to Discord-flavoured markdown.

    The title is bolded on its own line, the description follows, then one
    ``**name:** value`` line per field.
    """
    block = ""
    if embed.title:
        block += f"**{embed.title}**\n"
    if embed.description:
        block += f"{embed.description}\n"
    if embed.fields:
        block += "\n".join(f"**{f.name}:** {f.value}" for f in embed.fields)
    return block


def render_embeds(embeds: Iterable[Embed]) -> str:
    """Render every embed and join them with a blank line.

    Returns an empty string when no embed carried any text.
    """
    blocks = [render_embed(e) for e in embeds]
    if not any(blocks):
        return ""
    return "\n\n".join(blocks)


def select_content(raw: RawMessage) -> str:
    """Prefer embed text over the message body, falling back to the body."""
    if raw.embeds:
        return render_embeds(raw.embeds) or raw.content or ""
    return raw.content or ""


def to_iso(epoch_ms: int) -> str:
    """Format epoch milliseconds the way JavaScript's ``toISOString`` does."""
    try:
        dt = _EPOCH + timedelta(milliseconds=epoch_ms)
    except OverflowError:
        return ""
    return f"{dt.year:04d}-" + dt.strftime("%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"


def normalize(raw: RawMessage, tz: tzinfo | None = None) -> NormalizedPayload:
    """Build the downstream payload for *raw*.

    Args:
        raw: The inbound message.
        tz: Time zone used to render ``<t:...:R>`` tokens.  ``None`` uses
            the process local time zone.
    """
    content = translate_markup(select_content(raw), tz).strip()
    author = raw.author

    return NormalizedPayload(
        id=raw.id,
        author=(author.username if author and author.username else UNKNOWN_AUTHOR),
        author_id=author.id if author else None,
        author_tag=author.tag if author else None,
        is_bot=bool(author and author.is_bot),
        content=content,
        raw_content=raw.content,
        created_at=raw.created_at,
        created_iso=to_iso(raw.created_at),
        has_embeds=len(raw.embeds) > 0,
        embed_count=len(raw.embeds),
        channel_id=raw.channel_id,
        channel_name=raw.channel_name,
        attachments=tuple(raw.attachments),
    )
