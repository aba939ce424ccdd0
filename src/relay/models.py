"""Message records that flow through the relay.

:class:`RawMessage` is what the Discord adapter hands to the pipeline and
:class:`NormalizedPayload` is what the forwarder posts downstream.  Both are
frozen so a record cannot change between normalization and delivery.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class Author:
    """Display and attribution metadata for a message author."""

    username: str
    tag: str | None = None
    id: str | None = None
    is_bot: bool = False


@dataclass(frozen=True, slots=True)
class EmbedField:
    name: str
    value: str


@dataclass(frozen=True, slots=True)
class Embed:
    """The text-bearing parts of a Discord embed."""

    title: str | None = None
    description: str | None = None
    fields: tuple[EmbedField, ...] = ()


@dataclass(frozen=True, slots=True)
class Attachment:
    url: str
    name: str | None = None
    content_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "name": self.name, "contentType": self.content_type}


@dataclass(frozen=True, slots=True)
class RawMessage:
    """An inbound chat message as read from the platform.

    Attributes:
        id: Platform message identifier.
        author: ``None`` when the platform did not supply one.
        content: Raw text, possibly containing Discord markup.
        embeds: Embeds in display order.
        created_at: Creation time in epoch milliseconds.
        channel_id: Originating channel identifier.
        channel_name: Originating channel name, if known.
        attachments: Attachments in display order.
    """

    id: str
    author: Author | None
    content: str
    created_at: int
    channel_id: str | None = None
    channel_name: str | None = None
    embeds: tuple[Embed, ...] = ()
    attachments: tuple[Attachment, ...] = ()


@dataclass(frozen=True, slots=True)
class NormalizedPayload:
    """A message reshaped for the downstream API.

    Field names are Pythonic; :meth:`to_dict` produces the camelCase JSON
    object the API expects.
    """

    id: str
    author: str
    author_id: str | None
    author_tag: str | None
    is_bot: bool
    content: str
    raw_content: str
    created_at: int
    created_iso: str
    has_embeds: bool
    embed_count: int
    channel_id: str | None
    channel_name: str | None
    attachments: tuple[Attachment, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author": self.author,
            "authorId": self.author_id,
            "authorTag": self.author_tag,
            "isBot": self.is_bot,
            "content": self.content,
            "rawContent": self.raw_content,
            "createdAt": self.created_at,
            "createdISO": self.created_iso,
            "hasEmbeds": self.has_embeds,
            "embedCount": self.embed_count,
            "channelId": self.channel_id,
            "channelName": self.channel_name,
            "attachments": [a.to_dict() for a in self.attachments],
        }
