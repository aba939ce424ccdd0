"""Relevance filter applied before a message is relayed.

Deployments differ on which messages matter: some drop everything written by
bots, some only drop the relay's own posts, and some relay only messages that
mention a domain keyword.  :class:`MessageFilter` makes each of these an
explicit setting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from relay.models import RawMessage

if TYPE_CHECKING:
    from relay.config import RelaySettings

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MessageFilter:
    """Decides whether a raw message should be relayed.

    Attributes:
        ignore_bots: Reject messages from any bot account.
        ignore_own: Reject messages whose author ID equals *own_id*.
        own_id: The relay's own user ID, known once logged in.
        keywords: Lower-cased keywords.  When non-empty a message must
            contain at least one of them in its text or embeds.
    """

    ignore_bots: bool = False
    ignore_own: bool = False
    own_id: str | None = None
    keywords: tuple[str, ...] = field(default=())

    @classmethod
    def from_settings(cls, settings: RelaySettings, own_id: str | None = None) -> MessageFilter:
        return cls(
            ignore_bots=settings.IGNORE_BOT_MESSAGES,
            ignore_own=settings.IGNORE_OWN_MESSAGES,
            own_id=own_id,
            keywords=tuple(k.lower() for k in settings.CONTENT_KEYWORDS if k),
        )

    def with_own_id(self, own_id: str | None) -> MessageFilter:
        return MessageFilter(self.ignore_bots, self.ignore_own, own_id, self.keywords)

    def _searchable_text(self, raw: RawMessage) -> str:
        parts = [raw.content]
        for embed in raw.embeds:
            parts.extend(p for p in (embed.title, embed.description) if p)
            for f in embed.fields:
                parts.extend((f.name, f.value))
        return "\n".join(parts).lower()

    def accepts(self, raw: RawMessage) -> bool:
        author = raw.author
        if self.ignore_bots and author is not None and author.is_bot:
            log.debug("Skipping bot message %s", raw.id)
            return False
        if (
            self.ignore_own
            and self.own_id is not None
            and author is not None
            and author.id == self.own_id
        ):
            log.debug("Skipping own message %s", raw.id)
            return False
        if self.keywords:
            text = self._searchable_text(raw)
            if not any(k in text for k in self.keywords):
                log.debug("Skipping message %s: no keyword match", raw.id)
                return False
        return True
