"""Delivery modes for a batch of payloads from one channel.

``single``
    One POST per message, oldest first, with a short pause between posts so
    the downstream API is not rate limited.  The body is the payload object.
``batch``
    One POST per channel batch whose body is the envelope
    ``{"channel": <tag>, "messages": [<payload>, ...]}``.

The mode is fixed per deployment; a batch is never split across modes.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Iterable, Sequence, TypeVar

from relay.forwarding.client import ForwardClient, ForwardResult
from relay.models import NormalizedPayload, RawMessage

log = logging.getLogger(__name__)

T = TypeVar("T", RawMessage, NormalizedPayload)


class DeliveryMode(str, Enum):
    SINGLE = "single"
    BATCH = "batch"


def order_oldest_first(messages: Iterable[T]) -> list[T]:
    """Sort by ``created_at`` ascending; ties keep their input order."""
    return sorted(messages, key=lambda m: m.created_at)


def build_envelope(tag: str, payloads: Sequence[NormalizedPayload]) -> dict[str, Any]:
    return {"channel": tag, "messages": [p.to_dict() for p in payloads]}


async def deliver(
    client: ForwardClient,
    tag: str,
    payloads: Sequence[NormalizedPayload],
    *,
    mode: DeliveryMode = DeliveryMode.SINGLE,
    pause: float = 0.1,
) -> list[ForwardResult]:
    """Send *payloads* downstream according to *mode*.

    Payloads are put in oldest-first order before sending.  Returns one
    result per POST made (one per payload in single mode, one in batch
    mode, none for an empty batch).
    """
    ordered = order_oldest_first(payloads)
    if not ordered:
        return []

    if mode is DeliveryMode.BATCH:
        log.info("Sending %d message(s) from %r as one batch", len(ordered), tag)
        return [await client.forward(build_envelope(tag, ordered))]

    results: list[ForwardResult] = []
    for index, payload in enumerate(ordered, start=1):
        if index > 1 and pause > 0:
            await asyncio.sleep(pause)
        if len(ordered) > 1:
            log.info("Sending message %d/%d from %r", index, len(ordered), tag)
        results.append(await client.forward(payload.to_dict()))
    return results
