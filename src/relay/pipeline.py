"""Queue-driven relay pipeline.

The Discord client pushes :class:`ChannelBatch` events onto an
:class:`asyncio.Queue`; a single worker task takes them one at a time,
normalizes the messages and delivers them.  Because there is only one
consumer, each batch is fully delivered before the next one starts and a
channel's messages always go out oldest-first.

Usage::

    pipeline = RelayPipeline(forwarder, mode=DeliveryMode.SINGLE)
    pipeline.start()
    await pipeline.submit(ChannelBatch(tag="main", messages=(raw,)))
    ...
    await pipeline.stop()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import tzinfo

from relay.channels.normalizer import normalize
from relay.forwarding.client import ForwardClient, ForwardResult
from relay.forwarding.delivery import DeliveryMode, deliver, order_oldest_first
from relay.models import RawMessage

log = logging.getLogger(__name__)

_PREVIEW_CHARS = 100


@dataclass(frozen=True, slots=True)
class ChannelBatch:
    """Messages from one channel to be delivered together.

    Attributes:
        tag: Channel tag used in batch envelopes.
        messages: Raw messages in any order.
        source: ``"backfill"`` or ``"live"``, for logging.
    """

    tag: str
    messages: tuple[RawMessage, ...]
    source: str = "live"


class RelayPipeline:
    """Consumes :class:`ChannelBatch` events sequentially.

    Args:
        forwarder: Client used for every POST.
        mode: Delivery mode for every batch.
        pause: Seconds between posts in single mode.
        tz: Time zone for rendering Discord timestamp tokens.
    """

    def __init__(
        self,
        forwarder: ForwardClient,
        *,
        mode: DeliveryMode = DeliveryMode.SINGLE,
        pause: float = 0.1,
        tz: tzinfo | None = None,
    ) -> None:
        self.forwarder = forwarder
        self.mode = mode
        self.pause = pause
        self.tz = tz
        self._queue: asyncio.Queue[ChannelBatch] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self.processed_count: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the worker task.  Must be called from a running loop."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name="relay-pipeline")
        log.info("Relay pipeline started (mode=%s)", self.mode.value)

    async def stop(self) -> None:
        """Cancel the worker.  Batches still queued are abandoned."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        pending = self._queue.qsize()
        if pending:
            log.warning("Relay pipeline stopped with %d batch(es) pending", pending)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Producer / consumer
    # ------------------------------------------------------------------

    async def submit(self, batch: ChannelBatch) -> None:
        await self._queue.put(batch)

    async def join(self) -> None:
        """Wait until every submitted batch has been handled."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            batch = await self._queue.get()
            try:
                await self.handle(batch)
            except Exception:
                log.exception("Error relaying %s batch from %r", batch.source, batch.tag)
            finally:
                self._queue.task_done()

    async def handle(self, batch: ChannelBatch) -> list[ForwardResult]:
        """Normalize and deliver one batch."""
        ordered = order_oldest_first(batch.messages)
        payloads = [normalize(raw, self.tz) for raw in ordered]
        for payload in payloads:
            log.debug(
                "Processed message %s by %s: %s",
                payload.id, payload.author, payload.content[:_PREVIEW_CHARS],
            )

        results = await deliver(
            self.forwarder, batch.tag, payloads, mode=self.mode, pause=self.pause,
        )
        self.processed_count += len(payloads)

        failed = sum(1 for r in results if not r.ok)
        if batch.source == "backfill":
            log.info(
                "Completed backfill of %d message(s) from %r (%d failed post(s))",
                len(payloads), batch.tag, failed,
            )
        return results
