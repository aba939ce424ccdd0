"""Tests for the queue-driven relay pipeline."""

from datetime import timezone
from unittest.mock import AsyncMock

import pytest

from relay.forwarding.client import ForwardResult
from relay.forwarding.delivery import DeliveryMode
from relay.pipeline import ChannelBatch, RelayPipeline


@pytest.mark.asyncio
async def test_handle_normalizes_and_orders(mock_forwarder, make_raw):
    pipeline = RelayPipeline(mock_forwarder, mode=DeliveryMode.BATCH, tz=timezone.utc)
    batch = ChannelBatch(
        tag="main",
        messages=(
            make_raw("**late**", id="2", created_at=200),
            make_raw("early", id="1", created_at=100),
        ),
    )

    results = await pipeline.handle(batch)

    assert [r.delivered for r in results] == [True]
    body = mock_forwarder.forward.await_args.args[0]
    assert [m["id"] for m in body["messages"]] == ["1", "2"]
    assert body["messages"][1]["content"] == "<strong>late</strong>"
    assert pipeline.processed_count == 2


@pytest.mark.asyncio
async def test_worker_consumes_batches_in_submission_order(mock_forwarder, make_raw):
    pipeline = RelayPipeline(mock_forwarder, pause=0)
    pipeline.start()
    try:
        await pipeline.submit(ChannelBatch("main", (make_raw(id="a"),)))
        await pipeline.submit(ChannelBatch("main", (make_raw(id="b"),)))
        await pipeline.join()
    finally:
        await pipeline.stop()

    ids = [c.args[0]["id"] for c in mock_forwarder.forward.await_args_list]
    assert ids == ["a", "b"]


@pytest.mark.asyncio
async def test_failing_batch_does_not_stop_worker(make_raw):
    forwarder = AsyncMock()
    forwarder.forward = AsyncMock(
        side_effect=[RuntimeError("unexpected"), ForwardResult(delivered=True, status=200)]
    )
    pipeline = RelayPipeline(forwarder, pause=0)
    pipeline.start()
    try:
        await pipeline.submit(ChannelBatch("main", (make_raw(id="bad"),)))
        await pipeline.submit(ChannelBatch("main", (make_raw(id="good"),)))
        await pipeline.join()
        assert pipeline.is_running
    finally:
        await pipeline.stop()

    assert forwarder.forward.await_count == 2


@pytest.mark.asyncio
async def test_stop_is_idempotent(mock_forwarder):
    pipeline = RelayPipeline(mock_forwarder)
    pipeline.start()
    await pipeline.stop()
    await pipeline.stop()
    assert pipeline.is_running is False
