"""Tests for delivery modes and oldest-first ordering."""

from unittest.mock import AsyncMock, patch

import pytest

from relay.channels.normalizer import normalize
from relay.forwarding.delivery import (
    DeliveryMode,
    build_envelope,
    deliver,
    order_oldest_first,
)


@pytest.fixture
def out_of_order(make_raw):
    return [
        normalize(make_raw("c", id="c", created_at=300)),
        normalize(make_raw("a", id="a", created_at=100)),
        normalize(make_raw("b", id="b", created_at=200)),
    ]


def test_order_oldest_first(out_of_order):
    assert [p.created_at for p in order_oldest_first(out_of_order)] == [100, 200, 300]


def test_order_keeps_ties_stable(make_raw):
    raws = [make_raw(id="x", created_at=5), make_raw(id="y", created_at=5)]
    assert [r.id for r in order_oldest_first(raws)] == ["x", "y"]


def test_build_envelope(out_of_order):
    env = build_envelope("main", out_of_order[:1])
    assert env["channel"] == "main"
    assert env["messages"] == [out_of_order[0].to_dict()]


@pytest.mark.asyncio
async def test_single_mode_posts_each_message_oldest_first(mock_forwarder, out_of_order):
    with patch("relay.forwarding.delivery.asyncio.sleep", new=AsyncMock()) as sleep:
        results = await deliver(mock_forwarder, "main", out_of_order, pause=0.1)

    assert len(results) == 3
    sent = [c.args[0]["createdAt"] for c in mock_forwarder.forward.await_args_list]
    assert sent == [100, 200, 300]
    # Pause only between posts, not before the first.
    assert sleep.await_count == 2
    sleep.assert_awaited_with(0.1)


@pytest.mark.asyncio
async def test_single_message_has_no_pause(mock_forwarder, out_of_order):
    with patch("relay.forwarding.delivery.asyncio.sleep", new=AsyncMock()) as sleep:
        await deliver(mock_forwarder, "main", out_of_order[:1])
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_batch_mode_posts_one_envelope(mock_forwarder, out_of_order):
    results = await deliver(mock_forwarder, "alerts", out_of_order, mode=DeliveryMode.BATCH)

    assert len(results) == 1
    mock_forwarder.forward.assert_awaited_once()
    body = mock_forwarder.forward.await_args.args[0]
    assert body["channel"] == "alerts"
    assert [m["createdAt"] for m in body["messages"]] == [100, 200, 300]


@pytest.mark.asyncio
async def test_empty_batch_sends_nothing(mock_forwarder):
    assert await deliver(mock_forwarder, "main", [], mode=DeliveryMode.BATCH) == []
    mock_forwarder.forward.assert_not_awaited()
