"""Shared fixtures for the relay test suite."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from relay.models import Attachment, Author, Embed, EmbedField, RawMessage


@pytest.fixture
def make_raw():
    """Factory for RawMessage with sensible defaults."""

    def _make(
        content="",
        *,
        id="1",
        created_at=1_700_000_000_000,
        author=Author(username="alice", tag="alice#0001", id="42", is_bot=False),
        embeds=(),
        attachments=(),
        channel_id="100",
        channel_name="signals",
    ):
        return RawMessage(
            id=id,
            author=author,
            content=content,
            created_at=created_at,
            channel_id=channel_id,
            channel_name=channel_name,
            embeds=tuple(embeds),
            attachments=tuple(attachments),
        )

    return _make


@pytest.fixture
def sample_embed():
    return Embed(
        title="Alert",
        description="Price moved",
        fields=(EmbedField("Ticker", "ABC"), EmbedField("Change", "+5%")),
    )


@pytest.fixture
def sample_attachment():
    return Attachment(url="u", name="n", content_type="t")


@pytest.fixture
def mock_forwarder():
    """Mock ForwardClient whose forward() always succeeds."""
    from relay.forwarding.client import ForwardResult

    client = MagicMock()
    client.forward = AsyncMock(return_value=ForwardResult(delivered=True, status=200))
    client.close = AsyncMock()
    return client
