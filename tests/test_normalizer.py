"""Tests for message normalization."""

import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from relay.channels.normalizer import normalize, render_embed, render_embeds, to_iso
from relay.models import Embed, EmbedField


def test_empty_message_yields_empty_content(make_raw):
    payload = normalize(make_raw(""))
    assert payload.content == ""
    assert payload.has_embeds is False
    assert payload.embed_count == 0


def test_plain_content_is_translated_and_trimmed(make_raw):
    payload = normalize(make_raw("  **hi**  \n"))
    assert payload.content == "<strong>hi</strong>"
    assert payload.raw_content == "  **hi**  \n"


def test_embeds_take_precedence_over_text(make_raw, sample_embed):
    payload = normalize(make_raw("ignored body", embeds=[sample_embed]))
    assert "ignored body" not in payload.content
    assert payload.content == (
        "<strong>Alert</strong>\nPrice moved\n"
        "<strong>Ticker:</strong> ABC\n<strong>Change:</strong> +5%"
    )
    assert payload.raw_content == "ignored body"
    assert payload.has_embeds is True
    assert payload.embed_count == 1


def test_empty_embeds_fall_back_to_text(make_raw):
    payload = normalize(make_raw("body", embeds=[Embed(), Embed()]))
    assert payload.content == "body"
    assert payload.embed_count == 2


def test_multiple_embeds_joined_by_blank_line():
    text = render_embeds([Embed(title="A"), Embed(description="b")])
    assert text == "**A**\n\n\nb\n"


def test_embed_without_fields_has_no_trailing_separator():
    assert render_embed(Embed(title="T", description="D")) == "**T**\nD\n"
    assert render_embed(Embed(fields=(EmbedField("k", "v"),))) == "**k:** v"


def test_missing_author_defaults(make_raw):
    payload = normalize(make_raw("x", author=None))
    assert payload.author == "Unknown"
    assert payload.author_id is None
    assert payload.author_tag is None
    assert payload.is_bot is False


def test_author_fields_mapped(make_raw):
    payload = normalize(make_raw("x"))
    assert payload.author == "alice"
    assert payload.author_id == "42"
    assert payload.author_tag == "alice#0001"


def test_attachment_passes_through(make_raw, sample_attachment):
    payload = normalize(make_raw("x", attachments=[sample_attachment]))
    assert payload.attachments[0] == sample_attachment
    assert payload.to_dict()["attachments"][0] == {"url": "u", "name": "n", "contentType": "t"}


def test_created_iso_matches_javascript_format(make_raw):
    payload = normalize(make_raw("x", created_at=1_700_000_000_123))
    assert payload.created_iso == "2023-11-14T22:13:20.123Z"
    assert payload.created_at == 1_700_000_000_123


def test_to_iso_epoch():
    assert to_iso(0) == "1970-01-01T00:00:00.000Z"


def test_to_iso_pads_years_below_1000():
    epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
    ms = (datetime(999, 12, 31, 23, 59, 59, tzinfo=timezone.utc) - epoch) // timedelta(milliseconds=1)
    assert to_iso(ms) == "0999-12-31T23:59:59.000Z"


def test_normalize_is_deterministic(make_raw, sample_embed):
    raw = make_raw("<t:1700000000:R> *x*", embeds=[sample_embed])
    assert normalize(raw, timezone.utc) == normalize(raw, timezone.utc)
    assert normalize(raw, timezone.utc).to_dict() == normalize(raw, timezone.utc).to_dict()


def test_payload_is_immutable(make_raw):
    payload = normalize(make_raw("x"))
    with pytest.raises(dataclasses.FrozenInstanceError):
        payload.content = "changed"


def test_to_dict_uses_wire_keys(make_raw):
    body = normalize(make_raw("x")).to_dict()
    assert set(body) == {
        "id", "author", "authorId", "authorTag", "isBot", "content",
        "rawContent", "createdAt", "createdISO", "hasEmbeds", "embedCount",
        "channelId", "channelName", "attachments",
    }
    assert body["channelId"] == "100"
    assert body["channelName"] == "signals"
