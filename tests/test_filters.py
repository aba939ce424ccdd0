"""Tests for the relevance filter."""

from types import SimpleNamespace

from relay.channels.filters import MessageFilter
from relay.models import Author, Embed, EmbedField

BOT = Author(username="hook", id="7", is_bot=True)
SELF = Author(username="relay", id="99", is_bot=True)


def test_default_filter_accepts_everything(make_raw):
    f = MessageFilter()
    assert f.accepts(make_raw("x"))
    assert f.accepts(make_raw("x", author=BOT))
    assert f.accepts(make_raw("", author=None))


def test_ignore_bots(make_raw):
    f = MessageFilter(ignore_bots=True)
    assert not f.accepts(make_raw("x", author=BOT))
    assert f.accepts(make_raw("x"))


def test_ignore_own_needs_own_id(make_raw):
    f = MessageFilter(ignore_own=True)
    assert f.accepts(make_raw("x", author=SELF))
    f = f.with_own_id("99")
    assert not f.accepts(make_raw("x", author=SELF))
    assert f.accepts(make_raw("x", author=BOT))


def test_keywords_match_text_case_insensitively(make_raw):
    f = MessageFilter(keywords=("target",))
    assert f.accepts(make_raw("New TARGET hit"))
    assert not f.accepts(make_raw("hello there"))


def test_keywords_match_embed_fields(make_raw):
    f = MessageFilter(keywords=("entry",))
    embed = Embed(title="Signal", fields=(EmbedField("Entry", "1.23"),))
    assert f.accepts(make_raw("", embeds=[embed]))


def test_from_settings_lowercases_keywords():
    settings = SimpleNamespace(
        IGNORE_BOT_MESSAGES=True,
        IGNORE_OWN_MESSAGES=False,
        CONTENT_KEYWORDS=["Buy", "SELL"],
    )
    f = MessageFilter.from_settings(settings, own_id="1")
    assert f.keywords == ("buy", "sell")
    assert f.ignore_bots is True
    assert f.own_id == "1"
