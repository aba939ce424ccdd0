"""Discord markup to inline HTML translation.

The translation is an ordered sequence of ``(pattern, replacement)`` steps.
Each step rewrites every match in the string before the next step runs, so
the order below is significant: bold must be consumed before the
single-asterisk italic pattern sees the text.

Usage::

    from relay.channels.markup import translate_markup

    html = translate_markup("Hello <:smile:12345> **world**")
"""

from __future__ import annotations

import functools
import re
from datetime import datetime, tzinfo
from typing import Callable, Final, Union

EMOJI_CDN_URL: Final[str] = "https://cdn.discordapp.com/emojis/{id}.png"
EMOJI_STYLE: Final[str] = "width:20px;height:20px;vertical-align:middle;"

_EMOJI_RE: Final = re.compile(r"<:([a-zA-Z0-9_]+):(\d+)>")
_TIMESTAMP_RE: Final = re.compile(r"<t:(\d+):R>")
_BOLD_RE: Final = re.compile(r"\*\*(.*?)\*\*")
_ITALIC_RE: Final = re.compile(r"\*(.*?)\*")
_UNDERLINE_RE: Final = re.compile(r"__(.*?)__")

Replacement = Union[str, Callable[[re.Match[str]], str]]
MarkupStep = tuple[re.Pattern[str], Replacement]


def format_time_of_day(epoch_seconds: int, tz: tzinfo | None = None) -> str:
    """Render *epoch_seconds* as a 12-hour clock time, e.g. ``3:04:05 PM``.

    When *tz* is ``None`` the process local time zone is used.
    """
    dt = datetime.fromtimestamp(epoch_seconds, tz=tz)
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{dt.hour % 12 or 12}:{dt.minute:02d}:{dt.second:02d} {suffix}"


def _emoji_image(match: re.Match[str]) -> str:
    name, emoji_id = match.group(1), match.group(2)
    src = EMOJI_CDN_URL.format(id=emoji_id)
    return f'<img src="{src}" alt="{name}" style="{EMOJI_STYLE}" />'


def _timestamp_text(match: re.Match[str], *, tz: tzinfo | None) -> str:
    try:
        return format_time_of_day(int(match.group(1)), tz)
    except (OverflowError, OSError, ValueError):
        # Out of range for the platform clock; leave the token as written.
        return match.group(0)


def build_steps(tz: tzinfo | None = None) -> tuple[MarkupStep, ...]:
    """Return the markup steps in the order they must be applied."""
    return (
        (_EMOJI_RE, _emoji_image),
        (_TIMESTAMP_RE, functools.partial(_timestamp_text, tz=tz)),
        (_BOLD_RE, r"<strong>\1</strong>"),
        (_ITALIC_RE, r"<em>\1</em>"),
        (_UNDERLINE_RE, r"<u>\1</u>"),
    )


def apply_step(text: str, step: MarkupStep) -> str:
    """Apply a single step to every occurrence in *text*."""
    pattern, replacement = step
    return pattern.sub(replacement, text)


def translate_markup(text: str, tz: tzinfo | None = None) -> str:
    """Run *text* through every markup step in order."""
    for step in build_steps(tz):
        text = apply_step(text, step)
    return text
