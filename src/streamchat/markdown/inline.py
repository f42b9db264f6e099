"""Inline span parsing for a single line (or table cell) of text.

Recognised, in this precedence order at each position:

    **bold**   *italic*   [label](href)   `code`

The text between markers is taken literally: patterns do not nest.  A
marker that does not close, or that would enclose nothing, stays in the
surrounding plain text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Union


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class Bold:
    text: str


@dataclass(frozen=True)
class Italic:
    text: str


@dataclass(frozen=True)
class Link:
    label: str
    href: str

    @property
    def text(self) -> str:
        return self.label


@dataclass(frozen=True)
class InlineCode:
    text: str


Span = Union[PlainText, Bold, Italic, Link, InlineCode]

# A matcher gets (text, position) and returns (span, end) or None
_Match = Optional[tuple[Span, int]]


def _delimited(marker: str, kind: Callable[[str], Span]) -> Callable[[str, int], _Match]:
    """Matcher for ``<marker>content<marker>`` with non-empty content.

    Content may not begin with the marker character, so ``****`` is
    neither an empty bold span nor an italic ``*``.
    """
    width = len(marker)

    def match(text: str, pos: int) -> _Match:
        if not text.startswith(marker, pos):
            return None
        if text.startswith(marker[0], pos + width):
            return None
        close = text.find(marker, pos + width + 1)
        if close < 0:
            return None
        return kind(text[pos + width : close]), close + width

    return match


def _link(text: str, pos: int) -> _Match:
    if text[pos] != "[":
        return None
    middle = text.find("](", pos + 1)
    if middle < 0:
        return None
    close = text.find(")", middle + 2)
    if close < 0:
        return None
    label = text[pos + 1 : middle]
    href = text[middle + 2 : close]
    if not label or not href:
        return None
    return Link(label=label, href=href), close + 1


_MATCHERS = (
    _delimited("**", Bold),
    _delimited("*", Italic),
    _link,
    _delimited("`", InlineCode),
)

_MARKER_CHARS = frozenset("*[`")


def parse_inline(text: str) -> list[Span]:
    """Split *text* into spans with a single left-to-right scan."""
    spans: list[Span] = []
    plain_start = 0
    pos = 0
    while pos < len(text):
        found: _Match = None
        if text[pos] in _MARKER_CHARS:
            for matcher in _MATCHERS:
                found = matcher(text, pos)
                if found is not None:
                    break
        if found is None:
            pos += 1
            continue
        if pos > plain_start:
            spans.append(PlainText(text[plain_start:pos]))
        span, pos = found
        spans.append(span)
        plain_start = pos
    if plain_start < len(text):
        spans.append(PlainText(text[plain_start:]))
    return spans


def plain_text(spans: list[Span]) -> str:
    """Concatenate the visible text of *spans* (markers removed)."""
    return "".join(span.text for span in spans)
