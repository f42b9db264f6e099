"""Block-level parsing of a whole message.

The text is scanned line by line with a cursor.  At each position the
first matching rule wins and consumes one or more lines:

1. code fence  (```` ``` ```` ... ```` ``` ````, unterminated runs to the end)
2. table       (a pipe row next to a ``|---|`` separator row)
3. heading     (``#`` to ``####``)
4. list item   (``- x``, ``* x``, ``12. x``)
5. blank line
6. paragraph   (anything else)

Parsing is stateless: the same text always yields the same blocks, so a
streaming message is simply re-parsed from scratch on every render.
Malformed input never raises; it degrades to paragraphs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from .inline import Span, parse_inline

FENCE = "```"
MAX_HEADING_LEVEL = 4


# ---------------------------------------------------------------------------
# Block types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Paragraph:
    spans: list[Span]


@dataclass(frozen=True)
class Heading:
    level: int
    spans: list[Span]


@dataclass(frozen=True)
class ListItem:
    ordered: bool
    spans: list[Span]
    index: Optional[str] = None  # the label as written, e.g. "3"


@dataclass(frozen=True)
class CodeBlock:
    lines: list[str]
    language: str = ""
    closed: bool = True


@dataclass(frozen=True)
class Table:
    headers: list[list[Span]]
    rows: list[list[list[Span]]] = field(default_factory=list)


@dataclass(frozen=True)
class Blank:
    pass


Block = Union[Paragraph, Heading, ListItem, CodeBlock, Table, Blank]


# ---------------------------------------------------------------------------
# Line classifiers
# ---------------------------------------------------------------------------

def is_separator_row(line: str) -> bool:
    """True for rows like ``|---|:--:|``: pipes, colons, spaces and dashes."""
    if "|" not in line:
        return False
    rest = "".join(ch for ch in line if ch not in "|: \t")
    return bool(rest) and set(rest) == {"-"}


def split_row(line: str) -> list[str]:
    """Split a table row on pipes, dropping the empty edge cells.

    ``"| a | | b |"`` gives ``["a", "", "b"]``.
    """
    cells = [cell.strip() for cell in line.strip().split("|")]
    if cells and cells[0] == "":
        cells.pop(0)
    if cells and cells[-1] == "":
        cells.pop()
    return cells


def _heading_level(line: str) -> int:
    level = len(line) - len(line.lstrip("#"))
    return level if 1 <= level <= MAX_HEADING_LEVEL else 0


def _ordered_label(trimmed: str) -> str | None:
    """Return ``"12"`` for ``"12. text"``, else ``None``."""
    digits = 0
    while digits < len(trimmed) and trimmed[digits].isdigit():
        digits += 1
    if digits == 0 or trimmed[digits : digits + 1] != ".":
        return None
    after = trimmed[digits + 1 : digits + 2]
    if not after or not after.isspace():
        return None
    return trimmed[:digits]


def _cells(line: str) -> list[list[Span]]:
    return [parse_inline(cell) for cell in split_row(line)]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class BlockParser:
    """Line scanner producing ``Block`` objects.

    A parser instance holds only the cursor for the text it is parsing;
    :meth:`parse` starts over every time.
    """

    def parse(self, text: str) -> list[Block]:
        self._lines = text.split("\n")
        self._pos = 0
        blocks: list[Block] = []
        while self._pos < len(self._lines):
            blocks.append(self._next_block())
        return blocks

    def _next_block(self) -> Block:
        line = self._lines[self._pos]
        trimmed = line.strip()

        if trimmed.startswith(FENCE):
            return self._code_block(trimmed[len(FENCE):].strip())

        table = self._table()
        if table is not None:
            return table

        self._pos += 1

        level = _heading_level(line)
        if level:
            return Heading(level=level, spans=parse_inline(line[level:].lstrip()))

        if trimmed[:1] in ("-", "*") and trimmed[1:2].isspace():
            return ListItem(ordered=False, spans=parse_inline(trimmed[2:].lstrip()))

        label = _ordered_label(trimmed)
        if label is not None:
            rest = trimmed[len(label) + 2 :].lstrip()
            return ListItem(ordered=True, index=label, spans=parse_inline(rest))

        if not trimmed:
            return Blank()

        return Paragraph(spans=parse_inline(trimmed))

    def _code_block(self, language: str) -> CodeBlock:
        self._pos += 1
        start = self._pos
        while self._pos < len(self._lines):
            if self._lines[self._pos].strip().startswith(FENCE):
                code = self._lines[start:self._pos]
                self._pos += 1
                return CodeBlock(lines=code, language=language)
            self._pos += 1
        return CodeBlock(lines=self._lines[start:], language=language, closed=False)

    def _table(self) -> Table | None:
        lines, pos = self._lines, self._pos
        line = lines[pos]
        if "|" not in line:
            return None

        if is_separator_row(line):
            headers: list[list[Span]] = []
            body_start = pos + 1
        elif pos + 1 < len(lines) and is_separator_row(lines[pos + 1]):
            headers = _cells(line)
            body_start = pos + 2
        else:
            return None

        rows: list[list[list[Span]]] = []
        end = body_start
        while end < len(lines) and lines[end].strip().startswith("|"):
            rows.append(_cells(lines[end]))
            end += 1
        self._pos = end
        return Table(headers=headers, rows=rows)


def parse_blocks(text: str) -> list[Block]:
    """Parse a full message into blocks."""
    return BlockParser().parse(text)
