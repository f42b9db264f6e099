"""Tests for the line-scanning block parser."""

from __future__ import annotations

import pytest

from streamchat.markdown.blocks import (
    Blank,
    CodeBlock,
    Heading,
    ListItem,
    Paragraph,
    Table,
    is_separator_row,
    parse_blocks,
    split_row,
)
from streamchat.markdown.inline import Bold, PlainText, plain_text


def _cell_texts(cells):
    return [plain_text(cell) for cell in cells]


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

class TestTables:
    def test_header_and_row(self):
        blocks = parse_blocks("| A | B |\n|---|---|\n| 1 | 2 |")
        assert len(blocks) == 1
        table = blocks[0]
        assert isinstance(table, Table)
        assert _cell_texts(table.headers) == ["A", "B"]
        assert [_cell_texts(r) for r in table.rows] == [["1", "2"]]

    def test_separator_first_means_no_header(self):
        blocks = parse_blocks("|---|---|\n| 1 | 2 |\n| 3 | 4 |")
        assert len(blocks) == 1
        assert blocks[0].headers == []
        assert [_cell_texts(r) for r in blocks[0].rows] == [["1", "2"], ["3", "4"]]

    def test_inner_empty_cell_is_kept(self):
        table = parse_blocks("| a | | b |\n|---|---|---|")[0]
        assert _cell_texts(table.headers) == ["a", "", "b"]

    def test_table_ends_at_non_pipe_line(self):
        blocks = parse_blocks("| A |\n| :--: |\n| 1 |\nafter")
        assert isinstance(blocks[0], Table)
        assert len(blocks[0].rows) == 1
        assert blocks[1] == Paragraph([PlainText("after")])

    def test_cells_are_inline_parsed(self):
        table = parse_blocks("| **x** | y |\n|---|---|")[0]
        assert table.headers[0] == [Bold("x")]

    def test_stray_pipe_in_prose_is_a_paragraph(self):
        blocks = parse_blocks("either a | b\nor c")
        assert all(isinstance(b, Paragraph) for b in blocks)

    def test_dash_line_without_pipe_is_not_a_separator(self):
        blocks = parse_blocks("a | b\n---")
        assert not any(isinstance(b, Table) for b in blocks)


class TestRowHelpers:
    @pytest.mark.parametrize(
        "line, expected",
        [
            ("|---|---|", True),
            ("| :-- | --: |", True),
            ("---|---", True),
            ("---", False),
            ("| a | b |", False),
            ("| | |", False),
        ],
    )
    def test_is_separator_row(self, line: str, expected: bool):
        assert is_separator_row(line) is expected

    def test_split_row(self):
        assert split_row("| a | | b |") == ["a", "", "b"]
        assert split_row("a | b") == ["a", "b"]


# ---------------------------------------------------------------------------
# Code fences
# ---------------------------------------------------------------------------

class TestCodeFence:
    def test_fenced_lines_are_verbatim(self):
        blocks = parse_blocks("```\nline1\nline2\n```")
        assert blocks == [CodeBlock(lines=["line1", "line2"])]

    def test_language_tag(self):
        block = parse_blocks("```python\nprint('hi')\n```")[0]
        assert block.language == "python"
        assert block.lines == ["print('hi')"]

    def test_markup_inside_is_not_parsed(self):
        block = parse_blocks("```\n# not a heading\n| a |\n|---|\n```")[0]
        assert block.lines == ["# not a heading", "| a |", "|---|"]

    def test_unterminated_fence_runs_to_end(self):
        blocks = parse_blocks("intro\n```\npartial\n**x**")
        assert blocks[0] == Paragraph([PlainText("intro")])
        assert blocks[1] == CodeBlock(lines=["partial", "**x**"], closed=False)
        assert len(blocks) == 2

    def test_text_after_fence(self):
        blocks = parse_blocks("```\ncode\n```\ndone")
        assert blocks[1] == Paragraph([PlainText("done")])


# ---------------------------------------------------------------------------
# Headings, lists, paragraphs
# ---------------------------------------------------------------------------

class TestLineBlocks:
    @pytest.mark.parametrize("level", [1, 2, 3, 4])
    def test_heading_levels(self, level: int):
        block = parse_blocks("#" * level + " Title")[0]
        assert block == Heading(level=level, spans=[PlainText("Title")])

    def test_five_hashes_is_a_paragraph(self):
        assert parse_blocks("##### deep") == [Paragraph([PlainText("##### deep")])]

    def test_unordered_items(self):
        blocks = parse_blocks("- one\n* **two**")
        assert blocks == [
            ListItem(ordered=False, spans=[PlainText("one")]),
            ListItem(ordered=False, spans=[Bold("two")]),
        ]

    def test_ordered_label_kept_verbatim(self):
        blocks = parse_blocks("3. three\n10. ten")
        assert [(b.ordered, b.index) for b in blocks] == [(True, "3"), (True, "10")]
        assert plain_text(blocks[1].spans) == "ten"

    def test_not_list_items(self):
        blocks = parse_blocks("-dash\n3.14 is pi\n**bold** start")
        assert all(isinstance(b, Paragraph) for b in blocks)

    def test_blank_lines(self):
        blocks = parse_blocks("a\n\n   \nb")
        assert [type(b) for b in blocks] == [Paragraph, Blank, Blank, Paragraph]

    def test_parsing_is_idempotent(self):
        text = (
            "# Title\n\nSome *text* here\n- item\n1. first\n"
            "| A | B |\n|---|---|\n| 1 | 2 |\n```js\nx()\n```\nend"
        )
        assert parse_blocks(text) == parse_blocks(text)

    def test_partial_streams_never_raise(self):
        text = "| A | B |\n|---|---|\n| 1 | **2** |\n```py\nx = [1, 2"
        for cut in range(len(text) + 1):
            parse_blocks(text[:cut])
