"""Render parsed blocks with Rich."""

from __future__ import annotations

from rich import box
from rich.console import Group, RenderableType
from rich.style import Style
from rich.syntax import Syntax
from rich.table import Table as RichTable
from rich.text import Text

from streamchat.types import Message, Role

from .blocks import (
    Blank,
    Block,
    CodeBlock,
    Heading,
    ListItem,
    Paragraph,
    Table,
    parse_blocks,
)
from .inline import Bold, InlineCode, Italic, Link, PlainText, Span

_HEADING_STYLES = {
    1: "bold underline",
    2: "bold",
    3: "bold italic",
    4: "italic",
}
STREAMING_CURSOR = " ●"
OPEN_FENCE_MARK = "```…"


def render_spans(spans: list[Span], style: str = "") -> Text:
    text = Text(style=style)
    for span in spans:
        if isinstance(span, Bold):
            text.append(span.text, style="bold")
        elif isinstance(span, Italic):
            text.append(span.text, style="italic")
        elif isinstance(span, Link):
            text.append(span.label, style=Style(bold=True, underline=True, link=span.href))
        elif isinstance(span, InlineCode):
            text.append(span.text, style="reverse")
        elif isinstance(span, PlainText):
            text.append(span.text)
    return text


def _render_table(table: Table) -> RichTable:
    out = RichTable(box=box.ROUNDED, show_header=bool(table.headers))
    width = max([len(table.headers), *(len(r) for r in table.rows)], default=0)
    for i in range(width):
        header = table.headers[i] if i < len(table.headers) else []
        out.add_column(render_spans(header), style="bold" if i == 0 else "")
    for row in table.rows:
        cells = [render_spans(cell) for cell in row]
        cells.extend(Text() for _ in range(width - len(cells)))
        out.add_row(*cells)
    return out


def render_block(block: Block) -> RenderableType:
    if isinstance(block, CodeBlock):
        code = Syntax(
            "\n".join(block.lines),
            block.language or "text",
            theme="ansi_dark",
            word_wrap=True,
        )
        if block.closed:
            return code
        # fence still open: more code is on its way
        return Group(code, Text(OPEN_FENCE_MARK, style="dim"))
    if isinstance(block, Table):
        return _render_table(block)
    if isinstance(block, Heading):
        return render_spans(block.spans, _HEADING_STYLES[block.level])
    if isinstance(block, ListItem):
        bullet = f"{block.index}. " if block.ordered else "• "
        return Text("  " + bullet, style="dim").append_text(render_spans(block.spans))
    if isinstance(block, Blank):
        return Text()
    if isinstance(block, Paragraph):
        return render_spans(block.spans)
    raise TypeError(f"unknown block: {block!r}")


def render_blocks(blocks: list[Block]) -> Group:
    return Group(*(render_block(b) for b in blocks))


def render_message(message: Message) -> RenderableType:
    """Render one chat message, re-parsing its current text."""
    if message.is_error:
        return Text(message.text, style="bold red")
    if message.role is Role.USER:
        label = Text("You", style="bold cyan")
        suffix = f"  [{len(message.images)} image(s)]" if message.images else ""
        return Group(label, Text(message.text + suffix))
    body = render_blocks(parse_blocks(message.text))
    parts: list[RenderableType] = [Text("Assistant", style="bold magenta"), body]
    if message.is_streaming:
        parts.append(Text(STREAMING_CURSOR, style="yellow"))
    return Group(*parts)
