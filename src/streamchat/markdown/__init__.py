"""A small markdown subset: block and inline parsing plus Rich rendering."""

from streamchat.markdown.blocks import (
    Blank,
    Block,
    BlockParser,
    CodeBlock,
    Heading,
    ListItem,
    Paragraph,
    Table,
    parse_blocks,
)
from streamchat.markdown.inline import (
    Bold,
    InlineCode,
    Italic,
    Link,
    PlainText,
    Span,
    parse_inline,
    plain_text,
)

__all__ = [
    "Blank",
    "Block",
    "BlockParser",
    "Bold",
    "CodeBlock",
    "Heading",
    "InlineCode",
    "Italic",
    "Link",
    "ListItem",
    "Paragraph",
    "PlainText",
    "Span",
    "Table",
    "parse_blocks",
    "parse_inline",
    "plain_text",
]
