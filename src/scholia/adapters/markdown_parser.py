import re
from collections.abc import Iterable

from loguru import logger
from markdown_it import MarkdownIt
from markdown_it.token import Token

from ..core.model import (
    BOLD,
    CODE,
    ITALIC,
    LINK,
    Block,
    BlockQuote,
    CodeBlock,
    Heading,
    HorizontalRule,
    InlineText,
    ListItem,
    OrderedList,
    Paragraph,
    Span,
    UnorderedList,
)
from ..core.ports import ParserStrategy

IMAGE_PLACEHOLDER = "[image: {}]"

_STYLE_OPENERS = {"em_open": ITALIC, "strong_open": BOLD, "link_open": LINK}
_STYLE_CLOSERS = {"em_close", "strong_close", "link_close"}
_BLANK_LINES = re.compile(r"\n\s*\n")


class _InlineBuilder:
    """Flattens inline tokens into plain text plus style spans."""

    def __init__(self) -> None:
        self.parts: list[str] = []
        self.length = 0
        self.spans: list[Span] = []
        # (style, start offset, link target) of styles still open
        self.open: list[tuple[str, int, str | None]] = []

    def build(self) -> InlineText:
        spans = sorted(self.spans, key=lambda s: (s.start, -s.end))
        return InlineText(text="".join(self.parts), spans=tuple(spans))

    def append(self, text: str) -> None:
        self.parts.append(text)
        self.length += len(text)

    def close(self, style: str, start: int, target: str | None) -> None:
        if self.length > start:
            self.spans.append(Span(start, self.length, style, target))

    def feed(self, tokens: Iterable[Token]) -> None:
        for token in tokens:
            kind = token.type
            if kind == "text":
                self.append(token.content)
            elif kind == "softbreak":
                self.append(" ")
            elif kind == "hardbreak":
                self.append("\n")
            elif kind == "code_inline":
                start = self.length
                self.append(token.content)
                self.close(CODE, start, None)
            elif kind in _STYLE_OPENERS:
                target = str(token.attrs.get("href", "")) if kind == "link_open" else None
                self.open.append((_STYLE_OPENERS[kind], self.length, target))
            elif kind in _STYLE_CLOSERS:
                if self.open:
                    self.close(*self.open.pop())
            elif kind == "image":
                # alt text is not used
                title = token.attrs.get("title") or token.attrs.get("src", "")
                self.append(IMAGE_PLACEHOLDER.format(title))

    def finish(self) -> InlineText:
        while self.open:
            self.close(*self.open.pop())
        return self.build()


def flatten_inlines(inlines: Iterable[Token]) -> InlineText:
    """Flatten the children of one or more ``inline`` tokens."""
    builder = _InlineBuilder()
    for token in inlines:
        builder.feed(token.children or ())
    return builder.finish()


def _strip_one_newline(text: str) -> str:
    return text[:-1] if text.endswith("\n") else text


class _Frame:
    """An open container block while walking the token stream."""

    def __init__(self, token: Token):
        self.token = token
        self.children: list[Block] = []
        self.items: list[ListItem] = []
        self.inlines: list[Token] = []


class MarkdownParser(ParserStrategy):
    """
    CommonMark block parser producing the reader's block model.

    Only headings, paragraphs, code, quotes, lists and thematic breaks
    become blocks; anything else at block level (raw HTML, for instance)
    is dropped. The token stream is walked with explicit stacks, so
    deeply nested input cannot exhaust the interpreter stack.
    """

    def __init__(self) -> None:
        self.md = MarkdownIt("commonmark")

    def parse(self, text: str) -> list[Block]:
        try:
            tokens = self.md.parse(text)
        except RecursionError:
            logger.warning("Markdown nested too deeply; showing it as plain paragraphs")
            return self._plain(text)
        return self._blocks(tokens)

    def _plain(self, text: str) -> list[Block]:
        return [
            Paragraph(content=InlineText(chunk.strip()))
            for chunk in _BLANK_LINES.split(text)
            if chunk.strip()
        ]

    def _blocks(self, tokens: list[Token]) -> list[Block]:
        root = _Frame(Token("root", "", 0))
        stack = [root]
        for token in tokens:
            top = stack[-1]
            if token.nesting == 1:
                stack.append(_Frame(token))
            elif token.nesting == -1:
                if len(stack) > 1:
                    frame = stack.pop()
                    self._close(frame, stack[-1])
            elif token.type == "inline":
                for frame in stack:
                    if frame is top or frame.token.type == "list_item_open":
                        frame.inlines.append(token)
            elif token.type == "fence":
                info = (token.info or "").strip()
                top.children.append(
                    CodeBlock(code=_strip_one_newline(token.content), language=info or None)
                )
            elif token.type == "code_block":
                top.children.append(CodeBlock(code=_strip_one_newline(token.content)))
            elif token.type == "hr":
                top.children.append(HorizontalRule())
        return root.children

    def _close(self, frame: _Frame, parent: _Frame) -> None:
        kind = frame.token.type
        if kind == "heading_open":
            level = int(frame.token.tag[1:])
            parent.children.append(Heading(level=level, content=flatten_inlines(frame.inlines)))
        elif kind == "paragraph_open":
            parent.children.append(Paragraph(content=flatten_inlines(frame.inlines)))
        elif kind == "blockquote_open":
            parent.children.append(BlockQuote(children=tuple(frame.children)))
        elif kind == "ordered_list_open":
            start = int(frame.token.attrs.get("start", 1))
            parent.children.append(OrderedList(items=tuple(frame.items), start_number=start))
        elif kind == "bullet_list_open":
            parent.children.append(UnorderedList(items=tuple(frame.items)))
        elif kind == "list_item_open":
            parent.items.append(self._item(frame))

    def _item(self, frame: _Frame) -> ListItem:
        children = frame.children
        if children and isinstance(children[0], Paragraph):
            return ListItem(content=children[0].content, children=tuple(children[1:]))
        return ListItem(content=flatten_inlines(frame.inlines), children=tuple(children))
