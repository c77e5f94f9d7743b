from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

DocumentUri = str

# Inline span styles
BOLD = "bold"
ITALIC = "italic"
CODE = "code"
LINK = "link"


@dataclass(frozen=True)
class Span:
    start: int  # codepoint offset into InlineText.text, inclusive
    end: int  # exclusive
    style: str  # bold | italic | code | link
    target: str | None = None  # link destination


@dataclass(frozen=True)
class InlineText:
    text: str = ""
    spans: tuple[Span, ...] = ()

    def spans_of(self, style: str) -> list[Span]:
        return [s for s in self.spans if s.style == style]


@dataclass(frozen=True)
class Heading:
    level: int
    content: InlineText


@dataclass(frozen=True)
class Paragraph:
    content: InlineText


@dataclass(frozen=True)
class CodeBlock:
    code: str
    language: str | None = None


@dataclass(frozen=True)
class BlockQuote:
    children: tuple["Block", ...] = ()


@dataclass(frozen=True)
class ListItem:
    content: InlineText
    children: tuple["Block", ...] = ()


@dataclass(frozen=True)
class OrderedList:
    items: tuple[ListItem, ...] = ()
    start_number: int = 1


@dataclass(frozen=True)
class UnorderedList:
    items: tuple[ListItem, ...] = ()


@dataclass(frozen=True)
class HorizontalRule:
    pass


# Closed set of block variants; position in the top-level sequence is the block index.
Block = Union[
    Heading, Paragraph, CodeBlock, BlockQuote, OrderedList, UnorderedList, HorizontalRule
]


class HighlightColor(str, Enum):
    YELLOW = "YELLOW"
    GREEN = "GREEN"
    BLUE = "BLUE"
    PINK = "PINK"
    ORANGE = "ORANGE"


@dataclass(frozen=True)
class Highlight:
    id: str
    block_index: int
    start_offset: int
    end_offset: int
    highlighted_text: str
    color: HighlightColor = HighlightColor.YELLOW
    comment: str | None = None
    tags: tuple[str, ...] = ()
    created_at: int = 0  # epoch millis


@dataclass(frozen=True)
class Bookmark:
    id: str
    block_index: int
    label: str | None = None
    created_at: int = 0


@dataclass(frozen=True)
class FileNotes:
    file_uri: DocumentUri
    file_name: str
    content_hash: str
    highlights: tuple[Highlight, ...] = ()
    bookmarks: tuple[Bookmark, ...] = ()

    def all_tags(self) -> list[str]:
        """Distinct tags across highlights, first-seen order."""
        seen: dict[str, None] = {}
        for h in self.highlights:
            for t in h.tags:
                seen.setdefault(t, None)
        return list(seen)


@dataclass(frozen=True)
class FileEntry:
    uri: DocumentUri
    name: str
    notes_file_name: str
    highlight_count: int = 0
    bookmark_count: int = 0
    last_opened: int = 0


@dataclass(frozen=True)
class TagInfo:
    name: str
    color: str | None = None


@dataclass(frozen=True)
class DocumentIndex:
    version: int = 1
    files: tuple[FileEntry, ...] = ()
    tags: tuple[TagInfo, ...] = field(default_factory=tuple)
