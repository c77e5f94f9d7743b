"""
JSON codec for persisted records.

Field names are camelCase and every default is written out. On read,
unknown fields are ignored and missing optional fields take their
defaults; anything else that does not fit raises CorruptRecord.
"""

import json
from typing import Any

from ..core.errors import CorruptRecord
from ..core.model import (
    Block,
    BlockQuote,
    Bookmark,
    CodeBlock,
    DocumentIndex,
    FileEntry,
    FileNotes,
    Heading,
    Highlight,
    HighlightColor,
    InlineText,
    ListItem,
    OrderedList,
    Paragraph,
    TagInfo,
    UnorderedList,
)
from ..core.ports import RecordCodec
from ..core.utils import now_millis

_MISSING = object()


def _field(data: dict[str, Any], key: str, kind: type | tuple[type, ...], default: Any = _MISSING) -> Any:
    value = data.get(key, _MISSING)
    if value is _MISSING:
        if default is _MISSING:
            raise CorruptRecord(f"missing field {key!r}")
        return default
    if value is None and default is None:
        return None
    # bool is an int subclass; reject it for numeric fields
    if isinstance(value, bool) and kind is int:
        raise CorruptRecord(f"field {key!r} has type bool")
    if not isinstance(value, kind):
        raise CorruptRecord(f"field {key!r} has type {type(value).__name__}")
    return value


def _object(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise CorruptRecord(f"{what} is not an object")
    return value


def _strings(values: list[Any], key: str) -> tuple[str, ...]:
    if not all(isinstance(v, str) for v in values):
        raise CorruptRecord(f"field {key!r} must hold strings")
    return tuple(values)


# -- encoding -----------------------------------------------------------------


def highlight_to_dict(h: Highlight) -> dict[str, Any]:
    return {
        "id": h.id,
        "blockIndex": h.block_index,
        "startOffset": h.start_offset,
        "endOffset": h.end_offset,
        "highlightedText": h.highlighted_text,
        "color": h.color.value,
        "comment": h.comment,
        "tags": list(h.tags),
        "createdAt": h.created_at,
    }


def bookmark_to_dict(b: Bookmark) -> dict[str, Any]:
    return {
        "id": b.id,
        "blockIndex": b.block_index,
        "label": b.label,
        "createdAt": b.created_at,
    }


def file_notes_to_dict(notes: FileNotes) -> dict[str, Any]:
    return {
        "fileUri": notes.file_uri,
        "fileName": notes.file_name,
        "contentHash": notes.content_hash,
        "highlights": [highlight_to_dict(h) for h in notes.highlights],
        "bookmarks": [bookmark_to_dict(b) for b in notes.bookmarks],
    }


def file_entry_to_dict(e: FileEntry) -> dict[str, Any]:
    return {
        "uri": e.uri,
        "name": e.name,
        "notesFileName": e.notes_file_name,
        "highlightCount": e.highlight_count,
        "bookmarkCount": e.bookmark_count,
        "lastOpened": e.last_opened,
    }


def index_to_dict(index: DocumentIndex) -> dict[str, Any]:
    return {
        "version": index.version,
        "files": [file_entry_to_dict(f) for f in index.files],
        "tags": [{"name": t.name, "color": t.color} for t in index.tags],
    }


# -- decoding -----------------------------------------------------------------


def highlight_from_dict(data: Any) -> Highlight:
    d = _object(data, "highlight")
    color_name = _field(d, "color", str, HighlightColor.YELLOW.value)
    try:
        color = HighlightColor(color_name)
    except ValueError:
        raise CorruptRecord(f"unknown highlight color {color_name!r}") from None
    return Highlight(
        id=_field(d, "id", str),
        block_index=_field(d, "blockIndex", int),
        start_offset=_field(d, "startOffset", int),
        end_offset=_field(d, "endOffset", int),
        highlighted_text=_field(d, "highlightedText", str),
        color=color,
        comment=_field(d, "comment", str, None),
        tags=_strings(_field(d, "tags", list, []), "tags"),
        created_at=_field(d, "createdAt", int, now_millis()),
    )


def bookmark_from_dict(data: Any) -> Bookmark:
    d = _object(data, "bookmark")
    return Bookmark(
        id=_field(d, "id", str),
        block_index=_field(d, "blockIndex", int),
        label=_field(d, "label", str, None),
        created_at=_field(d, "createdAt", int, now_millis()),
    )


def file_notes_from_dict(data: Any) -> FileNotes:
    d = _object(data, "record")
    return FileNotes(
        file_uri=_field(d, "fileUri", str),
        file_name=_field(d, "fileName", str),
        content_hash=_field(d, "contentHash", str),
        highlights=tuple(highlight_from_dict(h) for h in _field(d, "highlights", list, [])),
        bookmarks=tuple(bookmark_from_dict(b) for b in _field(d, "bookmarks", list, [])),
    )


def file_entry_from_dict(data: Any) -> FileEntry:
    d = _object(data, "file entry")
    return FileEntry(
        uri=_field(d, "uri", str),
        name=_field(d, "name", str),
        notes_file_name=_field(d, "notesFileName", str),
        highlight_count=_field(d, "highlightCount", int, 0),
        bookmark_count=_field(d, "bookmarkCount", int, 0),
        last_opened=_field(d, "lastOpened", int, now_millis()),
    )


def tag_from_dict(data: Any) -> TagInfo:
    d = _object(data, "tag")
    return TagInfo(name=_field(d, "name", str), color=_field(d, "color", str, None))


def index_from_dict(data: Any) -> DocumentIndex:
    d = _object(data, "index")
    return DocumentIndex(
        version=_field(d, "version", int, 1),
        files=tuple(file_entry_from_dict(f) for f in _field(d, "files", list, [])),
        tags=tuple(tag_from_dict(t) for t in _field(d, "tags", list, [])),
    )


# -- parsed blocks (output only) ---------------------------------------------


def inline_to_dict(content: InlineText) -> dict[str, Any]:
    spans = []
    for s in content.spans:
        span: dict[str, Any] = {"start": s.start, "end": s.end, "style": s.style}
        if s.target is not None:
            span["target"] = s.target
        spans.append(span)
    return {"text": content.text, "spans": spans}


def _item_to_dict(item: ListItem) -> dict[str, Any]:
    return {
        "content": inline_to_dict(item.content),
        "children": [block_to_dict(c) for c in item.children],
    }


def block_to_dict(block: Block) -> dict[str, Any]:
    if isinstance(block, Heading):
        return {"type": "heading", "level": block.level, "content": inline_to_dict(block.content)}
    if isinstance(block, Paragraph):
        return {"type": "paragraph", "content": inline_to_dict(block.content)}
    if isinstance(block, CodeBlock):
        return {"type": "code", "code": block.code, "language": block.language}
    if isinstance(block, BlockQuote):
        return {"type": "blockquote", "children": [block_to_dict(c) for c in block.children]}
    if isinstance(block, OrderedList):
        return {
            "type": "ordered_list",
            "start": block.start_number,
            "items": [_item_to_dict(i) for i in block.items],
        }
    if isinstance(block, UnorderedList):
        return {"type": "unordered_list", "items": [_item_to_dict(i) for i in block.items]}
    return {"type": "hr"}


# -- bytes ----------------------------------------------------------------------


def _dumps(data: dict[str, Any]) -> bytes:
    return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")


def _loads(raw: bytes) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise CorruptRecord(str(e)) from e


def encode_file_notes(notes: FileNotes) -> bytes:
    return _dumps(file_notes_to_dict(notes))


def decode_file_notes(raw: bytes) -> FileNotes:
    return file_notes_from_dict(_loads(raw))


def encode_index(index: DocumentIndex) -> bytes:
    return _dumps(index_to_dict(index))


def decode_index(raw: bytes) -> DocumentIndex:
    return index_from_dict(_loads(raw))


class JsonRecordCodec(RecordCodec):
    def encode_notes(self, notes: FileNotes) -> bytes:
        return encode_file_notes(notes)

    def decode_notes(self, raw: bytes) -> FileNotes:
        return decode_file_notes(raw)

    def encode_index(self, index: DocumentIndex) -> bytes:
        return encode_index(index)

    def decode_index(self, raw: bytes) -> DocumentIndex:
        return decode_index(raw)
