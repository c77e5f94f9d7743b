"""Tests for the JSON record codec."""

import json

import pytest

from scholia.adapters.json_codec import (
    JsonRecordCodec,
    block_to_dict,
    decode_file_notes,
    decode_index,
    encode_file_notes,
    encode_index,
)
from scholia.core.errors import CorruptRecord
from scholia.core.model import (
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
    Span,
    TagInfo,
)


def sample_notes():
    return FileNotes(
        file_uri="file:///docs/a.md",
        file_name="a.md",
        content_hash="abc",
        highlights=(
            Highlight(
                id="h1",
                block_index=1,
                start_offset=5,
                end_offset=9,
                highlighted_text="bold",
                color=HighlightColor.GREEN,
                comment="nice",
                tags=("x", "y"),
                created_at=1700000000000,
            ),
        ),
        bookmarks=(Bookmark(id="b1", block_index=0, label="start", created_at=1700000000001),),
    )


def test_notes_round_trip():
    """Test a full record survives encode/decode."""
    notes = sample_notes()
    assert decode_file_notes(encode_file_notes(notes)) == notes


def test_field_names_are_camel_case_with_defaults_written():
    """Test the on-disk shape of a record."""
    notes = FileNotes(
        file_uri="u",
        file_name="n",
        content_hash="c",
        highlights=(Highlight("h", 0, 0, 1, "x"),),
    )
    data = json.loads(encode_file_notes(notes))

    assert set(data) == {"fileUri", "fileName", "contentHash", "highlights", "bookmarks"}
    h = data["highlights"][0]
    assert h["blockIndex"] == 0
    assert h["color"] == "YELLOW"
    assert h["comment"] is None
    assert h["tags"] == []


def test_missing_optional_fields_take_defaults():
    """Test decoding a minimal record."""
    raw = json.dumps(
        {
            "fileUri": "u",
            "fileName": "n",
            "contentHash": "c",
            "highlights": [
                {"id": "h", "blockIndex": 2, "startOffset": 0, "endOffset": 3, "highlightedText": "abc"}
            ],
        }
    ).encode()
    notes = decode_file_notes(raw)

    h = notes.highlights[0]
    assert h.color is HighlightColor.YELLOW
    assert h.comment is None
    assert h.tags == ()
    assert h.created_at > 0
    assert notes.bookmarks == ()


def test_unknown_fields_ignored():
    """Test records written by newer versions still decode."""
    data = json.loads(encode_file_notes(sample_notes()))
    data["futureField"] = {"nested": True}
    data["highlights"][0]["opacity"] = 0.5
    notes = decode_file_notes(json.dumps(data).encode())
    assert notes == sample_notes()


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"[1, 2]",
        b'{"fileUri": "u"}',
        b'{"fileUri": 3, "fileName": "n", "contentHash": "c"}',
        b'{"fileUri": "u", "fileName": "n", "contentHash": "c", "highlights": [{"id": "h"}]}',
        b"\xff\xfe",
    ],
)
def test_corrupt_records_raise(raw):
    """Test malformed input raises CorruptRecord."""
    with pytest.raises(CorruptRecord):
        decode_file_notes(raw)


def test_deeply_nested_json_is_corrupt():
    """Test deeply nested input is reported as a corrupt record."""
    raw = b"[" * 100000 + b"]" * 100000
    with pytest.raises(CorruptRecord):
        decode_file_notes(raw)
    with pytest.raises(CorruptRecord):
        decode_index(raw)


def test_unknown_color_is_corrupt():
    """Test that a colour outside the palette is rejected."""
    data = json.loads(encode_file_notes(sample_notes()))
    data["highlights"][0]["color"] = "PURPLE"
    with pytest.raises(CorruptRecord):
        decode_file_notes(json.dumps(data).encode())


def test_index_round_trip_and_defaults():
    """Test the document index encoding."""
    index = DocumentIndex(
        files=(FileEntry("u", "a.md", "k.json", highlight_count=2, bookmark_count=1, last_opened=5),),
        tags=(TagInfo("x"), TagInfo("y", color="#ff0")),
    )
    assert decode_index(encode_index(index)) == index

    minimal = decode_index(b"{}")
    assert minimal == DocumentIndex()

    entry = decode_index(b'{"files": [{"uri": "u", "name": "n", "notesFileName": "k"}]}').files[0]
    assert entry.highlight_count == 0
    assert entry.bookmark_count == 0


def test_codec_object_delegates():
    """Test the codec object used by the library."""
    codec = JsonRecordCodec()
    notes = sample_notes()
    assert codec.decode_notes(codec.encode_notes(notes)) == notes
    assert codec.decode_index(codec.encode_index(DocumentIndex())) == DocumentIndex()


def test_block_to_dict():
    """Test parsed blocks render to plain dicts."""
    heading = Heading(1, InlineText("Hi", (Span(0, 2, "link", "u"),)))
    assert block_to_dict(heading) == {
        "type": "heading",
        "level": 1,
        "content": {"text": "Hi", "spans": [{"start": 0, "end": 2, "style": "link", "target": "u"}]},
    }
    assert block_to_dict(CodeBlock("x", "py")) == {"type": "code", "code": "x", "language": "py"}

    lst = block_to_dict(OrderedList(items=(ListItem(InlineText("one")),), start_number=4))
    assert lst["type"] == "ordered_list"
    assert lst["start"] == 4
    assert lst["items"][0]["content"]["text"] == "one"
