"""Tests for pure annotation operations."""

from scholia.core import annotations as ann
from scholia.core.model import Bookmark, FileNotes, Highlight, HighlightColor


def make_notes(**kwargs):
    return FileNotes(file_uri="file:///doc.md", file_name="doc.md", content_hash="h", **kwargs)


def make_highlight(hid="h1", block=0, tags=()):
    return Highlight(
        id=hid,
        block_index=block,
        start_offset=0,
        end_offset=4,
        highlighted_text="text",
        tags=tuple(tags),
    )


def test_normalize_tags():
    """Test tags are trimmed, lowercased and deduplicated in order."""
    assert ann.normalize_tags([" Urgent", "todo", "URGENT", "", "  "]) == ("urgent", "todo")


def test_add_highlight_appends_without_mutating():
    """Test add returns a new record and leaves the input alone."""
    notes = make_notes()
    updated = ann.add_highlight(notes, make_highlight())

    assert notes.highlights == ()
    assert [h.id for h in updated.highlights] == ["h1"]


def test_overlapping_highlights_allowed():
    """Test that two highlights may cover the same range."""
    notes = ann.add_highlight(make_notes(), make_highlight("a"))
    notes = ann.add_highlight(notes, make_highlight("b"))
    assert len(notes.highlights) == 2


def test_update_highlight_replaces_by_id():
    """Test update swaps the matching highlight in place."""
    notes = make_notes(highlights=(make_highlight("a"), make_highlight("b")))
    changed = Highlight(
        id="a", block_index=0, start_offset=0, end_offset=4,
        highlighted_text="text", color=HighlightColor.PINK,
    )
    updated = ann.update_highlight(notes, changed)

    assert [h.id for h in updated.highlights] == ["a", "b"]
    assert updated.highlights[0].color is HighlightColor.PINK


def test_update_and_delete_unknown_id_are_noops():
    """Test that unknown ids leave the record unchanged."""
    notes = make_notes(highlights=(make_highlight("a"),))
    assert ann.update_highlight(notes, make_highlight("zzz")) == notes
    assert ann.delete_highlight(notes, "zzz") == notes


def test_delete_highlight():
    """Test deleting by id."""
    notes = make_notes(highlights=(make_highlight("a"), make_highlight("b")))
    updated = ann.delete_highlight(notes, "a")
    assert [h.id for h in updated.highlights] == ["b"]
    assert ann.find_highlight(updated, "a") is None
    assert ann.find_highlight(updated, "b").id == "b"


def test_toggle_bookmark_adds_then_removes():
    """Test toggling twice restores the bookmark set."""
    notes = make_notes()
    once = ann.toggle_bookmark(notes, 3, "bm1", label="here")
    assert [(b.block_index, b.label) for b in once.bookmarks] == [(3, "here")]

    twice = ann.toggle_bookmark(once, 3, "bm2")
    assert twice.bookmarks == ()


def test_toggle_bookmark_removes_every_match():
    """Test that toggling a block with several bookmarks removes them all."""
    notes = make_notes(
        bookmarks=(
            Bookmark(id="a", block_index=1),
            Bookmark(id="b", block_index=2),
            Bookmark(id="c", block_index=1),
        )
    )
    updated = ann.toggle_bookmark(notes, 1, "new")
    assert [b.id for b in updated.bookmarks] == ["b"]


def test_listing_sorted_by_block():
    """Test highlights and bookmarks are listed by block index."""
    notes = make_notes(
        highlights=(make_highlight("late", block=5), make_highlight("early", block=1)),
        bookmarks=(Bookmark(id="x", block_index=4), Bookmark(id="y", block_index=0)),
    )
    assert [h.id for h in ann.highlights_by_block(notes)] == ["early", "late"]
    assert [b.id for b in ann.bookmarks_by_block(notes)] == ["y", "x"]


def test_all_tags_first_seen_order():
    """Test the distinct tags across a record's highlights."""
    notes = make_notes(
        highlights=(
            make_highlight("a", tags=["b", "a"]),
            make_highlight("b", tags=["a", "c"]),
        )
    )
    assert notes.all_tags() == ["b", "a", "c"]
