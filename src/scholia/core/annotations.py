"""
Pure operations over a document's annotation record.

Every function returns a new FileNotes; the input is never mutated.
"""

from collections.abc import Iterable
from dataclasses import replace

from .model import Bookmark, FileNotes, Highlight
from .utils import now_millis


def normalize_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """
    Lowercase and trim tags, dropping blanks and repeats.

        >>> normalize_tags([" Urgent", "todo", "URGENT", ""])
        ('urgent', 'todo')
    """
    out: dict[str, None] = {}
    for tag in tags:
        t = tag.strip().lower()
        if t:
            out.setdefault(t, None)
    return tuple(out)


def add_highlight(notes: FileNotes, highlight: Highlight) -> FileNotes:
    # overlapping highlights are allowed
    return replace(notes, highlights=notes.highlights + (highlight,))


def update_highlight(notes: FileNotes, highlight: Highlight) -> FileNotes:
    if not any(h.id == highlight.id for h in notes.highlights):
        return notes
    return replace(
        notes,
        highlights=tuple(highlight if h.id == highlight.id else h for h in notes.highlights),
    )


def delete_highlight(notes: FileNotes, highlight_id: str) -> FileNotes:
    kept = tuple(h for h in notes.highlights if h.id != highlight_id)
    if len(kept) == len(notes.highlights):
        return notes
    return replace(notes, highlights=kept)


def find_highlight(notes: FileNotes, highlight_id: str) -> Highlight | None:
    for h in notes.highlights:
        if h.id == highlight_id:
            return h
    return None


def toggle_bookmark(
    notes: FileNotes,
    block_index: int,
    new_id: str,
    label: str | None = None,
) -> FileNotes:
    """
    Remove every bookmark on ``block_index``, or add one if there is none.
    """
    kept = tuple(b for b in notes.bookmarks if b.block_index != block_index)
    if len(kept) != len(notes.bookmarks):
        return replace(notes, bookmarks=kept)
    bookmark = Bookmark(id=new_id, block_index=block_index, label=label, created_at=now_millis())
    return replace(notes, bookmarks=notes.bookmarks + (bookmark,))


def highlights_by_block(notes: FileNotes) -> list[Highlight]:
    return sorted(notes.highlights, key=lambda h: h.block_index)


def bookmarks_by_block(notes: FileNotes) -> list[Bookmark]:
    return sorted(notes.bookmarks, key=lambda b: b.block_index)
