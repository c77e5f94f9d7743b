"""
The annotation library: per-document records plus the global index.

Every mutation goes through here so that the index entry for a document
(counts, last opened time, tag vocabulary) is rewritten together with the
document's record. Callers serialise access per document.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from loguru import logger

from . import annotations as ann
from . import doc_index
from .errors import CorruptRecord, DocumentUnreadable, NotFound
from .model import (
    Block,
    DocumentIndex,
    DocumentUri,
    FileEntry,
    FileNotes,
    Highlight,
    HighlightColor,
)
from .ports import DocumentSource, IdGenerator, ParserStrategy, RecordCodec, RecordStorage
from .selection import clamp_span, selectable_text
from .utils import content_hash, notes_file_name_for_key, now_millis

INDEX_KEY = "index.json"


@dataclass
class OpenedDocument:
    uri: DocumentUri
    name: str = ""
    key: str = ""
    blocks: list[Block] = field(default_factory=list)
    notes: FileNotes | None = None
    stale: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Library:
    def __init__(
        self,
        storage: RecordStorage,
        source: DocumentSource,
        parser: ParserStrategy,
        codec: RecordCodec,
        idgen: IdGenerator,
    ):
        self.storage = storage
        self.source = source
        self.parser = parser
        self.codec = codec
        self.idgen = idgen

    # -- records ---------------------------------------------------------------

    def load_notes(self, key: str) -> FileNotes | None:
        raw = self.storage.read_bytes(key)
        if raw is None:
            return None
        try:
            return self.codec.decode_notes(raw)
        except CorruptRecord as e:
            logger.warning(f"Ignoring unreadable record {key}: {e}")
            return None

    def save_notes(self, key: str, notes: FileNotes) -> None:
        self.storage.write_bytes(key, self.codec.encode_notes(notes))
        logger.debug(f"Saved {key} ({len(notes.highlights)} highlights)")

    def load_index(self) -> DocumentIndex:
        raw = self.storage.read_bytes(INDEX_KEY)
        if raw is None:
            return DocumentIndex()
        try:
            return self.codec.decode_index(raw)
        except CorruptRecord as e:
            logger.warning(f"Ignoring unreadable index: {e}")
            return DocumentIndex()

    def save_index(self, index: DocumentIndex) -> None:
        self.storage.write_bytes(INDEX_KEY, self.codec.encode_index(index))

    def notes_for(self, uri: DocumentUri) -> FileNotes | None:
        return self.load_notes(notes_file_name_for_key(uri))

    # -- opening ---------------------------------------------------------------

    def open_document(self, uri: DocumentUri) -> OpenedDocument:
        """
        Read, parse and reconcile a document against its stored record.

        A document seen for the first time gets a fresh record, saved right
        away. A stored record whose content hash differs from the current
        text is returned untouched with ``stale`` set.
        """
        try:
            text = self.source.open_document(uri)
        except DocumentUnreadable as e:
            logger.warning(str(e))
            return OpenedDocument(uri=uri, error=str(e))

        name = self.source.resolve_display_name(uri)
        key = notes_file_name_for_key(uri)
        blocks = self.parser.parse(text)
        current = content_hash(text)

        notes = self.load_notes(key)
        stale = False
        if notes is None:
            notes = FileNotes(file_uri=uri, file_name=name, content_hash=current)
            self.save_notes(key, notes)
        elif notes.content_hash != current:
            stale = True
            logger.warning(f"{name} changed since it was annotated; offsets may be off")

        self._sync_index(uri, name, key, notes)
        return OpenedDocument(
            uri=uri, name=name, key=key, blocks=blocks, notes=notes, stale=stale
        )

    def acknowledge_changes(self, uri: DocumentUri) -> FileNotes:
        """Adopt the document's current content hash, clearing the stale state."""
        text = self.source.open_document(uri)
        notes = self._require(uri)
        updated = replace(notes, content_hash=content_hash(text))
        return self._commit(uri, updated)

    def is_stale(self, uri: DocumentUri) -> bool:
        notes = self.notes_for(uri)
        if notes is None:
            return False
        text = self.source.open_document(uri)
        return notes.content_hash != content_hash(text)

    def stale_documents(self) -> list[DocumentUri]:
        stale = []
        for entry in self.load_index().files:
            try:
                if self.is_stale(entry.uri):
                    stale.append(entry.uri)
            except DocumentUnreadable as e:
                logger.debug(f"Skipping {entry.uri}: {e}")
        return stale

    # -- annotation CRUD -------------------------------------------------------

    def add_highlight(self, uri: DocumentUri, highlight: Highlight) -> FileNotes:
        notes = self._require(uri)
        return self._commit(uri, ann.add_highlight(notes, highlight))

    def update_highlight(self, uri: DocumentUri, highlight: Highlight) -> FileNotes:
        notes = self._require(uri)
        return self._commit(uri, ann.update_highlight(notes, highlight))

    def delete_highlight(self, uri: DocumentUri, highlight_id: str) -> FileNotes:
        notes = self._require(uri)
        return self._commit(uri, ann.delete_highlight(notes, highlight_id))

    def toggle_bookmark(
        self, uri: DocumentUri, block_index: int, label: str | None = None
    ) -> FileNotes:
        notes = self._require(uri)
        return self._commit(
            uri, ann.toggle_bookmark(notes, block_index, self.idgen.new_id(), label)
        )

    def highlight_selection(
        self,
        uri: DocumentUri,
        blocks: list[Block],
        block_index: int,
        start: int,
        end: int,
        color: HighlightColor = HighlightColor.YELLOW,
        comment: str | None = None,
        tags: Iterable[str] = (),
    ) -> tuple[FileNotes, Highlight | None]:
        """
        Create a highlight from a raw selection on a parsed block.

        Offsets are clamped to the block's text. Selections that end up
        empty, or that point at a block which cannot be highlighted, leave
        the record as it was and return no highlight.
        """
        notes = self._require(uri)
        if not 0 <= block_index < len(blocks):
            return notes, None
        text = selectable_text(blocks[block_index])
        if text is None:
            return notes, None
        start, end = clamp_span(text, start, end)
        if start == end:
            return notes, None
        highlight = Highlight(
            id=self.idgen.new_id(),
            block_index=block_index,
            start_offset=start,
            end_offset=end,
            highlighted_text=text[start:end],
            color=color,
            comment=comment or None,
            tags=ann.normalize_tags(tags),
            created_at=now_millis(),
        )
        return self._commit(uri, ann.add_highlight(notes, highlight)), highlight

    def edit_highlight(
        self,
        uri: DocumentUri,
        highlight_id: str,
        color: HighlightColor | None = None,
        comment: str | None = None,
        tags: Iterable[str] | None = None,
    ) -> FileNotes:
        """Change colour, comment or tags of an existing highlight."""
        notes = self._require(uri)
        current = ann.find_highlight(notes, highlight_id)
        if current is None:
            return notes
        changes: dict = {}
        if color is not None:
            changes["color"] = color
        if comment is not None:
            changes["comment"] = comment or None
        if tags is not None:
            changes["tags"] = ann.normalize_tags(tags)
        return self._commit(uri, ann.update_highlight(notes, replace(current, **changes)))

    # -- catalog ---------------------------------------------------------------

    def recent_documents(self) -> list[FileEntry]:
        return doc_index.list_by_recency(self.load_index())

    def remove_from_recents(self, uri: DocumentUri, purge: bool = False) -> None:
        """Drop a document from the index. With ``purge`` its record is deleted too."""
        self.save_index(doc_index.remove(self.load_index(), uri))
        if purge:
            key = notes_file_name_for_key(uri)
            self.storage.delete(key)
            logger.debug(f"Deleted {key}")

    def rename_document(
        self, old_uri: DocumentUri, new_uri: DocumentUri, new_name: str
    ) -> FileEntry | None:
        """
        Point an indexed document at a new identifier and display name,
        rewriting its record under the new key. A record under a different
        old key is left in place.
        """
        index = self.load_index()
        entry = doc_index.find(index, old_uri)
        if entry is None:
            return None
        new_key = notes_file_name_for_key(new_uri)
        old_notes = self.load_notes(entry.notes_file_name)
        if old_notes is not None:
            self.save_notes(new_key, replace(old_notes, file_uri=new_uri, file_name=new_name))
        renamed = replace(entry, uri=new_uri, name=new_name, notes_file_name=new_key)
        files = tuple(renamed if f.uri == old_uri else f for f in index.files)
        self.save_index(replace(index, files=files))
        return renamed

    def register_copy(self, copy_uri: DocumentUri, name: str) -> FileEntry:
        """Index a duplicated document. Annotations are not carried over."""
        entry = FileEntry(
            uri=copy_uri,
            name=name,
            notes_file_name=notes_file_name_for_key(copy_uri),
            last_opened=now_millis(),
        )
        self.save_index(doc_index.upsert(self.load_index(), entry))
        return entry

    def tag_vocabulary(self) -> list[str]:
        return [t.name for t in self.load_index().tags]

    def suggest_tags(self, query: str = "", exclude: Iterable[str] = ()) -> list[str]:
        return doc_index.suggest_tags(self.load_index(), query, exclude)

    def all_notes(self) -> list[tuple[FileEntry, FileNotes]]:
        out = []
        for entry in self.load_index().files:
            notes = self.load_notes(entry.notes_file_name)
            if notes is not None:
                out.append((entry, notes))
        return out

    # -- internals -------------------------------------------------------------

    def _require(self, uri: DocumentUri) -> FileNotes:
        notes = self.notes_for(uri)
        if notes is None:
            raise NotFound(f"No annotations recorded for {uri}; open it first")
        return notes

    def _commit(self, uri: DocumentUri, notes: FileNotes) -> FileNotes:
        key = notes_file_name_for_key(uri)
        self.save_notes(key, notes)
        self._sync_index(uri, notes.file_name, key, notes)
        return notes

    def _sync_index(self, uri: DocumentUri, name: str, key: str, notes: FileNotes) -> None:
        entry = FileEntry(
            uri=uri,
            name=name,
            notes_file_name=key,
            highlight_count=len(notes.highlights),
            bookmark_count=len(notes.bookmarks),
            last_opened=now_millis(),
        )
        index = doc_index.upsert(self.load_index(), entry)
        index = doc_index.merge_tags(index, notes.all_tags())
        self.save_index(index)
