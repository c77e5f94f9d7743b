"""Operations over the global document index."""

from collections.abc import Iterable
from dataclasses import replace

from .model import DocumentIndex, DocumentUri, FileEntry, TagInfo


def upsert(index: DocumentIndex, entry: FileEntry) -> DocumentIndex:
    """Replace the entry with the same uri in place, else append."""
    files = list(index.files)
    for i, existing in enumerate(files):
        if existing.uri == entry.uri:
            files[i] = entry
            break
    else:
        files.append(entry)
    return replace(index, files=tuple(files))


def remove(index: DocumentIndex, uri: DocumentUri) -> DocumentIndex:
    return replace(index, files=tuple(f for f in index.files if f.uri != uri))


def find(index: DocumentIndex, uri: DocumentUri) -> FileEntry | None:
    for entry in index.files:
        if entry.uri == uri:
            return entry
    return None


def list_by_recency(index: DocumentIndex) -> list[FileEntry]:
    # sorted() is stable, so ties keep stored order
    return sorted(index.files, key=lambda f: f.last_opened, reverse=True)


def merge_tags(index: DocumentIndex, names: Iterable[str]) -> DocumentIndex:
    """Append tag names not yet in the vocabulary. Never removes."""
    known = {t.name for t in index.tags}
    added = []
    for name in names:
        if name not in known:
            known.add(name)
            added.append(TagInfo(name=name))
    if not added:
        return index
    return replace(index, tags=index.tags + tuple(added))


def suggest_tags(
    index: DocumentIndex, query: str = "", exclude: Iterable[str] = ()
) -> list[str]:
    excluded = set(exclude)
    q = query.strip().lower()
    return [
        t.name
        for t in index.tags
        if t.name not in excluded and (not q or q in t.name.lower())
    ]
