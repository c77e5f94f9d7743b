import io
import re
from pathlib import Path

import yaml

from ..core.annotations import bookmarks_by_block, highlights_by_block
from ..core.library import Library
from ..core.model import FileEntry, FileNotes, Highlight

_UNSAFE = re.compile(r"[^\w.-]+")


def _front_matter(entry: FileEntry, notes: FileNotes) -> str:
    meta = {
        "source": entry.uri,
        "name": entry.name,
        "content_hash": notes.content_hash,
        "highlights": len(notes.highlights),
        "bookmarks": len(notes.bookmarks),
        "tags": notes.all_tags(),
    }
    buf = io.StringIO()
    yaml.safe_dump(meta, buf, sort_keys=False, allow_unicode=True)
    return f"---\n{buf.getvalue()}---\n"


def _quote(text: str) -> str:
    return "\n".join(f"> {line}" if line else ">" for line in text.splitlines() or [""])


def _render_highlight(h: Highlight) -> str:
    lines = [_quote(h.highlighted_text), ""]
    details = [f"block {h.block_index}", h.color.value.lower()]
    if h.tags:
        details.append(" ".join(f"#{t}" for t in h.tags))
    lines.append(f"*{' · '.join(details)}*")
    if h.comment:
        lines.extend(["", h.comment])
    return "\n".join(lines)


def render_notes(entry: FileEntry, notes: FileNotes) -> str:
    """Markdown digest of one document's annotations."""
    parts = [_front_matter(entry, notes), f"# {entry.name}\n"]

    bookmarks = bookmarks_by_block(notes)
    if bookmarks:
        parts.append("## Bookmarks\n")
        for b in bookmarks:
            label = f" {b.label}" if b.label else ""
            parts.append(f"- block {b.block_index}{label}")
        parts.append("")

    highlights = highlights_by_block(notes)
    if highlights:
        parts.append("## Highlights\n")
        for h in highlights:
            parts.append(_render_highlight(h))
            parts.append("")

    return "\n".join(parts).rstrip("\n") + "\n"


def export_file_name(entry: FileEntry) -> str:
    stem = Path(entry.name).stem or "document"
    return f"{_UNSAFE.sub('-', stem).strip('-') or 'document'}-{entry.notes_file_name[:8]}.md"


class MarkdownExporter:
    def __init__(self, library: Library, out: Path):
        self.library = library
        self.out = out

    def export_all(self) -> list[Path]:
        self.out.mkdir(parents=True, exist_ok=True)
        written = []
        for entry, notes in self.library.all_notes():
            if not notes.highlights and not notes.bookmarks:
                continue
            path = self.out / export_file_name(entry)
            path.write_text(render_notes(entry, notes), encoding="utf-8")
            written.append(path)
        return written
