"""CLI for scholia - read Markdown, keep highlights, explore tags."""

import argparse
import json
import platform
import random
import shutil
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .adapters.fs_source import path_to_uri
from .adapters.json_codec import (
    block_to_dict,
    file_entry_to_dict,
    file_notes_to_dict,
    highlight_to_dict,
)
from .core.annotations import bookmarks_by_block, highlights_by_block
from .core.graph import build_graph
from .core.layout import ForceLayout, hit_test, to_layout_space
from .core.model import (
    Block,
    BlockQuote,
    CodeBlock,
    Heading,
    HighlightColor,
    OrderedList,
    Paragraph,
    UnorderedList,
)
from .core.selection import selectable_text, word_boundary
from .logging_config import configure_logging
from .runtime import build_runtime

COLORS = [c.value.lower() for c in HighlightColor]


def _uri(path: str) -> str:
    return path_to_uri(Path(path))


def _preview(text: str, width: int = 60) -> str:
    text = text.replace("\n", " ")
    return text if len(text) <= width else text[: width - 1] + "…"


def describe_block(block: Block) -> str:
    """One-line summary of a block for terminal listings."""
    if isinstance(block, Heading):
        return f"h{block.level}  {_preview(block.content.text)}"
    if isinstance(block, Paragraph):
        return f"p   {_preview(block.content.text)}"
    if isinstance(block, CodeBlock):
        lang = block.language or "code"
        return f"``` {lang} ({len(block.code.splitlines())} lines)"
    if isinstance(block, BlockQuote):
        return f">   quote ({len(block.children)} blocks)"
    if isinstance(block, OrderedList):
        return f"1.  list from {block.start_number} ({len(block.items)} items)"
    if isinstance(block, UnorderedList):
        return f"-   list ({len(block.items)} items)"
    return "--- rule"


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _color(name: str | None) -> HighlightColor | None:
    return HighlightColor(name.upper()) if name else None


def cmd_open(args: argparse.Namespace, rt: Any) -> int:
    """Open a document: parse, reconcile annotations, list blocks."""
    opened = rt.library.open_document(_uri(args.path))
    if not opened.ok:
        print(f"Error: {opened.error}", file=sys.stderr)
        return 1

    if args.json:
        _print_json(
            {
                "uri": opened.uri,
                "name": opened.name,
                "stale": opened.stale,
                "blocks": [block_to_dict(b) for b in opened.blocks],
                "notes": file_notes_to_dict(opened.notes),
            }
        )
        return 0

    if opened.stale:
        print(
            "Warning: document changed since it was annotated; "
            "highlights may point at different text (run `scholia ack` to accept)",
            file=sys.stderr,
        )

    marked = {h.block_index for h in opened.notes.highlights}
    bookmarked = {b.block_index for b in opened.notes.bookmarks}
    for i, block in enumerate(opened.blocks):
        flags = ("*" if i in bookmarked else " ") + ("=" if i in marked else " ")
        print(f"[{i:>3}]{flags} {describe_block(block)}")
    return 0


def cmd_blocks(args: argparse.Namespace, rt: Any) -> int:
    """Parse a document without touching annotations."""
    lib = rt.library
    text = lib.source.open_document(_uri(args.path))
    blocks = lib.parser.parse(text)
    if args.json:
        _print_json([block_to_dict(b) for b in blocks])
    else:
        for i, block in enumerate(blocks):
            print(f"[{i:>3}] {describe_block(block)}")
    return 0


def cmd_ls(args: argparse.Namespace, rt: Any) -> int:
    """List recently opened documents."""
    entries = rt.library.recent_documents()
    if args.json:
        _print_json([file_entry_to_dict(e) for e in entries])
        return 0
    for e in entries:
        print(f"{e.name}\t{e.highlight_count} highlights\t{e.bookmark_count} bookmarks\t{e.uri}")
    return 0


def cmd_notes(args: argparse.Namespace, rt: Any) -> int:
    """Show a document's bookmarks and highlights in block order."""
    notes = rt.library.notes_for(_uri(args.path))
    if notes is None:
        print(f"No annotations for {args.path}", file=sys.stderr)
        return 1
    if args.json:
        _print_json(file_notes_to_dict(notes))
        return 0
    for b in bookmarks_by_block(notes):
        label = f" {b.label}" if b.label else ""
        print(f"bookmark  [{b.block_index}]{label}")
    for h in highlights_by_block(notes):
        tags = " ".join(f"#{t}" for t in h.tags)
        print(f"{h.id}  [{h.block_index}:{h.start_offset}-{h.end_offset}] {h.color.value.lower()} "
              f"\"{_preview(h.highlighted_text, 40)}\" {tags}".rstrip())
        if h.comment:
            print(f"    {h.comment}")
    return 0


def _report_highlight(args: argparse.Namespace, highlight: Any) -> int:
    if highlight is None:
        print("Nothing highlighted: empty selection or block cannot be highlighted", file=sys.stderr)
        return 1
    if args.json:
        _print_json(highlight_to_dict(highlight))
    elif not args.quiet:
        print(highlight.id)
    return 0


def cmd_highlight_add(args: argparse.Namespace, rt: Any) -> int:
    """Highlight an offset range on a block."""
    lib = rt.library
    opened = lib.open_document(_uri(args.path))
    if not opened.ok:
        print(f"Error: {opened.error}", file=sys.stderr)
        return 1
    _, highlight = lib.highlight_selection(
        opened.uri,
        opened.blocks,
        args.block,
        args.start,
        args.end,
        color=_color(args.color) or HighlightColor.YELLOW,
        comment=args.comment,
        tags=args.tag,
    )
    return _report_highlight(args, highlight)


def cmd_highlight_word(args: argparse.Namespace, rt: Any) -> int:
    """Highlight the word around an offset."""
    lib = rt.library
    opened = lib.open_document(_uri(args.path))
    if not opened.ok:
        print(f"Error: {opened.error}", file=sys.stderr)
        return 1
    text = ""
    if 0 <= args.block < len(opened.blocks):
        text = selectable_text(opened.blocks[args.block]) or ""
    start, end = word_boundary(text, args.offset)
    _, highlight = lib.highlight_selection(
        opened.uri,
        opened.blocks,
        args.block,
        start,
        end,
        color=_color(args.color) or HighlightColor.YELLOW,
        comment=args.comment,
        tags=args.tag,
    )
    return _report_highlight(args, highlight)


def cmd_highlight_edit(args: argparse.Namespace, rt: Any) -> int:
    """Change colour, comment or tags of a highlight."""
    uri = _uri(args.path)
    notes = rt.library.edit_highlight(
        uri,
        args.id,
        color=_color(args.color),
        comment=args.comment,
        tags=args.tag if args.tag else None,
    )
    for h in notes.highlights:
        if h.id == args.id:
            if args.json:
                _print_json(highlight_to_dict(h))
            return 0
    print(f"Highlight {args.id} not found", file=sys.stderr)
    return 1


def cmd_highlight_rm(args: argparse.Namespace, rt: Any) -> int:
    """Delete a highlight."""
    uri = _uri(args.path)
    before = rt.library.notes_for(uri)
    notes = rt.library.delete_highlight(uri, args.id)
    if before is not None and len(notes.highlights) == len(before.highlights):
        print(f"Highlight {args.id} not found", file=sys.stderr)
        return 1
    return 0


def cmd_bookmark(args: argparse.Namespace, rt: Any) -> int:
    """Toggle a bookmark on a block."""
    uri = _uri(args.path)
    lib = rt.library
    if lib.notes_for(uri) is None:
        opened = lib.open_document(uri)
        if not opened.ok:
            print(f"Error: {opened.error}", file=sys.stderr)
            return 1
    notes = lib.toggle_bookmark(uri, args.block, args.label)
    on = any(b.block_index == args.block for b in notes.bookmarks)
    if not args.quiet:
        print(f"Bookmark {'added' if on else 'removed'} on block {args.block}")
    return 0


def cmd_ack(args: argparse.Namespace, rt: Any) -> int:
    """Accept document changes: store the current content hash."""
    rt.library.acknowledge_changes(_uri(args.path))
    return 0


def cmd_forget(args: argparse.Namespace, rt: Any) -> int:
    """Remove a document from the recent list; --purge also deletes its annotations."""
    rt.library.remove_from_recents(_uri(args.path), purge=args.purge)
    return 0


def cmd_rename(args: argparse.Namespace, rt: Any) -> int:
    """Rename a document on disk and carry its annotations along."""
    src = Path(args.path)
    dst = Path(args.new_path)
    if dst.exists():
        print(f"Error: {dst} already exists", file=sys.stderr)
        return 1
    old_uri = _uri(args.path)
    src.rename(dst)
    entry = rt.library.rename_document(old_uri, _uri(args.new_path), dst.name)
    if entry is None and not args.quiet:
        print(f"{src} was not in the index; renamed file only")
    return 0


def cmd_copy(args: argparse.Namespace, rt: Any) -> int:
    """Duplicate a document and list the copy among recent documents."""
    dst = Path(args.dest)
    if dst.exists():
        print(f"Error: {dst} already exists", file=sys.stderr)
        return 1
    shutil.copyfile(args.path, dst)
    rt.library.register_copy(_uri(args.dest), dst.name)
    return 0


def cmd_tags(args: argparse.Namespace, rt: Any) -> int:
    """List the tag vocabulary."""
    names = rt.library.suggest_tags(args.query or "")
    if args.json:
        _print_json(names)
    else:
        for name in names:
            print(name)
    return 0


def cmd_graph(args: argparse.Namespace, rt: Any) -> int:
    """Export the tag co-occurrence graph."""
    data = build_graph(rt.library.all_notes())

    if getattr(args, "dot", False):
        print("graph tags {")
        for node in data.nodes:
            print(f'  "{node.tag}" [label="{node.tag} ({node.count})"];')
        for edge in data.edges:
            print(f'  "{edge.tag1}" -- "{edge.tag2}" [weight={edge.weight}];')
        print("}")
    else:
        _print_json(data.to_dict())
    return 0


def _layout_engine(args: argparse.Namespace, rt: Any) -> ForceLayout:
    if args.seed is None:
        return rt.layout
    return ForceLayout(rt.layout.params, rng=random.Random(args.seed))


def cmd_layout(args: argparse.Namespace, rt: Any) -> int:
    """Compute node positions for the tag graph."""
    data = build_graph(rt.library.all_notes())
    positions = _layout_engine(args, rt).run(data, steps=args.steps)
    _print_json({tag: {"x": round(x, 2), "y": round(y, 2)} for tag, (x, y) in positions.items()})
    return 0


def cmd_hit(args: argparse.Namespace, rt: Any) -> int:
    """Report which tag node lies under a point of the layout."""
    if args.seed is None and not args.quiet:
        print(
            "Warning: no --seed given; the layout is re-randomised and may not match "
            "earlier `scholia layout` output",
            file=sys.stderr,
        )
    point = (args.x, args.y)
    if args.viewport:
        point = to_layout_space(point, tuple(args.pan), args.scale, tuple(args.viewport))
    data = build_graph(rt.library.all_notes())
    positions = _layout_engine(args, rt).run(data, steps=args.steps)
    node = hit_test(data, positions, point)
    if node is None:
        if not args.quiet:
            print("No node at that point", file=sys.stderr)
        return 1
    if args.json:
        _print_json(
            {"tag": node.tag, "count": node.count, "highlights": [r.highlight_id for r in node.highlights]}
        )
    else:
        print(f"{node.tag} ({node.count})")
        for ref in node.highlights:
            print(f"  {ref.file_name} [{ref.block_index}] {_preview(ref.highlighted_text, 50)}")
    return 0


def cmd_stale(args: argparse.Namespace, rt: Any) -> int:
    """List documents whose annotations predate their current content."""
    uris = rt.library.stale_documents()
    if args.json:
        _print_json(uris)
    else:
        for uri in uris:
            print(uri)
    return 0


def cmd_export(args: argparse.Namespace, rt: Any) -> int:
    """Write a Markdown digest per annotated document."""
    from .export.markdown import MarkdownExporter

    written = MarkdownExporter(rt.library, Path(args.outdir)).export_all()
    if not args.quiet:
        print(f"Exported {len(written)} documents to {args.outdir}")
    return 0


def cmd_watch(args: argparse.Namespace, rt: Any) -> int:
    """Watch a documents directory and report stale annotations."""
    try:
        from .watch import watch_documents
    except ImportError as e:
        print(
            "Error: watchdog library not installed. Install with: pip install scholia[watch]",
            file=sys.stderr,
        )
        print(f"Details: {e}", file=sys.stderr)
        return 1

    return watch_documents(
        docs_path=Path(args.dir),
        library=rt.library,
        debounce_ms=args.debounce_ms,
        quiet=args.quiet,
        json_output=args.json,
    )


def cmd_serve(args: argparse.Namespace, rt: Any) -> int:
    """Start local JSON API server."""
    try:
        import uvicorn

        from .api.app import create_app, generate_token
    except ImportError as e:
        print(
            "Error: API dependencies not installed. "
            "Install with: pip install scholia[api]",
            file=sys.stderr
        )
        print(f"Details: {e}", file=sys.stderr)
        return 1

    token_arg = getattr(args, 'token', 'auto')
    token = None

    if token_arg == 'auto':
        token = generate_token()
        print(f"Generated bearer token: {token}")
        print(f"Use in requests: Authorization: Bearer {token}")
    elif token_arg == 'none':
        print("Warning: Running without authentication. Only use in trusted environments.")
        token = None
    else:
        token = token_arg

    app = create_app(rt, token=token, enable_cors=args.cors)

    print(f"Starting server on http://{args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_level="info")

    return 0


def _add_highlight_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--color", choices=COLORS, help="Highlight colour (default: yellow)")
    p.add_argument("--comment", help="Comment attached to the highlight")
    p.add_argument("--tag", action="append", default=[], help="Tag (repeatable)")


def _version_string() -> str:
    return f"scholia {__version__} (python {platform.python_version()}, platform {platform.system().lower()})"


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="scholia", description="Scholia CLI"
    )
    parser.add_argument("--version", action="version", version=_version_string())
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: search cwd/scholia.toml, store/scholia.toml)",
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Directory holding annotation records (overrides config)",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Minimize output"
    )
    parser.add_argument(
        "--json", action="store_true", help="Machine-readable output"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging"
    )

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    parser_open = subparsers.add_parser("open", help="Open a document and list its blocks")
    parser_open.add_argument("path", help="Markdown file")

    parser_blocks = subparsers.add_parser("blocks", help="Parse a document without recording it")
    parser_blocks.add_argument("path", help="Markdown file")

    subparsers.add_parser("ls", help="List recently opened documents")

    parser_notes = subparsers.add_parser("notes", help="Show a document's annotations")
    parser_notes.add_argument("path", help="Markdown file")

    parser_hl = subparsers.add_parser("highlight", help="Manage highlights")
    hl_sub = parser_hl.add_subparsers(dest="highlight_cmd", required=True)

    parser_hl_add = hl_sub.add_parser("add", help="Highlight an offset range")
    parser_hl_add.add_argument("path", help="Markdown file")
    parser_hl_add.add_argument("block", type=int, help="Block index")
    parser_hl_add.add_argument("start", type=int, help="Start offset")
    parser_hl_add.add_argument("end", type=int, help="End offset (exclusive)")
    _add_highlight_options(parser_hl_add)

    parser_hl_word = hl_sub.add_parser("word", help="Highlight the word at an offset")
    parser_hl_word.add_argument("path", help="Markdown file")
    parser_hl_word.add_argument("block", type=int, help="Block index")
    parser_hl_word.add_argument("offset", type=int, help="Offset inside the word")
    _add_highlight_options(parser_hl_word)

    parser_hl_edit = hl_sub.add_parser("edit", help="Edit a highlight")
    parser_hl_edit.add_argument("path", help="Markdown file")
    parser_hl_edit.add_argument("id", help="Highlight ID")
    _add_highlight_options(parser_hl_edit)

    parser_hl_rm = hl_sub.add_parser("rm", help="Delete a highlight")
    parser_hl_rm.add_argument("path", help="Markdown file")
    parser_hl_rm.add_argument("id", help="Highlight ID")

    parser_bm = subparsers.add_parser("bookmark", help="Toggle a bookmark on a block")
    parser_bm.add_argument("path", help="Markdown file")
    parser_bm.add_argument("block", type=int, help="Block index")
    parser_bm.add_argument("--label", help="Bookmark label")

    parser_ack = subparsers.add_parser("ack", help="Accept changes to an annotated document")
    parser_ack.add_argument("path", help="Markdown file")

    parser_forget = subparsers.add_parser("forget", help="Remove from recent documents")
    parser_forget.add_argument("path", help="Markdown file")
    parser_forget.add_argument(
        "--purge", action="store_true", help="Also delete the document's annotations"
    )

    parser_rename = subparsers.add_parser("rename", help="Rename a document, keeping annotations")
    parser_rename.add_argument("path", help="Markdown file")
    parser_rename.add_argument("new_path", help="New file path")

    parser_copy = subparsers.add_parser("copy", help="Duplicate a document")
    parser_copy.add_argument("path", help="Markdown file")
    parser_copy.add_argument("dest", help="Destination path")

    parser_tags = subparsers.add_parser("tags", help="List tag vocabulary")
    parser_tags.add_argument("--query", help="Substring filter")

    parser_graph = subparsers.add_parser("graph", help="Export tag graph")
    parser_graph.add_argument(
        "--dot", action="store_true", help="Output in DOT format instead of JSON"
    )

    parser_layout = subparsers.add_parser("layout", help="Lay out the tag graph")
    parser_layout.add_argument("--steps", type=int, default=None, help="Simulation steps")
    parser_layout.add_argument("--seed", type=int, default=None, help="Random seed")

    parser_hit = subparsers.add_parser("hit", help="Find the tag node at a layout point")
    parser_hit.add_argument("x", type=float)
    parser_hit.add_argument("y", type=float)
    parser_hit.add_argument("--steps", type=int, default=None, help="Simulation steps")
    parser_hit.add_argument("--seed", type=int, default=None, help="Random seed")
    parser_hit.add_argument(
        "--viewport", type=float, nargs=2, metavar=("W", "H"),
        help="Treat x y as screen coordinates in a viewport of this size",
    )
    parser_hit.add_argument(
        "--pan", type=float, nargs=2, metavar=("X", "Y"), default=[0.0, 0.0],
        help="Screen pan offset (with --viewport)",
    )
    parser_hit.add_argument("--scale", type=float, default=1.0, help="Zoom factor (with --viewport)")

    subparsers.add_parser("stale", help="List documents with stale annotations")

    parser_export = subparsers.add_parser("export", help="Export annotations as Markdown")
    parser_export.add_argument("outdir", help="Output directory")

    parser_watch = subparsers.add_parser("watch", help="Watch documents for changes")
    parser_watch.add_argument("dir", help="Documents directory")
    parser_watch.add_argument(
        "--debounce-ms", type=int, default=150,
        help="Debounce window in milliseconds (default: 150)"
    )

    parser_serve = subparsers.add_parser("serve", help="Start local JSON API server")
    parser_serve.add_argument("--host", default="127.0.0.1", help="Host (default: 127.0.0.1)")
    parser_serve.add_argument("--port", type=int, default=8765, help="Port (default: 8765)")
    parser_serve.add_argument(
        "--token", default="auto",
        help="Bearer token: 'auto' to generate, 'none' to disable, or a literal token"
    )
    parser_serve.add_argument("--cors", action="store_true", help="Enable CORS")

    args = parser.parse_args()

    configure_logging(verbose=args.verbose)

    rt = build_runtime(store_path=args.store, config_path=args.config)

    handlers = {
        "open": cmd_open,
        "blocks": cmd_blocks,
        "ls": cmd_ls,
        "notes": cmd_notes,
        "bookmark": cmd_bookmark,
        "ack": cmd_ack,
        "forget": cmd_forget,
        "rename": cmd_rename,
        "copy": cmd_copy,
        "tags": cmd_tags,
        "graph": cmd_graph,
        "layout": cmd_layout,
        "hit": cmd_hit,
        "stale": cmd_stale,
        "export": cmd_export,
        "watch": cmd_watch,
        "serve": cmd_serve,
    }

    if args.cmd == "highlight":
        highlight_handlers = {
            "add": cmd_highlight_add,
            "word": cmd_highlight_word,
            "edit": cmd_highlight_edit,
            "rm": cmd_highlight_rm,
        }
        handler = highlight_handlers.get(args.highlight_cmd)
    else:
        handler = handlers.get(args.cmd)

    if handler:
        try:
            exit_code = handler(args, rt)
            sys.exit(exit_code)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        print(f"Unknown command: {args.cmd}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
