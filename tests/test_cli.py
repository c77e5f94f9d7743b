"""Tests for the scholia command line."""

import json
import subprocess
import sys
import tempfile
from pathlib import Path

import pytest

from scholia import __version__


def run(store, *args, cwd=None):
    return subprocess.run(
        [sys.executable, "-m", "scholia.cli", "--store", str(store), *args],
        capture_output=True,
        text=True,
        cwd=cwd,
    )


@pytest.fixture
def workspace():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        doc = root / "doc.md"
        doc.write_text("# Title\n\nSome **bold** text.\n\n```\ncode\n```\n", encoding="utf-8")
        yield root, root / "store", doc


def test_version():
    """Test --version prints package and interpreter info."""
    result = subprocess.run(
        [sys.executable, "-m", "scholia.cli", "--version"], capture_output=True, text=True
    )
    assert result.returncode == 0
    assert result.stdout.startswith(f"scholia {__version__} (python ")


def test_open_lists_blocks(workspace):
    """Test opening a document lists its blocks."""
    root, store, doc = workspace
    result = run(store, "open", str(doc), cwd=root)

    assert result.returncode == 0
    lines = result.stdout.splitlines()
    assert len(lines) == 3
    assert "h1  Title" in lines[0]
    assert "p   Some bold text." in lines[1]
    assert "```" in lines[2]
    assert (store / "index.json").exists()


def test_open_missing_file(workspace):
    """Test a missing document exits with an error."""
    root, store, _ = workspace
    result = run(store, "open", str(root / "nope.md"), cwd=root)
    assert result.returncode == 1
    assert "Could not read" in result.stderr


def test_highlight_word_and_notes(workspace):
    """Test highlighting a word and listing the document's notes."""
    root, store, doc = workspace
    result = run(store, "highlight", "word", str(doc), "1", "6", "--tag", "Key", "--color", "blue", cwd=root)
    assert result.returncode == 0
    hid = result.stdout.strip()

    notes = json.loads(run(store, "--json", "notes", str(doc), cwd=root).stdout)
    assert len(notes["highlights"]) == 1
    h = notes["highlights"][0]
    assert h["id"] == hid
    assert h["highlightedText"] == "bold"
    assert h["color"] == "BLUE"
    assert h["tags"] == ["key"]

    assert run(store, "tags", cwd=root).stdout.split() == ["key"]

    assert run(store, "highlight", "rm", str(doc), hid, cwd=root).returncode == 0
    notes = json.loads(run(store, "--json", "notes", str(doc), cwd=root).stdout)
    assert notes["highlights"] == []


def test_highlight_code_block_rejected(workspace):
    """Test code blocks cannot be highlighted."""
    root, store, doc = workspace
    result = run(store, "highlight", "add", str(doc), "2", "0", "4", cwd=root)
    assert result.returncode == 1
    assert "Nothing highlighted" in result.stderr


def test_bookmark_toggle(workspace):
    """Test toggling a bookmark twice."""
    root, store, doc = workspace
    assert "added" in run(store, "bookmark", str(doc), "0", cwd=root).stdout
    assert "removed" in run(store, "bookmark", str(doc), "0", cwd=root).stdout


def test_stale_and_ack(workspace):
    """Test changed documents are listed as stale until acknowledged."""
    root, store, doc = workspace
    run(store, "open", str(doc), cwd=root)
    doc.write_text("# Title\n\nDifferent now.\n", encoding="utf-8")

    stale = json.loads(run(store, "--json", "stale", cwd=root).stdout)
    assert stale == [doc.resolve().as_uri()]

    assert run(store, "ack", str(doc), cwd=root).returncode == 0
    assert json.loads(run(store, "--json", "stale", cwd=root).stdout) == []


def test_graph_layout_and_hit(workspace):
    """Test the tag graph commands end to end."""
    root, store, doc = workspace
    run(store, "highlight", "add", str(doc), "1", "0", "4", "--tag", "a", "--tag", "b", cwd=root)

    graph = json.loads(run(store, "graph", cwd=root).stdout)
    assert graph["edges"] == [{"tag1": "a", "tag2": "b", "weight": 1}]

    dot = run(store, "graph", "--dot", cwd=root).stdout
    assert dot.startswith("graph tags {")
    assert '"a" -- "b"' in dot

    layout = json.loads(run(store, "layout", "--seed", "1", cwd=root).stdout)
    assert set(layout) == {"a", "b"}

    x, y = layout["a"]["x"], layout["a"]["y"]
    hit = run(store, "--json", "hit", str(x), str(y), "--seed", "1", cwd=root)
    assert hit.returncode == 0
    assert json.loads(hit.stdout)["tag"] == "a"


def test_rename_and_copy(workspace):
    """Test rename carries annotations and copy registers a new entry."""
    root, store, doc = workspace
    run(store, "bookmark", str(doc), "0", cwd=root)

    renamed = root / "renamed.md"
    assert run(store, "rename", str(doc), str(renamed), cwd=root).returncode == 0
    assert renamed.exists() and not doc.exists()
    notes = json.loads(run(store, "--json", "notes", str(renamed), cwd=root).stdout)
    assert len(notes["bookmarks"]) == 1

    copy = root / "copy.md"
    assert run(store, "copy", str(renamed), str(copy), cwd=root).returncode == 0
    listing = json.loads(run(store, "--json", "ls", cwd=root).stdout)
    assert {e["name"] for e in listing} == {"renamed.md", "copy.md"}

    assert run(store, "forget", str(copy), cwd=root).returncode == 0
    listing = json.loads(run(store, "--json", "ls", cwd=root).stdout)
    assert [e["name"] for e in listing] == ["renamed.md"]


def test_export(workspace):
    """Test exporting annotations to Markdown files."""
    root, store, doc = workspace
    run(store, "highlight", "add", str(doc), "0", "0", "5", cwd=root)
    out = root / "out"

    result = run(store, "export", str(out), cwd=root)
    assert result.returncode == 0
    files = list(out.glob("*.md"))
    assert len(files) == 1
    assert "> Title" in files[0].read_text(encoding="utf-8")


def test_forget_purge(workspace):
    """Test forget --purge drops the annotations as well."""
    root, store, doc = workspace
    run(store, "bookmark", str(doc), "0", cwd=root)
    assert run(store, "forget", "--purge", str(doc), cwd=root).returncode == 0

    assert json.loads(run(store, "--json", "ls", cwd=root).stdout) == []
    result = run(store, "notes", str(doc), cwd=root)
    assert result.returncode == 1


def test_editing_unopened_document_reports_plain_message(workspace):
    """Test the missing-record error is printed without repr quoting."""
    root, store, doc = workspace
    result = run(store, "highlight", "edit", str(doc), "some-id", "--comment", "x", cwd=root)

    assert result.returncode == 1
    assert "Error: No annotations recorded for" in result.stderr
    assert "Error: '" not in result.stderr


def test_hit_warns_without_seed_and_maps_screen_points(workspace):
    """Test hit warns about random layouts and accepts screen coordinates."""
    root, store, doc = workspace
    run(store, "highlight", "add", str(doc), "1", "0", "4", "--tag", "a", "--tag", "b", cwd=root)

    unseeded = run(store, "hit", "0", "0", cwd=root)
    assert "no --seed given" in unseeded.stderr

    layout = json.loads(run(store, "layout", "--seed", "3", cwd=root).stdout)
    x, y = layout["a"]["x"], layout["a"]["y"]
    # viewport 800x600 centred, zoom 2, no pan
    sx, sy = 400 + 2 * x, 300 + 2 * y
    hit = run(
        store, "--json", "hit", str(sx), str(sy), "--seed", "3",
        "--viewport", "800", "600", "--scale", "2", cwd=root,
    )
    assert hit.returncode == 0
    assert "no --seed given" not in hit.stderr
    assert json.loads(hit.stdout)["tag"] == "a"
