"""Watch mode for scholia - report annotations that went stale as documents change."""

import json
import signal
import sys
import time
from pathlib import Path
from typing import Any, Callable

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .adapters.fs_source import path_to_uri
from .core.errors import DocumentUnreadable
from .core.library import Library


class DebounceHandler(FileSystemEventHandler):
    """File system event handler with debouncing."""

    def __init__(
        self,
        on_batch: Callable[[set[Path], set[Path]], None],
        debounce_ms: int = 150,
    ):
        super().__init__()
        self.on_batch = on_batch
        self.debounce_ms = debounce_ms

        self.changed: set[Path] = set()
        self.deleted: set[Path] = set()
        self.last_event_time = 0.0

    def _should_skip(self, path: Path) -> bool:
        name = path.name
        if name.startswith("."):
            return True
        # editor temp/swap files
        if name.endswith("~") or name.endswith(".swp"):
            return True
        return not name.endswith(".md")

    def _track(self, event: FileSystemEvent, bucket: set[Path]) -> None:
        if event.is_directory:
            return
        path = Path(str(event.src_path))
        if self._should_skip(path):
            return
        bucket.add(path)
        self.last_event_time = time.time()

    def on_created(self, event: FileSystemEvent) -> None:
        self._track(event, self.changed)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._track(event, self.changed)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._track(event, self.deleted)

    def check_and_flush(self) -> None:
        """Flush once the debounce window has passed since the last event."""
        if not (self.changed or self.deleted):
            return
        elapsed = (time.time() - self.last_event_time) * 1000
        if elapsed >= self.debounce_ms:
            self.flush()

    def flush(self) -> None:
        if not (self.changed or self.deleted):
            return
        # the observer thread keeps adding to whichever sets are current
        changed, self.changed = self.changed, set()
        deleted, self.deleted = self.deleted, set()
        if self.on_batch:
            self.on_batch(changed, deleted)


def check_batch(library: Library, changed: set[Path], deleted: set[Path]) -> dict[str, Any]:
    """Classify a batch of filesystem changes against the annotation index."""
    indexed = {entry.uri for entry in library.load_index().files}
    stale: list[str] = []
    fresh: list[str] = []
    for path in sorted(changed):
        uri = path_to_uri(path)
        if uri not in indexed:
            continue
        try:
            (stale if library.is_stale(uri) else fresh).append(uri)
        except DocumentUnreadable as e:
            logger.debug(str(e))
    missing = sorted(path_to_uri(p) for p in deleted if path_to_uri(p) in indexed)
    return {"type": "batch", "stale": stale, "fresh": fresh, "missing": missing}


def watch_documents(
    docs_path: Path,
    library: Library,
    debounce_ms: int = 150,
    quiet: bool = False,
    json_output: bool = False,
) -> int:
    """
    Watch a documents directory and report annotated documents whose
    content no longer matches the hash their annotations were made against.

    Records are never modified; run ``scholia ack`` to accept a change.
    """
    if not docs_path.exists():
        print(f"Error: Directory not found: {docs_path}", file=sys.stderr)
        return 1

    running = True

    def handle_batch(changed: set[Path], deleted: set[Path]) -> None:
        event = check_batch(library, changed, deleted)
        if json_output:
            print(json.dumps(event), flush=True)
        elif not quiet:
            for uri in event["stale"]:
                print(f"Stale annotations: {uri}", flush=True)
            for uri in event["missing"]:
                print(f"Document removed: {uri}", flush=True)

    def signal_handler(signum: int, frame: Any) -> None:
        nonlocal running
        running = False
        if not quiet and not json_output:
            print("\nShutting down...", flush=True)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    handler = DebounceHandler(handle_batch, debounce_ms)
    observer = Observer()
    observer.schedule(handler, str(docs_path), recursive=True)

    if not quiet and not json_output:
        print(f"Watching {docs_path} (debounce: {debounce_ms}ms)", flush=True)
        print("Press Ctrl+C to stop", flush=True)

    observer.start()

    try:
        while running:
            time.sleep(0.1)
            handler.check_and_flush()
    finally:
        handler.flush()
        observer.stop()
        observer.join()

    if not quiet and not json_output:
        print("Watch stopped", flush=True)

    return 0
