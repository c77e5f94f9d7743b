"""Utility functions for scholia."""

import hashlib
import time


def _md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def content_hash(text: str) -> str:
    """
    Hash of raw document text, used only to notice that a document changed
    since it was annotated.

    Examples:
        >>> content_hash("")
        'd41d8cd98f00b204e9800998ecf8427e'
    """
    return _md5(text)


def notes_file_name_for_key(uri: str) -> str:
    """
    Stable storage key for a document identifier.

    The key depends only on the identifier, never on the document content,
    so a record survives edits to the document it annotates.

        >>> notes_file_name_for_key("file:///tmp/a.md")
        '462b905e693c564babfedf8e8fb8d91f.json'
    """
    return f"{_md5(uri)}.json"


def now_millis() -> int:
    return int(time.time() * 1000)
