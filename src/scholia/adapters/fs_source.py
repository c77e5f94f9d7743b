from pathlib import Path
from urllib.parse import unquote, urlparse

from ..core.errors import DocumentUnreadable
from ..core.ports import DocumentSource


def uri_to_path(uri: str) -> Path:
    """Accept plain paths and file:// URIs."""
    if uri.startswith("file://"):
        return Path(unquote(urlparse(uri).path))
    return Path(uri)


def path_to_uri(path: Path) -> str:
    return path.expanduser().resolve().as_uri()


class FsDocumentSource(DocumentSource):
    """Reads Markdown documents from the local filesystem."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def open_document(self, uri: str) -> str:
        path = uri_to_path(uri)
        try:
            return path.read_text(encoding=self.encoding)
        except FileNotFoundError:
            raise DocumentUnreadable(uri, "file not found") from None
        except PermissionError:
            raise DocumentUnreadable(uri, "permission denied") from None
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentUnreadable(uri, str(e)) from e

    def resolve_display_name(self, uri: str) -> str:
        return uri_to_path(uri).name or "unknown.md"
