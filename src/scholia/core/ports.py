from typing import Protocol

from .model import Block, DocumentIndex, DocumentUri, FileNotes


class ParserStrategy(Protocol):
    """
    Parse Markdown into top-level blocks. Total: never raises on any input.
    """

    def parse(self, text: str) -> list[Block]:
        pass


class RecordStorage(Protocol):
    """
    Flat key-value byte store: one record per key, whole-record writes.
    """

    def read_bytes(self, key: str) -> bytes | None:
        pass

    def write_bytes(self, key: str, data: bytes) -> None:
        pass

    def delete(self, key: str) -> None:
        pass


class DocumentSource(Protocol):
    """
    Host-supplied access to the documents being read. Raises
    DocumentUnreadable when the text cannot be produced.
    """

    def open_document(self, uri: DocumentUri) -> str:
        pass

    def resolve_display_name(self, uri: DocumentUri) -> str:
        pass


class RecordCodec(Protocol):
    """
    Bytes <-> record conversion. Decoders raise CorruptRecord.
    """

    def encode_notes(self, notes: FileNotes) -> bytes:
        pass

    def decode_notes(self, raw: bytes) -> FileNotes:
        pass

    def encode_index(self, index: DocumentIndex) -> bytes:
        pass

    def decode_index(self, raw: bytes) -> DocumentIndex:
        pass


class IdGenerator(Protocol):
    def new_id(self) -> str:
        pass
