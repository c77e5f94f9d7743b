"""Error types surfaced by scholia."""


class DocumentUnreadable(Exception):
    """The document source could not return text for a uri."""

    def __init__(self, uri: str, reason: str = ""):
        self.uri = uri
        self.reason = reason
        msg = f"Could not read {uri}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class CorruptRecord(ValueError):
    """A stored record could not be decoded."""


class NotFound(LookupError):
    """No annotation record exists for a document that was never opened."""
