"""scholia - a Markdown reader's annotation core."""

__version__ = "0.1.0"
