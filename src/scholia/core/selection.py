"""Text selection helpers over parsed blocks."""

from .model import Block, Heading, Paragraph


def selectable_text(block: Block) -> str | None:
    """Flattened text a highlight may span, or None for non-selectable blocks."""
    if isinstance(block, (Heading, Paragraph)):
        return block.content.text
    return None


def clamp_span(text: str, start: int, end: int) -> tuple[int, int]:
    """
    Clamp a selection into the bounds of ``text`` and order its ends.

        >>> clamp_span("hello", -3, 99)
        (0, 5)
        >>> clamp_span("hello", 4, 1)
        (1, 4)
    """
    n = len(text)
    start = min(max(start, 0), n)
    end = min(max(end, 0), n)
    if end < start:
        start, end = end, start
    return start, end


def word_boundary(text: str, offset: int) -> tuple[int, int]:
    """
    Expand an offset to the run of non-whitespace around it.

        >>> word_boundary("Some bold text.", 6)
        (5, 9)
    """
    if not text or offset < 0 or offset >= len(text):
        return offset, offset
    start = end = offset
    while start > 0 and not text[start - 1].isspace():
        start -= 1
    while end < len(text) and not text[end].isspace():
        end += 1
    return start, end
