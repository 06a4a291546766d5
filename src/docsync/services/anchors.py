"""Text anchors: capture a selection and re-locate it in an edited document."""

from collections.abc import Iterable
from dataclasses import dataclass

from ..models import CommentStatus
from ..schemas.comment import CommentView


@dataclass
class Selection:
    """A user selection in the document, as reported by the editor."""

    document: str
    start: int
    end: int


@dataclass
class Anchor:
    """A durable anchor. ``text`` is authoritative, offsets are only a hint."""

    text: str
    start: int
    end: int


@dataclass
class AnchorLocation:
    """1-based line placement of an anchor (GitHub ``line``/``start_line``)."""

    line: int
    start_line: int | None = None  # Only set when the anchor spans lines
    offset: int = 0


def resolve_anchor(selection: Selection) -> Anchor:
    """Capture the exact selected substring and its current offsets."""
    start = max(0, min(selection.start, selection.end))
    end = min(len(selection.document), max(selection.start, selection.end))
    return Anchor(text=selection.document[start:end], start=start, end=end)


def char_offset_to_line(document: str, offset: int) -> int:
    """Convert a character offset to a 1-based line number."""
    clamped = max(0, min(offset, len(document)))
    return document.count("\n", 0, clamped) + 1


def line_to_char_offset(document: str, line: int) -> int:
    """Convert a 1-based line number to the offset of the start of that line."""
    offset = 0
    for text in document.split("\n")[: max(0, line - 1)]:
        offset += len(text) + 1  # +1 for the newline
    return min(offset, len(document))


def _occurrences(document: str, text: str) -> list[int]:
    found: list[int] = []
    idx = document.find(text)
    while idx != -1:
        found.append(idx)
        idx = document.find(text, idx + 1)
    return found


def locate(
    document: str,
    anchor_text: str,
    hint_offset: int | None = None,
) -> AnchorLocation | None:
    """
    Find ``anchor_text`` in ``document``.

    Without a hint the first occurrence wins. With a hint, the occurrence
    closest to it wins; on equal distance the one at or after the hint wins.
    Exact, case-sensitive match. Returns None when the text does not occur
    (or is empty), which is the orphan signal.
    """
    if not anchor_text:
        return None

    occurrences = _occurrences(document, anchor_text)
    if not occurrences:
        return None

    best = occurrences[0]
    if hint_offset is not None and len(occurrences) > 1:
        # Key sorts by distance, then prefers occurrences at or after the hint
        best = min(occurrences, key=lambda occ: (abs(occ - hint_offset), occ < hint_offset))

    start_line = char_offset_to_line(document, best)
    # Offset of the last anchored character; a trailing newline stays on its line
    end_line = char_offset_to_line(document, best + len(anchor_text) - 1)
    if start_line == end_line:
        return AnchorLocation(line=end_line, offset=best)
    return AnchorLocation(line=end_line, start_line=start_line, offset=best)


def is_orphaned(document: str, anchor_text: str) -> bool:
    """True iff the anchor can no longer be located in the document."""
    return locate(document, anchor_text) is None


def anchor_from_line(document: str, line: int | None) -> Anchor:
    """
    Build an anchor for a remote comment placed on ``line``.

    The anchor text is the trimmed line content. File-level comments (no
    line) get an empty anchor.
    """
    if not line or line < 1:
        return Anchor(text="", start=0, end=0)

    lines = document.split("\n")
    line = min(line, len(lines))
    line_text = lines[line - 1]
    start = line_to_char_offset(document, line)
    stripped = line_text.strip()
    if stripped:
        start += line_text.index(stripped)
    return Anchor(text=stripped, start=start, end=start + len(stripped))


def matches_click(stored: str, clicked: str) -> bool:
    """Loose match used to open a comment from its highlighted text."""
    if not stored or not clicked:
        return False
    return stored == clicked or stored in clicked or clicked in stored


def find_comment_for_click(
    comments: Iterable[CommentView],
    clicked_text: str,
    click_offset: int | None = None,
) -> CommentView | None:
    """
    Pick the active root comment whose anchor matches the clicked text.

    Several comments can match when anchors overlap; the one whose stored
    start offset is nearest to ``click_offset`` wins, else the first.
    """
    candidates = [
        c
        for c in comments
        if c.is_root
        and c.status == CommentStatus.ACTIVE
        and matches_click(c.anchor_text, clicked_text)
    ]
    if not candidates:
        return None
    if click_offset is None or len(candidates) == 1:
        return candidates[0]
    return min(candidates, key=lambda c: abs(c.anchor_start - click_offset))
