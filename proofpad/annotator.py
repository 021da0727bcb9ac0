"""Span annotator — splits text into plain and highlighted segments.

The output must always join back to the exact input text: segments only
mark where a match sits, they never add, drop or reorder characters.
"""
import html
from dataclasses import dataclass
from enum import Enum
from typing import Optional, List, Sequence

from proofpad.matches import Match


class SegmentKind(Enum):
    PLAIN = "plain"
    HIGHLIGHTED = "highlighted"


@dataclass(frozen=True)
class Segment:
    kind: SegmentKind
    text: str
    start: int                          # index of the segment in the buffer
    match_index: Optional[int] = None   # index into the match set (highlighted only)
    selected: bool = False

    @property
    def end(self) -> int:
        return self.start + len(self.text)

    @property
    def highlighted(self) -> bool:
        return self.kind is SegmentKind.HIGHLIGHTED


def _clamp(n: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, n))


def annotate(text: str, matches: Sequence[Match],
             selected_index: Optional[int] = None) -> List[Segment]:
    """Build the segment list for ``text`` with ``matches`` highlighted.

    Matches are walked by ascending offset. A match that starts before the
    end of an already emitted highlight is skipped entirely (first match
    wins); spans that clamp to nothing are skipped too.
    """
    segments: List[Segment] = []
    size = len(text)
    cursor = 0

    # sorted() is stable: equal offsets keep their original order
    ordered = sorted(enumerate(matches), key=lambda item: item[1].offset)

    for index, m in ordered:
        start = _clamp(m.offset, 0, size)
        end = _clamp(m.offset + m.length, 0, size)
        if start < cursor or end <= start:
            continue

        if start > cursor:
            segments.append(Segment(SegmentKind.PLAIN, text[cursor:start], cursor))
        segments.append(Segment(
            SegmentKind.HIGHLIGHTED,
            text[start:end],
            start,
            match_index=index,
            selected=(index == selected_index),
        ))
        cursor = end

    if cursor < size:
        segments.append(Segment(SegmentKind.PLAIN, text[cursor:], cursor))

    return segments


def segment_at(segments: Sequence[Segment], position: int) -> Optional[Segment]:
    """Return the segment containing buffer ``position``.

    A position at a boundary belongs to the segment that starts there;
    the very end of the text belongs to the last segment.
    """
    for seg in segments:
        if seg.start <= position < seg.end:
            return seg
    if segments and position == segments[-1].end:
        return segments[-1]
    return None


def extract_snippet(text: str, match: Match, radius: int = 28) -> dict:
    """Context around a match for list previews, with ellipses at cut edges."""
    offset = _clamp(match.offset, 0, len(text))
    stop = _clamp(match.offset + match.length, offset, len(text))
    start = _clamp(offset - radius, 0, len(text))
    end = _clamp(stop + radius, 0, len(text))
    return {
        "prefix": "…" if start > 0 else "",
        "left": text[start:offset],
        "mid": text[offset:stop],
        "right": text[stop:end],
        "suffix": "…" if end < len(text) else "",
    }


def segments_to_html(segments: Sequence[Segment]) -> str:
    """Render segments as escaped HTML; highlights carry ``data-idx``."""
    parts = []
    for seg in segments:
        escaped = html.escape(seg.text, quote=False)
        if not seg.highlighted:
            parts.append(escaped)
            continue
        cls = "pp-highlight pp-selected" if seg.selected else "pp-highlight"
        parts.append(f'<span data-idx="{seg.match_index}" class="{cls}">{escaped}</span>')
    return "".join(parts)
