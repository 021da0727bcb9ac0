"""Text buffer — the authoritative document text and its generation."""
import re
from dataclasses import dataclass

_WORD_RE = re.compile(r"\S+")
_SENTENCE_END_RE = re.compile(r"[.!?]+")


@dataclass(frozen=True)
class TextStats:
    words: int
    chars: int
    sentences: int


class TextBuffer:
    """Holds the text being edited.

    Every change bumps ``generation`` so match sets can be tied to the
    exact snapshot they were computed against.
    """

    def __init__(self, text: str = ""):
        self._text = text
        self._generation = 0

    @property
    def text(self) -> str:
        return self._text

    @property
    def generation(self) -> int:
        return self._generation

    def set_text(self, text: str) -> bool:
        """Replace the text. Returns False (and keeps the generation) if unchanged."""
        if text == self._text:
            return False
        self._text = text
        self._generation += 1
        return True

    def stats(self) -> TextStats:
        return compute_stats(self._text)

    def __len__(self) -> int:
        return len(self._text)


def compute_stats(text: str) -> TextStats:
    return TextStats(
        words=len(_WORD_RE.findall(text.strip())),
        chars=len(text),
        sentences=len(_SENTENCE_END_RE.findall(text)),
    )
