"""Match model — positional findings from the analysis service."""
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, List, Iterator

logger = logging.getLogger(__name__)


class Severity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def label(self) -> str:
        return _SEVERITY_LABELS[self]


_SEVERITY_LABELS = {
    Severity.CRITICAL: "Critical",
    Severity.WARNING: "Style",
    Severity.INFO: "Suggestion",
}

# LanguageTool rule.issueType → severity
_ISSUE_SEVERITY = {
    "misspelling": Severity.CRITICAL,
    "grammar": Severity.CRITICAL,
    "style": Severity.WARNING,
}


def classify_issue_type(issue_type: str) -> Severity:
    return _ISSUE_SEVERITY.get((issue_type or "").lower(), Severity.INFO)


@dataclass(frozen=True)
class Match:
    offset: int             # code-point index into the text it was computed for
    length: int             # number of code points covered, always > 0
    message: str
    short_message: str = ""
    issue_type: str = ""    # e.g. 'misspelling', 'grammar', 'style'
    replacements: tuple = ()
    rule_id: str = ""
    category: str = ""

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def severity(self) -> Severity:
        return classify_issue_type(self.issue_type)

    @property
    def title(self) -> str:
        return self.short_message or self.message

    def fits(self, text: str) -> bool:
        """True if the span still lies inside ``text``."""
        return self.offset >= 0 and self.length > 0 and self.end <= len(text)

    def shifted(self, delta: int) -> "Match":
        return replace(self, offset=self.offset + delta)


class MatchSource(Enum):
    SERVICE = "service"
    FALLBACK = "fallback"
    APPLIED = "applied"     # service/fallback set rebased after a replacement


@dataclass(frozen=True)
class MatchSet:
    """An ordered set of matches bound to one buffer generation."""

    generation: int
    matches: tuple = ()
    source: MatchSource = MatchSource.SERVICE

    def __len__(self) -> int:
        return len(self.matches)

    def __iter__(self) -> Iterator[Match]:
        return iter(self.matches)

    def __getitem__(self, index: int) -> Match:
        return self.matches[index]

    def index_of(self, match: Match) -> Optional[int]:
        """Index of this exact match object, or None for a foreign/stale one."""
        for i, m in enumerate(self.matches):
            if m is match:
                return i
        return None


# --- UTF-16 offsets -------------------------------------------------------
#
# LanguageTool is a Java service: offsets and lengths count UTF-16 code
# units. Python indexes strings by code point, so anything outside the BMP
# (emoji, some CJK) shifts every later offset by one per character.

def utf16_offset(text: str, index: int) -> int:
    """Convert a code-point index in ``text`` to a UTF-16 offset."""
    index = max(0, min(index, len(text)))
    return index + sum(1 for c in text[:index] if ord(c) > 0xFFFF)


def python_index(text: str, offset: int) -> int:
    """Convert a UTF-16 offset into a code-point index in ``text``.

    Offsets landing inside a surrogate pair round down to the character.
    """
    if offset <= 0:
        return 0
    units = 0
    for i, c in enumerate(text):
        width = 2 if ord(c) > 0xFFFF else 1
        if units + width > offset:
            return i
        units += width
    return len(text)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_replacements(raw) -> tuple:
    if not isinstance(raw, list):
        return ()
    values = []
    for r in raw:
        if isinstance(r, dict) and isinstance(r.get("value"), str):
            values.append(r["value"])
        elif isinstance(r, str):
            values.append(r)
    return tuple(values)


def parse_match(raw: dict, text: Optional[str] = None) -> Optional[Match]:
    """Build a Match from one wire object, or None if it is unusable.

    When ``text`` is given, offsets are treated as UTF-16 units and
    converted to code-point indices against it.
    """
    if not isinstance(raw, dict):
        return None

    offset = raw.get("offset")
    length = raw.get("length")
    if not _is_int(offset) or not _is_int(length):
        return None
    if offset < 0 or length <= 0:
        return None

    if text is not None:
        start = python_index(text, offset)
        end = python_index(text, offset + length)
        offset, length = start, end - start
        if length <= 0:
            return None

    rule = raw.get("rule") if isinstance(raw.get("rule"), dict) else {}
    category = rule.get("category") if isinstance(rule.get("category"), dict) else {}

    message = raw.get("message")
    short_message = raw.get("shortMessage")

    return Match(
        offset=offset,
        length=length,
        message=message if isinstance(message, str) else "",
        short_message=short_message if isinstance(short_message, str) else "",
        issue_type=str(rule.get("issueType") or ""),
        replacements=_parse_replacements(raw.get("replacements")),
        rule_id=str(rule.get("id") or ""),
        category=str(category.get("name") or category.get("id") or ""),
    )


def parse_matches(payload, text: Optional[str] = None) -> List[Match]:
    """Decode a /v2/check response body into Matches.

    Raises ValueError if the payload has no ``matches`` list at all;
    individual broken matches are dropped.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("matches"), list):
        raise ValueError("response has no 'matches' list")

    matches = []
    dropped = 0
    for raw in payload["matches"]:
        m = parse_match(raw, text)
        if m is None:
            dropped += 1
            continue
        matches.append(m)

    if dropped:
        logger.debug("Dropped %d malformed match(es) from response", dropped)
    return matches
