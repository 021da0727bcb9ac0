"""Replacement applicator — splices a correction into the text.

After a splice every other match is rebased onto the new text: matches
before the replaced range stay put, matches after it shift by the length
delta, and anything overlapping the range is dropped.
"""
import logging
from dataclasses import dataclass
from typing import List, Sequence

from proofpad.matches import Match, MatchSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyResult:
    applied: bool
    text: str
    matches: tuple = ()


def apply_replacement(text: str, match: Match, replacement: str) -> str:
    return text[:match.offset] + replacement + text[match.offset + match.length:]


def rebase_matches(matches: Sequence[Match], applied: Match, replacement: str) -> List[Match]:
    """Return the remaining matches positioned against the new text."""
    delta = len(replacement) - applied.length
    rebased = []
    for m in matches:
        if m is applied:
            continue
        if m.end <= applied.offset:
            rebased.append(m)
        elif m.offset >= applied.end:
            rebased.append(m.shifted(delta) if delta else m)
        else:
            logger.debug("Dropping match at %d+%d overlapping replaced range %d+%d",
                         m.offset, m.length, applied.offset, applied.length)
    return rebased


def apply_to_match_set(text: str, match_set: MatchSet, match: Match,
                       replacement: str) -> ApplyResult:
    """Apply ``replacement`` for ``match`` if it is still live in ``match_set``.

    A match that is not part of the set, or no longer fits the text, is a
    stale action: nothing is changed and ``applied`` is False.
    """
    if match_set.index_of(match) is None:
        logger.debug("Ignored stale action: match at %d not in current set", match.offset)
        return ApplyResult(False, text, match_set.matches)
    if not match.fits(text):
        logger.debug("Ignored stale action: match %d+%d outside text of length %d",
                     match.offset, match.length, len(text))
        return ApplyResult(False, text, match_set.matches)

    new_text = apply_replacement(text, match, replacement)
    remaining = rebase_matches(match_set.matches, match, replacement)
    return ApplyResult(True, new_text, tuple(remaining))
