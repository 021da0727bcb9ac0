"""Local fallback checker — deterministic suggestions without the service.

Used while the LanguageTool server is offline or a request fails. It
produces the same Match shape as the service, so nothing downstream needs
to know where a match came from.

Rules:
- Never invent words; only suggest dictionary words or fixed substitutions
- Prefer minimal corrections
- Same input always gives the same output, in the same order
"""
import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, Optional, List

from spellchecker import SpellChecker

from proofpad.matches import Match

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatternRule:
    rule_id: str
    pattern: "re.Pattern"
    message: str
    short_message: str
    issue_type: str
    suggest: Callable[["re.Match"], List[str]]
    group: int = 0              # regex group that forms the match span
    english_only: bool = True


def _keep_case(original: str, corrected: str) -> str:
    """Apply the casing pattern of original to corrected."""
    if len(original) > 1 and original.isupper():
        return corrected.upper()
    if original and original[0].isupper():
        return corrected[:1].upper() + corrected[1:]
    return corrected


def _fixed(word: str) -> Callable[["re.Match"], List[str]]:
    return lambda m: [word]


def _mapped(table: dict, group: int = 1) -> Callable[["re.Match"], List[str]]:
    def suggest(m):
        found = m.group(group)
        return [_keep_case(found, table[found.lower()])]
    return suggest


RULES = [
    PatternRule(
        rule_id="THIS_ARE",
        pattern=re.compile(r"\b(?:this|that)\s+(are)\b", re.IGNORECASE),
        message="The verb 'are' does not agree with the singular subject. Use 'is'.",
        short_message="Agreement error",
        issue_type="grammar",
        suggest=_mapped({"are": "is"}),
        group=1,
    ),
    PatternRule(
        rule_id="I_HAS",
        pattern=re.compile(r"\bI\s+(has|is)\b"),
        message="The pronoun 'I' takes a different verb form.",
        short_message="Agreement error",
        issue_type="grammar",
        suggest=_mapped({"has": "have", "is": "am"}),
        group=1,
    ),
    PatternRule(
        rule_id="HE_DONT",
        pattern=re.compile(r"\b(?:he|she|it)\s+(don't|dont)\b", re.IGNORECASE),
        message="Third person singular subjects take 'doesn't'.",
        short_message="Agreement error",
        issue_type="grammar",
        suggest=_fixed("doesn't"),
        group=1,
    ),
    PatternRule(
        rule_id="COULD_OF",
        pattern=re.compile(r"\b(?:could|should|would|must)\s+(of)\b", re.IGNORECASE),
        message="Did you mean 'have'? 'of' is not a verb.",
        short_message="Wrong word",
        issue_type="grammar",
        suggest=_fixed("have"),
        group=1,
    ),
    PatternRule(
        rule_id="EN_A_VS_AN",
        pattern=re.compile(r"\b(a)\s+(?!one\b|once\b)(?=[aeio])", re.IGNORECASE),
        message="Use 'an' instead of 'a' before a vowel sound.",
        short_message="Wrong article",
        issue_type="grammar",
        suggest=_mapped({"a": "an"}),
        group=1,
    ),
    PatternRule(
        rule_id="I_LOWERCASE",
        pattern=re.compile(r"(?<![\w'’.-])(i)(?![\w'’-]|\.\w)"),
        message="The pronoun 'I' is always written in upper case.",
        short_message="Capitalization",
        issue_type="typographical",
        suggest=_fixed("I"),
        group=1,
    ),
    PatternRule(
        rule_id="IN_ORDER_TO",
        pattern=re.compile(r"\b(in order to)\b", re.IGNORECASE),
        message="'In order to' can usually be shortened to 'to'.",
        short_message="Wordiness",
        issue_type="style",
        suggest=lambda m: [_keep_case(m.group(1), "to")],
        group=1,
    ),
    PatternRule(
        rule_id="VERY_UNIQUE",
        pattern=re.compile(r"\bvery\s+(unique)\b", re.IGNORECASE),
        message="'Unique' cannot be graded; drop 'very'.",
        short_message="Redundancy",
        issue_type="style",
        suggest=lambda m: [_keep_case(m.group(0), m.group(1).lower())],
    ),
    PatternRule(
        rule_id="WORD_REPEAT",
        pattern=re.compile(r"\b(\w+)\s+\1\b", re.IGNORECASE),
        message="Possible typo: you repeated a word.",
        short_message="Word repetition",
        issue_type="duplication",
        suggest=lambda m: [m.group(1)],
        english_only=False,
    ),
    PatternRule(
        rule_id="WHITESPACE_RULE",
        pattern=re.compile(r"(?<=\S)( {2,})(?=\S)"),
        message="Possible typo: you repeated a whitespace.",
        short_message="Whitespace",
        issue_type="whitespace",
        suggest=_fixed(" "),
        group=1,
        english_only=False,
    ),
    PatternRule(
        rule_id="SPACE_BEFORE_PUNCT",
        pattern=re.compile(r"(?<=\w)([ \t]+)(?=[,.;:!?](?:\s|$))"),
        message="Don't put a space before punctuation.",
        short_message="Punctuation",
        issue_type="typographical",
        suggest=_fixed(""),
        group=1,
        english_only=False,
    ),
]

_WORD_RE = re.compile(r"[A-Za-z]+(?:['’][A-Za-z]+)*")


def _is_english(language: str) -> bool:
    lang = (language or "auto").lower()
    return lang == "auto" or lang.startswith("en")


class LocalChecker:
    """Regex rules plus dictionary spelling, all offline."""

    def __init__(self, spelling: bool = True, rules: Optional[List[PatternRule]] = None,
                 max_suggestions: int = 5):
        self.spelling = spelling
        self.rules = list(RULES) if rules is None else list(rules)
        self.max_suggestions = max_suggestions
        self._spell: Optional[SpellChecker] = None
        self._spell_lock = threading.Lock()

    def check(self, text: str, language: str = "auto") -> List[Match]:
        """Return matches for ``text`` sorted by (offset, length)."""
        if not text or not text.strip():
            return []

        english = _is_english(language)
        found = []
        for rule in self.rules:
            if rule.english_only and not english:
                continue
            found.extend(self._apply_rule(rule, text))

        if self.spelling and english:
            found.extend(self._check_spelling(text))

        # Several rules can flag the same span; keep the first one
        seen = set()
        result = []
        for m in sorted(found, key=lambda m: (m.offset, m.length)):
            key = (m.offset, m.length)
            if key in seen:
                continue
            seen.add(key)
            result.append(m)
        return result

    @staticmethod
    def _apply_rule(rule: PatternRule, text: str) -> List[Match]:
        matches = []
        for m in rule.pattern.finditer(text):
            start, end = m.span(rule.group)
            if end <= start:
                continue
            matches.append(Match(
                offset=start,
                length=end - start,
                message=rule.message,
                short_message=rule.short_message,
                issue_type=rule.issue_type,
                replacements=tuple(rule.suggest(m)),
                rule_id=rule.rule_id,
                category="Local rules",
            ))
        return matches

    # --- spelling ---------------------------------------------------------

    def _speller(self) -> SpellChecker:
        with self._spell_lock:
            if self._spell is None:
                logger.debug("Loading English dictionary for offline spelling")
                self._spell = SpellChecker(language='en')
            return self._spell

    def _check_spelling(self, text: str) -> List[Match]:
        spell = self._speller()
        matches = []
        for m in _WORD_RE.finditer(text):
            word = m.group(0)
            if not self._should_check(word):
                continue
            lower = word.lower()
            if lower in spell:
                continue
            suggestions = [_keep_case(word, c) for c in self._rank_candidates(lower)]
            matches.append(Match(
                offset=m.start(),
                length=len(word),
                message="Possible spelling mistake found.",
                short_message="Spelling mistake",
                issue_type="misspelling",
                replacements=tuple(suggestions[:self.max_suggestions]),
                rule_id="LOCAL_SPELLING",
                category="Possible Typo",
            ))
        return matches

    @staticmethod
    def _should_check(word: str) -> bool:
        if len(word) < 2:
            return False
        # Contractions are handled by the grammar rules
        if "'" in word or "’" in word:
            return False
        # All caps (acronyms) and inner capitals (brand names)
        if word.isupper() or word[1:] != word[1:].lower():
            return False
        return True

    def _rank_candidates(self, word: str) -> List[str]:
        """Order candidates by edit distance, length difference, frequency."""
        spell = self._speller()
        candidates = spell.candidates(word) or set()
        scored = []
        for c in candidates:
            if c == word:
                continue
            dist = damerau_levenshtein(word, c)
            len_diff = abs(len(word) - len(c))
            scored.append((dist, len_diff, -spell[c], c))
        scored.sort()
        return [c for _, _, _, c in scored]


def damerau_levenshtein(a: str, b: str) -> int:
    """Damerau-Levenshtein distance (with transpositions)."""
    la, lb = len(a), len(b)
    d = [[0] * (lb + 1) for _ in range(la + 1)]

    for i in range(la + 1):
        d[i][0] = i
    for j in range(lb + 1):
        d[0][j] = j

    for i in range(1, la + 1):
        for j in range(1, lb + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            d[i][j] = min(
                d[i - 1][j] + 1,       # deletion
                d[i][j - 1] + 1,       # insertion
                d[i - 1][j - 1] + cost  # substitution
            )
            if (i > 1 and j > 1 and
                    a[i - 1] == b[j - 2] and a[i - 2] == b[j - 1]):
                d[i][j] = min(d[i][j], d[i - 2][j - 2] + cost)

    return d[la][lb]
