"""
Pattern Table
=============
Declarative (pattern, category, extractor-function) rules.

Each PatternRule is independently testable:

    rule = rule_named("color.hex6")
    rule.apply("Primary #168EEA", Category.COLOR)

Extractor modules declare their own rule lists; the combined table is
exposed as brandguide.extractors.PATTERN_TABLE.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from .models import CandidateEntity, Category

logger = logging.getLogger(__name__)

MIN_CONTEXT_WINDOW = 150
MAX_CONTEXT_WINDOW = 300
DEFAULT_CONTEXT_WINDOW = 200

# Sentence boundaries for rule harvesting
_SENTENCE_END = re.compile(r"[.!?](?=\s|$)|\n")
_WS_RUN = re.compile(r"\s+")


def clamp_window(size: int) -> int:
    return max(MIN_CONTEXT_WINDOW, min(MAX_CONTEXT_WINDOW, int(size)))


def _p(pattern: str, flags: int = re.IGNORECASE) -> re.Pattern[str]:
    return re.compile(pattern, flags | re.UNICODE)


def _cs(pattern: str) -> re.Pattern[str]:
    """Case-sensitive variant, for capitalized-name and channel-letter rules."""
    return re.compile(pattern, re.UNICODE)


@dataclass(frozen=True)
class MatchContext:
    """The text a rule runs over, plus the helpers extract functions need."""
    text: str
    section: Category = Category.GENERAL
    window_size: int = DEFAULT_CONTEXT_WINDOW

    def window(self, match: re.Match) -> str:
        start = max(0, match.start() - self.window_size)
        end = min(len(self.text), match.end() + self.window_size)
        return self.text[start:end]

    def near(self, match: re.Match, radius: int = 40) -> str:
        start = max(0, match.start() - radius)
        return self.text[start:match.end() + radius]

    def line_prefix(self, match: re.Match, limit: int = 60) -> str:
        """Text between the start of the match's line and the match."""
        line_start = self.text.rfind("\n", 0, match.start()) + 1
        return self.text[max(line_start, match.start() - limit):match.start()]

    def sentence(self, match: re.Match) -> str:
        """The sentence (or line) enclosing the match, whitespace-normalized."""
        start = 0
        for boundary in _SENTENCE_END.finditer(self.text, 0, match.start()):
            start = boundary.end()
        end_match = _SENTENCE_END.search(self.text, match.end())
        end = end_match.end() if end_match else len(self.text)
        sentence = _WS_RUN.sub(" ", self.text[start:end]).strip()
        return sentence.rstrip(".").strip()


# An extract function yields one candidate, several (list rules), or None
ExtractFn = Callable[
    [re.Match, MatchContext],
    Union[CandidateEntity, list[CandidateEntity], None],
]


@dataclass(frozen=True)
class PatternRule:
    """One row of the pattern table."""
    name: str
    regex: re.Pattern[str]
    category: Category
    extract: ExtractFn
    sections: Optional[frozenset[Category]] = field(default=None)

    def applies_to(self, section: Category) -> bool:
        return self.sections is None or section in self.sections

    def apply(
        self,
        text: str,
        section: Category = Category.GENERAL,
        window_size: int = DEFAULT_CONTEXT_WINDOW,
    ) -> list[CandidateEntity]:
        """Run this rule alone over text."""
        if not self.applies_to(section):
            return []
        context = MatchContext(text, section, clamp_window(window_size))
        found = []
        for match in self.regex.finditer(text):
            result = self.extract(match, context)
            if isinstance(result, list):
                found.extend(result)
            elif result is not None:
                found.append(result)
        return found


def run_rules(
    rules: list[PatternRule],
    text: str,
    section: Category = Category.GENERAL,
    window_size: int = DEFAULT_CONTEXT_WINDOW,
) -> list[CandidateEntity]:
    """Apply rules in table order; candidates keep rule-then-position order."""
    candidates: list[CandidateEntity] = []
    for rule in rules:
        candidates.extend(rule.apply(text, section, window_size))
    return candidates


def normalize_sentence(value: str) -> str:
    value = _WS_RUN.sub(" ", value).strip(" \t-:;,")
    return value[:1].upper() + value[1:] if value else value
