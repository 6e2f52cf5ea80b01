"""
Extractor Base
==============
Common contract for every entity extractor:

    extract(section_text, context_window, section) -> [CandidateEntity]
    build_block(candidates) -> guideline block for the category
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..models import CandidateEntity, Category
from ..patterns import DEFAULT_CONTEXT_WINDOW, PatternRule, run_rules

logger = logging.getLogger(__name__)


def dedupe_casefold(values: Iterable[str]) -> list[str]:
    """Case-insensitive dedup keeping the first spelling and order."""
    seen: set[str] = set()
    result = []
    for value in values:
        if value is None:
            continue
        key = value.strip().casefold()
        if key and key not in seen:
            seen.add(key)
            result.append(value.strip())
    return result


class BaseExtractor:
    """
    Runs the extractor's rows of the pattern table over one section.
    Subclasses set `category` and `rules` and implement `build_block`.
    """

    category: Category = Category.GENERAL
    rules: list[PatternRule] = []
    # Subtypes whose repeats at different offsets are kept (occurrence counting)
    repeatable: frozenset[str] = frozenset()

    def extract(
        self,
        section_text: str,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
        section: Category = Category.GENERAL,
    ) -> list[CandidateEntity]:
        """
        Scan a section for candidate entities.

        Args:
            section_text: Text of one section (any label, GENERAL included).
            context_window: Characters kept on each side of a match,
                clamped to 150-300.
            section: Label of the enclosing section.

        Returns:
            Candidates in table order, duplicates (same kind/value/type) dropped.
        """
        if not section_text:
            return []

        candidates = run_rules(self.rules, section_text, section, context_window)
        unique = self._dedupe(candidates)

        logger.debug(
            f"{type(self).__name__}: {len(unique)} candidate(s) "
            f"from {section.value} ({len(candidates) - len(unique)} duplicate(s))"
        )
        return unique

    def build_block(self, candidates: list[CandidateEntity]):
        raise NotImplementedError

    def _dedupe(self, candidates: list[CandidateEntity]) -> list[CandidateEntity]:
        seen: set[tuple] = set()
        unique = []
        for candidate in candidates:
            subtype = getattr(candidate, "attribute", None) or getattr(candidate, "rule_type", "")
            key = (candidate.kind, subtype, candidate.value.casefold())
            if subtype in self.repeatable:
                key += (candidate.offset,)
            if key in seen:
                continue
            seen.add(key)
            unique.append(candidate)
        return unique

    def _own(self, candidates: list[CandidateEntity], kind: str) -> list[CandidateEntity]:
        return [c for c in candidates if c.kind == kind]
