"""
Extraction Strategies
=====================
Independent rule-based strategies over the same sections, and the
field-merge that combines them.

    plain        every extractor over every section, as labeled
    specialized  GENERAL sections re-labeled by content, whole-text scan
                 for categories without a section, known brand seed colors

A strategy returns raw blocks with no defaults filled in, so an empty
category counts as zero populated entries during the merge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel

from .extractors import EXTRACTORS
from .fonts import HierarchyMismatch, check_hierarchy
from .models import (
    CATEGORY_FIELDS,
    BrandGuideline,
    CandidateEntity,
    Category,
    ColorCandidate,
    Section,
)
from .patterns import DEFAULT_CONTEXT_WINDOW
from .synonyms import classify_section

logger = logging.getLogger(__name__)

PLAIN = "plain"
SPECIALIZED = "specialized"
LLM = "llm"

# Known brand seed colors (brand-name substring -> primary hex)
BRAND_SEED_COLORS: dict[str, str] = {
    "netflix": "#E50914",
    "spotify": "#1DB954",
    "twitch": "#9146FF",
    "buffer": "#168EEA",
    "target": "#CC0000",
}


@dataclass
class StrategyResult:
    name: str
    guideline: BrandGuideline
    candidates: list[CandidateEntity] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)


def _assemble(candidates: dict[Category, list[CandidateEntity]]) -> BrandGuideline:
    guideline = BrandGuideline()
    for category, extractor in EXTRACTORS.items():
        block = extractor.build_block(candidates.get(category, []))
        setattr(guideline, CATEGORY_FIELDS[category], block)
    return guideline


def _flatten(candidates: dict[Category, list[CandidateEntity]]) -> list[CandidateEntity]:
    return [c for category in EXTRACTORS for c in candidates.get(category, [])]


# ─── Plain Strategy ───────────────────────────────────────────────────────────


def run_plain(
    sections: list[Section],
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> StrategyResult:
    """Every extractor over every section, using the segmenter's labels."""
    found: dict[Category, list[CandidateEntity]] = {}
    for section in sections:
        for category, extractor in EXTRACTORS.items():
            found.setdefault(category, []).extend(
                extractor.extract(section.text, context_window, section.category)
            )

    logger.info(
        f"Plain strategy: {sum(len(v) for v in found.values())} candidate(s) "
        f"from {len(sections)} section(s)"
    )
    return StrategyResult(PLAIN, _assemble(found), _flatten(found), list(sections))


# ─── Specialized Strategy ─────────────────────────────────────────────────────


def relabel_sections(sections: list[Section]) -> list[Section]:
    """Copies of the sections with GENERAL ones re-labeled by content."""
    relabeled = []
    for section in sections:
        if section.category == Category.GENERAL:
            category = classify_section(section.text)
            if category != Category.GENERAL:
                logger.debug(f"Re-labeled GENERAL section as {category.value}")
                section = section.model_copy(update={"category": category})
        relabeled.append(section)
    return relabeled


def brand_seed_candidates(brand_name: str) -> list[ColorCandidate]:
    key = (brand_name or "").strip().lower()
    if not key:
        return []
    return [
        ColorCandidate(
            raw=hex_value,
            value=hex_value,
            context=brand_name,
            section=Category.COLOR,
            confidence=0.9,
            provenance="specialized:brand_seed",
            usage="primary",
            role="primary",
        )
        for brand, hex_value in BRAND_SEED_COLORS.items()
        if brand in key
    ]


def run_specialized(
    sections: list[Section],
    text: str,
    brand_name: str = "",
    context_window: int = DEFAULT_CONTEXT_WINDOW,
) -> StrategyResult:
    """
    Targeted extraction: each extractor runs only over sections of its
    own category; categories with no section are scanned across the
    whole text. Known brand colors are seeded ahead of extracted ones.
    """
    relabeled = relabel_sections(sections)
    found: dict[Category, list[CandidateEntity]] = {}

    for category, extractor in EXTRACTORS.items():
        own = [s for s in relabeled if s.category == category]
        if own:
            for section in own:
                found.setdefault(category, []).extend(
                    extractor.extract(section.text, context_window, category)
                )
        else:
            found[category] = extractor.extract(text, context_window, Category.GENERAL)

    seeds = brand_seed_candidates(brand_name)
    if seeds:
        logger.info(f"Seeding {len(seeds)} known brand color(s) for '{brand_name}'")
        found[Category.COLOR] = seeds + found.get(Category.COLOR, [])

    logger.info(
        f"Specialized strategy: {sum(len(v) for v in found.values())} candidate(s)"
    )
    return StrategyResult(SPECIALIZED, _assemble(found), _flatten(found), relabeled)


# ─── Field Merge ──────────────────────────────────────────────────────────────


def count_entries(value) -> int:
    """Populated entries in a block: list/dict sizes plus set scalars."""
    if isinstance(value, BaseModel):
        return sum(count_entries(getattr(value, name)) for name in type(value).model_fields)
    if isinstance(value, (list, dict)):
        return len(value)
    if value is None or value == "":
        return 0
    return 1


@dataclass
class MergeResult:
    guideline: BrandGuideline
    # guideline field -> name of the strategy whose block was kept
    winners: dict[str, str]
    # heading levels where a replaced typography block disagreed with the winner
    hierarchy_conflicts: list[HierarchyMismatch] = field(default_factory=list)


def _hierarchy_conflicts(kept, replacement, name: str) -> list[HierarchyMismatch]:
    mismatches = check_hierarchy(kept.hierarchy, replacement.hierarchy)
    for mismatch in mismatches:
        logger.warning(
            f"Strategy '{name}' disagrees on {mismatch.level} {mismatch.attribute}: "
            f"{mismatch.expected} vs {mismatch.observed}"
        )
    return mismatches


def merge_fields(
    results: list[StrategyResult],
    winners: Optional[dict[str, str]] = None,
) -> MergeResult:
    """
    Per category block, keep the candidate with strictly more populated
    entries; ties keep the earlier candidate. `winners` carries the
    attribution of the first candidate from an earlier merge. Heading
    levels where a replaced typography block disagrees with its
    replacement are logged and returned as `hierarchy_conflicts`.
    """
    if not results:
        return MergeResult(BrandGuideline(), {})

    first = results[0]
    merged = first.guideline.model_copy(deep=True)
    attribution = dict(winners or {})
    best_counts: dict[str, int] = {}
    conflicts: list[HierarchyMismatch] = []

    for field_name in CATEGORY_FIELDS.values():
        attribution.setdefault(field_name, first.name)
        best_counts[field_name] = count_entries(getattr(merged, field_name))

    for result in results[1:]:
        for field_name in CATEGORY_FIELDS.values():
            block = getattr(result.guideline, field_name)
            count = count_entries(block)
            if count > best_counts[field_name]:
                if field_name == "typography":
                    conflicts.extend(_hierarchy_conflicts(merged.typography, block, result.name))
                setattr(merged, field_name, block.model_copy(deep=True))
                best_counts[field_name] = count
                attribution[field_name] = result.name

    logger.debug(
        "Field merge: " + ", ".join(f"{k}<-{v}" for k, v in attribution.items())
    )
    return MergeResult(merged, attribution, conflicts)
