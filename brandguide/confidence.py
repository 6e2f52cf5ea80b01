"""
Confidence Scorer
=================
Per-category confidence as a capped sum of graded signals, plus the
overall score. Downstream thresholds are calibrated against these
exact weights.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

from .models import BrandGuideline, Category, ConfidenceBlock, Section

logger = logging.getLogger(__name__)

# Categories averaged into the overall score (spacing is not scored)
SCORED_CATEGORIES = ("colors", "typography", "logo", "tone", "imagery")

_SCORED_SECTIONS = {
    "colors": Category.COLOR,
    "typography": Category.TYPOGRAPHY,
    "logo": Category.LOGO,
    "tone": Category.TONE,
    "imagery": Category.IMAGERY,
}


def round_half_up(value: float) -> float:
    """Two decimals, halves rounded up: floor(x * 100 + 0.5) / 100."""
    return math.floor(value * 100 + 0.5) / 100


def _has(text: str, *needles: str) -> bool:
    return any(needle in text for needle in needles)


def section_texts(sections: list[Section]) -> dict[Category, str]:
    """Concatenated text per section label."""
    texts: dict[Category, list[str]] = {}
    for section in sections:
        texts.setdefault(section.category, []).append(section.text)
    return {category: "\n".join(parts) for category, parts in texts.items()}


class ConfidenceScorer:
    """
    Scores a guideline against the text of the sections it came from.
    Text checks are case-sensitive substring tests. A category with no
    section of its own is checked against the GENERAL text.
    """

    def score(
        self,
        guideline: BrandGuideline,
        texts: dict[Category, str],
        defaulted: Iterable[str] = (),
    ) -> ConfidenceBlock:
        # Substituted defaults carry no evidence
        if defaulted:
            guideline = guideline.model_copy(update={
                name: type(getattr(guideline, name))() for name in defaulted
            })

        general = texts.get(Category.GENERAL, "")

        def text_for(name: str) -> str:
            return texts.get(_SCORED_SECTIONS[name]) or general

        per_category = {
            "colors": self._colors(guideline, text_for("colors")),
            "typography": self._typography(guideline, text_for("typography")),
            "logo": self._logo(guideline, text_for("logo")),
            "tone": self._tone(guideline, text_for("tone")),
            "imagery": self._imagery(guideline, text_for("imagery")),
        }
        per_category = {
            name: round_half_up(min(value, 1.0)) for name, value in per_category.items()
        }
        overall = round_half_up(
            sum(per_category[name] for name in SCORED_CATEGORIES) / len(SCORED_CATEGORIES)
        )

        logger.info(
            "Confidence: "
            + ", ".join(f"{name}={value:.2f}" for name, value in per_category.items())
            + f" -> overall {overall:.2f}"
        )
        return ConfidenceBlock(per_category=per_category, overall=min(max(overall, 0.0), 1.0))

    # ─── Per-Category Signals ─────────────────────────────────────────────

    def _colors(self, g: BrandGuideline, text: str) -> float:
        score = 0.0
        if g.colors.palette:
            score += 0.4
        if g.colors.names or any(c.name for c in g.colors.semantic.values()):
            score += 0.3
        if _has(text, "primary", "secondary"):
            score += 0.2
        if _has(text, "hex", "#"):
            score += 0.1
        return score

    def _typography(self, g: BrandGuideline, text: str) -> float:
        score = 0.0
        if g.typography.fonts.primary or g.typography.fonts.families:
            score += 0.4
        if g.typography.weights:
            score += 0.2
        if _has(text, "font", "typeface"):
            score += 0.2
        if _has(text, "heading", "body"):
            score += 0.2
        return score

    def _logo(self, g: BrandGuideline, text: str) -> float:
        score = 0.0
        if g.logo.min_size.print_size:
            score += 0.3
        if g.logo.min_size.digital_size:
            score += 0.3
        if g.logo.clearspace:
            score += 0.2
        if _has(text, "logo", "logotype"):
            score += 0.2
        return score

    def _tone(self, g: BrandGuideline, text: str) -> float:
        score = 0.0
        if g.tone.descriptors:
            score += 0.4
        if g.tone.examples:
            score += 0.3
        if _has(text, "tone", "voice"):
            score += 0.2
        if _has(text, "messaging", "communication"):
            score += 0.1
        return score

    def _imagery(self, g: BrandGuideline, text: str) -> float:
        score = 0.0
        if g.imagery.style_descriptors:
            score += 0.4
        if _has(text, "image", "photo"):
            score += 0.3
        if _has(text, "visual", "style"):
            score += 0.3
        return score
