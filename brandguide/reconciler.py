"""
Reconciliation Engine
=====================
Post-extraction correction of values routed into the wrong category.

Runs after raw extraction and again after LLM enhancement:
    - Weight tokens in color arrays      -> typography.weights
    - Hex tokens in typography arrays    -> colors.palette
    - Tagged #PMS values in the palette  -> colors.unresolved
    - Short / malformed hex fragments    -> dropped
    - Every list deduplicated case-insensitively
    - Fixed severity escalation for semantic colors

This is the single place that guarantees category purity before output.
The input guideline is never mutated.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .extractors.base import dedupe_casefold
from .extractors.typography import normalize_weight
from .models import (
    BrandGuideline,
    NamedColor,
    ReconciliationMove,
    ReconciliationReport,
    Severity,
)
from .synonyms import WEIGHT_WORDS, is_canonical_hex, normalize_color_to_hex

logger = logging.getLogger(__name__)

HEX6_VALUE = re.compile(r"^#?[0-9A-Fa-f]{6}$")
SHORT_HEX_FRAGMENT = re.compile(r"^#[0-9A-Fa-f]{1,3}$")
HEX_LIKE_VALUE = re.compile(r"^#(?:[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6})$")
WEIGHT_WORD = re.compile(r"\b(" + "|".join(WEIGHT_WORDS) + r")\b", re.IGNORECASE)

# role -> minimum severity
SEVERITY_ESCALATION: dict[str, Severity] = {
    "primary": Severity.CRITICAL,
    "secondary": Severity.HIGH,
}


def is_weight_token(value: Optional[str]) -> bool:
    """
    True when every word of the value is a weight word ("Bold",
    "Semibold Italic"). A lone "Black" is a color name and stays put.
    """
    words = (value or "").lower().replace("-", " ").split()
    return (
        bool(words)
        and all(word in WEIGHT_WORDS for word in words)
        and any(word != "black" for word in words)
    )


class ReconciliationEngine:
    """
    Detects and fixes cross-category contamination.
    """

    def reconcile(
        self,
        guideline: BrandGuideline,
    ) -> tuple[BrandGuideline, ReconciliationReport]:
        """
        Reconcile a guideline.

        Args:
            guideline: Guideline assembled from one or more strategies.

        Returns:
            (corrected copy, report of every correction made)
        """
        result = guideline.model_copy(deep=True)
        report = ReconciliationReport()

        self._move_hex_out_of_typography(result, report)
        self._move_weights_out_of_colors(result, report)
        self._clean_palette(result, report)
        self._clean_semantic(result, report)
        self._dedupe_all(result, report)
        self._escalate_severity(result, report)

        self._log_report(report)
        return result, report

    # ─── Cross-Category Moves ─────────────────────────────────────────────

    def _move_hex_out_of_typography(self, g: BrandGuideline, report: ReconciliationReport):
        typography = g.typography

        def keep(values: list[str], source: str) -> list[str]:
            kept = []
            for value in values:
                if HEX_LIKE_VALUE.match(value.strip()):
                    hex_value = normalize_color_to_hex(value.strip())
                    if hex_value:
                        g.colors.palette.append(hex_value)
                        report.moves.append(ReconciliationMove(
                            token=value, source=source, target="colors.palette",
                        ))
                        continue
                kept.append(value)
            return kept

        typography.weights = keep(typography.weights, "typography.weights")
        typography.sizes = keep(typography.sizes, "typography.sizes")
        typography.fonts.families = keep(typography.fonts.families, "typography.fonts.families")

        for role in ("primary", "secondary"):
            name = getattr(typography.fonts, role)
            if name and HEX_LIKE_VALUE.match(name.strip()):
                g.colors.palette.append(normalize_color_to_hex(name.strip()))
                report.moves.append(ReconciliationMove(
                    token=name, source=f"typography.fonts.{role}", target="colors.palette",
                ))
                setattr(typography.fonts, role, None)

    def _move_weights_out_of_colors(self, g: BrandGuideline, report: ReconciliationReport):
        colors = g.colors

        def move(token: str, source: str):
            for word in WEIGHT_WORD.findall(token):
                if word.lower() == "black" and not is_weight_token(token):
                    continue
                g.typography.weights.append(normalize_weight(word))
            report.moves.append(ReconciliationMove(
                token=token, source=source, target="typography.weights",
            ))

        palette = []
        for value in colors.palette:
            if not HEX6_VALUE.match(value.strip()) and WEIGHT_WORD.search(value):
                move(value, "colors.palette")
            else:
                palette.append(value)
        colors.palette = palette

        for field_name in ("names", "forbidden", "rules"):
            kept = []
            for value in getattr(colors, field_name):
                if is_weight_token(value):
                    move(value, f"colors.{field_name}")
                else:
                    kept.append(value)
            setattr(colors, field_name, kept)

        named: list[tuple[str, NamedColor]] = [
            (f"colors.semantic.{role}", color) for role, color in colors.semantic.items()
        ]
        named += [("colors.neutral", color) for color in colors.neutral]
        for source, color in named:
            if is_weight_token(color.name):
                move(color.name, f"{source}.name")
                color.name = None

    # ─── Color Cleanup ────────────────────────────────────────────────────

    def _clean_palette(self, g: BrandGuideline, report: ReconciliationReport):
        colors = g.colors
        palette = []
        for value in colors.palette:
            token = value.strip()
            if token.upper().startswith("#PMS"):
                colors.unresolved.append("#PMS" + token[4:])
                report.moves.append(ReconciliationMove(
                    token=value, source="colors.palette", target="colors.unresolved",
                ))
            elif HEX6_VALUE.match(token):
                palette.append("#" + token.lstrip("#").upper())
            else:
                report.dropped_fragments.append(value)
        colors.palette = palette

    def _clean_semantic(self, g: BrandGuideline, report: ReconciliationReport):
        colors = g.colors

        def canonical(color: NamedColor) -> bool:
            if is_canonical_hex(color.hex):
                return True
            fixed = normalize_color_to_hex(color.hex)
            if SHORT_HEX_FRAGMENT.match(color.hex.strip()) or not is_canonical_hex(fixed):
                report.dropped_fragments.append(color.hex)
                return False
            color.hex = fixed
            return True

        colors.semantic = {
            role: color for role, color in colors.semantic.items() if canonical(color)
        }
        neutral: dict[str, NamedColor] = {}
        for color in colors.neutral:
            if canonical(color):
                neutral.setdefault(color.hex, color)
        colors.neutral = list(neutral.values())

    # ─── Deduplication ────────────────────────────────────────────────────

    def _dedupe_all(self, g: BrandGuideline, report: ReconciliationReport):
        lists = [
            (g.colors, ("palette", "forbidden", "names", "rules", "unresolved")),
            (g.typography, ("weights", "sizes", "rules")),
            (g.typography.fonts, ("families",)),
            (g.logo, ("rules", "forbidden", "variants")),
            (g.spacing, ("rules",)),
            (g.tone, ("descriptors", "keywords", "rules", "examples")),
            (g.imagery, ("style_descriptors", "rules")),
        ]
        for block, field_names in lists:
            for field_name in field_names:
                values = getattr(block, field_name)
                unique = dedupe_casefold(values)
                report.duplicates_removed += len(values) - len(unique)
                setattr(block, field_name, unique)

    # ─── Severity ─────────────────────────────────────────────────────────

    def _escalate_severity(self, g: BrandGuideline, report: ReconciliationReport):
        for role, minimum in SEVERITY_ESCALATION.items():
            color = g.colors.semantic.get(role)
            if color is None or color.severity.rank >= minimum.rank:
                continue
            report.escalations.append(
                f"{role} {color.hex}: {color.severity.value} -> {minimum.value}"
            )
            color.severity = minimum

    # ─── Report ───────────────────────────────────────────────────────────

    def _log_report(self, report: ReconciliationReport):
        logger.info("=" * 60)
        logger.info("RECONCILIATION REPORT")
        logger.info("=" * 60)
        logger.info(f"Total Corrections: {report.total_corrections}")
        logger.info(f"Tokens Moved: {len(report.moves)}")
        for move in report.moves:
            logger.info(f"  • {move.token!r}: {move.source} -> {move.target}")
        logger.info(f"Fragments Dropped: {len(report.dropped_fragments)}")
        logger.info(f"Duplicates Removed: {report.duplicates_removed}")
        if report.escalations:
            logger.info("Severity Escalations:")
            for escalation in report.escalations:
                logger.info(f"  • {escalation}")
        logger.info("=" * 60)


def reconcile(guideline: BrandGuideline) -> tuple[BrandGuideline, ReconciliationReport]:
    return ReconciliationEngine().reconcile(guideline)
