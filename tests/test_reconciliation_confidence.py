"""
Tests for Reconciliation, Defaults & Confidence
================================================
Cross-category correction, generic default filling and the confidence
scorer's fixed signal weights.
"""

from __future__ import annotations

import pytest

from brandguide.confidence import (
    SCORED_CATEGORIES,
    ConfidenceScorer,
    round_half_up,
    section_texts,
)
from brandguide.defaults import default_block, fill_missing, require_populated
from brandguide.errors import ExtractionMiss
from brandguide.models import (
    BrandGuideline,
    Category,
    ColorsBlock,
    FontSet,
    HeadingStyle,
    ImageryBlock,
    NamedColor,
    Section,
    Severity,
    ToneBlock,
    TypographyBlock,
)
from brandguide.reconciler import ReconciliationEngine, is_weight_token, reconcile
from brandguide.strategies import StrategyResult, count_entries, merge_fields


def _contaminated() -> BrandGuideline:
    return BrandGuideline(
        colors=ColorsBlock(palette=["#168eea", "Bold", "#PMS9999", "#12"]),
        typography=TypographyBlock(weights=["#FF0000", "Regular"]),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# RECONCILIATION TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestWeightTokens:
    """Test weight-token detection."""

    def test_weight_tokens(self):
        assert is_weight_token("Bold")
        assert is_weight_token("Semibold Italic")
        assert is_weight_token("Black Italic")

    def test_not_weight_tokens(self):
        assert not is_weight_token("Black")
        assert not is_weight_token("Ocean Blue")
        assert not is_weight_token("")
        assert not is_weight_token(None)


class TestReconciliationEngine:
    """Test the reconciliation engine."""

    def test_cross_category_moves(self):
        result, report = ReconciliationEngine().reconcile(_contaminated())

        assert result.colors.palette == ["#168EEA", "#FF0000"]
        assert result.colors.unresolved == ["#PMS9999"]
        assert result.typography.weights == ["Regular", "Bold"]
        assert report.dropped_fragments == ["#12"]
        assert report.total_corrections >= 4

    def test_input_not_mutated(self):
        guideline = _contaminated()
        reconcile(guideline)
        assert guideline.colors.palette == ["#168eea", "Bold", "#PMS9999", "#12"]
        assert guideline.typography.weights == ["#FF0000", "Regular"]

    def test_idempotent(self):
        once, _ = reconcile(_contaminated())
        twice, report = reconcile(once)
        assert twice == once
        assert report.total_corrections == 0

    def test_hex_font_name_moved(self):
        guideline = BrandGuideline(
            typography=TypographyBlock(fonts=FontSet(primary="#FF0000", families=["Inter"])),
        )
        result, _ = reconcile(guideline)

        assert result.typography.fonts.primary is None
        assert result.typography.fonts.families == ["Inter"]
        assert "#FF0000" in result.colors.palette

    def test_font_that_looks_like_hex_kept(self):
        guideline = BrandGuideline(
            typography=TypographyBlock(fonts=FontSet(primary="Facade", families=["Facade"])),
        )
        result, _ = reconcile(guideline)
        assert result.typography.fonts.primary == "Facade"
        assert result.colors.palette == []

    def test_weight_color_names_moved(self):
        guideline = BrandGuideline(
            colors=ColorsBlock(
                palette=["#000000", "#111111"],
                neutral=[
                    NamedColor(hex="#000000", name="Black"),
                    NamedColor(hex="#111111", name="Semibold"),
                ],
            ),
        )
        result, _ = reconcile(guideline)

        names = [c.name for c in result.colors.neutral]
        assert names == ["Black", None]
        assert result.typography.weights == ["Semibold"]

    def test_semantic_short_hex_fixed_and_fragment_dropped(self):
        guideline = BrandGuideline(
            colors=ColorsBlock(
                palette=["#FFFFFF"],
                semantic={
                    "accent": NamedColor(hex="3b8"),
                    "text": NamedColor(hex="#12"),
                },
            ),
        )
        result, report = reconcile(guideline)

        assert result.colors.semantic["accent"].hex == "#3388BB"
        assert "text" not in result.colors.semantic
        assert "#12" in report.dropped_fragments

    def test_severity_escalation(self):
        guideline = BrandGuideline(
            colors=ColorsBlock(
                palette=["#168EEA", "#FF0000", "#00FF00"],
                semantic={
                    "primary": NamedColor(hex="#168EEA"),
                    "secondary": NamedColor(hex="#FF0000"),
                    "accent": NamedColor(hex="#00FF00"),
                },
            ),
        )
        result, report = reconcile(guideline)

        assert result.colors.semantic["primary"].severity == Severity.CRITICAL
        assert result.colors.semantic["secondary"].severity == Severity.HIGH
        assert result.colors.semantic["accent"].severity == Severity.MEDIUM
        assert len(report.escalations) == 2

    def test_severity_never_lowered(self):
        guideline = BrandGuideline(
            colors=ColorsBlock(
                palette=["#FF0000"],
                semantic={"secondary": NamedColor(hex="#FF0000", severity=Severity.CRITICAL)},
            ),
        )
        result, _ = reconcile(guideline)
        assert result.colors.semantic["secondary"].severity == Severity.CRITICAL

    def test_lists_deduplicated(self):
        guideline = BrandGuideline(
            tone=ToneBlock(descriptors=["Friendly", "friendly", "Bold"]),
        )
        result, report = reconcile(guideline)

        assert result.tone.descriptors == ["Friendly", "Bold"]
        assert report.duplicates_removed == 1


# ═══════════════════════════════════════════════════════════════════════════════
# DEFAULTS TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestDefaults:
    """Test generic default filling."""

    def test_empty_guideline_fully_defaulted(self):
        filled, defaulted = fill_missing(BrandGuideline())

        assert defaulted == ["colors", "typography", "logo", "spacing", "tone", "imagery"]
        for category in (
            Category.COLOR, Category.TYPOGRAPHY, Category.LOGO,
            Category.SPACING, Category.TONE, Category.IMAGERY,
        ):
            assert filled.block(category).is_populated()

    def test_default_values(self):
        filled, _ = fill_missing(BrandGuideline())

        assert filled.colors.palette == ["#000000", "#FFFFFF", "#808080"]
        assert filled.typography.fonts.primary == "Arial"
        assert filled.spacing.base_unit == "8px"

    def test_populated_category_kept(self):
        guideline = BrandGuideline(colors=ColorsBlock(palette=["#168EEA"]))
        filled, defaulted = fill_missing(guideline)

        assert "colors" not in defaulted
        assert filled.colors.palette == ["#168EEA"]

    def test_input_not_mutated(self):
        guideline = BrandGuideline()
        fill_missing(guideline)
        assert guideline.colors.palette == []

    def test_require_populated(self):
        with pytest.raises(ExtractionMiss) as exc_info:
            require_populated(BrandGuideline(), Category.TONE)
        assert exc_info.value.category == "tone"

    def test_default_blocks_are_fresh(self):
        first = default_block(Category.COLOR)
        first.palette.append("#123456")
        assert "#123456" not in default_block(Category.COLOR).palette


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIDENCE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestConfidenceScorer:
    """Test per-category and overall confidence."""

    def test_round_half_up(self):
        assert round_half_up(0.125) == 0.13
        assert round_half_up(0.5) == 0.5
        assert round_half_up(0.0) == 0.0

    def test_section_texts(self):
        sections = [
            Section(category=Category.COLOR, text="a"),
            Section(category=Category.COLOR, text="b"),
            Section(category=Category.GENERAL, text="c"),
        ]
        assert section_texts(sections) == {Category.COLOR: "a\nb", Category.GENERAL: "c"}

    def test_empty_guideline_scores_zero(self):
        confidence = ConfidenceScorer().score(BrandGuideline(), {})

        assert set(confidence.per_category) == set(SCORED_CATEGORIES)
        assert all(value == 0.0 for value in confidence.per_category.values())
        assert confidence.overall == 0.0

    def test_spacing_not_scored(self):
        confidence = ConfidenceScorer().score(BrandGuideline(), {})
        assert "spacing" not in confidence.per_category

    def test_colors_full_signal(self):
        guideline = BrandGuideline(
            colors=ColorsBlock(palette=["#168EEA"], names=["Buffer Blue"]),
        )
        texts = {Category.COLOR: "Our primary color, hex #168EEA"}
        confidence = ConfidenceScorer().score(guideline, texts)

        assert confidence.per_category["colors"] == 1.0
        assert confidence.overall == 0.2

    def test_text_checks_case_sensitive(self):
        guideline = BrandGuideline(colors=ColorsBlock(palette=["#168EEA"]))
        texts = {Category.COLOR: "PRIMARY HEX 168EEA"}
        confidence = ConfidenceScorer().score(guideline, texts)
        assert confidence.per_category["colors"] == 0.4

    def test_general_text_fallback(self):
        guideline = BrandGuideline(
            typography=TypographyBlock(fonts=FontSet(primary="Inter"), weights=["Bold"]),
        )
        texts = {Category.GENERAL: "Inter is the font for every heading"}
        confidence = ConfidenceScorer().score(guideline, texts)
        assert confidence.per_category["typography"] == 1.0

    def test_imagery_signals(self):
        guideline = BrandGuideline(imagery=ImageryBlock(style_descriptors=["bright"]))
        texts = {Category.IMAGERY: "Every photo keeps the same style"}
        confidence = ConfidenceScorer().score(guideline, texts)
        assert confidence.per_category["imagery"] == 1.0

    def test_defaulted_categories_carry_no_evidence(self):
        filled, defaulted = fill_missing(BrandGuideline())
        confidence = ConfidenceScorer().score(filled, {}, defaulted)
        assert confidence.overall == 0.0

    def test_scores_capped(self):
        guideline = BrandGuideline(
            colors=ColorsBlock(palette=["#168EEA"], names=["Blue"]),
            typography=TypographyBlock(fonts=FontSet(primary="Inter"), weights=["Bold"]),
        )
        texts = {Category.GENERAL: "primary secondary hex # font typeface heading body"}
        confidence = ConfidenceScorer().score(guideline, texts)

        assert all(0.0 <= v <= 1.0 for v in confidence.per_category.values())
        assert 0.0 <= confidence.overall <= 1.0


# ═══════════════════════════════════════════════════════════════════════════════
# FIELD MERGE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestFieldMerge:
    """Test the strictly-more-populated field merge."""

    def test_count_entries(self):
        block = ColorsBlock(palette=["#000000", "#FFFFFF"], names=["Black"])
        assert count_entries(block) == 3
        assert count_entries(TypographyBlock(fonts=FontSet(primary="Inter"))) == 1

    def test_more_populated_block_wins(self):
        sparse = BrandGuideline(colors=ColorsBlock(palette=["#000000"]))
        rich = BrandGuideline(colors=ColorsBlock(palette=["#000000", "#FFFFFF"]))
        merge = merge_fields([StrategyResult("a", sparse), StrategyResult("b", rich)])

        assert merge.guideline.colors.palette == ["#000000", "#FFFFFF"]
        assert merge.winners["colors"] == "b"
        assert merge.winners["typography"] == "a"

    def test_tie_keeps_first(self):
        first = BrandGuideline(colors=ColorsBlock(palette=["#000000"]))
        second = BrandGuideline(colors=ColorsBlock(palette=["#FFFFFF"]))
        merge = merge_fields([StrategyResult("a", first), StrategyResult("b", second)])

        assert merge.guideline.colors.palette == ["#000000"]
        assert merge.winners["colors"] == "a"

    def test_prior_winners_carried(self):
        guideline = BrandGuideline(colors=ColorsBlock(palette=["#000000"]))
        merge = merge_fields(
            [StrategyResult("rule_based", guideline)],
            winners={"colors": "specialized"},
        )
        assert merge.winners["colors"] == "specialized"

    def test_empty_results(self):
        merge = merge_fields([])
        assert merge.winners == {}

    def test_replaced_hierarchy_conflicts_reported(self):
        first = BrandGuideline(typography=TypographyBlock(
            hierarchy={"h1": HeadingStyle(size_px=48, weight="Bold")},
        ))
        second = BrandGuideline(typography=TypographyBlock(
            fonts=FontSet(primary="Inter"),
            hierarchy={
                "h1": HeadingStyle(size_px=40, weight="Bold"),
                "h2": HeadingStyle(size_px=32),
            },
        ))
        merge = merge_fields([StrategyResult("a", first), StrategyResult("b", second)])

        assert merge.winners["typography"] == "b"
        assert [(m.level, m.attribute) for m in merge.hierarchy_conflicts] == [("h1", "size")]

    def test_agreeing_hierarchies_have_no_conflicts(self):
        first = BrandGuideline(typography=TypographyBlock(
            hierarchy={"h1": HeadingStyle(size_px=48)},
        ))
        second = BrandGuideline(typography=TypographyBlock(
            hierarchy={"h1": HeadingStyle(size_px=47), "h2": HeadingStyle(size_px=32)},
        ))
        merge = merge_fields([StrategyResult("a", first), StrategyResult("b", second)])

        assert merge.winners["typography"] == "b"
        assert merge.hierarchy_conflicts == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
