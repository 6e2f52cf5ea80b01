"""
Entity Extractors
=================
One extractor per guideline category. Each owns its rows of the
declarative pattern table; PATTERN_TABLE is the whole table in order.
"""

from __future__ import annotations

from ..models import Category
from ..patterns import PatternRule
from .base import BaseExtractor, dedupe_casefold
from .color import COLOR_RULES, ColorExtractor
from .descriptors import (
    IMAGERY_RULES,
    SPACING_RULES,
    TONE_RULES,
    ImageryExtractor,
    SpacingExtractor,
    ToneExtractor,
)
from .logo import LOGO_RULES, LogoExtractor
from .typography import TYPOGRAPHY_RULES, TypographyExtractor

PATTERN_TABLE: list[PatternRule] = [
    *COLOR_RULES,
    *TYPOGRAPHY_RULES,
    *LOGO_RULES,
    *SPACING_RULES,
    *TONE_RULES,
    *IMAGERY_RULES,
]

_RULES_BY_NAME = {rule.name: rule for rule in PATTERN_TABLE}

EXTRACTORS: dict[Category, BaseExtractor] = {
    Category.COLOR: ColorExtractor(),
    Category.TYPOGRAPHY: TypographyExtractor(),
    Category.LOGO: LogoExtractor(),
    Category.SPACING: SpacingExtractor(),
    Category.TONE: ToneExtractor(),
    Category.IMAGERY: ImageryExtractor(),
}


def rule_named(name: str) -> PatternRule:
    """Look up one pattern table entry, e.g. rule_named("color.hex6")."""
    try:
        return _RULES_BY_NAME[name]
    except KeyError:
        raise KeyError(f"No pattern rule named {name!r}") from None


def rules_for(category: Category) -> list[PatternRule]:
    return [rule for rule in PATTERN_TABLE if rule.category == category]


__all__ = [
    "BaseExtractor",
    "ColorExtractor",
    "EXTRACTORS",
    "ImageryExtractor",
    "LogoExtractor",
    "PATTERN_TABLE",
    "SpacingExtractor",
    "ToneExtractor",
    "TypographyExtractor",
    "dedupe_casefold",
    "rule_named",
    "rules_for",
]
