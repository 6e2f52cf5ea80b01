"""
Generic Defaults
================
Brand-agnostic blocks substituted for any category that produced no
rule-backed entities, so every category of a BrandGuideline is always
populated.
"""

from __future__ import annotations

import logging

from .errors import ExtractionMiss
from .models import (
    CATEGORY_FIELDS,
    BrandGuideline,
    Category,
    ColorsBlock,
    FontSet,
    ImageryBlock,
    LogoBlock,
    LogoMinSize,
    NamedColor,
    SpacingBlock,
    ToneBlock,
    TypographyBlock,
)

logger = logging.getLogger(__name__)


# ─── Default Blocks ───────────────────────────────────────────────────────────


def default_colors() -> ColorsBlock:
    black = NamedColor(hex="#000000", name="Black", usage="text")
    white = NamedColor(hex="#FFFFFF", name="White", usage="background")
    gray = NamedColor(hex="#808080", name="Gray", usage="secondary")
    return ColorsBlock(
        semantic={
            "primary": black.model_copy(update={"usage": "primary"}),
            "secondary": gray,
            "background": white,
            "text": black,
            "accent": gray.model_copy(update={"usage": "accent"}),
        },
        neutral=[black, white, gray],
        palette=["#000000", "#FFFFFF", "#808080"],
        rules=[
            "Use primary color for main elements",
            "Use secondary color for accents",
            "Ensure sufficient contrast",
        ],
    )


def default_typography() -> TypographyBlock:
    return TypographyBlock(
        fonts=FontSet(
            primary="Arial",
            secondary="Helvetica",
            families=["Arial", "Helvetica", "sans-serif"],
        ),
        weights=["Regular", "Bold"],
        sizes=["16px", "24px", "32px"],
        rules=[
            "Use primary font for headings",
            "Use secondary font for body text",
            "Maintain consistent font hierarchy",
        ],
    )


def default_logo() -> LogoBlock:
    return LogoBlock(
        rules=[
            "Maintain clear space around logo",
            "Do not distort or alter logo proportions",
            "Use approved logo variations only",
        ],
        clearspace="Minimum clear space equal to logo height",
        min_size=LogoMinSize(digital_size="24px minimum for digital use"),
        forbidden=[
            "Do not distort logo",
            "Do not change colors",
            "Do not add effects",
        ],
    )


def default_spacing() -> SpacingBlock:
    return SpacingBlock(
        grid="8px grid system",
        base_unit="8px",
        rules=[
            "Use consistent spacing throughout",
            "Maintain visual hierarchy",
            "Ensure adequate white space",
        ],
    )


def default_tone() -> ToneBlock:
    return ToneBlock(
        descriptors=["professional", "clear", "approachable"],
        rules=["Brand tone not clearly defined"],
    )


def default_imagery() -> ImageryBlock:
    return ImageryBlock(
        style_descriptors=["clean", "professional"],
        rules=["Visual style not clearly defined"],
    )


DEFAULT_FACTORIES = {
    Category.COLOR: default_colors,
    Category.TYPOGRAPHY: default_typography,
    Category.LOGO: default_logo,
    Category.SPACING: default_spacing,
    Category.TONE: default_tone,
    Category.IMAGERY: default_imagery,
}


def default_block(category: Category):
    """A fresh default block for the category."""
    return DEFAULT_FACTORIES[category]()


# ─── Gap Filling ──────────────────────────────────────────────────────────────


def require_populated(guideline: BrandGuideline, category: Category):
    """Raise ExtractionMiss when the category block holds no entities."""
    if not guideline.block(category).is_populated():
        raise ExtractionMiss(CATEGORY_FIELDS[category])


def fill_missing(guideline: BrandGuideline) -> tuple[BrandGuideline, list[str]]:
    """
    Substitute generic defaults for every empty category.

    Returns:
        (new guideline, names of the categories that were defaulted)
    """
    filled = guideline.model_copy(deep=True)
    defaulted: list[str] = []

    for category, field_name in CATEGORY_FIELDS.items():
        try:
            require_populated(filled, category)
        except ExtractionMiss as miss:
            logger.info(f"{miss}; using generic defaults")
            setattr(filled, field_name, default_block(category))
            defaulted.append(miss.category)

    return filled, defaulted
