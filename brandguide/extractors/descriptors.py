"""
Descriptor Extractors
=====================
Spacing, tone and imagery. These categories are mostly prose, so the
extractors harvest imperative rule sentences and collect descriptor
words against curated vocabularies.
"""

from __future__ import annotations

import logging
import re

from ..models import (
    Category,
    ImageryBlock,
    ImageryDescriptorCandidate,
    SpacingBlock,
    SpacingRuleCandidate,
    ToneBlock,
    ToneDescriptorCandidate,
)
from ..patterns import PatternRule, _p, normalize_sentence
from .base import BaseExtractor, dedupe_casefold

logger = logging.getLogger(__name__)

# Sentence opener for imperative rules ("Always ...", "Don't ...", "Be ...")
IMPERATIVE_RULE = _p(
    r"(?:^|(?<=[.!?] ))[ \t]*(?:do not|don't|do|always|never|avoid|use|be)\b[^.!?\n]{4,160}",
    re.IGNORECASE | re.MULTILINE,
)


# ─── Spacing ──────────────────────────────────────────────────────────────────


SPACING_TERMS = _p(r"\b(?:clear\s*space|margins?|padding|gutters?|white\s*space|spacing)\b")

# First word of each sentence; the sentence itself comes from MatchContext
SENTENCE_START = _p(r"(?:^|(?<=[.!?] ))[ \t]*(\w+)", re.IGNORECASE | re.MULTILINE)

_MEASURE = r"(\d+(?:\.\d+)?)\s*(pt|px)\b"


def _spacing(rule_type: str, value: str, match, ctx, confidence: float) -> SpacingRuleCandidate:
    return SpacingRuleCandidate(
        raw=match.group(0),
        value=value,
        context=ctx.window(match),
        section=ctx.section,
        confidence=confidence,
        provenance=f"spacing:{rule_type}",
        offset=match.start(),
        rule_type=rule_type,
    )


def _unit_grid(match, ctx):
    return _spacing("grid", f"{match.group(1)}{match.group(2).lower()} grid", match, ctx, 0.85)


def _column_grid(match, ctx):
    return _spacing("grid", f"{match.group(1)}-column grid", match, ctx, 0.8)


def _base_unit(match, ctx):
    return _spacing("base_unit", f"{match.group(1)}{match.group(2).lower()}", match, ctx, 0.85)


def _gap(rule_type: str):
    def extract(match, ctx):
        return _spacing(rule_type, f"{match.group(1)}{match.group(2).lower()}", match, ctx, 0.8)
    return extract


def _spacing_rule(match, ctx):
    sentence = normalize_sentence(ctx.sentence(match))
    if len(sentence) < 12:
        return None
    return _spacing("rule", sentence, match, ctx, 0.6)


def _section_sentence(match, ctx):
    # Inside a SPACING section every sentence is guideline content
    if ctx.section != Category.SPACING:
        return None
    return _spacing_rule(match, ctx)


SPACING_RULES: list[PatternRule] = [
    PatternRule(
        name="spacing.unit_grid",
        regex=_p(r"\b" + _MEASURE + r"[ \t-]*(?:baseline\s+)?(?:grid|system)\b"),
        category=Category.SPACING,
        extract=_unit_grid,
    ),
    PatternRule(
        name="spacing.grid_system",
        regex=_p(r"\bgrid\s*system\b[^.\n]*?" + _MEASURE),
        category=Category.SPACING,
        extract=_unit_grid,
    ),
    PatternRule(
        name="spacing.column_grid",
        regex=_p(r"\b(\d+)[ \t-]*col(?:umn)?s?[ \t-]*grid\b"),
        category=Category.SPACING,
        extract=_column_grid,
    ),
    PatternRule(
        name="spacing.base_unit",
        regex=_p(r"\bbase\s+(?:spacing\s+)?unit\b[^.\n]{0,40}?" + _MEASURE),
        category=Category.SPACING,
        extract=_base_unit,
    ),
    PatternRule(
        name="spacing.section_gap",
        regex=_p(r"\b(?:section|content)\s*gap\b[^.\n]{0,40}?" + _MEASURE),
        category=Category.SPACING,
        extract=_gap("section_gap"),
    ),
    PatternRule(
        name="spacing.component_gap",
        regex=_p(r"\b(?:component|element)\s*gap\b[^.\n]{0,40}?" + _MEASURE),
        category=Category.SPACING,
        extract=_gap("component_gap"),
    ),
    PatternRule(
        name="spacing.section_sentence",
        regex=SENTENCE_START,
        category=Category.SPACING,
        extract=_section_sentence,
    ),
    PatternRule(
        name="spacing.rule",
        regex=SPACING_TERMS,
        category=Category.SPACING,
        extract=_spacing_rule,
    ),
]


class SpacingExtractor(BaseExtractor):
    """Grid, base unit, section and component gaps, and spacing rule sentences."""

    category = Category.SPACING
    rules = SPACING_RULES

    def build_block(self, candidates: list) -> SpacingBlock:
        found = self._own(candidates, "spacing_rule")

        def values(rule_type: str) -> list[str]:
            return dedupe_casefold(c.value for c in found if c.rule_type == rule_type)

        def first(rule_type: str):
            matched = values(rule_type)
            return matched[0] if matched else None

        return SpacingBlock(
            grid=first("grid"),
            base_unit=first("base_unit"),
            section_gap=first("section_gap"),
            component_gap=first("component_gap"),
            rules=values("rule"),
        )


# ─── Tone ─────────────────────────────────────────────────────────────────────


TONE_VOCABULARY = (
    "friendly", "professional", "casual", "formal", "energetic", "calm",
    "confident", "approachable", "authoritative", "creative", "innovative",
    "trustworthy", "reliable", "fun", "serious", "playful", "sophisticated",
    "modern", "traditional", "inclusive", "welcoming", "bold", "subtle",
    "direct", "conversational", "simple", "clear",
)

TONE_CONTEXT = _p(r"\b(?:tone|voice|personality|messaging|communicat\w*|writ\w*|copy|speak|sound|words?)\b")

QUOTED_TERM = _p(r"\"([^\"\n]{2,120})\"")
WORDS_LIKE = _p(r"\b(?:words|terms|phrases)\s+(?:like|such\s+as)\s*:?\s*([^.\n]+)")
_LIST_SPLIT = re.compile(r"\s*(?:,|;|/|\band\b|\bor\b)\s*")
EXAMPLE_MIN_WORDS = 4


def _in_tone_context(match, ctx) -> bool:
    return ctx.section == Category.TONE or bool(TONE_CONTEXT.search(ctx.sentence(match)))


def _tone(rule_type: str, value: str, match, ctx, confidence: float) -> ToneDescriptorCandidate:
    return ToneDescriptorCandidate(
        raw=match.group(0),
        value=value,
        context=ctx.window(match),
        section=ctx.section,
        confidence=confidence,
        provenance=f"tone:{rule_type}",
        offset=match.start(),
        rule_type=rule_type,
    )


def _tone_descriptor(match, ctx):
    if not _in_tone_context(match, ctx):
        return None
    return _tone("descriptor", match.group(1).lower(), match, ctx, 0.65)


def _quoted(match, ctx):
    if not _in_tone_context(match, ctx):
        return None
    text = " ".join(match.group(1).split())
    if len(text.split()) >= EXAMPLE_MIN_WORDS:
        return _tone("example", text, match, ctx, 0.7)
    return _tone("keyword", text, match, ctx, 0.6)


def _words_like(match, ctx):
    items = [item.strip(" \"'") for item in _LIST_SPLIT.split(match.group(1))]
    return [
        _tone("keyword", item, match, ctx, 0.6)
        for item in items
        if item and len(item.split()) <= 3
    ]


def _tone_rule(match, ctx):
    if not _in_tone_context(match, ctx):
        return None
    return _tone("rule", normalize_sentence(match.group(0)), match, ctx, 0.6)


TONE_RULES: list[PatternRule] = [
    PatternRule(
        name="tone.descriptor",
        regex=_p(r"\b(" + "|".join(TONE_VOCABULARY) + r")\b"),
        category=Category.TONE,
        extract=_tone_descriptor,
    ),
    PatternRule(
        name="tone.words_like",
        regex=WORDS_LIKE,
        category=Category.TONE,
        extract=_words_like,
    ),
    PatternRule(
        name="tone.quoted",
        regex=QUOTED_TERM,
        category=Category.TONE,
        extract=_quoted,
    ),
    PatternRule(
        name="tone.rule",
        regex=IMPERATIVE_RULE,
        category=Category.TONE,
        extract=_tone_rule,
    ),
]


class ToneExtractor(BaseExtractor):
    """Voice descriptors, keywords, writing rules and sample copy."""

    category = Category.TONE
    rules = TONE_RULES

    def build_block(self, candidates: list) -> ToneBlock:
        found = self._own(candidates, "tone")

        def values(rule_type: str) -> list[str]:
            return dedupe_casefold(c.value for c in found if c.rule_type == rule_type)

        block = ToneBlock(
            descriptors=values("descriptor"),
            keywords=values("keyword"),
            rules=values("rule"),
            examples=values("example"),
        )
        logger.debug(
            f"Tone: {len(block.descriptors)} descriptors, {len(block.rules)} rules, "
            f"{len(block.examples)} examples"
        )
        return block


# ─── Imagery ──────────────────────────────────────────────────────────────────


IMAGERY_VOCABULARY = (
    "lifestyle", "product", "abstract", "minimalist", "vibrant", "muted",
    "high contrast", "low contrast", "bright", "dark", "colorful",
    "monochrome", "professional", "casual", "artistic", "clean", "busy",
    "simple", "complex", "people",
)

COMPOSITION_TERMS = (
    "rule of thirds", "centered", "asymmetrical", "symmetrical",
    "leading lines", "framing", "depth of field",
)

IMAGERY_CONTEXT = _p(r"\b(?:imagery|images?|photo\w*|illustrat\w*|visuals?|pictures?|shots?|shoots?|art\s+direction)\b")


def _vocabulary_pattern(words) -> str:
    return "|".join(w.replace(" ", r"[\s-]+") for w in words)


def _in_imagery_context(match, ctx) -> bool:
    return ctx.section == Category.IMAGERY or bool(IMAGERY_CONTEXT.search(ctx.sentence(match)))


def _imagery(rule_type: str, value: str, match, ctx, confidence: float) -> ImageryDescriptorCandidate:
    return ImageryDescriptorCandidate(
        raw=match.group(0),
        value=value,
        context=ctx.window(match),
        section=ctx.section,
        confidence=confidence,
        provenance=f"imagery:{rule_type}",
        offset=match.start(),
        rule_type=rule_type,
    )


def _imagery_descriptor(match, ctx):
    if not _in_imagery_context(match, ctx):
        return None
    value = " ".join(re.split(r"[\s-]+", match.group(1).lower()))
    return _imagery("descriptor", value, match, ctx, 0.65)


def _imagery_rule(match, ctx):
    if not _in_imagery_context(match, ctx):
        return None
    return _imagery("rule", normalize_sentence(match.group(0)), match, ctx, 0.6)


IMAGERY_RULES: list[PatternRule] = [
    PatternRule(
        name="imagery.descriptor",
        regex=_p(r"\b(" + _vocabulary_pattern(IMAGERY_VOCABULARY) + r")\b"),
        category=Category.IMAGERY,
        extract=_imagery_descriptor,
    ),
    PatternRule(
        name="imagery.composition",
        regex=_p(r"\b(" + _vocabulary_pattern(COMPOSITION_TERMS) + r")\b"),
        category=Category.IMAGERY,
        extract=_imagery_descriptor,
    ),
    PatternRule(
        name="imagery.rule",
        regex=IMPERATIVE_RULE,
        category=Category.IMAGERY,
        extract=_imagery_rule,
    ),
]


class ImageryExtractor(BaseExtractor):
    """Photography / illustration style descriptors and rules."""

    category = Category.IMAGERY
    rules = IMAGERY_RULES

    def build_block(self, candidates: list) -> ImageryBlock:
        found = self._own(candidates, "imagery")
        return ImageryBlock(
            style_descriptors=dedupe_casefold(
                c.value for c in found if c.rule_type == "descriptor"
            ),
            rules=dedupe_casefold(c.value for c in found if c.rule_type == "rule"),
        )
