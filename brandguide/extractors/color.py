"""
Color Extractor
===============
Finds color values (hex, RGB/RGBA, CMYK, Pantone, "R n G n B n"
layouts) and color rules, infers each value's usage and semantic role
from its context window, and builds the `colors` block.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..models import (
    Category,
    ColorCandidate,
    ColorsBlock,
    NamedColor,
)
from ..patterns import MatchContext, PatternRule, _cs, _p, normalize_sentence
from ..synonyms import is_canonical_hex, normalize_color_to_hex, role_keys
from .base import BaseExtractor, dedupe_casefold

logger = logging.getLogger(__name__)

# English words that are coincidentally valid hex (or color-notation noise)
COLOR_STOPWORDS = frozenset({
    "ACE", "PMS", "CMYK", "RGB", "HEX", "THE", "AND", "FOR", "ARE", "BUT",
    "NOT", "YOU", "ALL", "CAN", "HAD", "HER", "WAS", "ONE", "OUR", "OUT",
    "DAY", "GET", "HAS", "HIM", "HIS", "HOW", "ITS", "MAY", "NEW", "NOW",
    "OLD", "SEE", "TWO", "WAY", "WHO", "BOY", "DID", "LET", "PUT", "SAY",
    "SHE", "TOO", "USE", "BAC", "FEE", "DED", "ADD", "CED", "CCA",
})

# First hit wins
USAGE_KEYWORDS: list[tuple[str, re.Pattern]] = [
    ("logo", _p(r"\b(?:logo|wordmark)")),
    ("buttons", _p(r"\b(?:button|cta|action)")),
    ("text", _p(r"\b(?:text|heading|body)")),
    ("background", _p(r"\b(?:background|bg)\b")),
    ("accent", _p(r"\b(?:accent|highlight)")),
    ("primary", _p(r"\b(?:primary|main)\b")),
    ("secondary", _p(r"\bsecondary\b")),
]

# Section labels that settle usage regardless of the window
SECTION_USAGE = {
    Category.LOGO: "logo",
    Category.TYPOGRAPHY: "text",
}

# Semantic roles in priority order; the words naming each live in synonyms
COLOR_ROLES = ("primary", "secondary", "accent", "background", "text")

GENERIC_NAME_WORDS = frozenset({
    "primary", "secondary", "accent", "background", "text", "body",
    "heading", "main", "brand", "core", "key", "color", "colour", "colors",
    "colours", "hex", "rgb", "rgba", "cmyk", "pms", "pantone", "palette",
    "the", "our", "use", "value", "code", "web", "print", "and",
})

NAME_BEFORE_VALUE = _cs(r"([A-Z][A-Za-z]+(?:[ \t]+[A-Z][A-Za-z]+){0,2})[ \t]*[:\-=]?[ \t]*$")

NEUTRAL_NAMES = frozenset({"black", "white", "gray", "grey", "charcoal", "silver"})

# End of an earlier color value on the same line
PREVIOUS_VALUE_END = _p(
    r"#[0-9A-F]{3,6}\b"
    r"|\b(?:rgba?|cmyk)\s*\([^)\n]*\)"
    r"|\b\d{1,3}(?:[\s,/]+\d{1,3}){2,3}\b"
    r"|\b(?:pms|pantone)\s*:?\s*\d{2,4}(?:\s?[A-Z]{1,2}\b)?"
    r"|\b[BK]\s*:?\s*\d{1,3}\b"
)
PREFIX_LIMIT = 60


# ─── Helpers ──────────────────────────────────────────────────────────────────


def infer_usage(window: str, section: Category) -> str:
    """Usage label; the enclosing section's label beats window keywords."""
    if section in SECTION_USAGE:
        return SECTION_USAGE[section]
    for usage, pattern in USAGE_KEYWORDS:
        if pattern.search(window):
            return usage
    return "general"


def value_prefix(match: re.Match, ctx: MatchContext) -> str:
    """
    Line text before the match, starting after any earlier color value
    on that line, so a row like "Primary Blue #168EEA Secondary Navy
    #003366" gives each value its own role and name.
    """
    prefix = ctx.line_prefix(match, limit=match.start())
    last = None
    for last in PREVIOUS_VALUE_END.finditer(prefix):
        pass
    if last is not None:
        prefix = prefix[last.end():]
    return prefix[-PREFIX_LIMIT:]


def infer_role(prefix: str) -> Optional[str]:
    keys = role_keys(prefix, "color")
    return next((role for role in COLOR_ROLES if role in keys), None)


def infer_name(prefix: str) -> Optional[str]:
    match = NAME_BEFORE_VALUE.search(prefix)
    if not match:
        return None
    name = " ".join(match.group(1).split())
    if all(word.lower() in GENERIC_NAME_WORDS for word in name.split()):
        return None
    return name


def passes_validity_gate(body: str, context: str) -> bool:
    """Reject stopword look-alikes and bare numbers outside an RGB frame."""
    token = body.strip().lstrip("#").upper()
    if token in COLOR_STOPWORDS:
        return False
    if token.isdigit() and "rgb" not in context.lower():
        return False
    return True


def is_neutral(hex_value: str) -> bool:
    if not is_canonical_hex(hex_value):
        return False
    r, g, b = hex_value[1:3], hex_value[3:5], hex_value[5:7]
    return r == g == b


def _color_candidate(
    match: re.Match,
    ctx: MatchContext,
    rule: str,
    notation: str,
    confidence: float,
    body: Optional[str] = None,
) -> Optional[ColorCandidate]:
    raw = match.group(0)
    window = ctx.window(match)
    if body is not None and not passes_validity_gate(body, window):
        logger.debug(f"Rejected color token by validity gate: {raw!r}")
        return None

    value = normalize_color_to_hex(notation)
    if value is None:
        return None

    prefix = value_prefix(match, ctx)
    role = infer_role(prefix)
    usage = infer_usage(prefix, ctx.section)
    if usage == "general":
        usage = infer_usage(window, ctx.section)
    if value.startswith("#PMS"):
        confidence = 0.4
    elif role:
        confidence = min(1.0, confidence + 0.05)

    return ColorCandidate(
        raw=raw,
        value=value,
        context=window,
        section=ctx.section,
        confidence=confidence,
        provenance=f"color:{rule}",
        offset=match.start(),
        usage=usage,
        role=role,
        name=infer_name(prefix),
    )


# ─── Extract Functions ────────────────────────────────────────────────────────


def _hex6(match, ctx):
    return _color_candidate(match, ctx, "hex6", match.group(1), 0.9)


def _hex3(match, ctx):
    return _color_candidate(match, ctx, "hex3", match.group(1), 0.7, body=match.group(1))


def _hex_keyword(match, ctx):
    return _color_candidate(match, ctx, "hex_keyword", match.group(1), 0.8, body=match.group(1))


def _rgb_func(match, ctx):
    r, g, b = match.group(1), match.group(2), match.group(3)
    return _color_candidate(match, ctx, "rgb_func", f"rgb({r},{g},{b})", 0.85)


def _rgb_triple(match, ctx):
    return _color_candidate(
        match, ctx, "rgb_label", " ".join(match.group(1, 2, 3)), 0.85
    )


def _cmyk(match, ctx):
    c, m, y, k = match.group(1, 2, 3, 4)
    return _color_candidate(match, ctx, "cmyk", f"cmyk({c},{m},{y},{k})", 0.75)


def _pantone(match, ctx):
    code = match.group(1) + (match.group(2) or "")
    return _color_candidate(match, ctx, "pantone", f"PMS {code}", 0.8)


def _color_rule(attribute: str):
    def _extract(match, ctx):
        sentence = normalize_sentence(ctx.sentence(match))
        if len(sentence) < 8:
            return None
        return ColorCandidate(
            raw=match.group(0),
            value=sentence,
            context=ctx.window(match),
            section=ctx.section,
            confidence=0.6,
            provenance=f"color:{attribute}_rule",
            offset=match.start(),
            attribute=attribute,
        )
    return _extract


_COLOR_SECTIONS = frozenset({Category.COLOR, Category.GENERAL})

COLOR_RULES: list[PatternRule] = [
    PatternRule(
        name="color.hex6",
        regex=_p(r"#([0-9A-F]{6})(?![0-9A-F])"),
        category=Category.COLOR,
        extract=_hex6,
    ),
    PatternRule(
        name="color.hex3",
        regex=_p(r"#([0-9A-F]{3})(?![0-9A-F])"),
        category=Category.COLOR,
        extract=_hex3,
    ),
    PatternRule(
        name="color.hex_keyword",
        regex=_p(r"\bHEX\s*:?\s*(?!#)([0-9A-F]{6}|[0-9A-F]{3})\b"),
        category=Category.COLOR,
        extract=_hex_keyword,
    ),
    PatternRule(
        name="color.rgb_func",
        regex=_p(
            r"\brgba?\s*\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})"
            r"(?:\s*,\s*[\d.]+%?)?\s*\)"
        ),
        category=Category.COLOR,
        extract=_rgb_func,
    ),
    PatternRule(
        name="color.rgb_label",
        regex=_p(r"\bRGB\s*:?\s*(\d{1,3})[\s,/]+(\d{1,3})[\s,/]+(\d{1,3})\b"),
        category=Category.COLOR,
        extract=_rgb_triple,
    ),
    PatternRule(
        name="color.rgb_letters",
        regex=_cs(
            r"(?<![A-Za-z])R\s*:?\s*(\d{1,3})\s*(?:C\s*\d{1,3}\s*)?"
            r"G\s*:?\s*(\d{1,3})\s*(?:M\s*\d{1,3}\s*)?B\s*:?\s*(\d{1,3})\b"
        ),
        category=Category.COLOR,
        extract=_rgb_triple,
    ),
    PatternRule(
        name="color.cmyk_func",
        regex=_p(
            r"\bcmyk\s*\(\s*(\d{1,3})%?\s*,\s*(\d{1,3})%?\s*,\s*(\d{1,3})%?\s*,"
            r"\s*(\d{1,3})%?\s*\)"
        ),
        category=Category.COLOR,
        extract=_cmyk,
    ),
    PatternRule(
        name="color.cmyk_letters",
        regex=_cs(
            r"(?<![A-Za-z])C\s*:?\s*(\d{1,3})\s*M\s*:?\s*(\d{1,3})\s*"
            r"Y\s*:?\s*(\d{1,3})\s*K\s*:?\s*(\d{1,3})\b"
        ),
        category=Category.COLOR,
        extract=_cmyk,
    ),
    PatternRule(
        name="color.pantone",
        regex=_cs(r"\b(?i:pms|pantone)\s*:?\s*(\d{2,4})(?:\s?([A-Z]{1,2})\b)?"),
        category=Category.COLOR,
        extract=_pantone,
    ),
    PatternRule(
        name="color.forbidden",
        regex=_p(
            r"\b(?:do not|don't|never|avoid)\b[^.\n]{0,80}?"
            r"\b(?:colou?rs?|hues?|tints?|gradients?|palette|shades?)\b"
        ),
        category=Category.COLOR,
        extract=_color_rule("forbidden"),
        sections=_COLOR_SECTIONS,
    ),
    PatternRule(
        name="color.rule",
        regex=_p(
            r"\b(?:always|use|ensure|maintain|pair)\b[^.\n]{0,80}?"
            r"\b(?:colou?rs?|palette|contrast)\b"
        ),
        category=Category.COLOR,
        extract=_color_rule("rule"),
        sections=frozenset({Category.COLOR}),
    ),
]


class ColorExtractor(BaseExtractor):
    """Color values, usage/role inference and color rules."""

    category = Category.COLOR
    rules = COLOR_RULES

    def build_block(self, candidates: list) -> ColorsBlock:
        block = ColorsBlock()
        colors = [
            c for c in self._own(candidates, "color") if c.attribute == "value"
        ]

        for candidate in colors:
            value = candidate.value
            if value.startswith("#PMS"):
                block.unresolved.append(value)
                continue

            block.palette.append(value)
            named = NamedColor(hex=value, name=candidate.name, usage=candidate.usage)

            if candidate.role and candidate.role not in block.semantic:
                block.semantic[candidate.role] = named
            if is_neutral(value) or (
                candidate.name and candidate.name.split()[-1].lower() in NEUTRAL_NAMES
            ):
                block.neutral.append(named)
            if candidate.name:
                block.names.append(candidate.name)

        rules = [c for c in self._own(candidates, "color") if c.attribute != "value"]
        block.forbidden = dedupe_casefold(
            c.value for c in rules if c.attribute == "forbidden"
        )
        block.rules = dedupe_casefold(c.value for c in rules if c.attribute == "rule")
        block.palette = dedupe_casefold(block.palette)
        block.unresolved = dedupe_casefold(block.unresolved)
        block.names = dedupe_casefold(block.names)
        unique_neutral: dict[str, NamedColor] = {}
        for color in block.neutral:
            unique_neutral.setdefault(color.hex, color)
        block.neutral = list(unique_neutral.values())

        logger.debug(
            f"Colors: {len(block.palette)} palette, {len(block.semantic)} semantic, "
            f"{len(block.unresolved)} unresolved"
        )
        return block
