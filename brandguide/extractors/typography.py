"""
Typography Extractor
====================
Harvests font families, weights, sizes and heading rules.

Font families come from phrase patterns ("X is our primary font",
"Font: X", CSS font stacks, specimen lines) and are validated against
the font whitelist with fuzzy matching, then ranked:

    score = whitelist (3 exact / 2 fuzzy)
          + occurrences (max 3)
          + 1 if near "typeface" / "font family" / "font"
          + 2 if declared as the primary font

The top two ranked families become primary / secondary.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..fonts import (
    FONT_WHITELIST,
    check_heading,
    fuzzy_match_font,
    is_plausible_font_name,
    is_whitelisted,
)
from ..models import (
    Category,
    FontCandidate,
    FontSet,
    HeadingStyle,
    TypographyBlock,
)
from ..patterns import MatchContext, PatternRule, _cs, _p, normalize_sentence
from ..synonyms import normalize_key
from .base import BaseExtractor, dedupe_casefold

logger = logging.getLogger(__name__)

WEIGHT_ALIASES = {
    "hairline": "Hairline",
    "thin": "Thin",
    "extralight": "ExtraLight",
    "extra light": "ExtraLight",
    "light": "Light",
    "regular": "Regular",
    "book": "Book",
    "medium": "Medium",
    "semibold": "Semibold",
    "semi bold": "Semibold",
    "semi-bold": "Semibold",
    "bold": "Bold",
    "extrabold": "ExtraBold",
    "extra bold": "ExtraBold",
    "heavy": "Heavy",
    "black": "Black",
    "italic": "Italic",
}

WEIGHT_ALTERNATION = (
    r"hairline|thin|extra[ -]?light|light|regular|book|medium|semi[ -]?bold"
    r"|extra[ -]?bold|bold|heavy|black|italic"
)

FONT_NAME = r"([A-Z][A-Za-z0-9\-]*(?:[ \t]+[A-Z][A-Za-z0-9\-]*){0,3})"

PROXIMITY_PATTERN = _p(r"\b(?:typeface|font\s+family|font)\b")
TYPE_CONTEXT_PATTERN = _p(r"\b(?:font|type|typeface|text|heading|body|size|headline|caption|h[1-6])\b")
GENERIC_FAMILIES = frozenset({
    "sans-serif", "serif", "monospace", "cursive", "fantasy", "system-ui",
    "inherit", "initial", "-apple-system", "blinkmacsystemfont",
})

_TRAILING_NOISE = re.compile(
    r"(?:[ \t]+(?:" + WEIGHT_ALTERNATION + r"|\d+(?:px|pt)?|for|and|is|in))+$",
    re.IGNORECASE,
)

_WHITELIST_ALTERNATION = "|".join(
    re.escape(name).replace(r"\ ", r"\s+")
    for name in sorted(FONT_WHITELIST, key=len, reverse=True)
)

# Canonical font keys from the synonym table -> family role
FONT_ROLES = {"primaryFont": "primary", "secondaryFont": "secondary"}


# ─── Helpers ──────────────────────────────────────────────────────────────────


def normalize_weight(token: str) -> str:
    key = " ".join(token.lower().split())
    if key.isdigit():
        return key
    return WEIGHT_ALIASES.get(key, token.strip().title())


def clean_font_name(raw: str) -> str:
    name = raw.strip().strip("'\"")
    name = _TRAILING_NOISE.sub("", name)
    return " ".join(name.split())


def _role_from_hint(hint: Optional[str]) -> Optional[str]:
    if not hint:
        return None
    return FONT_ROLES.get(normalize_key(f"{hint} font"))


def _resolve_family(raw_name: str, strong: bool) -> tuple[Optional[str], float]:
    """
    Canonical family for a harvested name and its whitelist score
    (3 exact, 2 fuzzy, 0 unlisted). Leading words are dropped until a
    plausible name remains, so "Typography Inter" resolves to "Inter".
    """
    words = clean_font_name(raw_name).split()
    for start in range(len(words)):
        name = " ".join(words[start:])
        if not is_plausible_font_name(name):
            continue
        if is_whitelisted(name):
            return fuzzy_match_font(name), 3.0
        canonical = fuzzy_match_font(name)
        if canonical is not None:
            logger.debug(f"Fuzzy-matched font {name!r} -> {canonical!r}")
            return canonical, 2.0
        if strong:
            return name, 0.0
    return None, 0.0


def _family(
    match: re.Match,
    ctx: MatchContext,
    rule: str,
    raw_name: str,
    name_offset: int,
    strong: bool,
    role_hint: Optional[str] = None,
) -> Optional[FontCandidate]:
    value, whitelist_score = _resolve_family(raw_name, strong)
    if value is None:
        return None

    whitelisted = whitelist_score > 0
    return FontCandidate(
        raw=match.group(0),
        value=value,
        context=ctx.window(match),
        section=ctx.section,
        confidence=0.9 if whitelisted else 0.6,
        provenance=f"typography:{rule}",
        offset=name_offset,
        attribute="family",
        role_hint=role_hint,
        whitelisted=whitelisted,
        score=whitelist_score,
    )


# ─── Extract Functions ────────────────────────────────────────────────────────


def _declared_font(match, ctx):
    return _family(
        match, ctx, "declaration", match.group(1), match.start(1),
        strong=True, role_hint=_role_from_hint(match.group(2)),
    )


def _labeled_font(match, ctx):
    return _family(
        match, ctx, "labeled", match.group(2), match.start(2),
        strong=True, role_hint=_role_from_hint(match.group(1)),
    )


def _we_use(match, ctx):
    return _family(match, ctx, "we_use", match.group(1), match.start(1), strong=True)


def _weight_adjacent(match, ctx):
    return _family(match, ctx, "weight_adjacent", match.group(1), match.start(1), strong=False)


def _specimen(match, ctx):
    return _family(match, ctx, "specimen", match.group(1), match.start(1), strong=False)


def _whitelist_mention(match, ctx):
    return _family(match, ctx, "mention", match.group(0), match.start(), strong=False)


def _font_stack(match, ctx):
    """First non-generic family of a CSS stack."""
    for part in match.group(1).split(","):
        name = part.strip().strip("'\"")
        if name and name.lower() not in GENERIC_FAMILIES:
            offset = match.start(1) + match.group(1).find(part.strip())
            return _family(
                match, ctx, "font_stack", name, offset,
                strong=True, role_hint=None,
            )
    return None


def _weight(match, ctx):
    if ctx.section != Category.TYPOGRAPHY and not TYPE_CONTEXT_PATTERN.search(ctx.near(match)):
        return None
    return FontCandidate(
        raw=match.group(0),
        value=normalize_weight(match.group(1)),
        context=ctx.window(match),
        section=ctx.section,
        confidence=0.7,
        provenance="typography:weight",
        offset=match.start(),
        attribute="weight",
    )


def _numeric_weight(match, ctx):
    return FontCandidate(
        raw=match.group(0),
        value=match.group(1),
        context=ctx.window(match),
        section=ctx.section,
        confidence=0.8,
        provenance="typography:numeric_weight",
        offset=match.start(),
        attribute="weight",
    )


def _size(match, ctx):
    if ctx.section != Category.TYPOGRAPHY and not TYPE_CONTEXT_PATTERN.search(ctx.near(match)):
        return None
    number = match.group(1)
    if float(number) <= 0 or float(number) > 200:
        return None
    return FontCandidate(
        raw=match.group(0),
        value=f"{number}{match.group(2).lower()}",
        context=ctx.window(match),
        section=ctx.section,
        confidence=0.6,
        provenance="typography:size",
        offset=match.start(),
        attribute="size",
    )


HEADING_SIZE = _p(r"(\d+(?:\.\d+)?)\s*px\b")
HEADING_WEIGHT = _p(r"\b(" + WEIGHT_ALTERNATION + r"|[1-9]00)\b")
HEADING_LETTER_SPACING = _p(
    r"letter[- ]?spacing\s*:?\s*(-?\d+(?:\.\d+)?)\s*px"
)


def parse_heading_style(spec: str) -> HeadingStyle:
    """Parse "48px Bold, letter-spacing -0.5px" into a HeadingStyle."""
    spacing_match = HEADING_LETTER_SPACING.search(spec)
    without_spacing = HEADING_LETTER_SPACING.sub("", spec)
    size_match = HEADING_SIZE.search(without_spacing)
    weight_match = HEADING_WEIGHT.search(without_spacing)
    return HeadingStyle(
        size_px=float(size_match.group(1)) if size_match else None,
        weight=normalize_weight(weight_match.group(1)) if weight_match else None,
        letter_spacing_px=float(spacing_match.group(1)) if spacing_match else None,
    )


def _heading(match, ctx):
    level = f"h{match.group(1)[-1]}"
    style = parse_heading_style(match.group(2))
    if style.size_px is None and style.weight is None and style.letter_spacing_px is None:
        return None
    return FontCandidate(
        raw=match.group(0),
        value=level,
        context=ctx.window(match),
        section=ctx.section,
        confidence=0.8,
        provenance="typography:heading",
        offset=match.start(),
        attribute="heading",
        heading=style,
    )


def _typography_rule(match, ctx):
    sentence = normalize_sentence(ctx.sentence(match))
    if len(sentence) < 10:
        return None
    return FontCandidate(
        raw=match.group(0),
        value=sentence,
        context=ctx.window(match),
        section=ctx.section,
        confidence=0.5,
        provenance="typography:rule",
        offset=match.start(),
        attribute="rule",
    )


TYPOGRAPHY_RULES: list[PatternRule] = [
    PatternRule(
        name="typography.declaration",
        regex=_cs(
            FONT_NAME + r"\s+is\s+our\s+"
            r"((?i:primary|main|brand|core|key|signature|secondary|body|display|heading))"
            r"\s+(?i:font|typeface)"
        ),
        category=Category.TYPOGRAPHY,
        extract=_declared_font,
    ),
    PatternRule(
        name="typography.labeled",
        regex=_cs(
            r"\b(?:((?i:primary|secondary|main|body|heading|display|brand|headline))[ \t]+)?"
            r"(?i:font[ \t]+family|font|typeface)[ \t]*:[ \t]*['\"]?" + FONT_NAME
        ),
        category=Category.TYPOGRAPHY,
        extract=_labeled_font,
    ),
    PatternRule(
        name="typography.font_stack",
        regex=_p(r"font-family\s*:\s*([^;\n}]+)"),
        category=Category.TYPOGRAPHY,
        extract=_font_stack,
    ),
    PatternRule(
        name="typography.we_use",
        regex=_cs(r"\b(?i:we\s+use)\s+" + FONT_NAME + r"\s+(?i:for)\b"),
        category=Category.TYPOGRAPHY,
        extract=_we_use,
    ),
    PatternRule(
        name="typography.weight_adjacent",
        regex=_cs(
            r"\b([A-Z][A-Za-z]+(?:[ \t]+[A-Z][A-Za-z]+){0,2})[ \t]+"
            r"(?:Hairline|Thin|Light|Regular|Book|Medium|Semibold|SemiBold|Bold|"
            r"ExtraBold|Heavy|Black|Italic)\b"
        ),
        category=Category.TYPOGRAPHY,
        extract=_weight_adjacent,
    ),
    PatternRule(
        name="typography.specimen",
        regex=_cs(FONT_NAME + r"\s+(?:Aa\s*Bb|AaBb|0123)"),
        category=Category.TYPOGRAPHY,
        extract=_specimen,
    ),
    PatternRule(
        name="typography.mention",
        regex=_p(r"\b(?:" + _WHITELIST_ALTERNATION + r")\b"),
        category=Category.TYPOGRAPHY,
        extract=_whitelist_mention,
    ),
    PatternRule(
        name="typography.weight",
        regex=_p(r"\b(" + WEIGHT_ALTERNATION + r")\b"),
        category=Category.TYPOGRAPHY,
        extract=_weight,
    ),
    PatternRule(
        name="typography.numeric_weight",
        regex=_p(r"\b(?:font-)?weight\s*:?\s*([1-9]00)\b"),
        category=Category.TYPOGRAPHY,
        extract=_numeric_weight,
    ),
    PatternRule(
        name="typography.size",
        regex=_p(r"\b(\d{1,3}(?:\.\d+)?)\s*(px|pt|rem|em)\b"),
        category=Category.TYPOGRAPHY,
        extract=_size,
    ),
    PatternRule(
        name="typography.heading",
        regex=_p(
            r"\b(H[1-6]|Heading\s*[1-6])\b\s*[:\-]?\s*"
            r"((?:(?!\bH[1-6]\b)[^\n]){0,80})"
        ),
        category=Category.TYPOGRAPHY,
        extract=_heading,
    ),
    PatternRule(
        name="typography.rule",
        regex=_p(
            r"\b(?:always|never|do not|don't|avoid|use)\b[^.\n]{0,80}?"
            r"\b(?:fonts?|typefaces?|type|headings?|body copy)\b"
        ),
        category=Category.TYPOGRAPHY,
        extract=_typography_rule,
        sections=frozenset({Category.TYPOGRAPHY}),
    ),
]


class TypographyExtractor(BaseExtractor):
    """Font families, weights, sizes, heading hierarchy and type rules."""

    category = Category.TYPOGRAPHY
    rules = TYPOGRAPHY_RULES
    repeatable = frozenset({"family"})

    def rank_families(self, families: list[FontCandidate]) -> list[FontCandidate]:
        """
        Collapse family candidates per canonical name and score them.

        Returns one representative per family, highest score first;
        ties keep first-appearance order.
        """
        grouped: dict[str, list[FontCandidate]] = {}
        for candidate in families:
            grouped.setdefault(candidate.value.lower(), []).append(candidate)

        ranked = []
        for group in grouped.values():
            first = group[0]
            score = max(c.score for c in group)
            score += min(len(group), 3)
            if any(PROXIMITY_PATTERN.search(c.context) for c in group):
                score += 1
            hints = [c.role_hint for c in group if c.role_hint]
            if "primary" in hints:
                score += 2
            ranked.append(
                first.model_copy(update={
                    "score": score,
                    "role_hint": "primary" if "primary" in hints else (hints[0] if hints else None),
                    "confidence": min(1.0, max(c.confidence for c in group)),
                })
            )

        ranked.sort(key=lambda c: c.score, reverse=True)
        return ranked

    def build_block(self, candidates: list) -> TypographyBlock:
        fonts = self._own(candidates, "font")
        families = self.rank_families([c for c in fonts if c.attribute == "family"])

        primary = next((c for c in families if c.role_hint == "primary"), None)
        if primary is None and families:
            primary = families[0]
        remaining = [c for c in families if c is not primary]
        secondary = next((c for c in remaining if c.role_hint == "secondary"), None)
        if secondary is None and remaining:
            secondary = remaining[0]

        block = TypographyBlock(
            fonts=FontSet(
                primary=primary.value if primary else None,
                secondary=secondary.value if secondary else None,
                families=dedupe_casefold(c.value for c in families),
            ),
            weights=dedupe_casefold(c.value for c in fonts if c.attribute == "weight"),
            sizes=dedupe_casefold(c.value for c in fonts if c.attribute == "size"),
            hierarchy=self.build_hierarchy([c for c in fonts if c.attribute == "heading"]),
            rules=dedupe_casefold(c.value for c in fonts if c.attribute == "rule"),
        )

        logger.debug(
            f"Typography: primary={block.fonts.primary!r}, "
            f"secondary={block.fonts.secondary!r}, "
            f"{len(block.fonts.families)} families, {len(block.weights)} weights"
        )
        return block

    def build_hierarchy(self, headings: list[FontCandidate]) -> dict[str, HeadingStyle]:
        """First declaration per level wins; repeats within tolerance fill gaps."""
        hierarchy: dict[str, HeadingStyle] = {}
        for candidate in headings:
            level, style = candidate.value, candidate.heading
            if style is None:
                continue
            if level not in hierarchy:
                hierarchy[level] = style
                continue

            existing = hierarchy[level]
            mismatches = check_heading(level, existing, style)
            if mismatches:
                logger.warning(
                    f"Conflicting {level} declarations; keeping first "
                    f"({', '.join(m.attribute for m in mismatches)} differ)"
                )
                continue
            hierarchy[level] = HeadingStyle(
                size_px=existing.size_px if existing.size_px is not None else style.size_px,
                weight=existing.weight or style.weight,
                letter_spacing_px=(
                    existing.letter_spacing_px
                    if existing.letter_spacing_px is not None
                    else style.letter_spacing_px
                ),
            )
        return dict(sorted(hierarchy.items()))
