"""
Logo Extractor
==============
Forbidden actions, clearspace phrases, minimum sizes (print and
digital), named variants and general logo usage rules.
"""

from __future__ import annotations

import logging
import re

from ..models import Category, LogoBlock, LogoMinSize, LogoRuleCandidate
from ..patterns import PatternRule, _p, normalize_sentence
from .base import BaseExtractor, dedupe_casefold

logger = logging.getLogger(__name__)

FORBIDDEN_VERBS = (
    r"distort|alter|modify|change|resize|recolou?r|outline|rotate|skew"
    r"|stretch|squash|squeeze|crop|rearrange|add|animate|flip|separate"
    r"|redraw|retype|compress|place"
)

VARIANT_WORDS = (
    r"primary|secondary|horizontal|vertical|stacked|monochrome|mono"
    r"|reversed|inverse|black|white|full[- ]colou?r|icon|wordmark|symbol"
    r"|logomark|lockup|one[- ]colou?r"
)

LOGO_MENTION = _p(r"\b(?:logo|logotype|logos|mark|wordmark|symbol|lockup|emblem)\b")

VARIANT_LIST_ITEM = _p(r"\b(" + VARIANT_WORDS + r")\b")


def _mentions_logo(sentence: str, section: Category) -> bool:
    return section == Category.LOGO or bool(LOGO_MENTION.search(sentence))


def _rule(rule_type: str, confidence: float = 0.7):
    def _extract(match, ctx):
        sentence = normalize_sentence(ctx.sentence(match))
        if len(sentence) < 8 or not _mentions_logo(sentence, ctx.section):
            return None
        return LogoRuleCandidate(
            raw=match.group(0),
            value=sentence,
            context=ctx.window(match),
            section=ctx.section,
            confidence=confidence,
            provenance=f"logo:{rule_type}",
            offset=match.start(),
            rule_type=rule_type,
        )
    return _extract


def _min_size(rule_type: str):
    def _extract(match, ctx):
        if not _mentions_logo(ctx.window(match), ctx.section):
            return None
        unit = match.group(2).lower()
        if unit in ("inch", "inches"):
            unit = "in"
        elif unit == "pixels":
            unit = "px"
        return LogoRuleCandidate(
            raw=match.group(0),
            value=f"{match.group(1)}{unit}",
            context=ctx.window(match),
            section=ctx.section,
            confidence=0.85,
            provenance=f"logo:{rule_type}",
            offset=match.start(),
            rule_type=rule_type,
        )
    return _extract


def _canonical_variant(token: str) -> str:
    token = " ".join(re.split(r"[\s-]+", token.lower()))
    if token == "mono":
        token = "monochrome"
    if token == "inverse":
        token = "reversed"
    return token.title()


def _variant(match, ctx):
    if not _mentions_logo(ctx.near(match), ctx.section):
        return None
    return LogoRuleCandidate(
        raw=match.group(0),
        value=_canonical_variant(match.group(1)),
        context=ctx.window(match),
        section=ctx.section,
        confidence=0.7,
        provenance="logo:variant",
        offset=match.start(),
        rule_type="variant",
    )


def _variant_list(match, ctx):
    """A "Logo variations: Primary, Horizontal, Icon" line gives one candidate per item."""
    return [
        LogoRuleCandidate(
            raw=match.group(0),
            value=_canonical_variant(item),
            context=ctx.window(match),
            section=ctx.section,
            confidence=0.75,
            provenance="logo:variant_list",
            offset=match.start(),
            rule_type="variant",
        )
        for item in VARIANT_LIST_ITEM.findall(match.group(1))
    ]


LOGO_RULES: list[PatternRule] = [
    PatternRule(
        name="logo.forbidden",
        regex=_p(
            r"\b(?:do not|don't|never|avoid|no)\b\s+(?:\w+\s+){0,3}?"
            r"(?:" + FORBIDDEN_VERBS + r")\w*"
        ),
        category=Category.LOGO,
        extract=_rule("forbidden", 0.85),
    ),
    PatternRule(
        name="logo.clearspace",
        regex=_p(
            r"\b(?:clear\s*space|clearspace|breathing\s+room|exclusion\s+zone"
            r"|safe\s+area|protected\s+area|isolation\s+area)\b"
        ),
        category=Category.LOGO,
        extract=_rule("clearspace", 0.8),
    ),
    PatternRule(
        name="logo.min_size_print",
        regex=_p(
            r"\b(?:minimum|min\.?|smallest)\b[^.\n]{0,60}?"
            r"(\d+(?:\.\d+)?)\s*(mm|cm|inches|inch|in)\b"
        ),
        category=Category.LOGO,
        extract=_min_size("min_size_print"),
    ),
    PatternRule(
        name="logo.min_size_digital",
        regex=_p(
            r"\b(?:minimum|min\.?|smallest)\b[^.\n]{0,60}?"
            r"(\d+(?:\.\d+)?)\s*(px|pixels)\b"
        ),
        category=Category.LOGO,
        extract=_min_size("min_size_digital"),
    ),
    PatternRule(
        name="logo.variant",
        regex=_p(
            r"\b(" + VARIANT_WORDS + r")\s+(?:logo|version|variant|variation"
            r"|lockup|mark|logotype)s?\b"
        ),
        category=Category.LOGO,
        extract=_variant,
    ),
    PatternRule(
        name="logo.variant_list",
        regex=_p(r"\b(?:logo\s+)?(?:variations?|variants?|versions?)\s*:\s*([^\n.]+)"),
        category=Category.LOGO,
        extract=_variant_list,
    ),
    PatternRule(
        name="logo.rule",
        regex=_p(
            r"\b(?:always|use|place|ensure|maintain|keep|position)\b[^.\n]{0,80}?"
            r"\b(?:logo|logotype|wordmark|lockup)s?\b"
        ),
        category=Category.LOGO,
        extract=_rule("rule", 0.6),
    ),
]


class LogoExtractor(BaseExtractor):
    """Logo usage rules."""

    category = Category.LOGO
    rules = LOGO_RULES

    def build_block(self, candidates: list) -> LogoBlock:
        rules = self._own(candidates, "logo_rule")

        def values(rule_type: str) -> list[str]:
            return dedupe_casefold(c.value for c in rules if c.rule_type == rule_type)

        clearspace = values("clearspace")
        print_sizes = values("min_size_print")
        digital_sizes = values("min_size_digital")

        block = LogoBlock(
            rules=values("rule"),
            clearspace=clearspace[0] if clearspace else None,
            min_size=LogoMinSize(
                print_size=print_sizes[0] if print_sizes else None,
                digital_size=digital_sizes[0] if digital_sizes else None,
            ),
            forbidden=values("forbidden"),
            variants=values("variant"),
        )
        # Extra clearspace phrasings are kept as rules
        block.rules = dedupe_casefold(block.rules + clearspace[1:])

        logger.debug(
            f"Logo: {len(block.forbidden)} forbidden, {len(block.variants)} variants, "
            f"clearspace={'yes' if block.clearspace else 'no'}"
        )
        return block
