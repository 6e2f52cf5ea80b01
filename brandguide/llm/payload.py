"""
LLM Payload
===========
Validation and post-processing of the Pass 2 response.

The model returns colors and typography either as arrays of objects or
as role-keyed objects. Both shapes are normalized at this boundary into
list[LLMColor] / list[LLMFont]; nothing downstream sees the raw shape.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from ..errors import SchemaViolation
from ..extractors.base import dedupe_casefold
from ..extractors.typography import normalize_weight
from ..fonts import FUZZY_MAX_DISTANCE, levenshtein
from ..models import BrandGuideline, NamedColor
from ..synonyms import WEIGHT_TOKEN_PATTERN, is_canonical_hex, normalize_color_to_hex

logger = logging.getLogger(__name__)

DEFAULT_HEX = "#000000"

# brand (lowercase) -> hex -> marketing name
BRAND_COLOR_ALIASES: dict[str, dict[str, str]] = {
    "target": {"#CC0000": "Target Red"},
}

PLACEHOLDER_NAMES = frozenset({"", "color", "colour", "unnamed", "unknown", "n/a"})

SEMANTIC_ROLES = ("primary", "secondary", "accent", "background", "text")
PRIMARY_FONT_USAGE = ("primary", "display", "heading", "headline", "brand")
SECONDARY_FONT_USAGE = ("secondary", "body", "text", "supporting")


def _as_string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return [str(value)]


def _optional_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _clamp(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.5
    return min(1.0, max(0.0, number))


StrList = Annotated[list[str], BeforeValidator(_as_string_list)]
OptStr = Annotated[Optional[str], BeforeValidator(_optional_text)]
Clamped = Annotated[float, BeforeValidator(_clamp)]


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ─── Canonical Shapes ─────────────────────────────────────────────────────────


class LLMColor(_Payload):
    name: OptStr = None
    hex: str = DEFAULT_HEX
    usage: OptStr = None
    confidence: Clamped = 0.5

    @field_validator("hex", mode="before")
    @classmethod
    def _valid_hex(cls, value):
        normalized = normalize_color_to_hex(str(value)) if value is not None else None
        if normalized and (is_canonical_hex(normalized) or normalized.startswith("#PMS")):
            return normalized
        violation = SchemaViolation("colors.hex", value, DEFAULT_HEX)
        logger.warning(str(violation))
        return DEFAULT_HEX


class LLMFont(_Payload):
    font: str
    weights: StrList = Field(default_factory=list)
    usage: OptStr = None


class LLMLogoSize(_Payload):
    print_size: OptStr = Field(default=None, alias="print")
    digital_size: OptStr = Field(default=None, alias="digital")


class LLMLogo(_Payload):
    rules: StrList = Field(default_factory=list)
    forbidden: StrList = Field(default_factory=list)
    clearspace: OptStr = None
    min_size: LLMLogoSize = Field(default_factory=LLMLogoSize, alias="minSize")


class LLMSpacing(_Payload):
    grid: OptStr = None
    base_unit: OptStr = Field(default=None, alias="baseUnit")
    section_gap: OptStr = Field(default=None, alias="sectionGap")
    component_gap: OptStr = Field(default=None, alias="componentGap")
    rules: StrList = Field(default_factory=list)


class LLMImagery(_Payload):
    style_descriptors: StrList = Field(default_factory=list, alias="styleDescriptors")
    rules: StrList = Field(default_factory=list)


class LLMTone(_Payload):
    descriptors: StrList = Field(default_factory=list)
    keywords: StrList = Field(default_factory=list)
    rules: StrList = Field(default_factory=list)


# ─── Shape Normalization ──────────────────────────────────────────────────────


def normalize_colors(value: Any) -> list[dict]:
    """
    Array shape:  [{"name", "hex", "usage"}, "#RRGGBB", ...]
    Object shape: {"primary": "#RRGGBB" | {"hex", "name"} | [...], ...}
    """
    if value is None:
        return []
    if isinstance(value, dict):
        colors = []
        for key, item in value.items():
            for entry in normalize_colors(item if isinstance(item, list) else [item]):
                entry.setdefault("usage", key)
                colors.append(entry)
        return colors
    if isinstance(value, list):
        colors = []
        for item in value:
            if isinstance(item, dict):
                colors.append(dict(item))
            elif isinstance(item, str):
                colors.append({"hex": item})
        return colors
    return []


def normalize_fonts(value: Any) -> list[dict]:
    """
    Array shape:  [{"font", "weights", "usage"}, "Inter", ...]
    Object shape: {"primary": "Inter" | {"font"|"family"|"name", ...}, "weights": [...]}
    """
    if value is None:
        return []
    if isinstance(value, dict):
        fonts = []
        for key, item in value.items():
            if key in ("weights", "sizes", "rules"):
                continue
            for entry in normalize_fonts(item if isinstance(item, list) else [item]):
                entry.setdefault("usage", key)
                fonts.append(entry)
        return fonts
    if isinstance(value, list):
        fonts = []
        for item in value:
            if isinstance(item, str) and item.strip():
                fonts.append({"font": item.strip()})
            elif isinstance(item, dict):
                entry = dict(item)
                name = entry.get("font") or entry.get("family") or entry.get("name")
                if isinstance(name, str) and name.strip():
                    entry["font"] = name.strip()
                    fonts.append(entry)
        return fonts
    return []


class LLMPayload(_Payload):
    """Canonical Pass 2 result."""
    brand_name: OptStr = Field(default=None, alias="brandName")
    colors: list[LLMColor] = Field(default_factory=list)
    typography: list[LLMFont] = Field(default_factory=list)
    weights: StrList = Field(default_factory=list)
    logo: LLMLogo = Field(default_factory=LLMLogo)
    spacing: LLMSpacing = Field(default_factory=LLMSpacing)
    imagery: LLMImagery = Field(default_factory=LLMImagery)
    tone: LLMTone = Field(default_factory=LLMTone)
    avoid: StrList = Field(default_factory=list)
    confidence: Clamped = 0.5

    @model_validator(mode="before")
    @classmethod
    def _normalize_shapes(cls, data: Any):
        if not isinstance(data, dict):
            return {}
        data = dict(data)
        data["colors"] = normalize_colors(data.get("colors"))
        typography = data.get("typography")
        if isinstance(typography, dict) and "weights" in typography:
            data.setdefault("weights", typography.get("weights"))
        data["typography"] = normalize_fonts(typography)

        # Loose sub-shapes: a bare list means descriptors
        if isinstance(data.get("imagery"), list):
            data["imagery"] = {"styleDescriptors": data["imagery"]}
        if "tone" not in data and "voice" in data:
            data["tone"] = data["voice"]
        if isinstance(data.get("tone"), list):
            data["tone"] = {"descriptors": data["tone"]}
        for key in ("logo", "spacing", "imagery", "tone"):
            if not isinstance(data.get(key), dict):
                data.pop(key, None)

        confidence = data.get("confidence")
        if isinstance(confidence, dict):
            data["confidence"] = confidence.get("overall", 0.5)
        return data


# ─── Post-Processing ──────────────────────────────────────────────────────────


def _match_candidate(font: str, candidates: list[str]) -> Optional[str]:
    best, best_distance = None, FUZZY_MAX_DISTANCE + 1
    for candidate in candidates:
        distance = levenshtein(font, candidate)
        if distance < best_distance:
            best, best_distance = candidate, distance
    return best


def post_process(
    payload: LLMPayload,
    brand_name: str,
    rule_fonts: list[str],
    raw_text: str,
) -> LLMPayload:
    """
    Brand aliases, placeholder-name suppression, weight words out of
    color names, dedupe, and the font constraint: LLM fonts must match a
    rule-based candidate (or, with none, appear in the raw text).
    """
    result = payload.model_copy(deep=True)
    aliases = BRAND_COLOR_ALIASES.get((brand_name or result.brand_name or "").strip().lower(), {})

    colors: dict[str, LLMColor] = {}
    for color in result.colors:
        name = (color.name or "").strip()
        if name and WEIGHT_TOKEN_PATTERN.search(name):
            result.weights.extend(
                normalize_weight(word) for word in WEIGHT_TOKEN_PATTERN.findall(name)
            )
            name = ""
        if color.hex in aliases:
            name = aliases[color.hex]
        elif name.lower() in PLACEHOLDER_NAMES:
            name = color.hex
        color.name = name
        colors.setdefault(color.hex, color)
    result.colors = list(colors.values())

    fonts: dict[str, LLMFont] = {}
    lowered_text = raw_text.lower()
    for font in result.typography:
        if rule_fonts:
            matched = _match_candidate(font.font, rule_fonts)
            if matched is None:
                logger.info(f"Dropping LLM font '{font.font}': not among rule-based candidates")
                continue
            font.font = matched
        elif font.font.lower() not in lowered_text:
            logger.info(f"Dropping LLM font '{font.font}': not present in text")
            continue
        font.weights = [normalize_weight(w) for w in font.weights]
        fonts.setdefault(font.font.casefold(), font)
    result.typography = list(fonts.values())

    result.weights = dedupe_casefold(normalize_weight(w) for w in result.weights)
    return result


# ─── Merge ────────────────────────────────────────────────────────────────────


def _route_avoid(guideline: BrandGuideline, rule: str):
    lowered = rule.lower()
    if "logo" in lowered:
        guideline.logo.forbidden.append(rule)
    elif "color" in lowered or "colour" in lowered:
        guideline.colors.forbidden.append(rule)
    else:
        guideline.tone.rules.append(rule)


def fold_into(guideline: BrandGuideline, payload: LLMPayload) -> BrandGuideline:
    """
    Fold a validated payload into a copy of the rule-based guideline.
    Existing values are kept; the payload fills gaps and extends lists.
    """
    result = guideline.model_copy(deep=True)

    colors = result.colors
    for color in payload.colors:
        colors.palette.append(color.hex)
        if color.name and color.name != color.hex:
            colors.names.append(color.name)
        role = (color.usage or "").strip().lower()
        if role in SEMANTIC_ROLES and role not in colors.semantic:
            colors.semantic[role] = NamedColor(
                hex=color.hex, name=color.name or None, usage=role,
            )
    colors.palette = dedupe_casefold(colors.palette)
    colors.names = dedupe_casefold(colors.names)

    typography = result.typography
    for font in payload.typography:
        typography.fonts.families.append(font.font)
        typography.weights.extend(font.weights)
        usage = (font.usage or "").lower()
        if not typography.fonts.primary and any(u in usage for u in PRIMARY_FONT_USAGE):
            typography.fonts.primary = font.font
        elif not typography.fonts.secondary and any(u in usage for u in SECONDARY_FONT_USAGE):
            typography.fonts.secondary = font.font
    if payload.typography and not typography.fonts.primary:
        typography.fonts.primary = payload.typography[0].font
    typography.weights.extend(payload.weights)
    typography.fonts.families = dedupe_casefold(typography.fonts.families)
    typography.weights = dedupe_casefold(typography.weights)

    logo = result.logo
    logo.rules = dedupe_casefold(logo.rules + payload.logo.rules)
    logo.forbidden = dedupe_casefold(logo.forbidden + payload.logo.forbidden)
    logo.clearspace = logo.clearspace or payload.logo.clearspace
    logo.min_size.print_size = logo.min_size.print_size or payload.logo.min_size.print_size
    logo.min_size.digital_size = logo.min_size.digital_size or payload.logo.min_size.digital_size

    spacing = result.spacing
    spacing.grid = spacing.grid or payload.spacing.grid
    spacing.base_unit = spacing.base_unit or payload.spacing.base_unit
    spacing.section_gap = spacing.section_gap or payload.spacing.section_gap
    spacing.component_gap = spacing.component_gap or payload.spacing.component_gap
    spacing.rules = dedupe_casefold(spacing.rules + payload.spacing.rules)

    imagery = result.imagery
    imagery.style_descriptors = dedupe_casefold(
        imagery.style_descriptors + payload.imagery.style_descriptors
    )
    imagery.rules = dedupe_casefold(imagery.rules + payload.imagery.rules)

    tone = result.tone
    tone.descriptors = dedupe_casefold(tone.descriptors + payload.tone.descriptors)
    tone.keywords = dedupe_casefold(tone.keywords + payload.tone.keywords)
    tone.rules = dedupe_casefold(tone.rules + payload.tone.rules)

    for rule in payload.avoid:
        _route_avoid(result, rule)
    result.logo.forbidden = dedupe_casefold(result.logo.forbidden)
    result.colors.forbidden = dedupe_casefold(result.colors.forbidden)
    result.tone.rules = dedupe_casefold(result.tone.rules)

    return result
