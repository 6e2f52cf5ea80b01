"""
Synonym Normalizer
==================
Fixed lookup tables that collapse vocabulary variance:

    normalize_key()           "brand font" -> "primaryFont"
    role_keys()               "Primary Blue" -> ["primary"]
    normalize_color_to_hex()  hex / rgb / rgba / cmyk / Pantone -> "#RRGGBB"
    normalize_section_name()  "PALETTE" -> COLOR, "WORDMARK" -> LOGO
    classify_section()        keyword scoring -> Category

All tables are module-level and read-only.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .models import Category

logger = logging.getLogger(__name__)

# ─── Key Synonyms ─────────────────────────────────────────────────────────────

_KEY_GROUPS: dict[str, tuple[str, ...]] = {
    "primary": (
        "primary color", "main hue", "core palette", "brand color",
        "main color", "key color", "signature color", "hero color",
        "core color",
    ),
    "secondary": (
        "secondary color", "supporting color", "complementary color",
    ),
    "accent": ("accent color", "highlight color"),
    "background": ("background color", "bg color"),
    "text": ("text color", "body color", "heading color", "copy color"),
    "primaryFont": (
        "brand font", "main typeface", "display typeface", "headline font",
        "primary font", "core font", "signature font", "main font",
        "key font", "display font", "heading font",
    ),
    "secondaryFont": (
        "secondary font", "body font", "body typeface", "text font",
        "supporting font", "web font", "print font",
    ),
    "forbidden": (
        "do not distort", "never distort", "don't distort",
        "avoid distorting", "no distortion",
    ),
    "spacing": (
        "clear space", "breathing room", "minimum space", "safe area",
        "exclusion zone", "white space",
    ),
    "minSize": (
        "minimum size", "smallest size", "smallest use", "minimum use",
    ),
    "weight": ("font weight", "type weight", "text weight"),
    "style": ("font style", "type style", "text style"),
}

BRAND_SYNONYM_MAP: dict[str, str] = {
    phrase: key
    for key, phrases in _KEY_GROUPS.items()
    for phrase in phrases
}

_SPACE_RUN = re.compile(r"\s+")


def normalize_key(token: str) -> str:
    """Canonical key for a vocabulary variant; unknown tokens come back lowercased."""
    cleaned = _SPACE_RUN.sub(" ", token.strip().lower())
    cleaned = cleaned.replace("colour", "color")
    return BRAND_SYNONYM_MAP.get(cleaned, cleaned)


_PHRASE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\b" + re.escape(phrase) + r"\b"), key)
    for phrase, key in BRAND_SYNONYM_MAP.items()
]

_WORD = re.compile(r"[a-z]+")


def find_keys(text: str) -> list[str]:
    """All canonical keys whose synonyms occur in text, in table order."""
    lowered = _SPACE_RUN.sub(" ", text.lower()).replace("colour", "color")
    found = []
    for pattern, key in _PHRASE_PATTERNS:
        if key not in found and pattern.search(lowered):
            found.append(key)
    return found


def role_keys(text: str, noun: str) -> list[str]:
    """
    Canonical keys named in text, either by a full synonym phrase or by a
    single word that forms one with `noun`: with noun "color", the word
    "Primary" in "Primary Blue" reads as "primary color".
    """
    keys = find_keys(text)
    for word in _WORD.findall(text.lower()):
        key = normalize_key(f"{word} {noun}")
        if key in _KEY_GROUPS and key not in keys:
            keys.append(key)
    return keys


# ─── Shared Vocabularies ──────────────────────────────────────────────────────

WEIGHT_WORDS = (
    "hairline", "thin", "extralight", "light", "regular", "book", "medium",
    "semibold", "bold", "extrabold", "heavy", "black", "italic",
)

# Tokens that must never survive inside a color array
WEIGHT_TOKEN_PATTERN = re.compile(
    r"\b(bold|light|regular|medium|semibold|italic|hairline|thin|heavy)\b",
    re.IGNORECASE,
)

# ─── Color Normalization ──────────────────────────────────────────────────────

PMS_TO_HEX: dict[str, str] = {
    "376": "#1DB954",
    "814": "#9146FF",
    "656": "#00D4AA",
    "186": "#CC0000",
    "3005": "#003366",
    "485": "#FF0000",
    "286": "#0033A0",
    "355": "#00A651",
    "200": "#C8102E",
    "300": "#003DA5",
    "347": "#00B04F",
    "199": "#E4002B",
}

HEX6_PATTERN = re.compile(r"^#?([0-9A-Fa-f]{6})$")
HEX3_PATTERN = re.compile(r"^#?([0-9A-Fa-f]{3})$")
PMS_TAG_PATTERN = re.compile(r"^#PMS([0-9A-Z]+)$")
PMS_PATTERN = re.compile(
    r"^(?:PMS|PANTONE)\s*(\d{2,4})\s*([A-Z]{0,2})$", re.IGNORECASE
)
RGB_FUNC_PATTERN = re.compile(
    r"^rgba?\s*\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})"
    r"(?:\s*,\s*[\d.]+%?)?\s*\)$",
    re.IGNORECASE,
)
RGB_TRIPLE_PATTERN = re.compile(r"^(\d{1,3})[\s,/]+(\d{1,3})[\s,/]+(\d{1,3})$")
CMYK_FUNC_PATTERN = re.compile(
    r"^cmyk\s*\(\s*(\d{1,3})%?\s*,\s*(\d{1,3})%?\s*,\s*(\d{1,3})%?\s*,"
    r"\s*(\d{1,3})%?\s*\)$",
    re.IGNORECASE,
)
CMYK_LETTER_PATTERN = re.compile(
    r"^C\s*(\d{1,3})\s*M\s*(\d{1,3})\s*Y\s*(\d{1,3})\s*K\s*(\d{1,3})$",
    re.IGNORECASE,
)


def rgb_to_hex(r: int, g: int, b: int) -> Optional[str]:
    if not all(0 <= channel <= 255 for channel in (r, g, b)):
        return None
    return f"#{r:02X}{g:02X}{b:02X}"


def cmyk_to_hex(c: int, m: int, y: int, k: int) -> Optional[str]:
    if not all(0 <= channel <= 100 for channel in (c, m, y, k)):
        return None
    black = 1 - k / 100
    return rgb_to_hex(
        int(round(255 * (1 - c / 100) * black)),
        int(round(255 * (1 - m / 100) * black)),
        int(round(255 * (1 - y / 100) * black)),
    )


def pms_to_hex(code: str) -> str:
    """Map a Pantone code to hex, or a traceable '#PMS<code>' tag."""
    code = code.upper().replace(" ", "")
    digits = code.rstrip("ABCDEFGHIJKLMNOPQRSTUVWXYZ")
    if code in PMS_TO_HEX:
        return PMS_TO_HEX[code]
    if digits in PMS_TO_HEX:
        return PMS_TO_HEX[digits]
    logger.debug(f"Unknown Pantone code passed through: PMS {code}")
    return f"#PMS{code}"


def normalize_color_to_hex(value: str) -> Optional[str]:
    """
    Single conversion point for every color notation.

    Returns "#RRGGBB" (uppercase), "#PMS<code>" for unmapped Pantone
    codes, or None when the value is not a color. Idempotent.
    """
    if not value:
        return None
    value = value.strip()

    if PMS_TAG_PATTERN.match(value):
        return value

    match = HEX6_PATTERN.match(value)
    if match:
        return f"#{match.group(1).upper()}"

    match = HEX3_PATTERN.match(value)
    if match:
        r, g, b = match.group(1).upper()
        return f"#{r}{r}{g}{g}{b}{b}"

    match = PMS_PATTERN.match(value)
    if match:
        return pms_to_hex(match.group(1) + match.group(2))

    match = RGB_FUNC_PATTERN.match(value) or RGB_TRIPLE_PATTERN.match(value)
    if match:
        return rgb_to_hex(*(int(part) for part in match.groups()))

    match = CMYK_FUNC_PATTERN.match(value) or CMYK_LETTER_PATTERN.match(value)
    if match:
        return cmyk_to_hex(*(int(part) for part in match.groups()))

    return None


CANONICAL_HEX_PATTERN = re.compile(r"^#[0-9A-F]{6}$")


def is_canonical_hex(value: Optional[str]) -> bool:
    return bool(CANONICAL_HEX_PATTERN.match(value or ""))


# ─── Section Names & Classification ───────────────────────────────────────────

# Substring lookup, first hit wins; LOGO precedes TYPOGRAPHY so "LOGOTYPE" stays a logo
SECTION_NAME_SYNONYMS: list[tuple[tuple[str, ...], Category]] = [
    (("COLOR", "COLOUR", "PALETTE"), Category.COLOR),
    (("LOGO", "WORDMARK", "BRANDMARK", "SYMBOL"), Category.LOGO),
    (("TYPOGRAPHY", "TYPEFACE", "FONT", "TYPE"), Category.TYPOGRAPHY),
    (("SPACING", "MARGIN", "PADDING", "GRID", "LAYOUT", "CLEAR SPACE"), Category.SPACING),
    (("IMAGERY", "PHOTO", "IMAGE", "ILLUSTRATION", "ICON"), Category.IMAGERY),
    (("TONE", "VOICE", "MESSAGING"), Category.TONE),
]


def normalize_section_name(header: str) -> Category:
    """Canonical category for a header variant; GENERAL when nothing matches."""
    upper = header.upper()
    for needles, category in SECTION_NAME_SYNONYMS:
        if any(needle in upper for needle in needles):
            return category
    return Category.GENERAL


SECTION_CLASSIFIERS: list[tuple[Category, tuple[str, ...]]] = [
    (Category.COLOR, (
        "color", "colour", "palette", "hex", "rgb", "cmyk", "pantone", "hue",
        "shade", "tint", "primary", "secondary", "accent", "background",
        "foreground",
    )),
    (Category.TYPOGRAPHY, (
        "font", "typeface", "typography", "weight", "italic", "bold", "light",
        "regular", "medium", "semibold", "heavy", "thin", "hairline", "text",
        "heading", "body", "display", "caption", "label",
    )),
    (Category.LOGO, (
        "logo", "mark", "symbol", "wordmark", "logotype", "clearspace",
        "breathing room", "minimum size", "distort", "alter", "modify",
        "proportions", "aspect ratio", "lockup", "horizontal", "vertical",
    )),
    (Category.SPACING, (
        "spacing", "margin", "padding", "grid", "layout", "clear space",
        "white space", "breathing room", "exclusion zone", "safe area",
        "minimum space", "gutter", "baseline", "leading", "tracking",
    )),
    (Category.IMAGERY, (
        "photo", "photography", "imagery", "visual", "illustration",
        "graphic", "icon", "pattern", "texture", "mood", "aesthetic",
        "look", "feel", "vibe", "atmosphere",
    )),
    (Category.TONE, (
        "tone", "voice", "messaging", "personality", "communication",
        "speak", "write", "copy",
    )),
]

_CLASSIFIER_PATTERNS: list[tuple[Category, list[re.Pattern]]] = [
    (category, [re.compile(r"\b" + re.escape(kw), re.IGNORECASE) for kw in keywords])
    for category, keywords in SECTION_CLASSIFIERS
]


def classify_section(text: str) -> Category:
    """First category with at least two distinct keyword hits, else GENERAL."""
    if not text:
        return Category.GENERAL
    for category, patterns in _CLASSIFIER_PATTERNS:
        hits = sum(1 for pattern in patterns if pattern.search(text))
        if hits >= 2:
            return category
    return Category.GENERAL
