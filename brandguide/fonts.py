"""
Font Whitelist & Fuzzy Matching
===============================
Known font families plus a pure edit-distance matcher, so PDF
conversion typos ("Robotto", "Helvetca") still resolve to a canonical
family name. Also holds the heading-hierarchy tolerance check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .models import HeadingStyle

logger = logging.getLogger(__name__)

FUZZY_MAX_DISTANCE = 2

FONT_WHITELIST: tuple[str, ...] = (
    # Google Fonts
    "Roboto", "Open Sans", "Montserrat", "Lato", "Inter", "Poppins",
    "Nunito", "Merriweather", "Source Sans Pro", "Playfair Display",
    "Raleway", "Ubuntu", "Oswald", "PT Sans", "PT Serif", "Droid Sans",
    "Droid Serif", "Crimson Text",
    # System fonts
    "Helvetica", "Arial", "Georgia", "Times New Roman", "Verdana", "Tahoma",
    "Calibri", "Segoe UI", "Trebuchet MS", "Comic Sans MS", "Impact",
    # Brand / commercial
    "Gotham", "Futura", "Proxima Nova", "Circular", "Roobert",
    "Neue Helvetica", "Helvetica Neue", "Avenir", "Univers",
    "Akzidenz Grotesk", "Trade Gothic", "Franklin Gothic", "Omnes",
    "Neighbor", "Greatest Richmond",
    # Classic
    "Baskerville", "Garamond", "Palatino", "Book Antiqua", "Century Gothic",
    "Lucida Console", "Courier New", "Monaco", "Consolas", "Menlo",
)

# Words that look like names in "X is our font" phrases but are not families
BAD_FONT_TERMS = frozenset({
    "font", "fonts", "typeface", "typefaces", "type", "typography", "family",
    "primary", "secondary", "main", "brand", "core", "our", "the", "this",
    "that", "body", "heading", "headings", "headline", "display", "text",
    "bold", "regular", "light", "medium", "semibold", "italic", "thin",
    "heavy", "black", "hairline", "weight", "weights", "size", "sizes",
    "color", "colors", "logo", "use", "used", "uses", "all", "and", "for",
    "with", "web", "print", "digital", "sans-serif", "serif", "monospace",
    "system", "default", "style", "styles", "it", "we",
})

_WHITELIST_LOOKUP = {name.lower(): name for name in FONT_WHITELIST}


def levenshtein(a: str, b: str) -> int:
    """Case-insensitive edit distance between two strings."""
    a, b = a.lower(), b.lower()
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (char_a != char_b),
            ))
        previous = current
    return previous[-1]


def fuzzy_match_font(
    candidate: str,
    max_distance: int = FUZZY_MAX_DISTANCE,
) -> Optional[str]:
    """
    Resolve a candidate to its canonical whitelist name.

    Exact (case-insensitive) hits win; otherwise the closest family within
    max_distance, ties broken by whitelist order. None if nothing is close.
    """
    key = " ".join(candidate.split()).lower()
    if not key:
        return None
    if key in _WHITELIST_LOOKUP:
        return _WHITELIST_LOOKUP[key]

    # Short tokens fuzzy-match too many families
    if len(key) < 4:
        return None

    best: Optional[str] = None
    best_distance = max_distance + 1
    for name in FONT_WHITELIST:
        if abs(len(name) - len(key)) > max_distance:
            continue
        distance = levenshtein(key, name)
        if distance < best_distance:
            best, best_distance = name, distance
    return best


def is_whitelisted(name: str) -> bool:
    return " ".join(name.split()).lower() in _WHITELIST_LOOKUP


def is_plausible_font_name(name: str) -> bool:
    """Reject generic words and obviously non-name tokens."""
    stripped = name.strip()
    if len(stripped) < 2 or len(stripped) > 40:
        return False
    words = stripped.lower().split()
    if all(word in BAD_FONT_TERMS for word in words):
        return False
    if words[0] in BAD_FONT_TERMS and not is_whitelisted(stripped):
        return False
    return stripped[0].isupper()


# ─── Heading Hierarchy ────────────────────────────────────────────────────────

SIZE_TOLERANCE_PX = 2.0
LETTER_SPACING_TOLERANCE_PX = 0.1


@dataclass(frozen=True)
class HierarchyMismatch:
    """One attribute of one heading level outside tolerance."""
    level: str
    attribute: str
    expected: object
    observed: object


def check_heading(
    level: str,
    expected: HeadingStyle,
    observed: HeadingStyle,
) -> list[HierarchyMismatch]:
    """Compare one heading level: ±2px size, ±0.1px letter-spacing, exact weight."""
    mismatches = []

    if expected.size_px is not None and observed.size_px is not None:
        if abs(expected.size_px - observed.size_px) > SIZE_TOLERANCE_PX:
            mismatches.append(
                HierarchyMismatch(level, "size", expected.size_px, observed.size_px)
            )

    if expected.letter_spacing_px is not None and observed.letter_spacing_px is not None:
        delta = abs(expected.letter_spacing_px - observed.letter_spacing_px)
        # epsilon absorbs float error, e.g. -0.5 vs -0.4
        if delta > LETTER_SPACING_TOLERANCE_PX + 1e-9:
            mismatches.append(
                HierarchyMismatch(
                    level, "letter_spacing",
                    expected.letter_spacing_px, observed.letter_spacing_px,
                )
            )

    if expected.weight is not None and observed.weight is not None:
        if expected.weight.strip().lower() != observed.weight.strip().lower():
            mismatches.append(
                HierarchyMismatch(level, "weight", expected.weight, observed.weight)
            )

    return mismatches


def check_hierarchy(
    expected: dict[str, HeadingStyle],
    observed: dict[str, HeadingStyle],
) -> list[HierarchyMismatch]:
    """Compare every heading level present in both tables."""
    mismatches: list[HierarchyMismatch] = []
    for level in sorted(expected):
        if level in observed:
            mismatches.extend(check_heading(level, expected[level], observed[level]))
    return mismatches
