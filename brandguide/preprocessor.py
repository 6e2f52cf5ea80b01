"""
Text Preprocessor
=================
Repairs the damage done by PDF-to-text flattening before any pattern
matching runs:

    - encoding artifacts (control chars, smart quotes, odd spaces)
    - whitespace runs, keeping paragraph breaks
    - section headers glued onto the end of body text
    - 3-digit hex shorthand (every color matcher expects 6 digits)
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

# ─── Cleanup Patterns ─────────────────────────────────────────────────────────

# C0/C1 control characters except \t and \n
CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

# NBSP, thin and ideographic spaces; zero-width chars
ODD_SPACES = re.compile(r"[\u00a0\u2000-\u200a\u202f\u205f\u3000]")
ZERO_WIDTH = re.compile(r"[\u200b-\u200d\u2060\ufeff]")

SMART_QUOTES = {
    "\N{LEFT SINGLE QUOTATION MARK}": "'",
    "\N{RIGHT SINGLE QUOTATION MARK}": "'",
    "\N{SINGLE LOW-9 QUOTATION MARK}": "'",
    "\N{LEFT DOUBLE QUOTATION MARK}": '"',
    "\N{RIGHT DOUBLE QUOTATION MARK}": '"',
    "\N{DOUBLE LOW-9 QUOTATION MARK}": '"',
    "\N{PRIME}": "'",
    "\N{DOUBLE PRIME}": '"',
    "\N{EN DASH}": "-",
    "\N{EM DASH}": "-",
    "\N{HORIZONTAL ELLIPSIS}": "...",
}

HORIZONTAL_WS = re.compile(r"[ \t]+")
PARAGRAPH_BREAKS = re.compile(r"\n{3,}")

# Uppercase header tokens that PDF flattening glues onto body text
HEADER_TOKENS = (
    "COLOURS?", "COLORS?", "LOGOS?", "TYPOGRAPHY", "SPACING", "IMAGERY",
    "TONE", "BRAND", "IDENTITY", "USAGE", "GUIDELINES?", "SYMBOLS?",
)

# "...our palettesCOLOR Primary" / "logo. TYPOGRAPHY\n"
GLUED_HEADER_PATTERN = re.compile(
    r"([a-z.])[ \t]*(" + "|".join(HEADER_TOKENS) + r")"
    r"(?=[ \t]*$|[ \t]*:|[ \t]+[A-Z0-9#])",
    re.MULTILINE,
)

# "#abc" not followed by another hex digit
SHORT_HEX_PATTERN = re.compile(r"#([0-9A-Fa-f]{3})(?![0-9A-Fa-f])")


def expand_short_hex(text: str) -> str:
    """Expand every 3-digit hex code to its uppercase 6-digit form."""
    def _expand(match: re.Match) -> str:
        r, g, b = match.group(1).upper()
        return f"#{r}{r}{g}{g}{b}{b}"

    return SHORT_HEX_PATTERN.sub(_expand, text)


class TextPreprocessor:
    """Stateless cleaner for flattened guideline text."""

    def clean(self, text: str) -> str:
        """
        Clean raw text for segmentation.

        Args:
            text: Raw output of the PDF-to-text collaborator.

        Returns:
            Cleaned text, or "" for empty input.
        """
        if not text or not text.strip():
            return ""

        original_length = len(text)

        text = text.replace("\r\n", "\n").replace("\r", "\n")
        text = CONTROL_CHARS.sub("", text)
        text = ZERO_WIDTH.sub("", text)
        text = ODD_SPACES.sub(" ", text)
        for smart, plain in SMART_QUOTES.items():
            text = text.replace(smart, plain)

        text = self.deglue_headers(text)

        lines = [HORIZONTAL_WS.sub(" ", line).strip() for line in text.split("\n")]
        text = "\n".join(lines)
        text = PARAGRAPH_BREAKS.sub("\n\n", text).strip()

        text = expand_short_hex(text)

        logger.debug(
            f"Preprocessed text: {original_length} -> {len(text)} chars"
        )
        return text

    def deglue_headers(self, text: str) -> str:
        """Put glued uppercase section headers back on their own line."""
        count = 0

        def _split(match: re.Match) -> str:
            nonlocal count
            count += 1
            return f"{match.group(1)}\n{match.group(2)}\n"

        result = GLUED_HEADER_PATTERN.sub(_split, text)
        if count:
            logger.debug(f"Deglued {count} section header(s)")
        return result
