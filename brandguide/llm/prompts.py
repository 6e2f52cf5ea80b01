"""
Prompt Builders
===============
Prompts for the two LLM passes and the strict-schema retry.

Every prompt is a PromptParts triple matching the collaborator call
(system prompt, context JSON, raw text excerpt) and is bounded to
max_prompt_chars: the excerpt is truncated first, then the context, and
the tail of the system prompt only as a last resort.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)

PASS1_EXCERPT_CHARS = 2000
PASS2_EXCERPT_CHARS = 3000
MAX_PROMPT_CHARS = 28000

TRUNCATION_MARKER = "\n[... truncated ...]"

PRIORITY_LINE = re.compile(
    r"\b(?:colou?rs?|palette|typography|fonts?|logos?|spacing|clear\s*space|voice|tone)\b"
    r"|#[0-9A-Fa-f]{6}\b|\bRGB\b|\bPMS\b|\bPantone\b",
    re.IGNORECASE,
)

PASS2_SCHEMA = {
    "brandName": "string",
    "colors": [{"name": "string", "hex": "#RRGGBB", "usage": "string", "confidence": 0.8}],
    "typography": [{"font": "string", "weights": ["Regular"], "usage": "primary | secondary | body | display"}],
    "logo": {
        "rules": ["string"],
        "forbidden": ["string"],
        "clearspace": "string",
        "minSize": {"print": "string", "digital": "string"},
    },
    "spacing": {
        "grid": "string",
        "baseUnit": "string",
        "sectionGap": "string",
        "componentGap": "string",
        "rules": ["string"],
    },
    "imagery": {"styleDescriptors": ["string"], "rules": ["string"]},
    "tone": {"descriptors": ["string"], "keywords": ["string"], "rules": ["string"]},
    "avoid": ["string"],
    "confidence": {"overall": 0.5},
}

PASS1_SCHEMA = {
    "sections": [
        {
            "name": "Brand Typography",
            "category": "Typography",
            "summary": "Font families and weights with usage",
            "keyElements": ["Inter", "Regular", "Bold"],
        }
    ]
}

PASS1_SYSTEM_PROMPT = """\
You are reading brand guideline text that lost its layout during PDF conversion.
Identify the main sections and classify each one as Color, Typography, Logo,
Spacing, Tone or Imagery. For every section give its name, its category, a
one-line summary and the key elements it contains.

Only report sections that are clearly present. If content is mixed, say so in
the summary. Respond with JSON only, in exactly this shape:
"""

PASS2_SYSTEM_PROMPT = """\
You are extracting a structured brand guideline for "{brand_name}".
The context JSON holds the section outline found in a first pass.

CRITICAL SEPARATION RULES:
- A phrase containing HEX, RGB or CMYK values is COLOR.
- Weight words (Bold, Light, Italic, Regular, Medium, Semibold) are TYPOGRAPHY.
- If both appear in one paragraph, split it into its two parts.
- Never put color codes in typography entries.
- Never put font weights or styles in color names or palettes.
- Convert PMS / Pantone codes to hex where you know the value.

FONT VALIDATION:
Font candidates detected in the document: {font_candidates}
Only return fonts that appear in this list or verbatim in the text.
Do not invent font names. Add weights and usage where the text states them.

Respond with JSON only, matching this schema exactly:
"""

RETRY_SYSTEM_PROMPT = """\
Your previous answer was not valid JSON. Return ONLY valid JSON that matches
the schema below exactly. Fix the previous content if it is salvageable;
otherwise extract again from the text.

Schema:
{schema}

Previous content (invalid JSON):
{previous}

The original instructions follow.

"""

RETRY_PREVIOUS_CHARS = 4000


@dataclass(frozen=True)
class PromptParts:
    system_prompt: str
    context_json: str = ""
    excerpt: str = ""

    @property
    def total_chars(self) -> int:
        return len(self.system_prompt) + len(self.context_json) + len(self.excerpt)


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    if limit <= len(TRUNCATION_MARKER):
        return text[:max(limit, 0)]
    return text[:limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


def bound_prompt(parts: PromptParts, max_chars: int = MAX_PROMPT_CHARS) -> PromptParts:
    """Shrink the excerpt, then the context JSON, then the system prompt tail."""
    overflow = parts.total_chars - max_chars
    if overflow <= 0:
        return parts

    excerpt = _truncate(parts.excerpt, max(len(parts.excerpt) - overflow, 0))
    parts = replace(parts, excerpt=excerpt)
    overflow = parts.total_chars - max_chars
    if overflow > 0:
        context = _truncate(parts.context_json, max(len(parts.context_json) - overflow, 0))
        parts = replace(parts, context_json=context)
    overflow = parts.total_chars - max_chars
    if overflow > 0:
        system = _truncate(parts.system_prompt, max(len(parts.system_prompt) - overflow, 0))
        parts = replace(parts, system_prompt=system)

    logger.debug(f"Prompt truncated to {parts.total_chars} chars (cap {max_chars})")
    return parts


def priority_excerpt(text: str, limit: int = PASS2_EXCERPT_CHARS) -> str:
    """
    The text itself when it fits; otherwise the lines that mention a
    guideline category or carry a color code, in document order.
    """
    if len(text) <= limit:
        return text

    lines = [line for line in text.splitlines() if PRIORITY_LINE.search(line)]
    if not lines:
        return _truncate(text, limit)
    return _truncate("\n".join(lines), limit)


# ─── Pass Prompts ─────────────────────────────────────────────────────────────


def pass1_prompt(
    text: str,
    excerpt_chars: int = PASS1_EXCERPT_CHARS,
    max_chars: int = MAX_PROMPT_CHARS,
) -> PromptParts:
    return bound_prompt(
        PromptParts(
            system_prompt=PASS1_SYSTEM_PROMPT + json.dumps(PASS1_SCHEMA, indent=2),
            excerpt=text[:excerpt_chars],
        ),
        max_chars,
    )


def pass2_prompt(
    text: str,
    outline: dict,
    font_candidates: list[str],
    brand_name: str = "",
    excerpt_chars: int = PASS2_EXCERPT_CHARS,
    max_chars: int = MAX_PROMPT_CHARS,
) -> PromptParts:
    system = PASS2_SYSTEM_PROMPT.format(
        brand_name=brand_name or "Unknown Brand",
        font_candidates=", ".join(font_candidates) or "None detected",
    )
    return bound_prompt(
        PromptParts(
            system_prompt=system + json.dumps(PASS2_SCHEMA, indent=2),
            context_json=json.dumps(outline, indent=2),
            excerpt=priority_excerpt(text, excerpt_chars),
        ),
        max_chars,
    )


def retry_prompt(
    original: PromptParts,
    previous_output: str,
    schema: dict,
    max_chars: int = MAX_PROMPT_CHARS,
) -> PromptParts:
    """
    Stricter prompt echoing the broken output and the exact schema,
    prepended to the original system prompt. The echo is capped so the
    original instructions always fit; the excerpt and context give way
    after that.
    """
    schema_json = json.dumps(schema, indent=2)
    fixed = (
        len(RETRY_SYSTEM_PROMPT.format(schema=schema_json, previous=""))
        + len(original.system_prompt)
    )
    room = min(RETRY_PREVIOUS_CHARS, max(max_chars - fixed, 0))
    header = RETRY_SYSTEM_PROMPT.format(
        schema=schema_json,
        previous=_truncate(previous_output.strip(), room) or "(empty)",
    )
    return bound_prompt(
        replace(original, system_prompt=header + original.system_prompt), max_chars,
    )
