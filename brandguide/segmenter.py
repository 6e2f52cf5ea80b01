"""
Section Segmenter
=================
Deterministic state machine that splits cleaned guideline text into
labeled category buckets (COLOR, TYPOGRAPHY, LOGO, SPACING, IMAGERY,
TONE, GENERAL).

Two passes run over the same lines and are unioned:

    Conservative   a line opens a section only when the whole line is
                   a header ("COLOR", "2. Typography:", "Brand Logos")
    Pre-clustering any line that merely begins with a header keyword
                   opens a cluster; recovers headers buried mid-text

No content from either pass is discarded.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from .models import Category, Section
from .synonyms import classify_section, normalize_section_name

logger = logging.getLogger(__name__)

# ─── Header Patterns ──────────────────────────────────────────────────────────

HEADER_VOCABULARY = (
    r"COLOU?RS?|(?:COLOU?R\s+)?PALETTES?|LOGOS?|LOGOTYPES?|WORDMARKS?|SYMBOLS?"
    r"|TYPOGRAPHY|FONTS?|TYPEFACES?|SPACING|IMAGERY|PHOTOGRAPHY|ICONS?"
    r"|ICONOGRAPHY|TONE(?:\s+OF\s+VOICE)?|VOICE|BRAND|IDENTITY|USAGE|GUIDELINES?"
)

# Matches "COLOR", "2. Typography:", "Our Logo", "Brand Colors", "Logo Guidelines"
CONSERVATIVE_HEADER_PATTERN = re.compile(
    r"^\s*(?:\d{1,2}[.)]\s*)?(?:(?:BRAND|OUR)\s+)?"
    r"(" + HEADER_VOCABULARY + r")"
    r"(?:\s+(?:GUIDELINES?|USAGE|SYSTEM))?\s*:?\s*$",
    re.IGNORECASE,
)

# Matches any line that begins with a header keyword
PRE_CLUSTER_PATTERN = re.compile(
    r"^\s*(colou?rs?|logos?|typography|fonts?|spacing|imagery|tone|voice"
    r"|usage|brand|identity|guidelines?)\b",
    re.IGNORECASE,
)


class SegmenterState(Enum):
    """Internal states of the line scanner."""
    SEEKING_HEADER = "SEEKING_HEADER"
    IN_SECTION = "IN_SECTION"


class SectionSegmenter:
    """
    Line-driven state machine producing ordered, labeled Sections.
    """

    def __init__(self):
        self.state = SegmenterState.SEEKING_HEADER
        self.current: Optional[Section] = None
        self.sections: list[Section] = []
        self.headers_found = 0

    def reset(self):
        """Reset the state machine for a fresh document."""
        self.state = SegmenterState.SEEKING_HEADER
        self.current = None
        self.sections = []
        self.headers_found = 0

    def segment(self, text: str) -> list[Section]:
        """
        Split cleaned text into sections.

        Args:
            text: Output of the TextPreprocessor.

        Returns:
            Ordered sections; a single GENERAL section when no header
            is found at all.
        """
        if not text or not text.strip():
            return []

        lines = [line.strip() for line in text.split("\n")]

        conservative = self._conservative_pass(lines)
        conservative_headers = self.headers_found
        clusters = self._pre_cluster_pass(lines)

        if conservative_headers == 0 and not clusters:
            logger.info("No section headers detected; using whole-document GENERAL bucket")
            return [
                Section(
                    category=Category.GENERAL,
                    text=text.strip(),
                    source="whole_document",
                )
            ]

        sections = self._merge(conservative, clusters)

        logger.info(
            f"Segmented into {len(sections)} section(s): "
            f"{', '.join(s.category.value for s in sections)} "
            f"({conservative_headers} header(s), {len(clusters)} cluster(s))"
        )
        return sections

    # ─── Conservative Pass ────────────────────────────────────────────────

    def _conservative_pass(self, lines: list[str]) -> list[Section]:
        self.reset()

        for line in lines:
            if not line:
                continue

            header_match = CONSERVATIVE_HEADER_PATTERN.match(line)
            if header_match:
                self.headers_found += 1
                self._start_section(normalize_section_name(header_match.group(1)), line)
                continue

            if self.state == SegmenterState.SEEKING_HEADER:
                # Preamble before the first header
                self._start_section(Category.GENERAL, None)

            self.current.extend(line)

        self._finalize_section()
        return self.sections

    def _start_section(self, category: Category, header: Optional[str]):
        """Finalize the previous section and open (or reopen) one for category."""
        self._finalize_section()

        existing = next((s for s in self.sections if s.category == category), None)
        if existing is not None:
            self.current = existing
            if header:
                self.current.extend("", header=header)
        else:
            self.current = Section(
                category=category,
                headers=[header] if header else [],
                source="conservative",
            )
        self.state = SegmenterState.IN_SECTION

    def _finalize_section(self):
        if self.current is not None:
            already_listed = any(s is self.current for s in self.sections)
            if not already_listed and (self.current.text or self.current.headers):
                self.sections.append(self.current)
            self.current = None

    # ─── Pre-Clustering Pass ──────────────────────────────────────────────

    def _pre_cluster_pass(self, lines: list[str]) -> list[Section]:
        clusters: list[Section] = []
        header: Optional[str] = None
        buffer: list[str] = []

        def flush():
            if header is None or not buffer:
                return
            content = "\n".join(buffer)
            category = normalize_section_name(header)
            if category == Category.GENERAL:
                category = classify_section(content)
            clusters.append(
                Section(
                    category=category,
                    text=content,
                    headers=[header],
                    source="pre_cluster",
                )
            )

        for line in lines:
            if not line:
                continue
            match = PRE_CLUSTER_PATTERN.match(line)
            if match:
                flush()
                header = match.group(1)
                buffer = [line]
            elif header is not None:
                buffer.append(line)

        flush()
        return clusters

    # ─── Merge ────────────────────────────────────────────────────────────

    def _merge(
        self,
        conservative: list[Section],
        clusters: list[Section],
    ) -> list[Section]:
        """A cluster extends the same-category section, else becomes a new one."""
        merged = [s.model_copy(deep=True) for s in conservative]
        by_category = {s.category: s for s in merged}

        for cluster in clusters:
            target = by_category.get(cluster.category)
            if target is None:
                new_section = cluster.model_copy(deep=True)
                merged.append(new_section)
                by_category[cluster.category] = new_section
                continue

            # Only lines the conservative section does not already hold
            known = set(target.text.split("\n")) | set(target.headers)
            new_lines = [line for line in cluster.text.split("\n") if line not in known]
            if new_lines:
                target.extend("\n".join(new_lines))
            for header in cluster.headers:
                target.extend("", header=header)
            target.source = "merged"

        return merged
