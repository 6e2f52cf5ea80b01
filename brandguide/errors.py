"""
Error Taxonomy
==============
Exceptions raised inside the extraction pipeline.

Only InputError is allowed to reach the caller of the coordinator.
Every other error has a local recovery:

    ExtractionMiss      -> category filled from generic defaults
    LLMUnavailable      -> orchestrator returns the pre-LLM result
    LLMMalformedOutput  -> orchestrator returns the pre-LLM result
    SchemaViolation     -> offending field corrected in place
    ExtractionCancelled -> coordinator finishes with rule-based data
"""

from __future__ import annotations

from typing import Optional


class BrandExtractionError(Exception):
    """Base class for all extraction errors."""


class InputError(BrandExtractionError):
    """Input text is empty or otherwise unusable."""


class ExtractionMiss(BrandExtractionError):
    """A category yielded zero rule-backed entities."""

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"No entities extracted for category '{category}'")


class LLMUnavailable(BrandExtractionError):
    """The LLM collaborator timed out, failed on the network, or rejected auth."""


class LLMMalformedOutput(BrandExtractionError):
    """The LLM response could not be parsed as JSON after every repair."""

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        super().__init__(message)


class SchemaViolation(BrandExtractionError):
    """A field failed post-validation (e.g. a non-hex color)."""

    def __init__(self, field: str, value: object, corrected: Optional[object] = None):
        self.field = field
        self.value = value
        self.corrected = corrected
        super().__init__(
            f"Invalid value for '{field}': {value!r} (corrected to {corrected!r})"
        )


class ExtractionCancelled(BrandExtractionError):
    """The caller cancelled the document while an LLM call was pending."""
