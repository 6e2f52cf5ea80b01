"""
Brand Guideline Extraction Engine
=================================
Turns the flattened text of a brand guideline PDF into a structured,
confidence-scored BrandGuideline.

Architecture:
    - Text Preprocessor: Repairs encoding artifacts and glued section headers
    - Section Segmenter: Splits text into labeled category buckets
    - Entity Extractors: Pattern-table driven color/font/logo/spacing/tone/imagery
    - Reconciliation Engine: Fixes cross-category contamination and dedups
    - Confidence Scorer: Per-category and overall confidence
    - LLM Orchestrator: Optional two-pass semantic enhancement
    - Extraction Coordinator: Sequences everything and merges strategies

Version: 1.0.0
"""

__version__ = "1.0.0"
