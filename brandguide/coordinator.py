"""
Extraction Coordinator
======================
Main orchestrator that sequences preprocessing, segmentation, the
rule-based strategies, reconciliation, confidence scoring and the LLM
enhancement pass into one BrandGuideline.

Usage:
    coordinator = ExtractionCoordinator(config)
    guideline = coordinator.extract(text, brand_name="Buffer")
    payload = guideline.to_json_dict()

Architecture:
    text → TextPreprocessor → SectionSegmenter → Sections →
    plain + specialized strategies → field merge → ReconciliationEngine →
    ConfidenceScorer → LLMEnhancementOrchestrator → defaults →
    ReconciliationEngine → ConfidenceScorer → BrandGuideline
"""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .confidence import ConfidenceScorer, section_texts
from .defaults import fill_missing
from .errors import InputError
from .llm.client import DEFAULT_MODEL, GeminiCollaborator, LLMCollaborator
from .llm.orchestrator import LLMEnhancementOrchestrator
from .models import CATEGORY_FIELDS, BrandGuideline, ExtractionMethod, RawDocument
from .preprocessor import TextPreprocessor
from .reconciler import ReconciliationEngine
from .segmenter import SectionSegmenter
from .strategies import (
    LLM,
    SPECIALIZED,
    StrategyResult,
    merge_fields,
    run_plain,
    run_specialized,
)
from .tracing import DirectoryTracer, NullTracer, Tracer

logger = logging.getLogger(__name__)

ENV_PREFIX = "BRANDGUIDE_"
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class ExtractorConfig:
    """Configuration for the extraction coordinator."""

    # Extraction
    context_window: int = 200
    enable_specialized: bool = True

    # LLM enhancement
    enable_llm: bool = True
    llm_model: str = DEFAULT_MODEL
    llm_timeout: float = 30.0
    pass1_excerpt_chars: int = 2000
    pass2_excerpt_chars: int = 3000
    max_prompt_chars: int = 28000

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Tracing (debug artifacts)
    debug_dir: Optional[str] = None

    @classmethod
    def from_env(cls, **overrides) -> "ExtractorConfig":
        """
        Build a config from BRANDGUIDE_* environment variables (a .env
        file is loaded first). Keyword overrides win over the environment.
        """
        load_dotenv()
        config = cls()
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            current = getattr(config, f.name)
            if isinstance(current, bool):
                value = raw.strip().lower() in _TRUE_VALUES
            elif isinstance(current, int):
                value = int(raw)
            elif isinstance(current, float):
                value = float(raw)
            else:
                value = raw or None
            setattr(config, f.name, value)

        for name, value in overrides.items():
            setattr(config, name, value)
        return config


class ExtractionCoordinator:
    """
    Brand guideline extraction pipeline.

    Orchestrates:
        1. Preprocessing and segmentation
        2. Plain and specialized rule-based strategies
        3. Field merge and reconciliation
        4. Confidence scoring
        5. LLM enhancement (optional, strictly additive)
        6. Default filling, final reconciliation and scoring

    Holds no per-document state; documents can be processed in parallel.
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        collaborator: Optional[LLMCollaborator] = None,
        tracer: Optional[Tracer] = None,
    ):
        self.config = config or ExtractorConfig()
        self._setup_logging()

        if tracer is None:
            tracer = DirectoryTracer(self.config.debug_dir) if self.config.debug_dir else NullTracer()
        self.tracer = tracer

        self.collaborator = collaborator
        if self.collaborator is None and self.config.enable_llm:
            self.collaborator = GeminiCollaborator(model=self.config.llm_model)

        self.preprocessor = TextPreprocessor()
        self.reconciler = ReconciliationEngine()
        self.scorer = ConfidenceScorer()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("brandguide")
        package_logger.setLevel(log_level)
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(formatter)
            package_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            log_path = Path(self.config.log_file)
            already = any(
                isinstance(h, logging.FileHandler)
                and Path(h.baseFilename) == log_path.resolve()
                for h in package_logger.handlers
            )
            if not already:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_path, encoding="utf-8")
                file_handler.setLevel(log_level)
                file_handler.setFormatter(formatter)
                package_logger.addHandler(file_handler)

    def extract_document(
        self,
        document: RawDocument,
        cancel_event: Optional[threading.Event] = None,
    ) -> BrandGuideline:
        return self.extract(document.text, document.brand_name, cancel_event)

    def extract(
        self,
        text: str,
        brand_name: str = "",
        cancel_event: Optional[threading.Event] = None,
    ) -> BrandGuideline:
        """
        Extract a brand guideline from flattened guideline text.

        Args:
            text: Output of the external PDF-to-text step.
            brand_name: Brand-name hint (seeds known colors and aliases).
            cancel_event: When set, pending LLM work is abandoned and the
                rule-based result is finished and returned.

        Returns:
            A fully populated, confidence-scored BrandGuideline.

        Raises:
            InputError: If text is not a string or is empty/whitespace.
        """
        if not isinstance(text, str):
            raise InputError(f"Expected text as str, got {type(text).__name__}")
        if not text.strip():
            raise InputError("Input text is empty")

        start_time = time.time()
        config = self.config
        logger.info(f"Starting extraction ({len(text)} chars, brand={brand_name!r})")

        # ── Step 1: Preprocess ────────────────────────────────────────
        logger.info("Phase 1: Preprocessing")
        cleaned = self.preprocessor.clean(text)
        self.tracer.record("cleaned_text", cleaned)

        # ── Step 2: Segment ───────────────────────────────────────────
        logger.info("Phase 2: Segmentation")
        sections = SectionSegmenter().segment(cleaned)
        self.tracer.record("sections", sections)

        # ── Step 3: Rule-based strategies ─────────────────────────────
        logger.info("Phase 3: Rule-based extraction")
        results = [run_plain(sections, config.context_window)]
        scoring_sections = sections
        if config.enable_specialized:
            specialized = run_specialized(
                sections, cleaned, brand_name, config.context_window,
            )
            results.append(specialized)
            scoring_sections = specialized.sections
        for result in results:
            self.tracer.record(f"candidates_{result.name}", result.candidates)

        # ── Step 4: Field merge ───────────────────────────────────────
        merge = merge_fields(results)

        # ── Step 5: Reconcile and score ───────────────────────────────
        logger.info("Phase 4: Reconciliation")
        guideline, _ = self.reconciler.reconcile(merge.guideline)
        texts = section_texts(scoring_sections)
        guideline.confidence = self.scorer.score(guideline, texts)

        # ── Step 6: LLM enhancement ───────────────────────────────────
        llm_sections = 0
        if not config.enable_llm or self.collaborator is None:
            logger.info("Phase 5: LLM enhancement disabled")
        elif cancel_event is not None and cancel_event.is_set():
            logger.info("Phase 5: LLM enhancement skipped (cancelled)")
        else:
            logger.info("Phase 5: LLM enhancement")
            orchestrator = LLMEnhancementOrchestrator(
                self.collaborator,
                timeout=config.llm_timeout,
                pass1_excerpt_chars=config.pass1_excerpt_chars,
                pass2_excerpt_chars=config.pass2_excerpt_chars,
                max_prompt_chars=config.max_prompt_chars,
                tracer=self.tracer,
            )
            enhancement = orchestrator.enhance(guideline, cleaned, brand_name, cancel_event)
            llm_sections = enhancement.outline_sections
            if enhancement.enhanced:
                merge = merge_fields(
                    [
                        StrategyResult("rule_based", guideline),
                        StrategyResult(LLM, enhancement.guideline),
                    ],
                    winners=merge.winners,
                )
                guideline = merge.guideline

        # ── Step 7: Defaults, final reconcile and score ───────────────
        logger.info("Phase 6: Finalizing")
        guideline, defaulted = fill_missing(guideline)
        guideline, _ = self.reconciler.reconcile(guideline)
        guideline.confidence = self.scorer.score(guideline, texts, defaulted)

        # ── Step 8: Metadata ──────────────────────────────────────────
        method = self._extraction_method(merge.winners, defaulted)
        guideline.metadata = guideline.metadata.model_copy(update={
            "extraction_method": method,
            "confidence": guideline.confidence.overall,
            "text_length": len(text),
            "brand_name": brand_name,
            "defaulted_categories": defaulted,
            "llm_sections": llm_sections,
        })
        self.tracer.record("guideline", guideline)

        elapsed = time.time() - start_time
        logger.info(
            f"Extraction complete in {elapsed:.2f}s: method={method.value}, "
            f"confidence={guideline.confidence.overall:.2f}, "
            f"defaulted={defaulted or 'none'}"
        )
        return guideline

    @staticmethod
    def _extraction_method(winners: dict[str, str], defaulted: list[str]) -> ExtractionMethod:
        live = {
            name: source for name, source in winners.items() if name not in defaulted
        }
        if len(defaulted) == len(CATEGORY_FIELDS):
            return ExtractionMethod.FALLBACK
        if LLM in live.values():
            return ExtractionMethod.LLM_ENHANCED
        if SPECIALIZED in live.values():
            return ExtractionMethod.SPECIALIZED
        return ExtractionMethod.ENHANCED_HEURISTIC
