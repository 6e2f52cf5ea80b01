"""
LLM Enhancement Orchestrator
============================
Two-pass, retry-capable enhancement of the rule-based guideline.

    Pass 1: structure outline   (max 1 call)  -> {"sections": [...]}
    Pass 2: detailed extraction (max 2 calls) -> validated LLMPayload

The LLM pass is strictly additive: any failure, including cancellation,
returns the untouched rule-based guideline.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from ..errors import ExtractionCancelled
from ..extractors.base import dedupe_casefold
from ..models import BrandGuideline
from ..tracing import NullTracer, Tracer
from .client import LLMCollaborator, call_with_timeout
from .payload import LLMPayload, fold_into, post_process
from .prompts import (
    MAX_PROMPT_CHARS,
    PASS1_EXCERPT_CHARS,
    PASS1_SCHEMA,
    PASS2_EXCERPT_CHARS,
    PASS2_SCHEMA,
    PromptParts,
    pass1_prompt,
    pass2_prompt,
)
from .repair import RetryPolicy

logger = logging.getLogger(__name__)

PASS1_MAX_ATTEMPTS = 1
PASS2_MAX_ATTEMPTS = 2

EMPTY_OUTLINE: dict = {"sections": []}

# Minimal valid Pass 2 response
EMPTY_PAYLOAD: dict = {
    "brandName": "",
    "colors": [],
    "typography": [],
    "logo": {"rules": []},
    "spacing": {},
    "imagery": {},
    "tone": {},
    "avoid": [],
    "confidence": {"overall": 0.0},
}


def _has_sections(value: dict) -> bool:
    return isinstance(value.get("sections"), list)


@dataclass
class EnhancementResult:
    guideline: BrandGuideline
    enhanced: bool = False
    outline_sections: int = 0
    cancelled: bool = False


class LLMEnhancementOrchestrator:
    """
    Drives the LLM collaborator through both passes.

    Args:
        collaborator: Any object implementing LLMCollaborator.
        timeout: Seconds allowed per collaborator call.
        tracer: Receives prompts and raw responses.
    """

    def __init__(
        self,
        collaborator: LLMCollaborator,
        timeout: float = 30.0,
        pass1_excerpt_chars: int = PASS1_EXCERPT_CHARS,
        pass2_excerpt_chars: int = PASS2_EXCERPT_CHARS,
        max_prompt_chars: int = MAX_PROMPT_CHARS,
        tracer: Optional[Tracer] = None,
    ):
        self.collaborator = collaborator
        self.timeout = timeout
        self.pass1_excerpt_chars = pass1_excerpt_chars
        self.pass2_excerpt_chars = pass2_excerpt_chars
        self.max_prompt_chars = max_prompt_chars
        self.tracer = tracer or NullTracer()

    def enhance(
        self,
        guideline: BrandGuideline,
        text: str,
        brand_name: str = "",
        cancel_event: Optional[threading.Event] = None,
    ) -> EnhancementResult:
        """
        Run both passes and fold the result into a copy of `guideline`.

        Never raises: on any failure the input guideline is returned.
        """
        try:
            outline = self.classify_structure(text, cancel_event)
            sections = outline["sections"]
            if not sections:
                logger.warning("Pass 1 found no sections; skipping LLM extraction")
                return EnhancementResult(guideline)

            payload = self.extract_details(guideline, text, brand_name, outline, cancel_event)
            if payload is None:
                return EnhancementResult(guideline, outline_sections=len(sections))

            enhanced = fold_into(guideline, payload)
            logger.info(
                f"LLM enhancement: {len(payload.colors)} color(s), "
                f"{len(payload.typography)} font(s) from {len(sections)} section(s)"
            )
            return EnhancementResult(enhanced, enhanced=True, outline_sections=len(sections))

        except ExtractionCancelled as e:
            logger.info(f"LLM enhancement cancelled: {e}")
            return EnhancementResult(guideline, cancelled=True)
        except Exception as e:
            logger.warning(
                f"LLM enhancement failed ({type(e).__name__}: {e}); "
                f"keeping rule-based result"
            )
            return EnhancementResult(guideline)

    # ─── Passes ───────────────────────────────────────────────────────────

    def classify_structure(
        self,
        text: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> dict:
        """Pass 1. Any failure other than cancellation yields no sections."""
        policy = RetryPolicy(
            max_attempts=PASS1_MAX_ATTEMPTS,
            fallback=EMPTY_OUTLINE,
            schema=PASS1_SCHEMA,
            accept=_has_sections,
            name="pass1",
            max_prompt_chars=self.max_prompt_chars,
        )
        prompt = pass1_prompt(text, self.pass1_excerpt_chars, self.max_prompt_chars)
        try:
            outcome = policy.run(self._invoker("pass1", cancel_event), prompt)
        except ExtractionCancelled:
            raise
        except Exception as e:
            logger.warning(f"Pass 1 failed ({type(e).__name__}: {e})")
            return {"sections": []}

        sections = [s for s in outcome.value.get("sections", []) if isinstance(s, dict)]
        self.tracer.record("pass1_outline", {"sections": sections})
        return {"sections": sections}

    def extract_details(
        self,
        guideline: BrandGuideline,
        text: str,
        brand_name: str,
        outline: dict,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[LLMPayload]:
        """Pass 2. Returns None when the retry budget is exhausted."""
        fonts = guideline.typography.fonts
        rule_fonts = dedupe_casefold([fonts.primary, fonts.secondary, *fonts.families])

        policy = RetryPolicy(
            max_attempts=PASS2_MAX_ATTEMPTS,
            fallback=EMPTY_PAYLOAD,
            schema=PASS2_SCHEMA,
            name="pass2",
            max_prompt_chars=self.max_prompt_chars,
        )
        prompt = pass2_prompt(
            text,
            outline,
            rule_fonts,
            brand_name=brand_name,
            excerpt_chars=self.pass2_excerpt_chars,
            max_chars=self.max_prompt_chars,
        )
        outcome = policy.run(self._invoker("pass2", cancel_event), prompt)
        if not outcome.succeeded:
            return None

        payload = LLMPayload.model_validate(outcome.value)
        payload = post_process(payload, brand_name, rule_fonts, text)
        self.tracer.record("pass2_payload", payload.model_dump(by_alias=True))
        return payload

    def _invoker(self, name: str, cancel_event: Optional[threading.Event]):
        calls = 0

        def invoke(prompt: PromptParts) -> str:
            nonlocal calls
            calls += 1
            self.tracer.record(
                f"{name}_prompt_{calls}",
                "\n\n".join([prompt.system_prompt, prompt.context_json, prompt.excerpt]),
            )
            raw = call_with_timeout(
                lambda: self.collaborator.complete(
                    prompt.system_prompt, prompt.context_json, prompt.excerpt,
                ),
                self.timeout,
                cancel_event,
            )
            self.tracer.record(f"{name}_response_{calls}", raw)
            return raw

        return invoke
