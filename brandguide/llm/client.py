"""
LLM Collaborator
================
The single text-completion seam between the engine and an external
LLM, plus the bounded-call helper every invocation goes through.

    complete(system_prompt, context_json, raw_text_excerpt) -> str

GeminiCollaborator talks to Google Gemini through google-genai. Tests
inject any object with a matching `complete` method.
"""

from __future__ import annotations

import functools
import logging
import os
import threading
from typing import Callable, Optional, Protocol, TypeVar

from dotenv import load_dotenv
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..errors import ExtractionCancelled, LLMMalformedOutput, LLMUnavailable

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
API_KEY_ENV_VARS = ("GOOGLE_AI_API_KEY", "GEMINI_API_KEY")

# Generation settings: low temperature, bounded output
TEMPERATURE = 0.2
TOP_P = 0.8
TOP_K = 40
MAX_OUTPUT_TOKENS = 4000

# How often a waiting caller checks for cancellation
_POLL_INTERVAL = 0.05

T = TypeVar("T")


class LLMCollaborator(Protocol):
    def complete(
        self,
        system_prompt: str,
        context_json: str,
        raw_text_excerpt: str,
    ) -> str:
        ...


def resolve_api_key() -> Optional[str]:
    """First API key found in the environment (a .env file is honored)."""
    load_dotenv()
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return None


@functools.lru_cache(maxsize=4)
def _get_client(api_key: str) -> genai.Client:
    """Cached Gemini client per API key (each client owns an HTTP pool)."""
    return genai.Client(api_key=api_key)


class GeminiCollaborator:
    """
    LLMCollaborator backed by the Gemini API.

    Raises LLMUnavailable for a missing key or any API error and
    LLMMalformedOutput for an empty response.
    """

    def __init__(self, model: str = DEFAULT_MODEL, api_key: Optional[str] = None):
        self.model = model
        self._api_key = api_key

    def complete(
        self,
        system_prompt: str,
        context_json: str,
        raw_text_excerpt: str,
    ) -> str:
        api_key = self._api_key or resolve_api_key()
        if not api_key:
            raise LLMUnavailable(
                f"No Gemini API key; set one of {', '.join(API_KEY_ENV_VARS)}"
            )

        contents = "\n\n".join(part for part in (context_json, raw_text_excerpt) if part)
        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=TEMPERATURE,
            top_p=TOP_P,
            top_k=TOP_K,
            max_output_tokens=MAX_OUTPUT_TOKENS,
        )

        try:
            response = _get_client(api_key).models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as e:
            raise LLMUnavailable(f"Gemini API error ({e.code}): {e}") from e

        text = response.text
        if not text:
            raise LLMMalformedOutput("Gemini returned an empty response")

        logger.debug(f"Gemini {self.model}: {len(text)} chars returned")
        return text


# ─── Bounded Call ─────────────────────────────────────────────────────────────


def call_with_timeout(
    fn: Callable[[], T],
    timeout: float,
    cancel_event: Optional[threading.Event] = None,
) -> T:
    """
    Run fn on a daemon worker thread and wait at most `timeout` seconds.

    The worker is abandoned (not killed) on timeout or cancellation;
    its eventual result is discarded.

    Raises:
        LLMUnavailable: The call did not finish in time.
        ExtractionCancelled: cancel_event was set while waiting.
        Exception: Whatever fn raised, re-raised in the caller.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise ExtractionCancelled("Cancelled before the LLM call started")

    done = threading.Event()
    outcome: dict[str, object] = {}

    def _run():
        try:
            outcome["result"] = fn()
        except Exception as e:
            outcome["error"] = e
        finally:
            done.set()

    worker = threading.Thread(target=_run, name="llm-call", daemon=True)
    worker.start()

    waited = 0.0
    while not done.wait(_POLL_INTERVAL):
        waited += _POLL_INTERVAL
        if cancel_event is not None and cancel_event.is_set():
            logger.info("LLM call abandoned: extraction cancelled")
            raise ExtractionCancelled("Cancelled while waiting for the LLM")
        if waited >= timeout:
            logger.warning(f"LLM call abandoned after {timeout:.1f}s timeout")
            raise LLMUnavailable(f"LLM call timed out after {timeout:.1f}s")

    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]
