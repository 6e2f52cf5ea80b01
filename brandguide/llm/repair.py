"""
Retry Policy
============
Explicit finite-state retry-with-repair loop around one LLM pass.

States:
    INVOKE    -> call the collaborator (attempt counter increments)
    PARSE     -> strict json.loads of the raw response
    REPAIR    -> cumulative repairs: strip fences, brace-balanced span,
                 trailing commas
    RETRY     -> stricter prompt echoing the broken output, or EXHAUSTED
                 once max_attempts calls were made
    SUCCEEDED -> parsed value returned
    EXHAUSTED -> fallback value returned (never raises)

Every path through the machine makes at most `max_attempts` calls, so
termination is guaranteed and visible in `RetryOutcome.history`.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from ..errors import LLMMalformedOutput, LLMUnavailable
from .prompts import MAX_PROMPT_CHARS, PromptParts, retry_prompt

logger = logging.getLogger(__name__)


class RetryState(str, Enum):
    INVOKE = "INVOKE"
    PARSE = "PARSE"
    REPAIR = "REPAIR"
    RETRY = "RETRY"
    SUCCEEDED = "SUCCEEDED"
    EXHAUSTED = "EXHAUSTED"


# ─── Repair Strategies ────────────────────────────────────────────────────────

_FENCE = re.compile(r"```[ \t]*(?:json|JSON)?[ \t]*\n?")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def strip_fences(text: str) -> str:
    return _FENCE.sub("", text).strip()


def extract_brace_span(text: str) -> str:
    """The first brace-balanced {...} span (string literals respected)."""
    start = text.find("{")
    if start < 0:
        return text

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return text[start:]


def remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA.sub(r"\1", text)


REPAIR_STRATEGIES: list[tuple[str, Callable[[str], str]]] = [
    ("strip_fences", strip_fences),
    ("brace_span", extract_brace_span),
    ("trailing_commas", remove_trailing_commas),
]


def parse_json_object(text: str) -> dict:
    """json.loads that insists on a top-level object."""
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError(f"Expected a JSON object, got {type(value).__name__}")
    return value


def repair_json(text: str) -> Optional[dict]:
    """
    Apply the repair strategies in order, cumulatively, parsing after
    each one. Returns the first object that parses, else None.
    """
    candidate = text or ""
    for name, strategy in REPAIR_STRATEGIES:
        candidate = strategy(candidate)
        try:
            value = parse_json_object(candidate)
        except ValueError:
            continue
        logger.debug(f"JSON repaired by '{name}'")
        return value
    return None


# ─── Policy ───────────────────────────────────────────────────────────────────


@dataclass
class RetryOutcome:
    value: dict
    succeeded: bool
    attempts: int
    history: list[RetryState] = field(default_factory=list)
    last_raw: str = ""


class RetryPolicy:
    """
    Drives one LLM pass through the retry state machine.

    Args:
        max_attempts: Maximum collaborator calls for this pass.
        fallback: Value returned (deep-copied) on exhaustion.
        schema: Schema echoed by the stricter retry prompt.
        accept: Predicate a parsed object must satisfy to count as success.
        max_prompt_chars: Size cap applied to every retry prompt.
    """

    def __init__(
        self,
        max_attempts: int,
        fallback: dict,
        schema: dict,
        accept: Optional[Callable[[dict], bool]] = None,
        name: str = "llm",
        max_prompt_chars: int = MAX_PROMPT_CHARS,
    ):
        self.max_attempts = max(1, max_attempts)
        self.fallback = fallback
        self.schema = schema
        self.accept = accept or (lambda value: True)
        self.name = name
        self.max_prompt_chars = max_prompt_chars

    def run(self, invoke: Callable[[PromptParts], str], prompt: PromptParts) -> RetryOutcome:
        """
        Execute the pass. `invoke` sends a prompt and returns raw text;
        LLMUnavailable / LLMMalformedOutput from it count as a failed
        attempt. ExtractionCancelled and unexpected errors propagate.
        """
        original = prompt
        state = RetryState.INVOKE
        history: list[RetryState] = []
        attempts = 0
        raw = ""
        value: Any = None

        while True:
            history.append(state)

            if state == RetryState.INVOKE:
                attempts += 1
                try:
                    raw = invoke(prompt)
                    state = RetryState.PARSE
                except (LLMUnavailable, LLMMalformedOutput) as e:
                    logger.warning(f"[{self.name}] attempt {attempts} failed: {e}")
                    raw = ""
                    state = RetryState.RETRY

            elif state == RetryState.PARSE:
                try:
                    value = parse_json_object(raw)
                    state = RetryState.SUCCEEDED if self.accept(value) else RetryState.RETRY
                except ValueError:
                    state = RetryState.REPAIR

            elif state == RetryState.REPAIR:
                value = repair_json(raw)
                if value is not None and self.accept(value):
                    state = RetryState.SUCCEEDED
                else:
                    logger.warning(
                        f"[{self.name}] attempt {attempts}: response is not repairable JSON"
                    )
                    state = RetryState.RETRY

            elif state == RetryState.RETRY:
                if attempts >= self.max_attempts:
                    state = RetryState.EXHAUSTED
                else:
                    prompt = retry_prompt(original, raw, self.schema, self.max_prompt_chars)
                    state = RetryState.INVOKE

            elif state == RetryState.SUCCEEDED:
                logger.info(f"[{self.name}] succeeded after {attempts} attempt(s)")
                return RetryOutcome(value, True, attempts, history, raw)

            else:
                logger.warning(
                    f"[{self.name}] exhausted after {attempts} attempt(s); using fallback"
                )
                return RetryOutcome(copy.deepcopy(self.fallback), False, attempts, history, raw)
