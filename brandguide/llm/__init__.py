"""
LLM Enhancement
===============
Collaborator protocol, prompts, retry policy, payload validation and
the two-pass orchestrator.
"""

from .client import GeminiCollaborator, LLMCollaborator, call_with_timeout
from .orchestrator import EnhancementResult, LLMEnhancementOrchestrator
from .payload import LLMColor, LLMFont, LLMPayload
from .repair import RetryOutcome, RetryPolicy, RetryState

__all__ = [
    "EnhancementResult",
    "GeminiCollaborator",
    "LLMCollaborator",
    "LLMColor",
    "LLMEnhancementOrchestrator",
    "LLMFont",
    "LLMPayload",
    "RetryOutcome",
    "RetryPolicy",
    "RetryState",
    "call_with_timeout",
]
