"""
Tests for LLM Enhancement
==========================
Prompt bounding, JSON repair, the retry state machine, payload shape
normalization and the two-pass orchestrator (with a mocked collaborator).
"""

from __future__ import annotations

import json
import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from brandguide.errors import ExtractionCancelled, LLMMalformedOutput, LLMUnavailable
from brandguide.llm.client import GeminiCollaborator, call_with_timeout
from brandguide.llm.orchestrator import LLMEnhancementOrchestrator
from brandguide.llm.payload import LLMPayload, fold_into, post_process
from brandguide.llm.prompts import (
    TRUNCATION_MARKER,
    PromptParts,
    bound_prompt,
    pass1_prompt,
    pass2_prompt,
    priority_excerpt,
)
from brandguide.llm.repair import (
    RetryPolicy,
    RetryState,
    extract_brace_span,
    parse_json_object,
    remove_trailing_commas,
    repair_json,
    strip_fences,
)
from brandguide.models import BrandGuideline, ColorsBlock, FontSet, NamedColor, TypographyBlock
from brandguide.tracing import DirectoryTracer

PASS1_RESPONSE = json.dumps({"sections": [{"name": "Colors", "category": "COLOR"}]})
PASS2_RESPONSE = json.dumps({
    "brandName": "Buffer",
    "colors": [{"name": "Buffer Blue", "hex": "#168eea", "usage": "primary"}],
    "typography": [],
    "tone": {"descriptors": ["friendly"]},
    "avoid": ["Never stretch the logo"],
    "confidence": {"overall": 0.8},
})


# ═══════════════════════════════════════════════════════════════════════════════
# PROMPT TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestPrompts:
    """Test prompt construction and size bounding."""

    def test_bound_prompt_truncates_excerpt_first(self):
        parts = PromptParts("s" * 10, "c" * 10, "e" * 100)
        bounded = bound_prompt(parts, max_chars=50)

        assert bounded.total_chars <= 50
        assert bounded.context_json == "c" * 10
        assert bounded.excerpt.endswith(TRUNCATION_MARKER)

    def test_bound_prompt_untouched_when_small(self):
        parts = PromptParts("s", "c", "e")
        assert bound_prompt(parts, max_chars=50) is parts

    def test_pass1_excerpt_limit(self):
        prompt = pass1_prompt("x" * 5000, excerpt_chars=2000)
        assert len(prompt.excerpt) == 2000

    def test_pass2_prompt_names_brand_and_fonts(self):
        prompt = pass2_prompt("Colors: #168EEA", {"sections": []}, ["Inter"], brand_name="Buffer")

        assert "Buffer" in prompt.system_prompt
        assert "Inter" in prompt.system_prompt
        assert json.loads(prompt.context_json) == {"sections": []}

    def test_pass2_prompt_without_fonts(self):
        prompt = pass2_prompt("text", {"sections": []}, [])
        assert "None detected" in prompt.system_prompt

    def test_priority_excerpt(self):
        text = "\n".join(["filler line"] * 100 + ["Primary color #168EEA"])
        excerpt = priority_excerpt(text, limit=200)
        assert excerpt == "Primary color #168EEA"

    def test_priority_excerpt_short_text(self):
        assert priority_excerpt("short", limit=200) == "short"


# ═══════════════════════════════════════════════════════════════════════════════
# REPAIR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestJsonRepair:
    """Test the cumulative repair strategies."""

    def test_strip_fences(self):
        assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_brace_span_respects_strings(self):
        assert extract_brace_span('Here: {"a": "}"} trailing') == '{"a": "}"}'

    def test_trailing_commas(self):
        assert remove_trailing_commas('{"a": [1, 2,],}') == '{"a": [1, 2]}'

    def test_repair_cumulative(self):
        raw = 'Sure!\n```json\n{"sections": [],}\n```'
        assert repair_json(raw) == {"sections": []}

    def test_unrepairable(self):
        assert repair_json("not json at all") is None
        assert repair_json("") is None

    def test_top_level_must_be_object(self):
        with pytest.raises(ValueError):
            parse_json_object("[1, 2]")


# ═══════════════════════════════════════════════════════════════════════════════
# RETRY POLICY TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestRetryPolicy:
    """Test the retry state machine."""

    def _policy(self, max_attempts: int = 2, **kwargs) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=max_attempts,
            fallback={"sections": []},
            schema={"sections": []},
            **kwargs,
        )

    def test_success_first_attempt(self):
        invoke = MagicMock(return_value='{"sections": []}')
        outcome = self._policy().run(invoke, PromptParts("system"))

        assert outcome.succeeded
        assert outcome.attempts == 1
        assert outcome.history == [RetryState.INVOKE, RetryState.PARSE, RetryState.SUCCEEDED]

    def test_repaired_response(self):
        invoke = MagicMock(return_value='```json\n{"sections": [1,]}\n```')
        outcome = self._policy().run(invoke, PromptParts("system"))

        assert outcome.succeeded
        assert outcome.value == {"sections": [1]}
        assert RetryState.REPAIR in outcome.history

    def test_exhausted_returns_fallback_copy(self):
        invoke = MagicMock(return_value="garbage")
        policy = self._policy(max_attempts=2)
        outcome = policy.run(invoke, PromptParts("system"))

        assert not outcome.succeeded
        assert invoke.call_count == 2
        assert outcome.value == {"sections": []}
        assert outcome.value is not policy.fallback
        assert outcome.history[-1] == RetryState.EXHAUSTED

    def test_retry_prompt_echoes_previous_output(self):
        invoke = MagicMock(side_effect=["broken output", '{"sections": []}'])
        outcome = self._policy().run(invoke, PromptParts("system", "", "excerpt"))

        assert outcome.succeeded
        assert outcome.attempts == 2
        retry = invoke.call_args_list[1].args[0]
        assert "broken output" in retry.system_prompt
        assert retry.excerpt == "excerpt"

    def test_retry_builds_on_original_prompt(self):
        invoke = MagicMock(side_effect=["first broken", "second broken", '{"sections": []}'])
        outcome = self._policy(max_attempts=3).run(invoke, PromptParts("original rules"))

        assert outcome.attempts == 3
        retry = invoke.call_args_list[2].args[0]
        assert "second broken" in retry.system_prompt
        assert "first broken" not in retry.system_prompt
        assert retry.system_prompt.endswith("original rules")

    def test_retry_prompt_respects_cap(self):
        invoke = MagicMock(side_effect=["x" * 5000, '{"sections": []}'])
        policy = self._policy(max_prompt_chars=1000)
        policy.run(invoke, PromptParts("original rules", "", "e" * 200))

        retry = invoke.call_args_list[1].args[0]
        assert retry.total_chars <= 1000
        assert retry.system_prompt.endswith("original rules")
        assert TRUNCATION_MARKER in retry.system_prompt

    def test_unavailable_counts_as_attempt(self):
        invoke = MagicMock(side_effect=LLMUnavailable("down"))
        outcome = self._policy(max_attempts=3).run(invoke, PromptParts("system"))

        assert not outcome.succeeded
        assert invoke.call_count == 3

    def test_malformed_counts_as_attempt(self):
        invoke = MagicMock(side_effect=[LLMMalformedOutput("empty"), '{"sections": []}'])
        outcome = self._policy().run(invoke, PromptParts("system"))
        assert outcome.succeeded

    def test_unaccepted_object_retries(self):
        invoke = MagicMock(return_value='{"other": 1}')
        policy = self._policy(accept=lambda value: "sections" in value)
        outcome = policy.run(invoke, PromptParts("system"))

        assert not outcome.succeeded
        assert invoke.call_count == 2

    def test_cancellation_propagates(self):
        invoke = MagicMock(side_effect=ExtractionCancelled("stop"))
        with pytest.raises(ExtractionCancelled):
            self._policy().run(invoke, PromptParts("system"))

    def test_at_least_one_attempt(self):
        invoke = MagicMock(return_value="garbage")
        self._policy(max_attempts=0).run(invoke, PromptParts("system"))
        assert invoke.call_count == 1


# ═══════════════════════════════════════════════════════════════════════════════
# CLIENT TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestCallWithTimeout:
    """Test the bounded collaborator call."""

    def test_returns_result(self):
        assert call_with_timeout(lambda: "ok", timeout=1.0) == "ok"

    def test_reraises_errors(self):
        def fail():
            raise LLMMalformedOutput("bad")

        with pytest.raises(LLMMalformedOutput):
            call_with_timeout(fail, timeout=1.0)

    def test_timeout(self):
        with pytest.raises(LLMUnavailable):
            call_with_timeout(lambda: time.sleep(2.0), timeout=0.1)

    def test_cancelled_before_start(self):
        event = threading.Event()
        event.set()
        fn = MagicMock()

        with pytest.raises(ExtractionCancelled):
            call_with_timeout(fn, timeout=1.0, cancel_event=event)
        fn.assert_not_called()

    def test_cancelled_while_waiting(self):
        event = threading.Event()
        threading.Timer(0.1, event.set).start()

        with pytest.raises(ExtractionCancelled):
            call_with_timeout(lambda: time.sleep(2.0), timeout=5.0, cancel_event=event)


class TestGeminiCollaborator:
    """Test the Gemini-backed collaborator without network access."""

    def test_missing_key(self):
        with patch("brandguide.llm.client.resolve_api_key", return_value=None):
            with pytest.raises(LLMUnavailable):
                GeminiCollaborator().complete("system", "{}", "text")

    def test_response_text_returned(self):
        client = MagicMock()
        client.models.generate_content.return_value = MagicMock(text='{"sections": []}')

        with patch("brandguide.llm.client._get_client", return_value=client):
            raw = GeminiCollaborator(api_key="test-key").complete("system", "{}", "text")

        assert raw == '{"sections": []}'
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["config"].system_instruction == "system"
        assert kwargs["config"].temperature == 0.2

    def test_empty_response(self):
        client = MagicMock()
        client.models.generate_content.return_value = MagicMock(text="")

        with patch("brandguide.llm.client._get_client", return_value=client):
            with pytest.raises(LLMMalformedOutput):
                GeminiCollaborator(api_key="test-key").complete("system", "{}", "text")


# ═══════════════════════════════════════════════════════════════════════════════
# PAYLOAD TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestLLMPayload:
    """Test payload shape normalization."""

    def test_array_shape(self):
        payload = LLMPayload.model_validate({
            "colors": [{"name": "Blue", "hex": "#168eea", "usage": "primary"}, "#FF0000"],
            "typography": [{"font": "Inter", "weights": ["Bold"], "usage": "primary"}, "Lato"],
        })

        assert [c.hex for c in payload.colors] == ["#168EEA", "#FF0000"]
        assert [f.font for f in payload.typography] == ["Inter", "Lato"]
        assert payload.typography[0].weights == ["Bold"]

    def test_object_shape(self):
        payload = LLMPayload.model_validate({
            "colors": {
                "primary": "#168eea",
                "secondary": {"hex": "#ff0000", "name": "Red"},
            },
            "typography": {"primary": "Inter", "body": {"family": "Lato"}, "weights": ["Bold"]},
        })

        assert [(c.hex, c.usage) for c in payload.colors] == [
            ("#168EEA", "primary"),
            ("#FF0000", "secondary"),
        ]
        assert [(f.font, f.usage) for f in payload.typography] == [
            ("Inter", "primary"),
            ("Lato", "body"),
        ]
        assert payload.weights == ["Bold"]

    def test_invalid_hex_replaced(self):
        payload = LLMPayload.model_validate({"colors": [{"name": "Mystery", "hex": "blue-ish"}]})
        assert payload.colors[0].hex == "#000000"

    def test_pantone_tag_kept(self):
        payload = LLMPayload.model_validate({"colors": ["PMS 9999"]})
        assert payload.colors[0].hex == "#PMS9999"

    def test_loose_sub_shapes(self):
        payload = LLMPayload.model_validate({
            "imagery": ["bright", "candid"],
            "voice": ["friendly"],
            "logo": "see page 4",
            "confidence": {"overall": 0.9},
        })

        assert payload.imagery.style_descriptors == ["bright", "candid"]
        assert payload.tone.descriptors == ["friendly"]
        assert payload.logo.rules == []
        assert payload.confidence == 0.9

    def test_confidence_clamped(self):
        assert LLMPayload.model_validate({"confidence": 7}).confidence == 1.0
        assert LLMPayload.model_validate({"confidence": "high"}).confidence == 0.5

    def test_non_dict_payload(self):
        payload = LLMPayload.model_validate("nonsense")
        assert payload.colors == []


class TestPostProcess:
    """Test payload post-processing."""

    def test_brand_alias_and_weight_word(self):
        payload = LLMPayload.model_validate({"colors": [{"name": "Bold", "hex": "#CC0000"}]})
        result = post_process(payload, "Target", [], "")

        assert result.colors[0].name == "Target Red"
        assert result.weights == ["Bold"]

    def test_placeholder_name_replaced_by_hex(self):
        payload = LLMPayload.model_validate({"colors": [{"name": "color", "hex": "#123456"}]})
        result = post_process(payload, "", [], "")
        assert result.colors[0].name == "#123456"

    def test_duplicate_colors_dropped(self):
        payload = LLMPayload.model_validate({"colors": ["#168EEA", "#168eea"]})
        assert len(post_process(payload, "", [], "").colors) == 1

    def test_fonts_must_match_rule_candidates(self):
        payload = LLMPayload.model_validate({"typography": ["Intr", "Comic Papyrus"]})
        result = post_process(payload, "", ["Inter"], "")
        assert [f.font for f in result.typography] == ["Inter"]

    def test_fonts_must_appear_in_text_without_candidates(self):
        payload = LLMPayload.model_validate({"typography": ["Lato", "Inter"]})
        result = post_process(payload, "", [], "We use Lato everywhere")
        assert [f.font for f in result.typography] == ["Lato"]

    def test_input_not_mutated(self):
        payload = LLMPayload.model_validate({"colors": [{"name": "color", "hex": "#123456"}]})
        post_process(payload, "", [], "")
        assert payload.colors[0].name == "color"


class TestFoldInto:
    """Test folding a payload into the rule-based guideline."""

    def test_fills_gaps(self):
        payload = LLMPayload.model_validate(json.loads(PASS2_RESPONSE))
        result = fold_into(BrandGuideline(), payload)

        assert result.colors.palette == ["#168EEA"]
        assert result.colors.semantic["primary"].name == "Buffer Blue"
        assert result.tone.descriptors == ["friendly"]
        assert result.logo.forbidden == ["Never stretch the logo"]

    def test_spacing_gaps_filled(self):
        payload = LLMPayload.model_validate({
            "spacing": {"grid": "8px grid", "sectionGap": "64px", "componentGap": "24px"},
        })
        result = fold_into(BrandGuideline(), payload)

        assert result.spacing.section_gap == "64px"
        assert result.spacing.component_gap == "24px"

    def test_existing_values_kept(self):
        guideline = BrandGuideline(
            colors=ColorsBlock(
                palette=["#000000"],
                semantic={"primary": NamedColor(hex="#000000")},
            ),
            typography=TypographyBlock(fonts=FontSet(primary="Inter", families=["Inter"])),
        )
        payload = LLMPayload.model_validate({
            "colors": [{"hex": "#168EEA", "usage": "primary"}],
            "typography": [{"font": "Lato", "usage": "primary"}],
        })
        result = fold_into(guideline, payload)

        assert result.colors.semantic["primary"].hex == "#000000"
        assert result.colors.palette == ["#000000", "#168EEA"]
        assert result.typography.fonts.primary == "Inter"
        assert result.typography.fonts.families == ["Inter", "Lato"]
        assert guideline.colors.palette == ["#000000"]

    def test_avoid_routing(self):
        payload = LLMPayload.model_validate({
            "avoid": ["Never stretch the logo", "Avoid neon colors", "Avoid slang"],
        })
        result = fold_into(BrandGuideline(), payload)

        assert result.logo.forbidden == ["Never stretch the logo"]
        assert result.colors.forbidden == ["Avoid neon colors"]
        assert result.tone.rules == ["Avoid slang"]


# ═══════════════════════════════════════════════════════════════════════════════
# ORCHESTRATOR TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestLLMEnhancementOrchestrator:
    """Test the two-pass orchestrator with a mocked collaborator."""

    def _collaborator(self, *responses) -> MagicMock:
        collaborator = MagicMock()
        collaborator.complete.side_effect = list(responses)
        return collaborator

    def test_two_pass_enhancement(self):
        collaborator = self._collaborator(PASS1_RESPONSE, PASS2_RESPONSE)
        orchestrator = LLMEnhancementOrchestrator(collaborator, timeout=5.0)
        result = orchestrator.enhance(BrandGuideline(), "Colors\nBuffer Blue #168EEA", "Buffer")

        assert result.enhanced
        assert result.outline_sections == 1
        assert result.guideline.colors.semantic["primary"].hex == "#168EEA"
        assert collaborator.complete.call_count == 2

    def test_pass1_invalid_json_skips_pass2(self):
        collaborator = MagicMock()
        collaborator.complete.return_value = "not json"
        guideline = BrandGuideline(colors=ColorsBlock(palette=["#000000"]))

        result = LLMEnhancementOrchestrator(collaborator, timeout=5.0).enhance(guideline, "text")

        assert not result.enhanced
        assert result.guideline == guideline
        assert collaborator.complete.call_count == 1

    def test_pass2_exhausted(self):
        collaborator = self._collaborator(PASS1_RESPONSE, "bad", "still bad")
        result = LLMEnhancementOrchestrator(collaborator, timeout=5.0).enhance(
            BrandGuideline(), "text",
        )

        assert not result.enhanced
        assert result.outline_sections == 1
        assert collaborator.complete.call_count == 3

    def test_pass2_retry_keeps_instructions_within_cap(self):
        collaborator = self._collaborator(PASS1_RESPONSE, "x" * 10000, PASS2_RESPONSE)
        guideline = BrandGuideline(typography=TypographyBlock(fonts=FontSet(primary="Inter")))
        orchestrator = LLMEnhancementOrchestrator(collaborator, timeout=5.0, max_prompt_chars=6000)

        result = orchestrator.enhance(guideline, "Colors\nBuffer Blue #168EEA\nInter", "Buffer")

        assert result.enhanced
        system, context, excerpt = collaborator.complete.call_args_list[2].args
        assert "SEPARATION" in system
        assert "Inter" in system
        assert "xxxx" in system
        assert len(system) + len(context) + len(excerpt) <= 6000

    def test_unavailable_collaborator(self):
        collaborator = MagicMock()
        collaborator.complete.side_effect = LLMUnavailable("no key")
        result = LLMEnhancementOrchestrator(collaborator, timeout=5.0).enhance(
            BrandGuideline(), "text",
        )
        assert not result.enhanced
        assert not result.cancelled

    def test_cancelled_before_any_call(self):
        collaborator = MagicMock()
        event = threading.Event()
        event.set()

        result = LLMEnhancementOrchestrator(collaborator, timeout=5.0).enhance(
            BrandGuideline(), "text", cancel_event=event,
        )

        assert result.cancelled
        assert not result.enhanced
        collaborator.complete.assert_not_called()

    def test_prompts_traced(self, tmp_path):
        collaborator = self._collaborator(PASS1_RESPONSE, PASS2_RESPONSE)
        tracer = DirectoryTracer(tmp_path)
        LLMEnhancementOrchestrator(collaborator, timeout=5.0, tracer=tracer).enhance(
            BrandGuideline(), "Colors\n#168EEA", "Buffer",
        )

        names = sorted(p.name for p in tmp_path.iterdir())
        assert names[0] == "01_pass1_prompt_1.txt"
        assert "02_pass1_response_1.txt" in names
        assert any(name.endswith("_pass2_payload.json") for name in names)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
