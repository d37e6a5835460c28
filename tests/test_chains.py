"""Tests for the single-call LLM chains."""

import pytest

from chayo.chains.classify_relevance import is_business_relevant
from chayo.chains.extract_question import extract_question
from chayo.chains.extract_website_info import extract_website_info
from chayo.chains.synthesize_vibe_card import (
    VibeSynthesisError,
    build_user_prompt,
    synthesize_vibe_card,
)
from chayo.chains.validate_answer import DEFAULT_CONFIDENCE, validate_answer
from chayo.core.exceptions import AICallError
from tests.fakes.fake_llm import VALIDATION, VIBE, WEBSITE, FakeCompletionClient, vibe_synthesis


class TestValidateAnswer:
    @pytest.mark.asyncio
    async def test_answered_with_confidence(self):
        llm = FakeCompletionClient().script(
            VALIDATION, {"answered": True, "answer": "  Panadería Luna ", "confidence": 0.9}
        )

        verdict = await validate_answer(llm, "Se llama Panadería Luna", "¿Cómo se llama?")

        assert verdict.is_usable
        assert verdict.answer == "Panadería Luna"
        assert verdict.confidence == 0.9

    @pytest.mark.asyncio
    async def test_missing_confidence_defaults(self):
        llm = FakeCompletionClient().script(
            VALIDATION, {"answered": True, "answer": "Luna", "confidence": None}
        )

        verdict = await validate_answer(llm, "Luna", "¿Nombre?")

        assert verdict.confidence == DEFAULT_CONFIDENCE

    @pytest.mark.asyncio
    async def test_not_answered(self):
        llm = FakeCompletionClient()

        verdict = await validate_answer(llm, "hola", "¿Nombre?")

        assert not verdict.answered
        assert not verdict.is_usable

    @pytest.mark.asyncio
    async def test_empty_conversation_skips_call(self):
        llm = FakeCompletionClient()

        verdict = await validate_answer(llm, "   ", "¿Nombre?")

        assert not verdict.answered
        assert llm.structured_calls == []

    @pytest.mark.asyncio
    async def test_ai_failure_is_not_answered(self):
        llm = FakeCompletionClient().script(VALIDATION, AICallError("quota"))

        verdict = await validate_answer(llm, "Luna", "¿Nombre?")

        assert not verdict.answered

    @pytest.mark.asyncio
    async def test_malformed_payload_is_not_answered(self):
        llm = FakeCompletionClient().script(VALIDATION, {"answered": True, "confidence": 7})

        verdict = await validate_answer(llm, "Luna", "¿Nombre?")

        assert not verdict.answered


class TestRelevanceGate:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "verdict,expected",
        [("RELEVANT", True), ("relevant.", True), ("IRRELEVANT", False), ("NOT RELEVANT", False)],
    )
    async def test_verdicts(self, verdict, expected):
        llm = FakeCompletionClient().script_complete(verdict)

        assert await is_business_relevant(llm, "Vendemos pan", "¿Qué venden?") is expected

    @pytest.mark.asyncio
    async def test_failure_defaults_to_relevant(self):
        llm = FakeCompletionClient().script_complete(AICallError("other"))

        assert await is_business_relevant(llm, "Vendemos pan") is True

    @pytest.mark.asyncio
    async def test_unparseable_defaults_to_relevant(self):
        llm = FakeCompletionClient().script_complete("maybe")

        assert await is_business_relevant(llm, "Vendemos pan") is True

    @pytest.mark.asyncio
    async def test_empty_message_is_irrelevant(self):
        llm = FakeCompletionClient()

        assert await is_business_relevant(llm, "") is False
        assert llm.complete_calls == []

    @pytest.mark.asyncio
    async def test_context_shapes_instructions(self):
        llm = FakeCompletionClient()

        await is_business_relevant(llm, "Vendemos pan", context="embedding_storage")

        system = llm.complete_calls[0]["messages"][0]["content"]
        assert "long-term memory" in system


class TestExtractQuestion:
    @pytest.mark.asyncio
    async def test_strips_quotes(self):
        llm = FakeCompletionClient().script_complete('"¿Cuál es tu horario?"')

        extracted = await extract_question(llm, "¡Genial! ¿Cuál es tu horario?")

        assert extracted == "¿Cuál es tu horario?"

    @pytest.mark.asyncio
    async def test_failure_returns_full_message(self):
        llm = FakeCompletionClient().script_complete(AICallError("other"))

        message = "¡Genial! ¿Cuál es tu horario?"
        assert await extract_question(llm, message) == message


class TestSynthesizeVibeCard:
    @pytest.mark.asyncio
    async def test_caps_lists(self):
        llm = FakeCompletionClient().script(
            VIBE,
            vibe_synthesis(
                value_badges=[f"b{i}" for i in range(10)],
                personality_traits=[f"t{i}" for i in range(10)],
                perfect_for=[f"p{i}" for i in range(10)],
            ),
        )

        synthesis = await synthesize_vibe_card(llm, {"business_name": "Luna"})

        assert len(synthesis.value_badges) == 6
        assert len(synthesis.personality_traits) == 5
        assert len(synthesis.perfect_for) == 4

    @pytest.mark.asyncio
    async def test_ai_failure_raises(self):
        llm = FakeCompletionClient().script(VIBE, AICallError("quota"))

        with pytest.raises(VibeSynthesisError):
            await synthesize_vibe_card(llm, {"business_name": "Luna"})

    @pytest.mark.asyncio
    async def test_invalid_aesthetic_raises(self):
        llm = FakeCompletionClient().script(VIBE, vibe_synthesis(vibe_aesthetic="Gothic"))

        with pytest.raises(VibeSynthesisError):
            await synthesize_vibe_card(llm, {"business_name": "Luna"})

    def test_user_prompt_lists_extra_fields(self):
        prompt = build_user_prompt(
            {"business_name": "Luna", "value_badges": ["Fresh"], "opening_hours": "7-14"}
        )

        assert "Business Name: Luna" in prompt
        assert "Value Badges: Fresh" in prompt
        assert "- opening_hours: 7-14" in prompt


class TestExtractWebsiteInfo:
    @pytest.mark.asyncio
    async def test_parses_extraction(self):
        llm = FakeCompletionClient().script(
            WEBSITE,
            {
                "has_enough_info": True,
                "business_name": "Luna",
                "business_type": "Bakery",
                "description": "Bread",
                "phone": "",
                "email": "",
                "address": "",
                "confidence": 0.8,
                "extracted_content": "Luna bakes bread",
            },
        )

        info = await extract_website_info(llm, "https://luna.mx", "# Luna\nBread")

        assert info.has_enough_info
        assert info.business_name == "Luna"

    @pytest.mark.asyncio
    async def test_failure_returns_none(self):
        llm = FakeCompletionClient().script(WEBSITE, AICallError("other"))

        assert await extract_website_info(llm, "https://luna.mx", "# Luna") is None
