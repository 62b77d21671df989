"""Unit tests for the Gemini analysis client"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from postdesk.analysis.base import ChatTurn
from postdesk.analysis.gemini_client import GeminiAnalysisClient
from postdesk.analysis.prompts import INVALID_REJECTION_TEMPLATE, SIGNATURE
from postdesk.config import AppConfig
from postdesk.errors import AnalysisError
from postdesk.memory.models import ComplaintCategory, PriorityLevel, SentimentLevel


def make_genai_mock(text=None, side_effect=None) -> MagicMock:
    """Mock exposing client.aio.models.generate_content"""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text=text),
        side_effect=side_effect,
    )
    return client


@pytest.fixture
def settings() -> AppConfig:
    return AppConfig(gemini_api_key=None, gemini_model="gemini-test")


class TestClassify:

    @pytest.mark.asyncio
    async def test_parses_structured_response(self, settings):
        payload = {
            "category": "Delay",
            "sentiment": "Angry",
            "priority": "Urgent",
            "response": "Speed Post stuck for 4 days",
            "requiresReview": True,
            "confidenceScore": 0.93,
        }
        genai_client = make_genai_mock(text=json.dumps(payload))
        client = GeminiAnalysisClient(settings, client=genai_client)

        result = await client.classify("My Speed Post has not moved for 4 days")

        assert result.category == ComplaintCategory.DELAY
        assert result.sentiment == SentimentLevel.ANGRY
        assert result.priority == PriorityLevel.URGENT
        assert result.requires_review is True

        kwargs = genai_client.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == "gemini-test"
        assert kwargs["contents"] == "My Speed Post has not moved for 4 days"
        assert kwargs["config"].response_mime_type == "application/json"
        assert "Invalid" in kwargs["config"].system_instruction

    @pytest.mark.asyncio
    async def test_non_finite_confidence_is_zeroed(self, settings):
        raw = (
            '{"category": "Lost", "sentiment": "Unhappy", "priority": "Normal", '
            '"response": "Parcel missing", "requiresReview": false, "confidenceScore": NaN}'
        )
        client = GeminiAnalysisClient(settings, client=make_genai_mock(text=raw))

        result = await client.classify("Parcel missing")

        assert result.confidence_score == 0.0

    @pytest.mark.asyncio
    async def test_unparseable_output_raises(self, settings):
        client = GeminiAnalysisClient(settings, client=make_genai_mock(text="not json at all"))

        with pytest.raises(AnalysisError, match="Invalid response"):
            await client.classify("text")

    @pytest.mark.asyncio
    async def test_incomplete_output_raises(self, settings):
        client = GeminiAnalysisClient(settings, client=make_genai_mock(text=json.dumps({"category": "Delay"})))

        with pytest.raises(AnalysisError):
            await client.classify("text")

    @pytest.mark.asyncio
    async def test_empty_output_raises(self, settings):
        client = GeminiAnalysisClient(settings, client=make_genai_mock(text=None))

        with pytest.raises(AnalysisError):
            await client.classify("text")

    @pytest.mark.asyncio
    async def test_remote_failure_is_wrapped(self, settings):
        client = GeminiAnalysisClient(settings, client=make_genai_mock(side_effect=RuntimeError("503 unavailable")))

        with pytest.raises(AnalysisError) as exc_info:
            await client.classify("text")
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_unconfigured_client_raises(self, settings):
        client = GeminiAnalysisClient(settings)

        assert client.client is None
        with pytest.raises(AnalysisError, match="not configured"):
            await client.classify("text")


class TestDraftResponse:

    @pytest.mark.asyncio
    async def test_invalid_category_uses_fixed_english_notice(self, settings):
        genai_client = make_genai_mock(text="should not be used")
        client = GeminiAnalysisClient(settings, client=genai_client)

        draft = await client.draft_response("asdfgh", "Invalid", "Neutral", "Low", language="hi")

        assert draft == INVALID_REJECTION_TEMPLATE
        genai_client.aio.models.generate_content.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_prompt_names_language_and_details(self, settings):
        genai_client = make_genai_mock(text="  Subject: Re: delay\n\nNamaste...  ")
        client = GeminiAnalysisClient(settings, client=genai_client)

        draft = await client.draft_response("Parcel late", "Delay", "Unhappy", "Normal", language="hi")

        assert draft == "Subject: Re: delay\n\nNamaste..."
        prompt = genai_client.aio.models.generate_content.await_args.kwargs["contents"]
        assert "written in Hindi" in prompt
        assert "Detected category: Delay" in prompt
        assert "Priority: Normal" in prompt
        assert SIGNATURE in prompt
        assert "80-120 words" in prompt

    @pytest.mark.asyncio
    async def test_unknown_language_defaults_to_english(self, settings):
        genai_client = make_genai_mock(text="Subject: Hello")
        client = GeminiAnalysisClient(settings, client=genai_client)

        await client.draft_response("Parcel late", "Delay", "Unhappy", "Normal", language="xx")

        prompt = genai_client.aio.models.generate_content.await_args.kwargs["contents"]
        assert "written in English" in prompt

    @pytest.mark.asyncio
    async def test_empty_draft_raises(self, settings):
        client = GeminiAnalysisClient(settings, client=make_genai_mock(text="   "))

        with pytest.raises(AnalysisError):
            await client.draft_response("Parcel late", "Delay", "Unhappy", "Normal")


class TestChat:

    @pytest.mark.asyncio
    async def test_history_is_resupplied(self, settings):
        genai_client = make_genai_mock(text="Please share your tracking number.")
        client = GeminiAnalysisClient(settings, client=genai_client)
        history = [
            ChatTurn(role="model", text="Hello!"),
            ChatTurn(role="user", text="Where is my parcel?"),
            ChatTurn(role="model", text="Which parcel?"),
        ]

        reply = await client.chat("The one from Pune", history)

        assert reply == "Please share your tracking number."
        contents = genai_client.aio.models.generate_content.await_args.kwargs["contents"]
        assert [c.role for c in contents] == ["model", "user", "model", "user"]
        assert contents[-1].parts[0].text == "The one from Pune"

    @pytest.mark.asyncio
    async def test_chat_failure_raises(self, settings):
        client = GeminiAnalysisClient(settings, client=make_genai_mock(side_effect=RuntimeError("boom")))

        with pytest.raises(AnalysisError):
            await client.chat("hi", [])
