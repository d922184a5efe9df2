"""Tests for verdict.core.llm_client module.

The router and Instructor are patched out; no network calls are made.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from verdict.core.llm_client import LLMClient
from verdict.pydantic_models import LlmJudgmentResponse


@pytest.fixture
def patched_instructor():
    with patch("verdict.core.llm_client.instructor") as mock_instructor:
        structured = MagicMock()
        structured.chat.completions.create = AsyncMock(
            return_value=LlmJudgmentResponse(decision="NEEDS_REVIEW", reasoning="unclear total")
        )
        mock_instructor.from_litellm.return_value = structured
        yield mock_instructor, structured.chat.completions.create


class TestCompleteStructured:
    """Tests for LLMClient.complete_structured()."""

    @pytest.mark.asyncio
    async def test_returns_validated_model(self, patched_instructor):
        _, create = patched_instructor
        client = LLMClient()
        result = await client.complete_structured(
            system_prompt="system",
            user_prompt="user",
            model="test-model",
            response_model=LlmJudgmentResponse,
            agent="judge",
        )
        assert isinstance(result, LlmJudgmentResponse)
        assert result.decision == "NEEDS_REVIEW"
        assert client.call_count == 1

    @pytest.mark.asyncio
    async def test_request_parameters(self, patched_instructor):
        mock_instructor, create = patched_instructor
        client = LLMClient(max_retries=1)
        await client.complete_structured("system", "user", "test-model", LlmJudgmentResponse)

        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]
        assert kwargs["response_model"] is LlmJudgmentResponse
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_retries"] == 1
        mock_instructor.from_litellm.assert_called_once()

    @pytest.mark.asyncio
    async def test_temperature_override(self, patched_instructor):
        _, create = patched_instructor
        await LLMClient().complete_structured("s", "u", "m", LlmJudgmentResponse, temperature=0.3)
        assert create.await_args.kwargs["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_errors_propagate(self, patched_instructor):
        _, create = patched_instructor
        create.side_effect = RuntimeError("rate limited")
        with pytest.raises(RuntimeError, match="rate limited"):
            await LLMClient().complete_structured("s", "u", "m", LlmJudgmentResponse)
