"""LLM client for the probabilistic judge.

Wraps the litellm Router with Instructor so callers get a validated pydantic
model back instead of raw JSON. Invalid replies are sent back to the model
with the validation error; after that the exception propagates and the
caller decides what to fall back to.

Usage:
    client = LLMClient()
    verdict = await client.complete_structured(
        system_prompt=JUDGMENT_SYSTEM_PROMPT,
        user_prompt=build_judgment_prompt(context),
        model=FAST_MODEL,
        response_model=LlmJudgmentResponse,
        agent="judge",
    )
"""

import logging
from typing import TypeVar

import instructor

from verdict.core.config import LLMConfig
from verdict.core.llm_router import router

logger = logging.getLogger(__name__)

# Suppress LiteLLM debug noise (done once at module load)
logging.getLogger("litellm").setLevel(logging.ERROR)
logging.getLogger("LiteLLM").setLevel(logging.ERROR)
logging.getLogger("httpx").setLevel(logging.ERROR)

T = TypeVar("T")


class LLMClient:
    """Client for structured LLM calls routed through core/llm_router.py."""

    def __init__(self, max_retries: int = LLMConfig.MAX_VALIDATION_RETRIES) -> None:
        """Initialize the client.

        Args:
            max_retries: Validation retries Instructor may spend per call.
        """
        self.max_retries = max_retries
        self.call_count = 0

    async def complete_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        response_model: type[T],
        agent: str = "",
        temperature: float | None = None,
    ) -> T:
        """Make an LLM call that returns a validated pydantic model.

        Args:
            system_prompt: System message content.
            user_prompt: User message content.
            model: LLM model identifier.
            response_model: Pydantic model class to validate against.
            agent: Caller name, for logging.
            temperature: Sampling temperature. Defaults to 0.0.

        Returns:
            Validated instance of response_model.
        """
        instructor_client = instructor.from_litellm(router.acompletion)

        self.call_count += 1
        logger.debug("LLM call %d for %s on %s", self.call_count, agent or "unknown", model)

        return await instructor_client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_model=response_model,
            temperature=temperature if temperature is not None else LLMConfig.TEMPERATURE,
            max_retries=self.max_retries,
        )
