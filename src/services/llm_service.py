"""LLM access through PydanticAI Gateway.

One thin service wraps every model call the pipeline makes: intent
classification, coaching and objection analysis, summaries and general
replies. Calls go through a ``FallbackModel`` so the fallback model is
tried when the primary one fails. Structured calls use PydanticAI's
typed output, so replies arrive already validated against a model.
"""

import logging
from typing import TypeVar

import logfire
from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.models.fallback import FallbackModel
from pydantic_ai.settings import ModelSettings

from src.config import get_settings
from src.constants import (
    AGENT_RETRY_COUNT,
    ANALYSIS_MAX_TOKENS,
    JSON_TEMPERATURE,
    PROSE_TEMPERATURE,
)
from src.services.chat.errors import LLMServiceError

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)


class LLMService:
    """Plain-text and structured completions via PydanticAI Gateway."""

    def __init__(self, model: str | None = None, fallback_model: str | None = None):
        """
        Args:
            model: Primary model string (e.g. 'gateway/anthropic:claude-sonnet-4-0').
                   Defaults to settings.default_model
            fallback_model: Model tried when the primary fails.
                   Defaults to settings.fallback_model
        """
        settings = get_settings()
        self.model_name = model or settings.default_model
        self.fallback_model_name = fallback_model or settings.fallback_model

    def _build_agent(self, system_prompt: str, output_type: type = str) -> Agent:
        if self.fallback_model_name and self.fallback_model_name != self.model_name:
            model = FallbackModel(self.model_name, self.fallback_model_name)
        else:
            model = self.model_name
        return Agent(
            model,
            output_type=output_type,
            system_prompt=system_prompt,
            retries=AGENT_RETRY_COUNT,
        )

    async def chat(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int = 1024,
        temperature: float = PROSE_TEMPERATURE,
    ) -> str:
        """
        Run one completion and return the reply text.

        Raises:
            LLMServiceError: If the model call fails
        """
        agent = self._build_agent(system_prompt)
        settings = ModelSettings(max_tokens=max_tokens, temperature=temperature)
        with logfire.span(
            "llm_chat", model=self.model_name, max_tokens=max_tokens
        ):
            try:
                result = await agent.run(user_prompt, model_settings=settings)
            except Exception as e:
                logger.error(f"LLM call failed: {e}")
                raise LLMServiceError(f"LLM call failed: {e}") from e
        return result.output or ""

    async def run_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        output_type: type[OutputT],
        *,
        max_tokens: int = ANALYSIS_MAX_TOKENS,
    ) -> OutputT:
        """
        Run one low-temperature completion with a typed output.

        The agent validates the reply against ``output_type`` and asks the
        model to retry on validation errors.

        Raises:
            LLMServiceError: If the call fails or no valid output is produced
        """
        agent = self._build_agent(system_prompt, output_type)
        settings = ModelSettings(max_tokens=max_tokens, temperature=JSON_TEMPERATURE)
        with logfire.span(
            "llm_structured",
            model=self.model_name,
            output_type=output_type.__name__,
            max_tokens=max_tokens,
        ):
            try:
                result = await agent.run(user_prompt, model_settings=settings)
            except Exception as e:
                logger.error(f"Structured LLM call failed: {e}")
                raise LLMServiceError(f"LLM call failed: {e}") from e
        return result.output


def get_llm_service(model: str | None = None) -> LLMService:
    """Get LLM service instance."""
    return LLMService(model=model)
