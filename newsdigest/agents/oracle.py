"""Oracle boundary: one prompt in, free text out.

Callers do their own parsing (JSON extraction, yes/no tokens) and must
tolerate extra text around the answer. Every call is recorded in
``costs`` under the caller's step name.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import anthropic

from ..config.settings import Settings
from ..exceptions import ConfigurationMissing, OracleError
from ..utils.cost_tracker import (
    PipelineCosts,
    extract_usage_from_anthropic_response,
    extract_usage_from_litellm_response,
)
from ..utils.llm_client import get_completion_async

logger = logging.getLogger(__name__)


class Oracle(ABC):
    """Base class for generative text backends."""

    def __init__(
        self,
        model_id: str,
        max_tokens: int = 4096,
        temperature: float = 0.3,
        costs: Optional[PipelineCosts] = None,
    ):
        """
        Initialize the oracle.

        Args:
            model_id: Model identifier for the backend
            max_tokens: Maximum tokens for each response
            temperature: Sampling temperature
            costs: Usage accumulator; a fresh one is created if omitted
        """
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.costs = costs or PipelineCosts()

    async def complete(self, prompt: str, step: str = "oracle") -> str:
        """
        Send ``prompt`` and return the response text.

        Raises:
            OracleError: On any transport or provider failure
        """
        try:
            text, input_tokens, output_tokens, cost = await self._call(prompt)
        except OracleError:
            raise
        except Exception as e:
            raise OracleError(f"{self.model_id} call failed: {e}") from e

        self.costs.add_usage(step, self.model_id, input_tokens, output_tokens, cost)
        logger.debug("[ORACLE] %s/%s: %d in, %d out", step, self.model_id, input_tokens, output_tokens)
        return text

    @abstractmethod
    async def _call(self, prompt: str) -> tuple[str, int, int, float]:
        """Return (text, input_tokens, output_tokens, cost_usd)."""


class LiteLLMOracle(Oracle):
    """Oracle over LiteLLM (Gemini by default, any LiteLLM model id works)."""

    def __init__(self, model_id: str, api_key: Optional[str] = None, timeout: float = 60.0, **kwargs):
        super().__init__(model_id, **kwargs)
        self.api_key = api_key
        self.timeout = timeout

    async def _call(self, prompt: str) -> tuple[str, int, int, float]:
        text, response = await get_completion_async(
            model=self.model_id,
            prompt=prompt,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            api_key=self.api_key,
            timeout=self.timeout,
        )
        input_tokens, output_tokens, cost = extract_usage_from_litellm_response(response)
        return text, input_tokens, output_tokens, cost


class AnthropicOracle(Oracle):
    """Oracle over the Anthropic Messages API."""

    def __init__(self, client: anthropic.AsyncAnthropic, model_id: str = "claude-sonnet-4-20250514", **kwargs):
        super().__init__(model_id, **kwargs)
        self.client = client

    async def _call(self, prompt: str) -> tuple[str, int, int, float]:
        response = await self.client.messages.create(
            model=self.model_id,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        input_tokens, output_tokens, cost = extract_usage_from_anthropic_response(response, self.model_id)
        return self._extract_text(response), input_tokens, output_tokens, cost

    @staticmethod
    def _extract_text(response: anthropic.types.Message) -> str:
        for block in response.content:
            if block.type == "text":
                return block.text
        return ""


def build_oracle(config: Settings) -> Oracle:
    """
    Build the configured oracle.

    Raises:
        ConfigurationMissing: If the provider's credential is not set
    """
    common = {"max_tokens": config.oracle_max_tokens, "temperature": config.oracle_temperature}

    if config.oracle_provider == "anthropic":
        if not config.anthropic_api_key:
            raise ConfigurationMissing("ANTHROPIC_API_KEY not set")
        client = anthropic.AsyncAnthropic(api_key=config.anthropic_api_key)
        return AnthropicOracle(client, model_id=config.oracle_model, **common)

    api_key = None
    if config.oracle_model.startswith("gemini/"):
        if not config.gemini_api_key:
            raise ConfigurationMissing("GEMINI_API_KEY not set")
        api_key = config.gemini_api_key
    return LiteLLMOracle(config.oracle_model, api_key=api_key, **common)
