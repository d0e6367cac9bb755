"""Oracle spend accounting.

Every oracle call is booked under the pipeline step that made it
(``similarity``, ``relevance``, ``rewrite``, ``digest``) and priced with
LiteLLM's model price list.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import litellm

logger = logging.getLogger(__name__)


@dataclass
class StepCost:
    """Running totals for one step."""

    step_name: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    call_count: int = 0

    def record(self, input_tokens: int, output_tokens: int, cost_usd: float) -> None:
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.cost_usd += cost_usd
        self.call_count += 1

    def as_dict(self) -> dict:
        return {
            "model": self.model,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cost_usd": round(self.cost_usd, 6),
            "call_count": self.call_count,
        }


@dataclass
class PipelineCosts:
    """Per-step totals for one pipeline run."""

    steps: dict[str, StepCost] = field(default_factory=dict)

    def add_usage(self, step_name: str, model: str, input_tokens: int, output_tokens: int, cost_usd: float) -> None:
        step = self.steps.setdefault(step_name, StepCost(step_name=step_name, model=model))
        step.record(input_tokens, output_tokens, cost_usd)

    def call_count(self, step_name: str) -> int:
        step = self.steps.get(step_name)
        return step.call_count if step else 0

    def total_cost(self) -> float:
        return sum(s.cost_usd for s in self.steps.values())

    def to_dict(self) -> dict:
        """JSON-ready summary carried by the run summary."""
        steps = self.steps.values()
        return {
            "total_cost_usd": round(self.total_cost(), 6),
            "total_input_tokens": sum(s.input_tokens for s in steps),
            "total_output_tokens": sum(s.output_tokens for s in steps),
            "steps": {name: step.as_dict() for name, step in self.steps.items()},
        }


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Price a call from token counts; 0.0 when LiteLLM does not know the model."""
    try:
        prompt_usd, completion_usd = litellm.cost_per_token(
            model=model,
            prompt_tokens=input_tokens,
            completion_tokens=output_tokens,
        )
    except Exception as e:
        logger.warning("[ORACLE] No pricing for model %s: %s", model, e)
        return 0.0
    return (prompt_usd or 0.0) + (completion_usd or 0.0)


def extract_usage_from_anthropic_response(response: Any, model: str) -> tuple[int, int, float]:
    """(input_tokens, output_tokens, cost_usd) from an Anthropic Message."""
    usage = response.usage
    return usage.input_tokens, usage.output_tokens, calculate_cost(model, usage.input_tokens, usage.output_tokens)


def extract_usage_from_litellm_response(response: Any) -> tuple[int, int, float]:
    """(input_tokens, output_tokens, cost_usd) from a LiteLLM ModelResponse."""
    usage = getattr(response, "usage", None)
    input_tokens = getattr(usage, "prompt_tokens", 0) or 0
    output_tokens = getattr(usage, "completion_tokens", 0) or 0

    try:
        cost = litellm.completion_cost(completion_response=response) or 0.0
    except Exception as e:
        logger.warning("[ORACLE] Could not price LiteLLM response: %s", e)
        cost = calculate_cost(getattr(response, "model", "unknown"), input_tokens, output_tokens)

    return input_tokens, output_tokens, cost
