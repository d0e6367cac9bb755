"""Oracle-backed judges and the rewriter."""

from .oracle import AnthropicOracle, LiteLLMOracle, Oracle, build_oracle
from .relevance import RelevanceJudge
from .rewriter import Rewriter
from .similarity import SimilarityJudge

__all__ = [
    "AnthropicOracle",
    "LiteLLMOracle",
    "Oracle",
    "RelevanceJudge",
    "Rewriter",
    "SimilarityJudge",
    "build_oracle",
]
