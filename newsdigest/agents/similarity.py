"""Similarity judge: do two articles describe the same real-world story?"""

import logging
import re

from ..exceptions import OracleError
from ..news.models import RawArticle
from ..prompts import render
from .oracle import Oracle

logger = logging.getLogger(__name__)

_SAME = re.compile(r"\bSAME\b")
_DIFFERENT = re.compile(r"\bDIFFERENT\b")


class SimilarityJudge:
    """
    Oracle-backed same-story predicate.

    A failed or unparsable call answers False (distinct) so content is
    never discarded because of an oracle problem. One attempt per call.
    """

    def __init__(self, oracle: Oracle, description_chars: int = 300):
        self.oracle = oracle
        self.description_chars = description_chars

    async def are_same_story(self, a: RawArticle, b: RawArticle) -> bool:
        prompt = render(
            "similarity",
            title_a=a.title,
            source_a=a.source,
            description_a=a.description[: self.description_chars],
            title_b=b.title,
            source_b=b.source,
            description_b=b.description[: self.description_chars],
        )
        try:
            answer = await self.oracle.complete(prompt, step="similarity")
        except OracleError as e:
            logger.error("[DEDUPE] Error checking similarity: %s", e)
            return False
        return self.parse_answer(answer)

    @staticmethod
    def parse_answer(answer: str) -> bool:
        text = (answer or "").strip().upper()
        if _DIFFERENT.search(text):
            return False
        if _SAME.search(text):
            return True
        logger.warning("[DEDUPE] Unparsable similarity answer %r, treating as different", answer[:80] if answer else answer)
        return False
