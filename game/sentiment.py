"""
Wolf's Journey Home - Sentiment Judge

Asks the LLM whether a tweet reads Bullish or Bearish. The judge stands in
for ground truth when a player's answers are scored.
"""

import logging
import re
from typing import Optional

import anthropic

from config import (
    SENTIMENT_MODEL, JUDGE_MAX_TOKENS, JUDGE_STRICT, DEFAULT_SENTIMENT
)
from errors import JudgeError, ValidationError
from prompts import get_sentiment_prompt

logger = logging.getLogger(__name__)

# Final answer is expected at the very end of the reply
TRAILING_LABEL = re.compile(r'(Bullish|Bearish)$')


def parse_sentiment(reply: str, strict: bool = False) -> str:
    """
    Pull the verdict out of a judge reply.

    Takes the trailing "Bullish"/"Bearish". Without one, falls back to the last
    whitespace-delimited word, then to DEFAULT_SENTIMENT. The fallback word is
    not checked against the label set. In strict mode the fallback is skipped
    and JudgeError is raised instead.
    """
    content = (reply or "").strip()
    match = TRAILING_LABEL.search(content)
    if match:
        return match.group(1)

    if strict:
        raise JudgeError(f"Unparsable judge reply: {content[-200:]!r}")

    logger.error(f"Unexpected LLM response format: {content}")
    words = content.split()
    return words[-1] if words else DEFAULT_SENTIMENT


class SentimentJudge:
    """Classifies tweet text with a single LLM call per tweet"""

    def __init__(self, client=None, model: str = SENTIMENT_MODEL,
                 max_tokens: int = JUDGE_MAX_TOKENS, strict: bool = JUDGE_STRICT):
        self._client = client
        self.model = model
        self.max_tokens = max_tokens
        self.strict = strict

    @property
    def client(self):
        # Built on first use so the app can start without an API key
        if self._client is None:
            self._client = anthropic.Anthropic()
        return self._client

    def judge(self, content: Optional[str]) -> str:
        """Return "Bullish" or "Bearish" for one tweet. API errors propagate."""
        if not content or not content.strip():
            raise ValidationError("Tweet content must be non-empty")

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": get_sentiment_prompt(content)}],
            )
        except Exception as e:
            logger.error(f"Error analyzing sentiment: {e}")
            raise

        return parse_sentiment(response.content[0].text, strict=self.strict)
