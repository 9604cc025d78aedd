"""
Wolf's Journey Home - Adventure Narrator

Generates the text for the adventure scene that follows the sentiment
mini-game. The LLM embellishes a fixed stage description; when it cannot be
reached the client gets a canned fallback instead of an error page.
"""

import logging
from typing import Dict

import anthropic

from config import NARRATIVE_MODEL, NARRATIVE_MAX_TOKENS, MAX_HEALTH
from prompts import STAGE_ONE_TEXT, STAGE_ONE_FALLBACK, STAGE_ONE_CHOICES, get_stage_prompt

logger = logging.getLogger(__name__)


class AdventureNarrator:
    """Builds adventure stage documents with LLM-written prompts"""

    def __init__(self, client=None, model: str = NARRATIVE_MODEL,
                 max_tokens: int = NARRATIVE_MAX_TOKENS):
        self._client = client
        self.model = model
        self.max_tokens = max_tokens

    @property
    def client(self):
        if self._client is None:
            self._client = anthropic.Anthropic()
        return self._client

    def generate(self, user_prompt: str) -> str:
        """Single non-streaming completion"""
        response = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": user_prompt}],
        )
        return response.content[0].text

    def stage_one(self, hearts: int = MAX_HEALTH) -> Dict:
        """
        Stage 1 of the adventure: the wolf wakes up and picks a direction.
        Returns the stage document, or {"error", "fallback"} if generation fails.
        """
        try:
            prompt = self.generate(get_stage_prompt(STAGE_ONE_TEXT, hearts=hearts))
        except Exception as e:
            logger.error(f"Failed to generate adventure prompt: {e}")
            return {
                "error": "Failed to generate adventure prompt",
                "fallback": STAGE_ONE_FALLBACK,
            }

        return {
            "id": "stage1",
            "background": "#000000",
            "assets": {
                "wolf": "/wolf.png",
                "hearts": hearts,
            },
            "prompt": prompt,
            "choices": {side: dict(choice) for side, choice in STAGE_ONE_CHOICES.items()},
        }
