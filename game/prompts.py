"""
Wolf's Journey Home - Prompts Module

LLM prompts for:
- Tweet sentiment judging (sentiment mini-game)
- Adventure scene narration (stage 1)
"""


# =============================================================================
# SENTIMENT JUDGE
# =============================================================================

def get_sentiment_prompt(tweet: str) -> str:
    """Ask for a single-word Bullish/Bearish verdict on one tweet"""
    return (
        'Analyze if this tweet has a bullish or bearish sentiment about cryptocurrency. '
        'Only respond with either "Bullish" or "Bearish". '
        f'Tweet: "{tweet}"'
    )


# =============================================================================
# ADVENTURE SCENE
# =============================================================================

STAGE_ONE_TEXT = (
    "Waking up the wolf finds himself alone in a rocky place, "
    "where should he go next?"
)

# Shown when the narrator call fails
STAGE_ONE_FALLBACK = (
    "The wolf awakens in a jagged alien landscape. Strange mineral formations jut "
    "from the crimson-tinged ground. To the west, bioluminescent foliage pulses in a "
    "twisted forest. To the east, endless rocky plains stretch to the horizon. "
    "(Swipe left for forest, right for plains)"
)

STAGE_ONE_CHOICES = {
    "left": {
        "direction": "forest",
        "description": "Twisted alien trees glow faintly in the distance",
    },
    "right": {
        "direction": "rocky_plains",
        "description": "Barren stone fields under crimson skies",
    },
}


def get_stage_prompt(original_text: str = STAGE_ONE_TEXT, hearts: int = 3) -> str:
    """Ask the narrator to embellish a stage while keeping its key elements"""
    left = STAGE_ONE_CHOICES["left"]["direction"]
    right = STAGE_ONE_CHOICES["right"]["direction"].replace("_", " ")
    return f"""Improve this game narrative while keeping the key elements:
- Wolf protagonist with {hearts} health hearts
- Rocky alien environment
- Swipe choices: left={left}, right={right}
- Mysterious atmosphere
Original text: "{original_text}\""""
