"""
Wolf's Journey Home - Configuration Module

All tunable game parameters live here. Adjust these to change game feel
without touching game logic. Values can be overridden from the environment.
"""

import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes")


# =============================================================================
# STORAGE
# =============================================================================

# Directory holding the JSON documents (tweets, answers, evaluations, ...)
DATA_DIR = os.environ.get("DATA_DIR", "data")

# "json" keeps everything in DATA_DIR, "postgres" keeps mutable stores in DATABASE_URL
STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "json").lower()
DATABASE_URL = os.environ.get("DATABASE_URL")

TWEETS_FILE = "tweets.json"
ANSWERS_FILE = "tweets-response.json"
EVALUATIONS_FILE = "evaluation-results.json"
GAME_STATES_FILE = "game-state.json"
WALRUS_TRANSACTIONS_FILE = "walrus-transactions.json"

# =============================================================================
# SENTIMENT MINI-GAME
# =============================================================================

# Tweets shown per evaluation round
BATCH_SIZE = 4

# Correct answers needed to pass a batch (out of BATCH_SIZE)
PASS_THRESHOLD = 3

SENTIMENT_LABELS = ("Bullish", "Bearish")

# Label used when the judge reply contains nothing usable
DEFAULT_SENTIMENT = "Bearish"

# =============================================================================
# PLAYER
# =============================================================================

MAX_HEALTH = 3
DEFAULT_HEALTH = 3

STAGES = ("sentiment", "adventure")

# =============================================================================
# LLM
# =============================================================================

SENTIMENT_MODEL = os.environ.get("SENTIMENT_MODEL", "claude-3-5-haiku-latest")
NARRATIVE_MODEL = os.environ.get("NARRATIVE_MODEL", "claude-sonnet-4-5")

JUDGE_MAX_TOKENS = int(os.environ.get("JUDGE_MAX_TOKENS", "2048"))
NARRATIVE_MAX_TOKENS = int(os.environ.get("NARRATIVE_MAX_TOKENS", "2048"))

# Raise instead of guessing when the judge reply has no trailing label
JUDGE_STRICT = _env_bool("JUDGE_STRICT")

# =============================================================================
# WALRUS
# =============================================================================

WALRUS_PUBLISHER = os.environ.get("WALRUS_PUBLISHER", "https://publisher.walrus-testnet.walrus.space")
WALRUS_EPOCHS = 1
WALRUS_DELETABLE = False
WALRUS_ENCODING = "utf-8"
WALRUS_TIMEOUT = float(os.environ.get("WALRUS_TIMEOUT", "30"))

# Run the post-update Walrus upload on a greenlet instead of inline
SYNC_IN_BACKGROUND = _env_bool("SYNC_IN_BACKGROUND", "true")

# =============================================================================
# SERVER
# =============================================================================

PORT = int(os.environ.get("PORT", 5000))
SESSION_SECRET = os.environ.get("SESSION_SECRET")
SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "gevent")


def defaults() -> dict:
    """Snapshot of the settings above, used to seed the Flask app config."""
    return {
        "DATA_DIR": DATA_DIR,
        "STORAGE_BACKEND": STORAGE_BACKEND,
        "DATABASE_URL": DATABASE_URL,
        "BATCH_SIZE": BATCH_SIZE,
        "PASS_THRESHOLD": PASS_THRESHOLD,
        "MAX_HEALTH": MAX_HEALTH,
        "SENTIMENT_MODEL": SENTIMENT_MODEL,
        "NARRATIVE_MODEL": NARRATIVE_MODEL,
        "JUDGE_MAX_TOKENS": JUDGE_MAX_TOKENS,
        "NARRATIVE_MAX_TOKENS": NARRATIVE_MAX_TOKENS,
        "JUDGE_STRICT": JUDGE_STRICT,
        "WALRUS_PUBLISHER": WALRUS_PUBLISHER,
        "WALRUS_EPOCHS": WALRUS_EPOCHS,
        "WALRUS_DELETABLE": WALRUS_DELETABLE,
        "WALRUS_TIMEOUT": WALRUS_TIMEOUT,
        "SYNC_IN_BACKGROUND": SYNC_IN_BACKGROUND,
        "SOCKETIO_ASYNC_MODE": SOCKETIO_ASYNC_MODE,
    }
