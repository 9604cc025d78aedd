"""
Wolf's Journey Home - Game State Module

Player progress tracking:
- GameStateSnapshot: one recorded observation of progress, derived from the
  latest evaluation
- GameStateTracker: derives, appends and hands snapshots to remote sync
- GameSession: per-player context (stage, level, health, submitted batches)

Includes full serialization support for the session cookie and the stores.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from config import DEFAULT_HEALTH, MAX_HEALTH, STAGES
from errors import ValidationError
from scoring import utc_timestamp
from storage import EvaluationStorage, GameStateStorage

logger = logging.getLogger(__name__)

SESSION_HISTORY_LIMIT = 20


def calculate_accuracy(correct: int, total: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when nothing was answered"""
    if total <= 0:
        return 0
    return int(math.floor(correct / total * 100 + 0.5))


@dataclass
class GameStateSnapshot:
    """Progress after an evaluation"""

    timestamp: str
    tweets_answered: int
    hearts_remaining: int
    accuracy: int
    equipment: List[Any] = field(default_factory=list)

    @classmethod
    def from_evaluation(cls, evaluation: Dict, health: Optional[int] = None,
                        timestamp: Optional[str] = None) -> "GameStateSnapshot":
        total_answers = len(evaluation.get("results") or [])
        correct_answers = evaluation.get("totalCorrect") or 0
        return cls(
            timestamp=timestamp or utc_timestamp(),
            tweets_answered=total_answers,
            hearts_remaining=health if health is not None else DEFAULT_HEALTH,
            accuracy=calculate_accuracy(correct_answers, total_answers),
        )

    def public_payload(self) -> Dict:
        """Fields published to Walrus"""
        return {
            "tweetsAnswered": self.tweets_answered,
            "heartsRemaining": self.hearts_remaining,
            "accuracy": self.accuracy,
            "timestamp": self.timestamp,
        }

    def to_dict(self) -> Dict:
        return {
            "timestamp": self.timestamp,
            "tweetsAnswered": self.tweets_answered,
            "heartsRemaining": self.hearts_remaining,
            "equipment": list(self.equipment),
            "accuracy": self.accuracy,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "GameStateSnapshot":
        return cls(
            timestamp=data.get("timestamp"),
            tweets_answered=data.get("tweetsAnswered", 0),
            hearts_remaining=data.get("heartsRemaining", DEFAULT_HEALTH),
            accuracy=data.get("accuracy", 0),
            equipment=data.get("equipment", []),
        )


class GameStateTracker:
    """
    Appends a snapshot derived from the latest evaluation.

    on_appended is called with the stored snapshot once the write has
    committed. It is meant to enqueue remote sync and must not raise into
    the update; errors from it are logged and dropped.
    """

    def __init__(self, evaluations: EvaluationStorage, game_states: GameStateStorage,
                 on_appended: Optional[Callable[[Dict], Any]] = None):
        self.evaluations = evaluations
        self.game_states = game_states
        self.on_appended = on_appended

    def update(self, health: Optional[int] = None) -> Dict:
        """
        Returns {"success": True, "gameState": {...}} or a structured failure
        when there is nothing to derive from. A missing evaluation store raises
        StoreReadError.
        """
        latest = self.evaluations.latest()
        if not latest:
            logger.error("No evaluation found")
            return {"success": False, "error": "No evaluation found"}
        if not latest.get("results"):
            logger.error("No results in latest evaluation")
            return {"success": False, "error": "No results in latest evaluation"}

        snapshot = GameStateSnapshot.from_evaluation(latest, health=health)
        stored = self.game_states.append(snapshot.to_dict())
        logger.info(
            f"Game state recorded: {snapshot.tweets_answered} answered, "
            f"{snapshot.accuracy}% accuracy, {snapshot.hearts_remaining} hearts"
        )

        if self.on_appended:
            try:
                self.on_appended(stored)
            except Exception as e:
                logger.error(f"Failed to schedule Walrus sync: {e}")

        return {"success": True, "gameState": stored}


# =============================================================================
# SESSION
# =============================================================================

@dataclass
class GameSession:
    """
    Per-player context carried between requests.

    Replaces a global client store: routes load it from the signed session
    cookie, apply updates, and write it back.
    """

    current_stage: str = "sentiment"
    current_level: int = 1
    health: int = DEFAULT_HEALTH
    max_health: int = MAX_HEALTH
    sentiment_results: List[Dict] = field(default_factory=list)

    def set_stage(self, stage: str):
        if stage not in STAGES:
            raise ValidationError(f"Unknown stage: {stage}")
        self.current_stage = stage

    def set_level(self, level: int):
        if isinstance(level, bool) or not isinstance(level, int) or level < 1:
            raise ValidationError("level must be a positive integer")
        self.current_level = level

    def set_health(self, health: int):
        if isinstance(health, bool) or not isinstance(health, int):
            raise ValidationError("health must be an integer")
        self.health = max(0, min(health, self.max_health))

    def update_health(self, delta: int) -> int:
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError("healthDelta must be an integer")
        self.health = min(max(self.health + delta, 0), self.max_health)
        return self.health

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    def add_sentiment_results(self, batch_number: int, answers: List[str],
                              timestamp: Optional[str] = None):
        self.sentiment_results.append({
            "batchNumber": batch_number,
            "answers": list(answers),
            "timestamp": timestamp or utc_timestamp(),
        })
        # Cookie-backed, so keep it small
        self.sentiment_results = self.sentiment_results[-SESSION_HISTORY_LIMIT:]

    def clear_sentiment_results(self):
        self.sentiment_results = []

    def to_dict(self) -> Dict:
        return {
            "currentStage": self.current_stage,
            "currentLevel": self.current_level,
            "health": self.health,
            "maxHealth": self.max_health,
            "sentimentResults": list(self.sentiment_results),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "GameSession":
        if not data:
            return cls()
        return cls(
            current_stage=data.get("currentStage", "sentiment"),
            current_level=data.get("currentLevel", 1),
            health=data.get("health", DEFAULT_HEALTH),
            max_health=data.get("maxHealth", MAX_HEALTH),
            sentiment_results=data.get("sentimentResults", []),
        )
