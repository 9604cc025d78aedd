"""
Wolf's Journey Home - Scoring Module

Scores a batch of player answers against the sentiment judge:
- Validates the submitted batch shape
- Judges the batch's tweets concurrently
- Counts exact matches and decides pass/fail

Scoring has no side effects; persisting the result is the caller's job.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import gevent

from config import BATCH_SIZE, PASS_THRESHOLD
from errors import StoreReadError, ValidationError
from sentiment import SentimentJudge
from tweets import TweetSource

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix"""
    now = datetime.now(timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f"{now.microsecond // 1000:03d}Z"


def validate_answers(answers: Any, size: int = BATCH_SIZE) -> List[str]:
    if not isinstance(answers, list) or len(answers) != size:
        raise ValidationError(f"Invalid answers format - must be array of {size} answers")
    if not all(isinstance(a, str) for a in answers):
        raise ValidationError("Answers must be strings")
    return answers


def validate_batch_number(batch_number: Any) -> int:
    # bool is an int subclass but never a valid batch number
    if isinstance(batch_number, bool) or not isinstance(batch_number, int) or batch_number < 0:
        raise ValidationError("batchNumber must be a non-negative integer")
    return batch_number


@dataclass
class TweetVerdict:
    """One tweet's player answer next to the judge's answer"""

    tweet: str
    user_answer: str
    llm_answer: str

    @property
    def correct(self) -> int:
        return 1 if self.user_answer == self.llm_answer else 0

    def to_dict(self) -> Dict:
        return {
            "tweet": self.tweet,
            "userAnswer": self.user_answer,
            "llmAnswer": self.llm_answer,
            "correct": self.correct,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "TweetVerdict":
        return cls(
            tweet=data.get("tweet", ""),
            user_answer=data.get("userAnswer", ""),
            llm_answer=data.get("llmAnswer", ""),
        )


@dataclass
class EvaluationResult:
    """Outcome of scoring one batch"""

    batch_number: int
    results: List[TweetVerdict] = field(default_factory=list)
    total_correct: int = 0
    passed: bool = False
    timestamp: Optional[str] = None

    @classmethod
    def from_verdicts(cls, batch_number: int, verdicts: List[TweetVerdict],
                      pass_threshold: int = PASS_THRESHOLD) -> "EvaluationResult":
        total = sum(v.correct for v in verdicts)
        return cls(
            batch_number=batch_number,
            results=verdicts,
            total_correct=total,
            passed=total >= pass_threshold,
        )

    def to_dict(self) -> Dict:
        data = {
            "batchNumber": self.batch_number,
            "results": [v.to_dict() for v in self.results],
            "totalCorrect": self.total_correct,
            "passed": self.passed,
        }
        if self.timestamp:
            data["timestamp"] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "EvaluationResult":
        return cls(
            batch_number=data.get("batchNumber"),
            results=[TweetVerdict.from_dict(r) for r in data.get("results") or []],
            total_correct=data.get("totalCorrect") or 0,
            passed=bool(data.get("passed", False)),
            timestamp=data.get("timestamp"),
        )


class BatchEvaluator:
    """Judges a batch of tweets and compares the verdicts with the player's answers"""

    def __init__(self, tweets: TweetSource, judge: SentimentJudge,
                 batch_size: int = BATCH_SIZE, pass_threshold: int = PASS_THRESHOLD):
        self.tweets = tweets
        self.judge = judge
        self.batch_size = batch_size
        self.pass_threshold = pass_threshold

    def evaluate(self, batch_number: Any, answers: Any) -> Optional[EvaluationResult]:
        """
        Score one batch.

        Raises ValidationError before any judge call when the request is
        malformed. Returns None when the tweet window for batch_number holds
        fewer than batch_size tweets, and raises StoreReadError when one of them
        has no content. Judge failures propagate.
        """
        answers = validate_answers(answers, self.batch_size)
        batch_number = validate_batch_number(batch_number)

        batch_tweets = self.tweets.batch(batch_number, self.batch_size)
        if len(batch_tweets) != self.batch_size:
            logger.error(f"Batch not found: {batch_number}")
            return None

        # Empty tweets are a data fault on our side, not a bad request
        empty = [tweet.id for tweet in batch_tweets if not (tweet.content or "").strip()]
        if empty:
            logger.error(f"Batch {batch_number} has tweets without content: {empty}")
            raise StoreReadError(f"Tweets without content in batch {batch_number}: {empty}")

        logger.info(f"Judging batch {batch_number} ({len(batch_tweets)} tweets)")

        # Verdicts are matched to answers by index, not by completion order
        jobs = [gevent.spawn(self.judge.judge, tweet.content) for tweet in batch_tweets]
        gevent.joinall(jobs, raise_error=True)
        llm_answers = [job.value for job in jobs]

        verdicts = [
            TweetVerdict(tweet=tweet.content, user_answer=answer, llm_answer=llm_answer)
            for tweet, answer, llm_answer in zip(batch_tweets, answers, llm_answers)
        ]
        evaluation = EvaluationResult.from_verdicts(batch_number, verdicts, self.pass_threshold)

        logger.info(
            f"Batch {batch_number} evaluated: {evaluation.total_correct}/{len(verdicts)} correct, "
            f"passed={evaluation.passed}"
        )
        return evaluation
