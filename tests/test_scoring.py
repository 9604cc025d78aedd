import os

import gevent

import pytest

from conftest import FakeLLM, write_tweets
from errors import StoreReadError, ValidationError
from scoring import BatchEvaluator, EvaluationResult, TweetVerdict, validate_answers
from sentiment import SentimentJudge
from tweets import TweetSource


def make_evaluator(data_dir, llm=None):
    llm = llm or FakeLLM()
    tweets = TweetSource(os.path.join(str(data_dir), "tweets.json"))
    return BatchEvaluator(tweets, SentimentJudge(client=llm)), llm


def test_scenario_a_passes_with_three_correct(data_dir):
    evaluator, llm = make_evaluator(data_dir)

    result = evaluator.evaluate(0, ["Bullish", "Bearish", "Bullish", "Bullish"])

    assert [r.llm_answer for r in result.results] == ["Bullish", "Bearish", "Bullish", "Bearish"]
    assert [r.correct for r in result.results] == [1, 1, 1, 0]
    assert result.total_correct == 3
    assert result.passed is True
    assert len(llm.calls) == 4


def test_scenario_b_fails_with_none_correct(data_dir):
    evaluator, _ = make_evaluator(data_dir)

    result = evaluator.evaluate(0, ["Bearish", "Bullish", "Bearish", "Bullish"])

    assert result.total_correct == 0
    assert result.passed is False


def test_single_match_still_fails(data_dir):
    evaluator, _ = make_evaluator(data_dir)

    # Last answer agrees with the judge, the other three do not
    result = evaluator.evaluate(0, ["Bearish", "Bullish", "Bearish", "Bearish"])

    assert [r.correct for r in result.results] == [0, 0, 0, 1]
    assert result.total_correct == 1
    assert result.passed is False


def test_verdicts_stay_aligned_with_tweets(data_dir):
    evaluator, _ = make_evaluator(data_dir)

    result = evaluator.evaluate(0, ["Bullish"] * 4)

    assert [r.tweet for r in result.results] == [
        "bullish post", "bearish post", "bullish post", "bearish post"
    ]
    assert [r.user_answer for r in result.results] == ["Bullish"] * 4


@pytest.mark.parametrize("answers", [
    ["Bullish", "Bearish", "Bullish"],
    ["Bullish", "Bearish", "Bullish", "Bearish", "Bullish"],
    "Bullish",
    None,
])
def test_wrong_answer_count_rejected_before_judging(data_dir, answers):
    evaluator, llm = make_evaluator(data_dir)

    with pytest.raises(ValidationError):
        evaluator.evaluate(0, answers)
    assert llm.calls == []


@pytest.mark.parametrize("batch_number", [-1, "0", None, 1.5, True])
def test_invalid_batch_number_rejected(data_dir, batch_number):
    evaluator, llm = make_evaluator(data_dir)

    with pytest.raises(ValidationError):
        evaluator.evaluate(batch_number, ["Bullish"] * 4)
    assert llm.calls == []


def test_short_batch_is_not_found(data_dir):
    evaluator, llm = make_evaluator(data_dir)

    # Batch 1 only has two tweets, batch 5 has none
    assert evaluator.evaluate(1, ["Bullish"] * 4) is None
    assert evaluator.evaluate(5, ["Bullish"] * 4) is None
    assert llm.calls == []


def test_judge_failure_propagates(data_dir):
    evaluator, _ = make_evaluator(data_dir, FakeLLM(error=RuntimeError("upstream 503")))

    with pytest.raises(RuntimeError):
        evaluator.evaluate(0, ["Bullish"] * 4)


def test_label_comparison_is_exact(data_dir):
    evaluator, _ = make_evaluator(data_dir)

    result = evaluator.evaluate(0, ["bullish", "BEARISH", "Bullish ", "Bearish"])

    assert [r.correct for r in result.results] == [0, 0, 0, 1]
    assert result.total_correct == 1
    assert result.passed is False


def test_totals_bounded_for_every_answer_pattern(data_dir):
    evaluator, _ = make_evaluator(data_dir)

    for mask in range(16):
        answers = ["Bullish" if mask & (1 << i) else "Bearish" for i in range(4)]
        result = evaluator.evaluate(0, answers)
        assert 0 <= result.total_correct <= 4
        assert result.passed == (result.total_correct >= 3)


def test_evaluation_result_serialization():
    result = EvaluationResult.from_verdicts(2, [
        TweetVerdict("a", "Bullish", "Bullish"),
        TweetVerdict("b", "Bearish", "Bullish"),
    ], pass_threshold=1)
    result.timestamp = "2025-01-01T00:00:00.000Z"

    data = result.to_dict()

    assert data == {
        "batchNumber": 2,
        "results": [
            {"tweet": "a", "userAnswer": "Bullish", "llmAnswer": "Bullish", "correct": 1},
            {"tweet": "b", "userAnswer": "Bearish", "llmAnswer": "Bullish", "correct": 0},
        ],
        "totalCorrect": 1,
        "passed": True,
        "timestamp": "2025-01-01T00:00:00.000Z",
    }
    restored = EvaluationResult.from_dict(data)
    assert restored.total_correct == 1
    assert restored.results[1].user_answer == "Bearish"


def test_validate_answers_requires_strings():
    with pytest.raises(ValidationError):
        validate_answers(["Bullish", 1, "Bearish", "Bullish"])


class SlowJudge:
    """Finishes the batch's tweets in reverse order"""

    delays = {"first": 0.04, "second": 0.03, "third": 0.02, "fourth": 0.01}
    verdicts = {"first": "Bullish", "second": "Bearish", "third": "Bearish", "fourth": "Bullish"}

    def __init__(self):
        self.finished = []

    def judge(self, content):
        gevent.sleep(self.delays[content])
        self.finished.append(content)
        return self.verdicts[content]


def test_judging_is_concurrent_and_index_aligned(tmp_path):
    write_tweets(tmp_path, ["first", "second", "third", "fourth"])
    judge = SlowJudge()
    evaluator = BatchEvaluator(TweetSource(str(tmp_path / "tweets.json")), judge)

    result = evaluator.evaluate(0, ["Bullish", "Bullish", "Bearish", "Bearish"])

    assert judge.finished == ["fourth", "third", "second", "first"]
    assert [r.tweet for r in result.results] == ["first", "second", "third", "fourth"]
    assert [r.llm_answer for r in result.results] == ["Bullish", "Bearish", "Bearish", "Bullish"]
    assert [r.correct for r in result.results] == [1, 0, 1, 0]


def test_empty_tweet_is_a_server_fault(tmp_path):
    write_tweets(tmp_path, ["bullish post", "", "bullish post", "bearish post"])
    llm = FakeLLM()
    evaluator = BatchEvaluator(TweetSource(str(tmp_path / "tweets.json")), SentimentJudge(client=llm))

    with pytest.raises(StoreReadError):
        evaluator.evaluate(0, ["Bullish"] * 4)
    assert llm.calls == []
