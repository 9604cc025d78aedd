from unittest.mock import MagicMock

import psycopg2
import pytest

import db
from errors import StoreReadError


@pytest.fixture
def conn(monkeypatch):
    conn = MagicMock()
    cursor = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    monkeypatch.setattr(db.psycopg2, "connect", MagicMock(return_value=conn))
    conn.cur = cursor
    return conn


def test_evaluation_upsert_redraws_sequence(conn):
    store = db.PostgresEvaluationStorage("postgres://test")

    store.upsert({
        "batchNumber": 2, "results": [], "totalCorrect": 3,
        "passed": True, "timestamp": "ts",
    })

    sql, params = conn.cur.execute.call_args[0]
    assert "ON CONFLICT (batch_number)" in sql
    assert "seq = DEFAULT" in sql
    assert params[0] == 2
    assert params[2:] == (3, True, "ts")
    conn.commit.assert_called_once()
    conn.close.assert_called_once()


def test_latest_evaluation_maps_row(conn):
    conn.cur.fetchall.return_value = [{
        "batch_number": 4, "seq": 9, "results": '[{"correct": 1}]',
        "total_correct": 1, "passed": False, "evaluated_at": "ts",
    }]
    store = db.PostgresEvaluationStorage("postgres://test")

    latest = store.latest()

    assert "ORDER BY seq DESC LIMIT 1" in conn.cur.execute.call_args[0][0]
    assert latest == {
        "batchNumber": 4,
        "results": [{"correct": 1}],
        "totalCorrect": 1,
        "passed": False,
        "timestamp": "ts",
    }


def test_latest_evaluation_empty_table(conn):
    conn.cur.fetchall.return_value = []

    assert db.PostgresEvaluationStorage("postgres://test").latest() is None


def test_read_failure_rolls_back_and_raises(conn):
    conn.cur.execute.side_effect = psycopg2.OperationalError("relation does not exist")
    store = db.PostgresGameStateStorage("postgres://test")

    with pytest.raises(StoreReadError):
        store.list_strict()
    assert store.list_all() == []
    conn.rollback.assert_called()


def test_answer_log_pads_missing_batches(conn):
    conn.cur.fetchall.return_value = [{
        "batch_number": 2, "start_index": 8, "end_index": 11,
        "answers": ["Bullish"] * 4, "saved_at": "ts",
    }]

    batches = db.PostgresAnswerLog("postgres://test").list_all()

    assert batches[:2] == [None, None]
    assert batches[2]["startIndex"] == 8


def test_transaction_log_flattens_receipt(conn):
    conn.cur.fetchall.return_value = [{
        "id": 1, "recorded_at": "ts", "receipt": {"blobObject": {"blobId": "x"}},
    }]

    assert db.PostgresTransactionLog("postgres://test").list_all() == [
        {"timestamp": "ts", "blobObject": {"blobId": "x"}}
    ]


def test_get_db_requires_url():
    with pytest.raises(RuntimeError):
        with db.get_db(None):
            pass
