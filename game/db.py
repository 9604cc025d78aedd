"""
Postgres storage for Wolf's Journey Home.

Rows are stored per key instead of rewriting a whole document, so
concurrent submissions cannot lose each other's updates. Insertion order
("latest") comes from a sequence column rather than the batch number.

Tables are created by init_db.py.
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor, Json

from errors import StoreReadError
from storage import AnswerLog, EvaluationStorage, GameStateStorage, TransactionLog

logger = logging.getLogger(__name__)


@contextmanager
def get_db(database_url: str):
    """Get a database connection with automatic cleanup."""
    if not database_url:
        raise RuntimeError("DATABASE_URL environment variable not set")

    conn = psycopg2.connect(database_url)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _load_json(value: Any) -> Any:
    # JSONB comes back decoded; plain TEXT columns do not
    if isinstance(value, str):
        return json.loads(value)
    return value


class PostgresStore:

    def __init__(self, database_url: str):
        self.database_url = database_url

    def _fetch_all(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        try:
            with get_db(self.database_url) as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    cur.execute(sql, params)
                    return [dict(row) for row in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Database read error: {e}")
            raise StoreReadError("Failed to read from database") from e


class PostgresAnswerLog(PostgresStore, AnswerLog):

    def save(self, batch: Dict) -> Dict:
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO answer_batches (batch_number, start_index, end_index, answers, saved_at)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (batch_number) DO UPDATE SET
                        start_index = EXCLUDED.start_index,
                        end_index = EXCLUDED.end_index,
                        answers = EXCLUDED.answers,
                        saved_at = EXCLUDED.saved_at
                """, (
                    batch["batchNumber"],
                    batch.get("startIndex"),
                    batch.get("endIndex"),
                    Json(batch.get("answers", [])),
                    batch.get("timestamp"),
                ))
        return batch

    def list_all(self) -> List[Optional[Dict]]:
        rows = self._fetch_all("SELECT * FROM answer_batches ORDER BY batch_number")
        if not rows:
            return []
        batches: List[Optional[Dict]] = [None] * (rows[-1]["batch_number"] + 1)
        for row in rows:
            batches[row["batch_number"]] = {
                "batchNumber": row["batch_number"],
                "startIndex": row["start_index"],
                "endIndex": row["end_index"],
                "answers": _load_json(row["answers"]),
                "timestamp": row["saved_at"],
            }
        return batches


class PostgresEvaluationStorage(PostgresStore, EvaluationStorage):

    def upsert(self, evaluation: Dict) -> Dict:
        # seq is re-drawn on conflict so a resubmitted batch becomes the latest
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO evaluation_results (batch_number, results, total_correct, passed, evaluated_at)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (batch_number) DO UPDATE SET
                        seq = DEFAULT,
                        results = EXCLUDED.results,
                        total_correct = EXCLUDED.total_correct,
                        passed = EXCLUDED.passed,
                        evaluated_at = EXCLUDED.evaluated_at
                """, (
                    evaluation["batchNumber"],
                    Json(evaluation.get("results", [])),
                    evaluation.get("totalCorrect", 0),
                    evaluation.get("passed", False),
                    evaluation.get("timestamp"),
                ))
        return evaluation

    @staticmethod
    def _to_dict(row: Dict) -> Dict:
        return {
            "batchNumber": row["batch_number"],
            "results": _load_json(row["results"]),
            "totalCorrect": row["total_correct"],
            "passed": row["passed"],
            "timestamp": row["evaluated_at"],
        }

    def list_all(self) -> List[Dict]:
        try:
            return self.list_strict()
        except StoreReadError:
            return []

    def list_strict(self) -> List[Dict]:
        rows = self._fetch_all("SELECT * FROM evaluation_results ORDER BY seq")
        return [self._to_dict(row) for row in rows]

    def latest(self) -> Optional[Dict]:
        rows = self._fetch_all("SELECT * FROM evaluation_results ORDER BY seq DESC LIMIT 1")
        return self._to_dict(rows[0]) if rows else None


class PostgresGameStateStorage(PostgresStore, GameStateStorage):

    def append(self, snapshot: Dict) -> Dict:
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO game_states (tweets_answered, hearts_remaining, accuracy, equipment, recorded_at)
                    VALUES (%s, %s, %s, %s, %s)
                """, (
                    snapshot["tweetsAnswered"],
                    snapshot["heartsRemaining"],
                    snapshot["accuracy"],
                    Json(snapshot.get("equipment", [])),
                    snapshot["timestamp"],
                ))
        return snapshot

    @staticmethod
    def _to_dict(row: Dict) -> Dict:
        return {
            "timestamp": row["recorded_at"],
            "tweetsAnswered": row["tweets_answered"],
            "heartsRemaining": row["hearts_remaining"],
            "equipment": _load_json(row["equipment"]),
            "accuracy": row["accuracy"],
        }

    def list_all(self) -> List[Dict]:
        try:
            return self.list_strict()
        except StoreReadError:
            return []

    def list_strict(self) -> List[Dict]:
        rows = self._fetch_all("SELECT * FROM game_states ORDER BY id")
        return [self._to_dict(row) for row in rows]


class PostgresTransactionLog(PostgresStore, TransactionLog):

    def append(self, record: Dict) -> Dict:
        receipt = {k: v for k, v in record.items() if k != "timestamp"}
        with get_db(self.database_url) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO walrus_transactions (recorded_at, receipt) VALUES (%s, %s)",
                    (record["timestamp"], Json(receipt))
                )
        return record

    def list_all(self) -> List[Dict]:
        try:
            rows = self._fetch_all("SELECT * FROM walrus_transactions ORDER BY id")
        except StoreReadError:
            return []
        return [{"timestamp": row["recorded_at"], **_load_json(row["receipt"])} for row in rows]
