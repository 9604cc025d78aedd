"""
Migration script to move JSON data to PostgreSQL database.

Migrates:
1. tweets-response.json -> answer_batches table
2. evaluation-results.json -> evaluation_results table (insertion order kept)
3. game-state.json -> game_states table
4. walrus-transactions.json -> walrus_transactions table

Run init_db.py first.
"""

import os
import sys

import config
from db import (
    PostgresAnswerLog, PostgresEvaluationStorage,
    PostgresGameStateStorage, PostgresTransactionLog,
)
from storage import build_stores


def migrate(data_dir: str, database_url: str) -> dict:
    source = build_stores("json", data_dir)
    counts = {}

    answers = PostgresAnswerLog(database_url)
    batches = [b for b in source.answers.list_all() if b]
    for batch in batches:
        answers.save(batch)
    counts["answer batches"] = len(batches)

    evaluations = PostgresEvaluationStorage(database_url)
    rows = source.evaluations.list_all()
    for evaluation in rows:
        evaluations.upsert(evaluation)
    counts["evaluations"] = len(rows)

    game_states = PostgresGameStateStorage(database_url)
    rows = source.game_states.list_all()
    for snapshot in rows:
        game_states.append(snapshot)
    counts["game states"] = len(rows)

    transactions = PostgresTransactionLog(database_url)
    rows = source.transactions.list_all()
    for record in rows:
        transactions.append(record)
    counts["walrus transactions"] = len(rows)

    return counts


def main():
    database_url = os.environ.get('DATABASE_URL')
    if not database_url:
        print("ERROR: DATABASE_URL environment variable not set")
        sys.exit(1)

    print("=" * 60)
    print("WOLF'S JOURNEY DATA MIGRATION")
    print(f"JSON Files ({config.DATA_DIR}) -> PostgreSQL Database")
    print("=" * 60)

    counts = migrate(config.DATA_DIR, database_url)

    print("MIGRATION COMPLETE")
    for name, count in counts.items():
        print(f"  {name}: {count}")
    print("=" * 60)


if __name__ == "__main__":
    main()
