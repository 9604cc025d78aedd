"""
Initialize database tables for Wolf's Journey Home.
Run this once to create the required tables in your Postgres database.
"""

import os
import sys

import psycopg2

SCHEMA = """
-- Answer batches as submitted, one per batch number
CREATE TABLE IF NOT EXISTS answer_batches (
    batch_number INTEGER PRIMARY KEY,
    start_index INTEGER,
    end_index INTEGER,
    answers JSONB NOT NULL DEFAULT '[]',
    saved_at TEXT
);

-- Evaluation results, one per batch number; seq orders "latest"
CREATE TABLE IF NOT EXISTS evaluation_results (
    batch_number INTEGER PRIMARY KEY,
    seq BIGSERIAL,
    results JSONB NOT NULL DEFAULT '[]',
    total_correct INTEGER NOT NULL DEFAULT 0,
    passed BOOLEAN NOT NULL DEFAULT FALSE,
    evaluated_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_evaluation_results_seq ON evaluation_results(seq);

-- Game state snapshots (append-only)
CREATE TABLE IF NOT EXISTS game_states (
    id BIGSERIAL PRIMARY KEY,
    tweets_answered INTEGER NOT NULL,
    hearts_remaining INTEGER NOT NULL,
    accuracy INTEGER NOT NULL,
    equipment JSONB NOT NULL DEFAULT '[]',
    recorded_at TEXT NOT NULL
);

-- Walrus upload receipts (append-only)
CREATE TABLE IF NOT EXISTS walrus_transactions (
    id BIGSERIAL PRIMARY KEY,
    recorded_at TEXT NOT NULL,
    receipt JSONB NOT NULL
);
"""


def init_db(database_url: str):
    print("Connecting to database...")
    conn = psycopg2.connect(database_url)
    cur = conn.cursor()

    print("Creating tables...")
    cur.execute(SCHEMA)
    conn.commit()

    print("Done! Tables created/updated successfully.")

    cur.close()
    conn.close()


if __name__ == "__main__":
    database_url = os.environ.get('DATABASE_URL')
    if not database_url:
        print("ERROR: DATABASE_URL environment variable not set")
        sys.exit(1)
    init_db(database_url)
