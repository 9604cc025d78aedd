"""
Wolf's Journey Home - Storage Module

Persistence for the evaluation pipeline. Each store is one JSON document
holding a single named array:

- tweets-response.json      {"batches": [...]}       raw answer batches
- evaluation-results.json   {"evaluations": [...]}   one result per batch number
- game-state.json           {"gameStates": [...]}    append-only snapshots
- walrus-transactions.json  {"transactions": [...]}  append-only upload receipts

The abstract interfaces let the Postgres backend in db.py stand in for the
JSON files.
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, List, Optional

from config import (
    ANSWERS_FILE, EVALUATIONS_FILE, GAME_STATES_FILE, WALRUS_TRANSACTIONS_FILE
)
from errors import StoreReadError

logger = logging.getLogger(__name__)


# =============================================================================
# INTERFACES
# =============================================================================

class AnswerLog(ABC):
    """Raw answer batches as the player submitted them"""

    @abstractmethod
    def save(self, batch: Dict) -> Dict:
        """Store a batch at its batch number, replacing any earlier one"""
        pass

    @abstractmethod
    def list_all(self) -> List[Optional[Dict]]:
        pass


class EvaluationStorage(ABC):
    """Evaluation results keyed by batch number, last write wins"""

    @abstractmethod
    def upsert(self, evaluation: Dict) -> Dict:
        """Replace the result for evaluation["batchNumber"] and make it the latest"""
        pass

    @abstractmethod
    def list_all(self) -> List[Dict]:
        """All results in insertion order; missing storage reads as empty"""
        pass

    @abstractmethod
    def list_strict(self) -> List[Dict]:
        """Like list_all, but raises StoreReadError when storage is missing"""
        pass

    def latest(self) -> Optional[Dict]:
        """Most recently written result (not the highest batch number)"""
        evaluations = self.list_strict()
        return evaluations[-1] if evaluations else None


class GameStateStorage(ABC):
    """Append-only game state snapshots"""

    @abstractmethod
    def append(self, snapshot: Dict) -> Dict:
        pass

    @abstractmethod
    def list_all(self) -> List[Dict]:
        pass

    @abstractmethod
    def list_strict(self) -> List[Dict]:
        pass

    def latest(self) -> Dict:
        """Most recent snapshot; raises StoreReadError when there is none"""
        snapshots = self.list_strict()
        if not snapshots:
            raise StoreReadError("No game state found")
        return snapshots[-1]


class TransactionLog(ABC):
    """Append-only log of Walrus upload receipts"""

    @abstractmethod
    def append(self, record: Dict) -> Dict:
        pass

    @abstractmethod
    def list_all(self) -> List[Dict]:
        pass


# =============================================================================
# JSON DOCUMENTS
# =============================================================================

class JSONDocument:
    """
    A whole-file JSON document of the form {key: [...]}.

    Every mutation is a read-modify-write of the entire file. The cycle is
    serialized per path so two requests in the same process cannot drop each
    other's writes.
    """

    _locks: Dict[str, threading.RLock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, filepath: str, key: str):
        self.filepath = filepath
        self.key = key

    @property
    def exists(self) -> bool:
        return os.path.exists(self.filepath)

    @contextmanager
    def locked(self):
        path = os.path.abspath(self.filepath)
        with JSONDocument._locks_guard:
            lock = JSONDocument._locks.setdefault(path, threading.RLock())
        with lock:
            yield

    def read(self) -> List:
        """Items in the document; a missing or corrupt file reads as empty"""
        try:
            return self.read_strict()
        except StoreReadError:
            return []

    def read_strict(self) -> List:
        try:
            with open(self.filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreReadError(f"Failed to read {os.path.basename(self.filepath)}") from e
        items = data.get(self.key) if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise StoreReadError(f"{os.path.basename(self.filepath)} has no '{self.key}' list")
        return items

    def write(self, items: List):
        directory = os.path.dirname(self.filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.filepath, 'w', encoding='utf-8') as f:
            json.dump({self.key: items}, f, indent=2, ensure_ascii=False)

    def ensure(self):
        """Create an empty document if the file does not exist yet"""
        if not self.exists:
            logger.info(f"Creating {self.filepath}")
            self.write([])


class JSONAnswerLog(AnswerLog):

    def __init__(self, filepath: str):
        self.doc = JSONDocument(filepath, "batches")

    def save(self, batch: Dict) -> Dict:
        index = batch["batchNumber"]
        with self.doc.locked():
            batches = self.doc.read()
            # Gaps stay null so the list index always equals the batch number
            while len(batches) <= index:
                batches.append(None)
            batches[index] = batch
            self.doc.write(batches)
        return batch

    def list_all(self) -> List[Optional[Dict]]:
        return self.doc.read()


class JSONEvaluationStorage(EvaluationStorage):

    def __init__(self, filepath: str):
        self.doc = JSONDocument(filepath, "evaluations")

    def upsert(self, evaluation: Dict) -> Dict:
        with self.doc.locked():
            evaluations = [
                e for e in self.doc.read()
                if e.get("batchNumber") != evaluation["batchNumber"]
            ]
            evaluations.append(evaluation)
            self.doc.write(evaluations)
        return evaluation

    def list_all(self) -> List[Dict]:
        return self.doc.read()

    def list_strict(self) -> List[Dict]:
        return self.doc.read_strict()


class JSONGameStateStorage(GameStateStorage):

    def __init__(self, filepath: str):
        self.doc = JSONDocument(filepath, "gameStates")

    def append(self, snapshot: Dict) -> Dict:
        with self.doc.locked():
            self.doc.ensure()
            snapshots = self.doc.read()
            snapshots.append(snapshot)
            self.doc.write(snapshots)
        return snapshot

    def list_all(self) -> List[Dict]:
        return self.doc.read()

    def list_strict(self) -> List[Dict]:
        return self.doc.read_strict()


class JSONTransactionLog(TransactionLog):

    def __init__(self, filepath: str):
        self.doc = JSONDocument(filepath, "transactions")

    def append(self, record: Dict) -> Dict:
        with self.doc.locked():
            self.doc.ensure()
            records = self.doc.read()
            records.append(record)
            self.doc.write(records)
        return record

    def list_all(self) -> List[Dict]:
        return self.doc.read()


# =============================================================================
# BACKEND SELECTION
# =============================================================================

@dataclass
class Stores:
    answers: AnswerLog
    evaluations: EvaluationStorage
    game_states: GameStateStorage
    transactions: TransactionLog


def build_stores(backend: str, data_dir: str, database_url: Optional[str] = None) -> Stores:
    """Build the mutable stores for the configured backend"""
    if backend == "postgres":
        from db import (
            PostgresAnswerLog, PostgresEvaluationStorage,
            PostgresGameStateStorage, PostgresTransactionLog,
        )
        if not database_url:
            raise RuntimeError("DATABASE_URL must be set for the postgres backend")
        logger.info("Using Postgres storage")
        return Stores(
            answers=PostgresAnswerLog(database_url),
            evaluations=PostgresEvaluationStorage(database_url),
            game_states=PostgresGameStateStorage(database_url),
            transactions=PostgresTransactionLog(database_url),
        )

    if backend != "json":
        raise ValueError(f"Unknown storage backend: {backend}")

    logger.info(f"Using JSON storage in {data_dir}")
    return Stores(
        answers=JSONAnswerLog(os.path.join(data_dir, ANSWERS_FILE)),
        evaluations=JSONEvaluationStorage(os.path.join(data_dir, EVALUATIONS_FILE)),
        game_states=JSONGameStateStorage(os.path.join(data_dir, GAME_STATES_FILE)),
        transactions=JSONTransactionLog(os.path.join(data_dir, WALRUS_TRANSACTIONS_FILE)),
    )
