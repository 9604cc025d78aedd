"""
Wolf's Journey Home - Walrus Sync Module

Publishes game state snapshots to the Walrus blob store and keeps a local
log of every receipt.

The publisher answers a PUT /v1/blobs with one of two receipt shapes:
{"newlyCreated": {...}} for fresh content, {"alreadyCertified": {...}} when
the same bytes were stored before. Either one is logged as a transaction.
"""

import json
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

import gevent
import requests

from config import (
    WALRUS_PUBLISHER, WALRUS_EPOCHS, WALRUS_DELETABLE, WALRUS_ENCODING, WALRUS_TIMEOUT
)
from errors import WalrusError
from game_state import GameStateSnapshot
from scoring import utc_timestamp
from storage import GameStateStorage, TransactionLog

logger = logging.getLogger(__name__)


def extract_receipt(response_data: Any) -> Dict:
    """The stored-blob fields, whichever receipt variant came back"""
    if not isinstance(response_data, dict):
        logger.error(f"Unexpected Walrus response: {response_data!r}")
        return {}
    receipt = response_data.get("newlyCreated") or response_data.get("alreadyCertified")
    return dict(receipt) if isinstance(receipt, dict) else {}


class WalrusClient:
    """Thin HTTP client for a Walrus publisher"""

    def __init__(self, publisher: str = WALRUS_PUBLISHER, epochs: int = WALRUS_EPOCHS,
                 deletable: bool = WALRUS_DELETABLE, timeout: float = WALRUS_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.publisher = publisher.rstrip('/')
        self.epochs = epochs
        self.deletable = deletable
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def blobs_url(self) -> str:
        return f"{self.publisher}/v1/blobs"

    def store_blob(self, payload: str) -> Dict:
        """
        Upload a UTF-8 payload as an immutable blob.
        Returns the decoded publisher response. Raises WalrusError on non-2xx.
        """
        body = payload.encode('utf-8')
        params = {
            "epochs": str(self.epochs),
            "deletable": "true" if self.deletable else "false",
            "encodingType": WALRUS_ENCODING,
        }
        logger.info(f"Sending to Walrus: {self.blobs_url} ({len(body)} bytes)")

        response = self.session.put(
            self.blobs_url,
            params=params,
            data=body,
            headers={
                "Content-Type": "text/plain",
                "Content-Length": str(len(body)),
            },
            timeout=self.timeout,
        )
        if not response.ok:
            raise WalrusError(
                f"Failed to save to Walrus: {response.reason}. {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        data = response.json()
        logger.info(f"Walrus response: {data}")
        return data


class WalrusSync:
    """Uploads snapshots (or arbitrary data) and records the receipts"""

    def __init__(self, client: WalrusClient, game_states: GameStateStorage,
                 transactions: TransactionLog):
        self.client = client
        self.game_states = game_states
        self.transactions = transactions

    def record(self, response_data: Dict) -> Dict:
        """Append a transaction record for a publisher response"""
        record = {"timestamp": utc_timestamp(), **extract_receipt(response_data)}
        try:
            self.transactions.append(record)
            logger.info(f"Saved Walrus transaction: {record}")
        except Exception as e:
            # The blob is stored either way; only the local log entry is lost
            logger.error(f"Error saving Walrus transaction: {e}")
        return record

    def _upload_snapshot(self, snapshot: Dict) -> Dict:
        payload = GameStateSnapshot.from_dict(snapshot).public_payload()
        response_data = self.client.store_blob(json.dumps(payload, separators=(',', ':')))
        self.record(response_data)
        return extract_receipt(response_data)

    def sync_latest(self) -> Dict:
        """Upload the most recent snapshot. Raises StoreReadError when there is none."""
        latest = self.game_states.latest()
        logger.info(f"Found latest game state: {latest}")
        receipt = self._upload_snapshot(latest)
        return {"success": True, "message": "Latest game state synced to Walrus", **receipt}

    def sync_all(self) -> Dict:
        """
        Upload every snapshot, carrying on past individual failures.
        Only the number of successes is reported.
        """
        snapshots = self.game_states.list_strict()
        logger.info(f"Found game states: {len(snapshots)}")

        synced = 0
        for snapshot in snapshots:
            try:
                self._upload_snapshot(snapshot)
                synced += 1
            except Exception as e:
                logger.error(f"Error syncing game state: {e}")

        message = f"Synced {synced} of {len(snapshots)} game states"
        logger.info(message)
        return {"success": True, "synced": synced, "total": len(snapshots), "message": message}

    def store_payload(self, data: Any) -> Dict:
        """Upload caller-supplied data as JSON"""
        response_data = self.client.store_blob(json.dumps(data))
        self.record(response_data)
        return {"success": True, **extract_receipt(response_data)}


def _finished(job) -> bool:
    # threading.Thread from the threading async mode, Greenlet otherwise
    if hasattr(job, "is_alive"):
        return not job.is_alive()
    return job.dead


class SyncDispatcher:
    """
    Runs the post-update upload after the game state write has committed.

    The upload is best effort: its outcome goes to the log, to the optional
    notify callback and to self.outcomes (the most recent OUTCOME_HISTORY),
    never back to the request that triggered it. No retries.

    spawn starts the background job; the app passes
    socketio.start_background_task so the job runs under whichever async
    mode Socket.IO was started with.
    """

    OUTCOME_HISTORY = 50

    def __init__(self, sync: WalrusSync, notify: Optional[Callable[[str, Dict], None]] = None,
                 background: bool = True, spawn: Callable = gevent.spawn):
        self.sync = sync
        self.notify = notify
        self.background = background
        self.spawn = spawn
        self.outcomes: Deque[Dict] = deque(maxlen=self.OUTCOME_HISTORY)
        self._pending: List[Any] = []

    def dispatch(self, snapshot: Optional[Dict] = None):
        if not self.background:
            self._run()
            return None
        job = self.spawn(self._run)
        self._pending = [j for j in self._pending if not _finished(j)] + [job]
        return job

    def wait(self, timeout: Optional[float] = None):
        """Block until dispatched uploads finish"""
        for job in list(self._pending):
            job.join(timeout)
        self._pending = [j for j in self._pending if not _finished(j)]

    def _run(self):
        logger.info("Syncing with Walrus...")
        try:
            result = self.sync.sync_latest()
        except Exception as e:
            logger.error(f"Failed to sync with Walrus: {e}")
            outcome = {"success": False, "error": str(e), "timestamp": utc_timestamp()}
            self.outcomes.append(outcome)
            self._notify("sync_failed", outcome)
            return

        blob_id = result.get("blobId") or (result.get("blobObject") or {}).get("blobId")
        logger.info(f"Game state synced to Walrus (blob: {blob_id})")
        outcome = {**result, "timestamp": utc_timestamp()}
        self.outcomes.append(outcome)
        self._notify("sync_succeeded", outcome)

    def _notify(self, msg_type: str, data: Dict):
        if not self.notify:
            return
        try:
            self.notify(msg_type, data)
        except Exception as e:
            logger.error(f"Failed to broadcast {msg_type}: {e}")
