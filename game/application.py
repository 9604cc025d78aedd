"""
Wolf's Journey Home - Application Factory

Builds the Flask app, wires the evaluation pipeline together and attaches
Socket.IO for progress notifications. server.py runs the result under gevent.
"""

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional

from flask import Flask, request
from flask_socketio import SocketIO

import config
from events import MessageType, build_message
from game_state import GameStateTracker
from narrative import AdventureNarrator
from scoring import BatchEvaluator
from sentiment import SentimentJudge
from storage import Stores, build_stores
from tweets import TweetSource
from walrus import SyncDispatcher, WalrusClient, WalrusSync

logger = logging.getLogger(__name__)

socketio = SocketIO()


@dataclass
class GameServices:
    """Everything a request handler needs, built once per app"""

    tweets: TweetSource
    stores: Stores
    judge: SentimentJudge
    evaluator: BatchEvaluator
    tracker: GameStateTracker
    walrus: WalrusSync
    dispatcher: SyncDispatcher
    narrator: AdventureNarrator


def broadcast(msg_type: str, data: Dict):
    socketio.emit('message', build_message(msg_type, data))


def build_services(settings: Dict, llm_client=None, http_session=None) -> GameServices:
    data_dir = settings['DATA_DIR']
    stores = build_stores(settings['STORAGE_BACKEND'], data_dir, settings.get('DATABASE_URL'))

    tweets = TweetSource(os.path.join(data_dir, config.TWEETS_FILE))
    judge = SentimentJudge(
        client=llm_client,
        model=settings['SENTIMENT_MODEL'],
        max_tokens=settings['JUDGE_MAX_TOKENS'],
        strict=settings['JUDGE_STRICT'],
    )
    evaluator = BatchEvaluator(
        tweets, judge,
        batch_size=settings['BATCH_SIZE'],
        pass_threshold=settings['PASS_THRESHOLD'],
    )

    walrus_client = WalrusClient(
        publisher=settings['WALRUS_PUBLISHER'],
        epochs=settings['WALRUS_EPOCHS'],
        deletable=settings['WALRUS_DELETABLE'],
        timeout=settings['WALRUS_TIMEOUT'],
        session=http_session,
    )
    walrus_sync = WalrusSync(walrus_client, stores.game_states, stores.transactions)
    dispatcher = SyncDispatcher(
        walrus_sync,
        notify=broadcast,
        background=settings['SYNC_IN_BACKGROUND'],
        spawn=socketio.start_background_task,
    )

    def on_appended(snapshot: Dict):
        broadcast(MessageType.GAME_STATE_UPDATED, snapshot)
        dispatcher.dispatch(snapshot)

    tracker = GameStateTracker(stores.evaluations, stores.game_states, on_appended=on_appended)
    narrator = AdventureNarrator(
        client=llm_client,
        model=settings['NARRATIVE_MODEL'],
        max_tokens=settings['NARRATIVE_MAX_TOKENS'],
    )

    return GameServices(
        tweets=tweets,
        stores=stores,
        judge=judge,
        evaluator=evaluator,
        tracker=tracker,
        walrus=walrus_sync,
        dispatcher=dispatcher,
        narrator=narrator,
    )


def create_app(overrides: Optional[Dict] = None, llm_client=None, http_session=None) -> Flask:
    """
    Build the app.

    overrides replaces entries from config.defaults(); llm_client and
    http_session stand in for the Anthropic client and the requests session
    used for Walrus.
    """
    app = Flask(__name__)
    app.config.update(config.defaults())
    app.config['SECRET_KEY'] = config.SESSION_SECRET or os.urandom(24).hex()
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=7)
    if overrides:
        app.config.update(overrides)

    app.extensions['wolf_journey'] = build_services(
        app.config, llm_client=llm_client, http_session=http_session
    )

    from routes import api
    app.register_blueprint(api)

    socketio.init_app(
        app,
        cors_allowed_origins="*",
        async_mode=app.config['SOCKETIO_ASYNC_MODE'],
        ping_timeout=60,
        ping_interval=25,
    )
    return app


@socketio.on('connect')
def handle_connect():
    logger.info(f"Client connected: {request.sid}")


@socketio.on('disconnect')
def handle_disconnect(*args):
    logger.info(f"Client disconnected: {request.sid}")
