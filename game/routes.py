"""
REST API routes for Wolf's Journey Home.

Every response is JSON. Failures carry {"success": false, "error": "..."}:
400 for malformed requests, 200 for expected misses (unknown batch, nothing
evaluated yet), 500 for storage and upstream failures.
"""

import logging
from typing import Any, Dict, Optional

import requests
from flask import Blueprint, current_app, jsonify, request, session

from errors import StoreReadError, ValidationError, WalrusError
from game_state import GameSession
from scoring import utc_timestamp, validate_answers, validate_batch_number

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')

SESSION_KEY = 'game'


def services():
    return current_app.extensions['wolf_journey']


def load_game_session() -> GameSession:
    return GameSession.from_dict(session.get(SESSION_KEY))


def save_game_session(game_session: GameSession):
    session[SESSION_KEY] = game_session.to_dict()


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _optional_health(data: Dict) -> Optional[int]:
    health = data.get('health')
    if health is None:
        return None
    if isinstance(health, bool) or not isinstance(health, int) or health < 0:
        raise ValidationError("health must be a non-negative integer")
    return health


def _failure(message: str, status: int = 200):
    return jsonify({'success': False, 'error': message}), status


def run_evaluation(batch_number: Any, answers: Any) -> Dict:
    """Score a batch and store the result. Returns the response body."""
    svc = services()
    evaluation = svc.evaluator.evaluate(batch_number, answers)
    if evaluation is None:
        return {'success': False, 'error': 'Batch not found'}

    evaluation.timestamp = utc_timestamp()
    stored = svc.stores.evaluations.upsert(evaluation.to_dict())
    logger.info(f"Saved evaluation results for batch {evaluation.batch_number}")
    return {'success': True, **stored}


# ==================== Health Check ====================

@api.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok'})


# ==================== Tweets ====================

@api.route('/tweets', methods=['GET'])
def get_tweets():
    try:
        return jsonify(services().tweets.load_raw())
    except StoreReadError as e:
        logger.error(f"Error reading tweets: {e}")
        return jsonify({'error': 'Failed to load tweets'}), 500


# ==================== Evaluation ====================

@api.route('/evaluate', methods=['POST'])
def evaluate():
    try:
        data = _json_body()
        return jsonify(run_evaluation(data.get('batchNumber'), data.get('answers')))
    except ValidationError as e:
        return _failure(str(e), 400)
    except Exception as e:
        logger.error(f"Error in evaluation endpoint: {e}")
        return _failure('Internal server error', 500)


@api.route('/evaluation', methods=['GET'])
def get_evaluation():
    try:
        return jsonify({'evaluations': services().stores.evaluations.list_strict()})
    except StoreReadError as e:
        logger.error(f"Error reading evaluation results: {e}")
        return jsonify({'error': 'Failed to read evaluation results'}), 500


# ==================== Answers ====================

@api.route('/save-results', methods=['POST'])
def save_results():
    try:
        data = _json_body()
        batch_number = validate_batch_number(data.get('batchNumber'))
        answers = validate_answers(data.get('answers'), current_app.config['BATCH_SIZE'])
        health_value = _optional_health(data)

        batch = {
            'batchNumber': batch_number,
            'startIndex': data.get('startIndex'),
            'endIndex': data.get('endIndex'),
            'answers': answers,
            'timestamp': utc_timestamp(),
        }
        services().stores.answers.save(batch)

        game_session = load_game_session()
        game_session.add_sentiment_results(batch_number, answers, batch['timestamp'])
        if health_value is not None:
            game_session.set_health(health_value)
        save_game_session(game_session)

        body = {'success': True}

        # The first batch drives the rest of the pipeline on the server
        if batch_number == 0:
            evaluation = run_evaluation(batch_number, answers)
            body['evaluation'] = evaluation
            if evaluation.get('success'):
                hearts = health_value if health_value is not None else game_session.health
                body['gameState'] = services().tracker.update(hearts)

        return jsonify(body)
    except ValidationError as e:
        return _failure(str(e), 400)
    except Exception as e:
        logger.error(f"Error in save-results: {e}")
        return _failure('Failed to save results', 500)


# ==================== Game State ====================

@api.route('/game-state', methods=['POST'])
def update_game_state():
    try:
        data = _json_body()
        return jsonify(services().tracker.update(_optional_health(data)))
    except ValidationError as e:
        return _failure(str(e), 400)
    except StoreReadError as e:
        logger.error(f"Error reading evaluation file: {e}")
        return _failure('Failed to read evaluation data', 500)
    except Exception as e:
        logger.error(f"Error in game-state: {e}")
        return _failure('Failed to update game state', 500)


@api.route('/game-state', methods=['GET'])
def get_game_states():
    return jsonify({'gameStates': services().stores.game_states.list_all()})


# ==================== Walrus ====================

@api.route('/walrus/latest', methods=['POST'])
def walrus_latest():
    try:
        return jsonify(services().walrus.sync_latest())
    except StoreReadError as e:
        logger.error(f"Error reading game state: {e}")
        return _failure(str(e), 500)
    except (WalrusError, requests.RequestException) as e:
        logger.error(f"Error in latest Walrus sync: {e}")
        return _failure('Failed to sync with Walrus', 500)
    except Exception as e:
        logger.error(f"Unexpected error in latest Walrus sync: {e}")
        return _failure('Failed to sync with Walrus', 500)


@api.route('/walrus/sync', methods=['POST'])
def walrus_sync():
    try:
        return jsonify(services().walrus.sync_all())
    except StoreReadError as e:
        logger.error(f"Error in Walrus sync: {e}")
        return _failure(str(e), 500)


@api.route('/walrus', methods=['POST'])
def walrus_store():
    data = _json_body()
    if 'data' not in data:
        return _failure('Missing data', 400)
    try:
        return jsonify(services().walrus.store_payload(data['data']))
    except (WalrusError, requests.RequestException) as e:
        logger.error(f"Error in Walrus API: {e}")
        return _failure('Failed to save to Walrus', 500)
    except Exception as e:
        logger.error(f"Unexpected error in Walrus API: {e}")
        return _failure('Failed to save to Walrus', 500)


@api.route('/walrus/transactions', methods=['GET'])
def walrus_transactions():
    return jsonify({'transactions': services().stores.transactions.list_all()})


# ==================== Session ====================

@api.route('/session', methods=['GET'])
def get_session():
    return jsonify(load_game_session().to_dict())


@api.route('/session', methods=['POST'])
def update_session():
    try:
        data = _json_body()
        game_session = load_game_session()

        if 'stage' in data:
            game_session.set_stage(data['stage'])
        if 'level' in data:
            game_session.set_level(data['level'])
        if 'health' in data:
            game_session.set_health(data['health'])
        if 'healthDelta' in data:
            game_session.update_health(data['healthDelta'])
        if data.get('clearSentimentResults'):
            game_session.clear_sentiment_results()

        save_game_session(game_session)
        return jsonify({'success': True, 'session': game_session.to_dict()})
    except ValidationError as e:
        return _failure(str(e), 400)


# ==================== Adventure ====================

@api.route('/adventure/stage', methods=['POST'])
def adventure_stage():
    game_session = load_game_session()
    return jsonify(services().narrator.stage_one(hearts=game_session.health))
