"""
Raffle HTTP API
Flask app exposing the raffle's inbound operations and read-only state
"""

import logging
import time

from flask import Flask, g, request

from utils.error_helpers import api_error_handler, json_success, parse_int, validate_required_fields
from utils.logging_config import log_api_call

from .upkeep import seconds_until_upkeep, upkeep_needed

logger = logging.getLogger(__name__)


def create_app(raffle):
    """
    Build the API for a raffle

    Args:
        raffle: Raffle instance served by this app

    Returns:
        Flask app
    """
    app = Flask(__name__)
    app.config['RAFFLE'] = raffle

    @app.before_request
    def start_timer():
        g.started_at = time.perf_counter()

    @app.after_request
    def log_request(response):
        log_api_call(logger, request.path, request.method, response.status_code,
                     time.perf_counter() - g.get('started_at', time.perf_counter()))
        return response

    @app.route('/health')
    def health():
        return json_success(status='ok', raffle=raffle.address)

    @app.route('/api/raffle')
    @api_error_handler
    def raffle_state():
        snapshot = raffle.snapshot()
        now = raffle.clock.now()
        data = snapshot.to_dict()
        data['upkeep_needed'] = upkeep_needed(snapshot, now)
        data['seconds_until_upkeep'] = seconds_until_upkeep(snapshot, now)
        return json_success(data)

    @app.route('/api/raffle/players/<int:index>')
    @api_error_handler
    def player(index):
        return json_success({'index': index, 'player': raffle.get_player(index)})

    @app.route('/api/raffle/enter', methods=['POST'])
    @api_error_handler
    def enter():
        data = request.get_json(silent=True) or {}
        is_valid, missing = validate_required_fields(data, ['player', 'payment'])
        if not is_valid:
            raise ValueError(f"Missing fields: {', '.join(missing)}")

        payment = parse_int(data['payment'], 'payment')
        raffle.enter_raffle(str(data['player']), payment)
        return json_success({'num_players': raffle.get_num_players(), 'balance': raffle.get_balance()},
                            message='Entered raffle')

    @app.route('/api/raffle/upkeep', methods=['GET'])
    @api_error_handler
    def check_upkeep():
        return json_success({'upkeep_needed': raffle.check_upkeep_needed()})

    @app.route('/api/raffle/upkeep', methods=['POST'])
    @api_error_handler
    def perform_upkeep():
        request_id = raffle.perform_upkeep()
        return json_success({'request_id': request_id}, message='Requested raffle winner')

    @app.route('/api/raffle/fulfill', methods=['POST'])
    @api_error_handler
    def fulfill():
        data = request.get_json(silent=True) or {}
        is_valid, missing = validate_required_fields(data, ['request_id', 'random_words'])
        if not is_valid:
            raise ValueError(f"Missing fields: {', '.join(missing)}")
        if not isinstance(data['random_words'], list):
            raise ValueError("random_words must be a list")

        request_id = parse_int(data['request_id'], 'request_id')
        random_words = [parse_int(word, 'random_words') for word in data['random_words']]
        winner = raffle.fulfill_random_words(request_id, random_words)
        return json_success({'winner': winner}, message='Winner picked')

    @app.route('/api/raffle/winners')
    @api_error_handler
    def winners():
        limit = parse_int(request.args.get('limit', 5), 'limit')
        return json_success(raffle.get_winner_history(limit=limit))

    return app
