"""
Player Controller

Handles word validation, leaderboard, player statistics and the health check.
"""

from flask import Blueprint, request

from ..services import get_dictionary_service, get_match_service, get_services
from ..utils.decorators import require_fields
from ..utils.errors import ValidationError
from ..utils.match_logger import match_logger
from .responses import error_response, service_unavailable, success_response

player_bp = Blueprint('player', __name__)


@player_bp.route('/validate-word', methods=['POST'])
@require_fields('word')
def validate_word():
    """Check that a word has a supported length and is in the dictionary."""
    dictionary = get_dictionary_service()
    if not dictionary:
        return service_unavailable('validate_word')

    data = request.get_json(silent=True) or {}
    try:
        result = dictionary.validate_word(str(data['word']))
        response = {'is_valid': result.is_valid, 'word': result.word}
        if result.error:
            response['error'] = result.error
        return success_response('validate_word', response)
    except Exception as e:
        return error_response('validate_word', e)


@player_bp.route('/leaderboard', methods=['GET'])
def leaderboard():
    """Top players by points, plus the caller's rank when playerId is given."""
    match_service = get_match_service()
    if not match_service:
        return service_unavailable('leaderboard')

    try:
        try:
            limit = int(request.args.get('limit', 10))
        except ValueError:
            raise ValidationError('limit must be a number')
        board = match_service.leaderboard(limit, request.args.get('playerId'))
        return success_response('leaderboard', board)
    except Exception as e:
        return error_response('leaderboard', e)


@player_bp.route('/players/<player_id>/stats', methods=['GET'])
def player_stats(player_id):
    match_service = get_match_service()
    if not match_service:
        return service_unavailable('player_stats')

    try:
        stats = match_service.player_stats(player_id).to_dict()
        return success_response('player_stats', stats)
    except Exception as e:
        return error_response('player_stats', e)


@player_bp.route('/health', methods=['GET'])
def health():
    """Store reachability and today's log statistics."""
    services = get_services()
    if not services:
        return service_unavailable('health')

    try:
        store_ok = services.store.ping()
    except Exception as e:
        match_logger.log_error(request, e, 'health')
        store_ok = False

    response = {
        'status': 'ok' if store_ok else 'degraded',
        'store': 'reachable' if store_ok else 'unreachable',
        'active_ai_strategies': services.ai_registry.active_count(),
        'pending_ai_turns': services.scheduler.pending_count(),
        'logs': match_logger.get_log_stats()
    }
    return success_response('health', response)
