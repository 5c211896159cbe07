"""
Match Controller

Handles match creation, guesses, state polling, AI turns, turn skips and quits.
"""

from flask import Blueprint, request

from ..models.match import MatchPhase
from ..services import get_match_service, get_matchmaking_service
from ..utils.decorators import require_fields
from ..utils.errors import ValidationError
from ..utils.match_logger import match_logger
from .responses import error_response, service_unavailable, success_response

match_bp = Blueprint('match', __name__)


@match_bp.route('/match/single', methods=['POST'])
@require_fields('playerId', 'secretWord', 'wordLength', 'difficulty')
def create_single_player_match():
    """Start a match against the computer."""
    match_service = get_match_service()
    if not match_service:
        return service_unavailable('create_single')

    data = request.get_json(silent=True) or {}
    match_logger.log_user_action(request, 'create_single',
                                 word_length=data.get('wordLength'),
                                 difficulty=data.get('difficulty'))
    try:
        match = match_service.create_single_player_match(
            data['playerId'], data.get('displayName'), data['secretWord'],
            data['wordLength'], data['difficulty']
        )
        response = {
            'match_id': match.match_id,
            'match_state': match_service.client_view(match, data['playerId'])
        }
        return success_response('create_single', response, match.match_id)
    except Exception as e:
        return error_response('create_single', e)


@match_bp.route('/match/multi', methods=['POST'])
@require_fields('playerId', 'secretWord', 'wordLength')
def create_or_join_multiplayer_match():
    """Join the matchmaking queue, or start a match if someone is waiting."""
    match_service = get_match_service()
    matchmaking = get_matchmaking_service()
    if not match_service or not matchmaking:
        return service_unavailable('create_multi')

    data = request.get_json(silent=True) or {}
    match_logger.log_user_action(request, 'create_multi', word_length=data.get('wordLength'))
    try:
        result = matchmaking.create_or_join(
            data['playerId'], data.get('displayName'), data['secretWord'], data['wordLength']
        )
        response = {'matched': result.matched, 'match_id': None, 'match_state': None}
        if result.matched:
            response['match_id'] = result.match.match_id
            response['match_state'] = match_service.client_view(result.match, data['playerId'])
        return success_response('create_multi', response, response['match_id'],
                                matched=result.matched)
    except Exception as e:
        return error_response('create_multi', e)


@match_bp.route('/match/<match_id>/guess', methods=['POST'])
@require_fields('playerId', 'guess')
def submit_guess(match_id):
    """Submit a guess against the opponent's secret word."""
    match_service = get_match_service()
    if not match_service:
        return service_unavailable('submit_guess', match_id)

    data = request.get_json(silent=True) or {}
    match_logger.log_user_action(request, 'submit_guess', match_id)
    try:
        result = match_service.submit_guess(match_id, data['playerId'], data['guess'])
        return success_response('submit_guess', result, match_id,
                                match_ended=result['match_ended'])
    except Exception as e:
        return error_response('submit_guess', e, match_id)


@match_bp.route('/match/<match_id>/ai-guess', methods=['POST'])
def trigger_ai_guess(match_id):
    """Make the computer's move now instead of waiting for the scheduler."""
    match_service = get_match_service()
    if not match_service:
        return service_unavailable('ai_guess', match_id)

    match_logger.log_user_action(request, 'ai_guess', match_id)
    try:
        result = match_service.play_ai_turn(match_id)
        return success_response('ai_guess', result, match_id, match_ended=result['match_ended'])
    except Exception as e:
        return error_response('ai_guess', e, match_id)


@match_bp.route('/match/<match_id>/state', methods=['GET'])
def get_match_state(match_id):
    """Poll a match. The opponent's secret word is hidden until the match ends."""
    match_service = get_match_service()
    if not match_service:
        return service_unavailable('get_state', match_id)

    player_id = request.args.get('playerId')
    try:
        if not player_id:
            raise ValidationError('playerId query parameter is required')
        state = match_service.get_match_state(match_id, player_id)
        return success_response('get_state', {'match_state': state}, match_id,
                                finished=state['phase'] == MatchPhase.FINISHED.value)
    except Exception as e:
        return error_response('get_state', e, match_id)


@match_bp.route('/ai-timing/<difficulty>', methods=['GET'])
def get_ai_timing(difficulty):
    """Delay in milliseconds before a computer move at the given difficulty."""
    match_service = get_match_service()
    if not match_service:
        return service_unavailable('ai_timing')

    try:
        return success_response('ai_timing', {'delay_ms': match_service.ai_turn_interval(difficulty)})
    except Exception as e:
        return error_response('ai_timing', e)


@match_bp.route('/match/<match_id>/skip', methods=['POST'])
@require_fields('playerId')
def skip_turn(match_id):
    """Give up the current turn in a multiplayer match."""
    match_service = get_match_service()
    if not match_service:
        return service_unavailable('skip_turn', match_id)

    data = request.get_json(silent=True) or {}
    force = bool(data.get('force', False))
    match_logger.log_user_action(request, 'skip_turn', match_id, force=force)
    try:
        state = match_service.skip_turn(match_id, data['playerId'], force=force)
        return success_response('skip_turn', {'match_state': state}, match_id)
    except Exception as e:
        return error_response('skip_turn', e, match_id)


@match_bp.route('/match/<match_id>/quit', methods=['POST'])
@require_fields('playerId')
def quit_match(match_id):
    """Forfeit a multiplayer match."""
    match_service = get_match_service()
    if not match_service:
        return service_unavailable('quit_match', match_id)

    data = request.get_json(silent=True) or {}
    match_logger.log_user_action(request, 'quit_match', match_id)
    try:
        state = match_service.quit_match(match_id, data['playerId'])
        return success_response('quit_match', {'match_state': state}, match_id)
    except Exception as e:
        return error_response('quit_match', e, match_id)
