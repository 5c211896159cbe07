"""
Matchmaking Controller

Handles queue status polling and leaving the queue.
"""

from flask import Blueprint, request

from ..services import get_matchmaking_service
from ..utils.decorators import require_fields
from ..utils.errors import ValidationError
from ..utils.match_logger import match_logger
from .responses import error_response, service_unavailable, success_response

matchmaking_bp = Blueprint('matchmaking', __name__)


@matchmaking_bp.route('/matchmaking/leave', methods=['POST'])
@require_fields('playerId', 'wordLength')
def leave_queue():
    """Leave the queue for one word length. Safe to call repeatedly."""
    matchmaking = get_matchmaking_service()
    if not matchmaking:
        return service_unavailable('leave_queue')

    data = request.get_json(silent=True) or {}
    match_logger.log_user_action(request, 'leave_queue', word_length=data.get('wordLength'))
    try:
        removed = matchmaking.leave(data['playerId'], data['wordLength'])
        return success_response('leave_queue', {'removed': removed})
    except Exception as e:
        return error_response('leave_queue', e)


@matchmaking_bp.route('/matchmaking/status', methods=['GET'])
def matchmaking_status():
    """Queue size, average wait and, with playerId, whether the player was matched."""
    matchmaking = get_matchmaking_service()
    if not matchmaking:
        return service_unavailable('queue_status')

    try:
        word_length = request.args.get('wordLength')
        if not word_length:
            raise ValidationError('wordLength query parameter is required')
        status = matchmaking.status(word_length, request.args.get('playerId'))
        return success_response('queue_status', status, status.get('match_id'))
    except Exception as e:
        return error_response('queue_status', e)


@matchmaking_bp.route('/matchmaking/queues', methods=['GET'])
def all_queues_status():
    matchmaking = get_matchmaking_service()
    if not matchmaking:
        return service_unavailable('all_queues')

    try:
        queues = {str(n): status for n, status in matchmaking.all_queues_status().items()}
        return success_response('all_queues', {'queues': queues})
    except Exception as e:
        return error_response('all_queues', e)
