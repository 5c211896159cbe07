"""
WebSocket Event Handlers

Optional change notifications for matches. Clients that `watch_match` are
told when a match changes and then fetch their own view over HTTP; payloads
never carry secret words.
"""

from flask_socketio import emit, join_room, leave_room

from ..models.match import MatchState
from ..services import get_match_service
from ..utils.decorators import websocket_fields_required
from ..utils.match_logger import match_logger


def match_room(match_id: str) -> str:
    return f"match_{match_id}"


def match_update_payload(match: MatchState) -> dict:
    return {
        'match_id': match.match_id,
        'phase': match.phase.value,
        'turn_holder': match.turn_holder,
        'winner': match.winner.value if match.winner else None,
        'version': match.version,
    }


def broadcast_match_update(socketio, match: MatchState):
    """Tell watchers of a match that it changed."""
    socketio.emit('match_updated', match_update_payload(match), room=match_room(match.match_id))


def register_websocket_handlers(socketio):
    """Register all WebSocket event handlers."""

    @socketio.on('connect')
    def handle_connect():
        """Handle WebSocket connection."""
        pass

    @socketio.on('watch_match')
    @websocket_fields_required('matchId', 'playerId')
    def handle_watch_match(data):
        """Subscribe to change notifications for a match the player is in."""
        match_service = get_match_service()
        if not match_service:
            emit('error', {'error': 'Match service unavailable'})
            return

        match = match_service.find_match(data['matchId'])
        if match is None or match.player(data['playerId']) is None:
            emit('error', {'error': 'Game not found or access denied'})
            return

        join_room(match_room(match.match_id))
        match_logger.log_match_event(match.match_id, 'watch_match', data['playerId'])
        emit('match_updated', match_update_payload(match))

    @socketio.on('unwatch_match')
    @websocket_fields_required('matchId')
    def handle_unwatch_match(data):
        leave_room(match_room(data['matchId']))
        emit('unwatched', {'match_id': data['matchId']})
