"""
Response Helpers

Shared success/error rendering for the HTTP controllers. Every error response
is logged with the request context before it is returned.
"""

from flask import current_app, jsonify, request

from ..utils.errors import WordDuelError
from ..utils.helpers import format_response
from ..utils.match_logger import match_logger


def success_response(action: str, data, match_id: str = None, **log_details):
    response_data = format_response(data)
    match_logger.log_server_response(request, action, True, response_data, match_id, **log_details)
    return jsonify(response_data)


def error_response(action: str, error: Exception, match_id: str = None):
    """Render a WordDuelError with its status, anything else as a 500."""
    if isinstance(error, WordDuelError):
        body = error.to_dict()
        status = error.status_code
    else:
        body = {
            'success': False,
            'error': str(error) if current_app.debug else 'Internal server error',
            'code': 'SERVER_ERROR',
            'retryable': False
        }
        status = 500

    match_logger.log_error(request, error, action, match_id)
    match_logger.log_server_response(request, action, False, body, match_id)
    return jsonify(body), status


def service_unavailable(action: str, match_id: str = None):
    body = {
        'success': False,
        'error': 'Match service unavailable',
        'code': 'SERVER_ERROR',
        'retryable': True
    }
    match_logger.log_server_response(request, action, False, body, match_id)
    return jsonify(body), 503
