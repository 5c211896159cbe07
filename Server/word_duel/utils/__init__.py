"""
Utilities Package

Contains error types, decorators, helper functions and the match logger.
"""

from .decorators import require_fields, websocket_fields_required, with_retry
from .helpers import now_ms, format_response, get_user_identity
from .match_logger import match_logger

__all__ = [
    'require_fields', 'websocket_fields_required', 'with_retry',
    'now_ms', 'format_response', 'get_user_identity', 'match_logger'
]
