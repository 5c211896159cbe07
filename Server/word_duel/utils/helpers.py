"""
Helper Functions

Contains utility functions used throughout the application.
"""

import time
import uuid
from typing import Any, Dict, Optional

from flask import request


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_match_id() -> str:
    return f"match_{uuid.uuid4().hex}"


def format_response(data: Any = None) -> Dict[str, Any]:
    """Wrap a successful payload in the standard response envelope."""
    response = {'success': True}
    if data is not None:
        response['data'] = data
    return response


def get_user_identity(request_obj=None) -> Dict[str, Optional[str]]:
    """Extract caller identity information from request."""
    if request_obj is None:
        request_obj = request

    user_ip = getattr(request_obj, 'remote_addr', None) or 'unknown'
    player_id = None
    args = getattr(request_obj, 'args', None)
    if args is not None:
        player_id = args.get('playerId')
    if not player_id and hasattr(request_obj, 'get_json'):
        body = request_obj.get_json(silent=True) or {}
        player_id = body.get('playerId') if isinstance(body, dict) else None

    return {
        'user_ip': user_ip,
        'player_id': player_id
    }
