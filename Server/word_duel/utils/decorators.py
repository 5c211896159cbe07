"""
Decorators

Contains request validation decorators for HTTP and WebSocket handlers and the
retry decorator used at the store and dictionary boundaries.
"""

import logging
import time
from functools import wraps
from flask import request
from flask_socketio import emit

from .errors import ServiceUnavailable, ValidationError

logger = logging.getLogger(__name__)


def require_fields(*fields):
    """
    Decorator to require fields in the JSON body of an HTTP request.

    Missing or empty fields raise ValidationError, which the application
    error handler renders as a 400 response.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = request.get_json(silent=True) or {}
            missing = [name for name in fields if data.get(name) in (None, '')]
            if missing:
                raise ValidationError(f"Missing required fields: {', '.join(missing)}")
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def websocket_fields_required(*fields):
    """Decorator for WebSocket events that need fields in the payload."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = args[0] if args and isinstance(args[0], dict) else {}
            missing = [name for name in fields if not data.get(name)]
            if missing:
                emit('error', {'error': f"Missing required fields: {', '.join(missing)}"})
                return
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def with_retry(attempts=3, base_delay=0.1, retry_on=(ServiceUnavailable,)):
    """
    Retry a collaborator call with exponential backoff.

    Only exceptions listed in retry_on are retried; the last one is re-raised.
    `attempts` and `base_delay` may be callables so that instance settings can
    be read at call time.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            max_attempts = attempts(*args) if callable(attempts) else attempts
            delay = base_delay(*args) if callable(base_delay) else base_delay
            for attempt in range(max_attempts):
                try:
                    return f(*args, **kwargs)
                except retry_on as e:
                    if attempt == max_attempts - 1:
                        raise
                    wait = delay * (2 ** attempt)
                    logger.warning(f"{f.__name__} failed ({e}); retrying in {wait:.2f}s "
                                   f"(attempt {attempt + 1}/{max_attempts})")
                    if wait > 0:
                        time.sleep(wait)
        return decorated_function
    return decorator
