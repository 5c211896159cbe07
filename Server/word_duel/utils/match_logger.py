"""
Match Logger Module for the Word Duel Server

Every entry is one JSON document on its own line, tagged with an event_type
(PLAYER_ACTION, RESPONSE_OK, RESPONSE_FAILED, MATCH_EVENT, ERROR) so the daily
file can be filtered with ordinary line tools.
"""

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from .helpers import get_user_identity

SIDES = ('player_a', 'player_b')


class MatchLogger:
    """
    Structured logger shared by controllers, services and the sweeper.

    Secret words never reach the log while a match is still being played;
    response payloads are reduced to a short match summary first.
    """

    def __init__(self, log_dir: str = "logs", level: str = "INFO"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.level = getattr(logging, str(level).upper(), logging.INFO)
        self.logger = self._build_logger()

    def _build_logger(self) -> logging.Logger:
        logger = logging.getLogger('word_duel.matches')
        logger.setLevel(self.level)
        logger.propagate = False
        # Re-importing the module must not stack handlers
        for handler in list(logger.handlers):
            logger.removeHandler(handler)

        to_file = logging.FileHandler(self.current_log_file(), encoding='utf-8')
        to_file.setLevel(self.level)
        to_file.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s', datefmt='%Y-%m-%d %H:%M:%S'
        ))

        to_console = logging.StreamHandler()
        to_console.setLevel(logging.WARNING)
        to_console.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

        logger.addHandler(to_file)
        logger.addHandler(to_console)
        return logger

    def current_log_file(self) -> Path:
        return self.log_dir / f"match_log_{datetime.now().strftime('%Y-%m-%d')}.log"

    def _emit(self, level: int, event_type: str, action: str,
              who: Dict[str, Any], details: Dict[str, Any]):
        entry = {
            'ts': datetime.now(timezone.utc).isoformat(),
            'event_type': event_type,
            'action': action,
            'who': who,
            'details': {k: v for k, v in details.items() if v is not None},
        }
        self.logger.log(level, json.dumps(entry, ensure_ascii=False, default=str))

    @staticmethod
    def _request_context(request) -> Dict[str, Any]:
        return {'route': request.endpoint, 'verb': request.method, 'path': request.path}

    def log_user_action(self, request, action: str, match_id: Optional[str] = None, **extra):
        """Record an incoming player request before it is handled."""
        details = {'match_id': match_id, **self._request_context(request), **extra}
        self._emit(logging.INFO, 'PLAYER_ACTION', action, get_user_identity(request), details)

    def log_server_response(self, request, action: str, success: bool,
                            response_data: Dict[str, Any], match_id: Optional[str] = None,
                            **extra):
        """
        Record the envelope returned to the client.

        Failed responses are logged at ERROR so they reach the console too.
        """
        details = {
            'match_id': match_id,
            'body': self._summarize_body(response_data),
            **extra,
        }
        if success:
            self._emit(logging.INFO, 'RESPONSE_OK', action, get_user_identity(request), details)
        else:
            self._emit(logging.ERROR, 'RESPONSE_FAILED', action, get_user_identity(request), details)

    def log_match_event(self, match_id: Optional[str], event: str, actor: str, **extra):
        """Record a state change inside the engine; actor is a player id or 'system'."""
        self._emit(logging.INFO, 'MATCH_EVENT', event, {'actor': actor},
                   {'match_id': match_id, **extra})

    def log_error(self, request, error: Exception, action: str, match_id: Optional[str] = None):
        details = {
            'match_id': match_id,
            'exception': type(error).__name__,
            'message': str(error),
            **self._request_context(request),
        }
        self._emit(logging.ERROR, 'ERROR', action, get_user_identity(request), details)

    @staticmethod
    def _summarize_body(body: Any) -> Any:
        """Replace a full match_state with counts; reveal secrets only once finished."""
        if not isinstance(body, dict):
            return {'type': type(body).__name__}

        payload = body.get('data')
        if not (isinstance(payload, dict) and isinstance(payload.get('match_state'), dict)):
            return body

        state = payload['match_state']
        summary = {
            'phase': state.get('phase'),
            'winner': state.get('winner'),
            'turn_holder': state.get('turn_holder'),
            'guess_counts': [len(state.get(side, {}).get('guesses', [])) for side in SIDES],
        }
        if state.get('phase') == 'finished':
            summary['secret_words'] = [state.get(side, {}).get('secret_word') for side in SIDES]
        return {**body, 'data': {**payload, 'match_state': summary}}

    def get_log_stats(self) -> Dict[str, Any]:
        """Count today's entries per event_type for the health endpoint."""
        log_file = self.current_log_file()
        if not log_file.exists():
            return {'error': 'No log file found for today'}

        counts = Counter()
        try:
            with log_file.open(encoding='utf-8') as fh:
                for line in fh:
                    if not line.strip():
                        continue
                    message = line.split(' | ', 2)[-1]
                    try:
                        counts[json.loads(message).get('event_type', 'OTHER')] += 1
                    except ValueError:
                        counts['OTHER'] += 1
        except OSError as e:
            return {'error': f'Failed to read log file: {e}'}

        return {
            'log_file': str(log_file),
            'file_size_mb': round(log_file.stat().st_size / (1024 * 1024), 2),
            'total_entries': sum(counts.values()),
            'by_event_type': dict(counts),
        }


match_logger = MatchLogger(os.getenv('LOG_DIR', 'logs'), os.getenv('LOG_LEVEL', 'INFO'))
