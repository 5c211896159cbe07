"""
AI Turn Scheduler

Advances single-player matches when it is the computer's turn. One pending
timer per match: the timer waits a tier-appropriate delay, re-checks that the
match is still waiting on the computer and then plays the move.
"""

import logging
import threading
from typing import Callable, Dict

from ..models.match import MatchMode, MatchPhase, MatchState
from ..utils.errors import (
    AIUnavailable, ConflictError, MatchAlreadyFinished, MatchNotActive, MatchNotFound,
    NotYourTurn, ServiceUnavailable
)
from .match_service import MatchService

logger = logging.getLogger(__name__)

MAX_RETRIES = 3


class AITurnScheduler:
    """
    One-shot timers keyed by match id.

    `spawn` starts a background task and `sleep` waits in seconds; the
    application passes `socketio.start_background_task` and `socketio.sleep`
    so timers cooperate with the Socket.IO async mode.
    """

    def __init__(self,
                 match_service: MatchService,
                 spawn: Callable,
                 sleep: Callable[[float], None],
                 enabled: bool = True):
        self.match_service = match_service
        self.spawn = spawn
        self.sleep = sleep
        self.enabled = enabled
        self._pending: Dict[str, object] = {}
        self._lock = threading.Lock()

    @staticmethod
    def awaits_ai(match: MatchState) -> bool:
        computer = match.computer_player
        return (match.mode is MatchMode.SINGLE
                and match.phase is MatchPhase.ACTIVE
                and computer is not None
                and match.turn_holder == computer.id)

    def on_match_changed(self, match: MatchState):
        """Listener for match mutations: schedule the AI or drop a stale timer."""
        if self.awaits_ai(match):
            self.schedule(match)
        elif match.phase is MatchPhase.FINISHED:
            self.cancel(match.match_id)

    def schedule(self, match: MatchState, attempt: int = 0) -> bool:
        """Start a timer for the computer's move unless one is already pending."""
        if not self.enabled or not self.awaits_ai(match):
            return False

        token = object()
        with self._lock:
            if match.match_id in self._pending:
                return False
            self._pending[match.match_id] = token

        delay_ms = self.match_service.ai_turn_interval(match.tier)
        logger.debug(f"[ai-timer-set] match={match.match_id} delay={delay_ms}ms attempt={attempt}")
        self.spawn(self._worker, match.match_id, token, delay_ms, attempt)
        return True

    def cancel(self, match_id: str):
        with self._lock:
            self._pending.pop(match_id, None)

    def is_pending(self, match_id: str) -> bool:
        with self._lock:
            return match_id in self._pending

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def _worker(self, match_id: str, token: object, delay_ms: int, attempt: int):
        self.sleep(delay_ms / 1000.0)

        with self._lock:
            if self._pending.get(match_id) is not token:
                logger.debug(f"[ai-timer-abort] match={match_id} cancelled")
                return
            del self._pending[match_id]

        try:
            self.match_service.play_ai_turn(match_id)
        except (NotYourTurn, MatchNotActive, MatchAlreadyFinished, MatchNotFound) as e:
            logger.debug(f"[ai-timer-abort] match={match_id}: {e}")
        except (AIUnavailable, ConflictError, ServiceUnavailable) as e:
            logger.warning(f"AI turn failed in {match_id} (attempt {attempt + 1}): {e}")
            if attempt + 1 < MAX_RETRIES:
                match = self.match_service.find_match(match_id)
                if match is not None:
                    self.schedule(match, attempt + 1)
