"""
Matchmaking Service

FIFO queues of waiting multiplayer requests, one per word length. Entering a
queue either pairs the caller with the longest-waiting compatible player or
leaves the caller waiting.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..config.game_settings import WORD_LENGTHS
from ..models.match import MatchmakingEntry, MatchState
from ..utils.errors import GameError, ValidationError
from ..utils.helpers import now_ms
from ..utils.match_logger import match_logger
from .match_service import MatchService
from .repository import MatchRepository, queue_key

logger = logging.getLogger(__name__)


@dataclass
class QueueResult:
    matched: bool
    match: Optional[MatchState] = None


class MatchmakingService:
    """Pairs human players by word length."""

    def __init__(self,
                 repository: MatchRepository,
                 match_service: MatchService,
                 queue_timeout_ms: int = 60 * 1000,
                 clock: Callable[[], int] = now_ms):
        self.repository = repository
        self.match_service = match_service
        self.queue_timeout_ms = queue_timeout_ms
        self.clock = clock

    def _fresh(self, entries: List[MatchmakingEntry], now: int) -> List[MatchmakingEntry]:
        return [e for e in entries if now - e.enqueued_at < self.queue_timeout_ms]

    def create_or_join(self, player_id: str, display_name: Optional[str],
                       secret_word: str, word_length) -> QueueResult:
        """Validate a multiplayer request and put it through the queue."""
        if not player_id:
            raise ValidationError('playerId is required')
        word_length = self.match_service.validate_word_length(word_length)
        secret_word = self.match_service.validate_word(secret_word, word_length)
        entry = MatchmakingEntry(
            player_id=player_id,
            display_name=self.match_service.names.resolve(player_id, display_name),
            secret_word=secret_word,
            word_length=word_length,
            enqueued_at=self.clock(),
        )
        return self.enqueue(entry)

    def _bound_to_active_match(self, player_id: str) -> bool:
        """True if the player is in an active match; stale bindings are dropped."""
        match_id = self.repository.current_match_id(player_id)
        if not match_id:
            return False
        if self.match_service.is_active(match_id):
            return True
        self.repository.unbind_player(player_id, match_id)
        return False

    def enqueue(self, entry: MatchmakingEntry) -> QueueResult:
        """
        Pair `entry` with the oldest waiting player of the same word length,
        or append it to the queue.

        Raises:
            GameError: If the caller is already playing an active match
        """
        if self._bound_to_active_match(entry.player_id):
            raise GameError('You are already in an active match')

        with self.repository.lock(queue_key(entry.word_length)):
            now = self.clock()
            queue = [e for e in self._fresh(self.repository.load_queue(entry.word_length), now)
                     if e.player_id != entry.player_id]

            # A second scan runs only after a busy candidate was evicted
            for _ in range(2):
                opponent = next((e for e in queue if e.player_id != entry.player_id), None)
                if opponent is None:
                    break
                queue.remove(opponent)
                if self._bound_to_active_match(opponent.player_id):
                    logger.info(f"Dropped {opponent.player_id} from queue: already in an active match")
                    continue

                self.repository.save_queue(entry.word_length, queue)
                match = self.match_service.create_multiplayer_match(opponent, entry)
                match_logger.log_match_event(match.match_id, 'queue_matched', entry.player_id,
                                            opponent=opponent.player_id,
                                            waited_ms=now - opponent.enqueued_at)
                return QueueResult(matched=True, match=match)

            queue.append(entry)
            self.repository.save_queue(entry.word_length, queue)

        match_logger.log_match_event(None, 'queue_joined', entry.player_id,
                                    word_length=entry.word_length, queue_size=len(queue))
        return QueueResult(matched=False)

    def leave(self, player_id: str, word_length) -> bool:
        """Remove the player's entry. Returns whether one was removed."""
        word_length = self.match_service.validate_word_length(word_length)
        with self.repository.lock(queue_key(word_length)):
            queue = self.repository.load_queue(word_length)
            remaining = [e for e in queue if e.player_id != player_id]
            if len(remaining) != len(queue):
                self.repository.save_queue(word_length, remaining)
        return len(remaining) != len(queue)

    def is_player_in_queue(self, player_id: str, word_length) -> bool:
        word_length = self.match_service.validate_word_length(word_length)
        now = self.clock()
        return any(e.player_id == player_id
                   for e in self._fresh(self.repository.load_queue(word_length), now))

    def purge(self, word_length: int) -> int:
        """Drop expired entries from one queue; returns how many were dropped."""
        with self.repository.lock(queue_key(word_length)):
            queue = self.repository.load_queue(word_length)
            fresh = self._fresh(queue, self.clock())
            if len(fresh) != len(queue):
                self.repository.save_queue(word_length, fresh)
        return len(queue) - len(fresh)

    def purge_all(self) -> int:
        return sum(self.purge(n) for n in WORD_LENGTHS)

    def status(self, word_length, player_id: str = None) -> Dict[str, Any]:
        """
        Queue size and mean wait of the current entries. With a player id,
        also reports whether that player is waiting or has been matched.
        """
        word_length = self.match_service.validate_word_length(word_length)
        now = self.clock()
        queue = self._fresh(self.repository.load_queue(word_length), now)
        waits = [now - e.enqueued_at for e in queue]
        status = {
            'word_length': word_length,
            'count': len(queue),
            'average_wait_ms': sum(waits) / len(waits) if waits else 0,
        }

        if player_id:
            status['in_queue'] = any(e.player_id == player_id for e in queue)
            match_id = self.repository.current_match_id(player_id)
            matched = bool(match_id) and self.match_service.is_active(match_id)
            status['matched'] = matched
            status['match_id'] = match_id if matched else None
        return status

    def all_queues_status(self) -> Dict[int, Dict[str, Any]]:
        return {n: self.status(n) for n in WORD_LENGTHS}
