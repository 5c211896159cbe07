"""
Match Repository

Maps matches, queues, player bindings and statistics onto store keys.

Key layout:
    match:{id}                        versioned match document (JSON)
    player_match:{player}             id of the player's current match, 1 h TTL
    player_activity:{match}:{player}  last guess or skip (epoch ms)
    player_presence:{match}:{player}  last request of any kind (epoch ms)
    queue:{n}letter                   JSON list of waiting entries, oldest first
    matches:active                    sorted set of active match ids by start time
    user:{id}                         hash of cumulative player statistics
    leaderboard                       sorted set of player ids by total points
"""

import json
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from ..models.match import MatchState, MatchmakingEntry
from ..models.user import PlayerStats
from .store import Store

PLAYER_MATCH_TTL_SECONDS = 3600
LEADERBOARD_KEY = 'leaderboard'
ACTIVE_MATCHES_KEY = 'matches:active'


def match_key(match_id: str) -> str:
    return f'match:{match_id}'


def player_match_key(player_id: str) -> str:
    return f'player_match:{player_id}'


def activity_key(match_id: str, player_id: str) -> str:
    return f'player_activity:{match_id}:{player_id}'


def presence_key(match_id: str, player_id: str) -> str:
    return f'player_presence:{match_id}:{player_id}'


def queue_key(word_length: int) -> str:
    return f'queue:{word_length}letter'


def user_key(player_id: str) -> str:
    return f'user:{player_id}'


class MatchRepository:
    """
    Domain-level access to the store.

    Mutations of one record must run inside `lock(key)`, which serializes
    read-modify-write sequences within this process. Match writes also carry
    the document version, so a write based on a stale read fails with
    ConflictError instead of overwriting.
    """

    def __init__(self, store: Store, retention_seconds: int = 3600):
        self.store = store
        self.retention_seconds = retention_seconds
        self._locks: Dict[str, list] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        """Hold the in-process lock for one key. Locks are dropped when unused."""
        with self._locks_guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    # Matches

    def load_match(self, match_id: str) -> Optional[MatchState]:
        stored = self.store.get_versioned(match_key(match_id))
        if stored is None:
            return None
        value, version = stored
        match = MatchState.from_dict(json.loads(value))
        match.version = version
        return match

    def save_match(self, match: MatchState) -> MatchState:
        """Write the match if nobody else wrote it since it was loaded."""
        payload = match.to_dict()
        payload.pop('version', None)
        match.version = self.store.set_versioned(
            match_key(match.match_id),
            json.dumps(payload),
            match.version,
            ttl=self.retention_seconds,
        )
        return match

    # Player bindings and liveness

    def bind_player(self, player_id: str, match_id: str):
        self.store.set(player_match_key(player_id), match_id, ttl=PLAYER_MATCH_TTL_SECONDS)

    def current_match_id(self, player_id: str) -> Optional[str]:
        return self.store.get(player_match_key(player_id))

    def unbind_player(self, player_id: str, match_id: str):
        """Remove the binding only if it still points at `match_id`."""
        key = player_match_key(player_id)
        if self.store.get(key) == match_id:
            self.store.delete(key)

    def touch_activity(self, match_id: str, player_id: str, timestamp: int):
        self.store.set(activity_key(match_id, player_id), str(timestamp), ttl=self.retention_seconds)

    def last_activity(self, match_id: str, player_id: str) -> Optional[int]:
        value = self.store.get(activity_key(match_id, player_id))
        return int(value) if value is not None else None

    def touch_presence(self, match_id: str, player_id: str, timestamp: int):
        self.store.set(presence_key(match_id, player_id), str(timestamp), ttl=self.retention_seconds)

    def last_presence(self, match_id: str, player_id: str) -> Optional[int]:
        value = self.store.get(presence_key(match_id, player_id))
        return int(value) if value is not None else None

    # Active match index

    def add_active(self, match_id: str, started_at: int):
        self.store.sorted_set_add(ACTIVE_MATCHES_KEY, match_id, started_at)

    def remove_active(self, match_id: str):
        self.store.sorted_set_remove(ACTIVE_MATCHES_KEY, match_id)

    def active_match_ids(self) -> List[str]:
        return [member for member, _ in self.store.sorted_set_range(ACTIVE_MATCHES_KEY)]

    # Matchmaking queues

    def load_queue(self, word_length: int) -> List[MatchmakingEntry]:
        raw = self.store.get(queue_key(word_length))
        if not raw:
            return []
        return [MatchmakingEntry.from_dict(item) for item in json.loads(raw)]

    def save_queue(self, word_length: int, entries: List[MatchmakingEntry]):
        key = queue_key(word_length)
        if entries:
            self.store.set(key, json.dumps([e.to_dict() for e in entries]))
        else:
            self.store.delete(key)

    # Statistics and leaderboard

    def load_stats(self, player_id: str) -> Optional[PlayerStats]:
        data = self.store.hash_get_all(user_key(player_id))
        if not data:
            return None
        return PlayerStats.from_hash(player_id, data)

    def save_stats(self, stats: PlayerStats):
        self.store.hash_set(user_key(stats.player_id), stats.to_hash())
        self.store.sorted_set_add(LEADERBOARD_KEY, stats.player_id, stats.points)

    def leaderboard(self, limit: int) -> List[Tuple[str, float]]:
        return self.store.sorted_set_range(LEADERBOARD_KEY, 0, limit - 1, reverse=True)

    def leaderboard_rank(self, player_id: str) -> Optional[int]:
        """1-based leaderboard position, or None when the player is unranked."""
        rank = self.store.sorted_set_rank(LEADERBOARD_KEY, player_id, reverse=True)
        return rank + 1 if rank is not None else None

    def leaderboard_size(self) -> int:
        return self.store.sorted_set_card(LEADERBOARD_KEY)
