"""
Display Name Service

Resolves a stable display name per player id. Names supplied by the caller
win; otherwise an anonymous name is allocated once from the bundled pool and
persisted, with numbered names once the pool runs out.
"""

import logging
from typing import Optional

from ..config.game_settings import ANON_NAME_POOL, ANON_OVERFLOW_START
from ..utils.errors import ConflictError, ValidationError
from .store import Store

logger = logging.getLogger(__name__)

MAX_DISPLAY_NAME_LENGTH = 32


class NameService:
    """Anonymous name allocator backed by the store."""

    def __init__(self, store: Store, pool=ANON_NAME_POOL):
        self.store = store
        self.pool = tuple(pool)

    @staticmethod
    def _mapping_key(player_id: str) -> str:
        return f'anon:name:{player_id}'

    @staticmethod
    def _used_key(name: str) -> str:
        return f'anon:used:{name.lower()}'

    def assigned_name(self, player_id: str) -> Optional[str]:
        return self.store.get(self._mapping_key(player_id))

    def _candidate(self, index: int) -> str:
        if index < len(self.pool):
            return self.pool[index]
        overflow = index - len(self.pool)
        return f'{self.pool[overflow % len(self.pool)]}{ANON_OVERFLOW_START + overflow}'

    def assign_name(self, player_id: str) -> str:
        """Return the player's anonymous name, allocating one on first use."""
        if not player_id:
            raise ValidationError('playerId is required')

        existing = self.assigned_name(player_id)
        if existing:
            return existing

        while True:
            candidate = self._candidate(self.store.incr('anon:next') - 1)
            try:
                # Claim the name; a concurrent claim of the same name fails here
                self.store.set_versioned(self._used_key(candidate), player_id, 0)
            except ConflictError:
                continue
            self.store.set(self._mapping_key(player_id), candidate)
            logger.info(f"Assigned anonymous name {candidate} to {player_id}")
            return candidate

    def resolve(self, player_id: str, display_name: Optional[str] = None) -> str:
        """Caller-supplied name if present, else the stable anonymous one."""
        if display_name and display_name.strip():
            return display_name.strip()[:MAX_DISPLAY_NAME_LENGTH]
        return self.assign_name(player_id)
