"""
Service Container

Builds the service graph once per application and exposes module-level
accessors for controllers and background workers.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..utils.helpers import now_ms
from .ai_scheduler import AITurnScheduler
from .ai_service import AIOpponentRegistry
from .dictionary_service import DictionaryService
from .match_service import MatchService
from .matchmaking_service import MatchmakingService
from .name_service import NameService
from .repository import MatchRepository
from .store import MemoryStore, MongoStore, Store

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: Store
    repository: MatchRepository
    dictionary: DictionaryService
    names: NameService
    ai_registry: AIOpponentRegistry
    match_service: MatchService
    matchmaking: MatchmakingService
    scheduler: AITurnScheduler


def _setting(config, name, default=None):
    if isinstance(config, dict):
        return config.get(name, default)
    return getattr(config, name, default)


def build_store(config) -> Store:
    """MongoStore when MONGO_URI is configured, otherwise an in-memory store."""
    mongo_uri = _setting(config, 'MONGO_URI')
    if not mongo_uri:
        logger.info("MONGO_URI not set; using in-memory store")
        return MemoryStore()
    return MongoStore(
        mongo_uri,
        _setting(config, 'MONGO_DB', 'word_duel'),
        retry_attempts=int(_setting(config, 'STORE_RETRY_ATTEMPTS', 3)),
        retry_base_delay=float(_setting(config, 'STORE_RETRY_BASE_DELAY', 0.1)),
    )


def build_services(config,
                   spawn: Callable,
                   sleep: Callable[[float], None],
                   store: Store = None,
                   dictionary: DictionaryService = None,
                   clock: Callable[[], int] = now_ms,
                   rng=None) -> Services:
    store = store if store is not None else build_store(config)
    repository = MatchRepository(store, int(_setting(config, 'MATCH_RETENTION_SECONDS', 3600)))
    dictionary = dictionary or DictionaryService()
    names = NameService(store)
    ai_registry = AIOpponentRegistry(dictionary, rng)

    match_service = MatchService(
        repository, dictionary, ai_registry, names,
        multiplayer_time_limit_ms=int(_setting(config, 'MULTIPLAYER_TIME_LIMIT_SECONDS', 600)) * 1000,
        disconnect_timeout_ms=int(_setting(config, 'DISCONNECT_TIMEOUT_SECONDS', 300)) * 1000,
        disconnect_grace_ms=int(_setting(config, 'DISCONNECT_GRACE_SECONDS', 30)) * 1000,
        min_turn_skip_ms=int(_setting(config, 'MIN_TURN_SKIP_SECONDS', 5)) * 1000,
        clock=clock,
    )
    matchmaking = MatchmakingService(
        repository, match_service,
        queue_timeout_ms=int(_setting(config, 'QUEUE_TIMEOUT_SECONDS', 60)) * 1000,
        clock=clock,
    )
    scheduler = AITurnScheduler(
        match_service, spawn, sleep,
        enabled=bool(_setting(config, 'AI_SCHEDULER_ENABLED', True)),
    )
    match_service.add_listener(scheduler.on_match_changed)

    return Services(store, repository, dictionary, names, ai_registry,
                    match_service, matchmaking, scheduler)


# Global service instances
_services: Optional[Services] = None


def initialize_services(config, spawn, sleep, **overrides) -> Services:
    """Initialize the global service instances."""
    global _services
    _services = build_services(config, spawn, sleep, **overrides)
    return _services


def get_services() -> Optional[Services]:
    """Get the global service instances."""
    return _services


def get_match_service() -> Optional[MatchService]:
    return _services.match_service if _services else None


def get_matchmaking_service() -> Optional[MatchmakingService]:
    return _services.matchmaking if _services else None


def get_dictionary_service() -> Optional[DictionaryService]:
    return _services.dictionary if _services else None
