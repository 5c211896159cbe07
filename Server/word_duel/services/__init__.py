"""
Services Package

Contains all business logic and service classes.
"""

from .container import (
    Services, build_services, initialize_services, get_services,
    get_match_service, get_matchmaking_service, get_dictionary_service
)
from .match_service import MatchService
from .matchmaking_service import MatchmakingService
from .store import Store, MemoryStore, MongoStore

__all__ = [
    'Services', 'build_services', 'initialize_services', 'get_services',
    'get_match_service', 'get_matchmaking_service', 'get_dictionary_service',
    'MatchService', 'MatchmakingService',
    'Store', 'MemoryStore', 'MongoStore'
]
