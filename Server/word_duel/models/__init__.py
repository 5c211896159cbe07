"""
Data Models Package

Contains all data models and schemas used throughout the application.
"""

from .match import (
    Verdict, Tier, MatchMode, MatchPhase, Winner, EndReason,
    GuessResult, PlayerState, MatchState, ScoreBreakdown, MatchmakingEntry
)
from .user import PlayerStats, LeaderboardEntry

__all__ = [
    'Verdict', 'Tier', 'MatchMode', 'MatchPhase', 'Winner', 'EndReason',
    'GuessResult', 'PlayerState', 'MatchState', 'ScoreBreakdown', 'MatchmakingEntry',
    'PlayerStats', 'LeaderboardEntry'
]
