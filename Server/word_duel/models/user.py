"""
Player Statistics Models

Contains the persisted per-player statistics and leaderboard rows.
"""

from dataclasses import dataclass, asdict
from typing import Dict


@dataclass
class PlayerStats:
    """Cumulative statistics for one human player."""
    player_id: str
    display_name: str
    points: int = 0
    coins: int = 0
    games_played: int = 0
    games_won: int = 0

    def to_hash(self) -> Dict[str, str]:
        return {
            'display_name': self.display_name,
            'points': str(self.points),
            'coins': str(self.coins),
            'games_played': str(self.games_played),
            'games_won': str(self.games_won),
        }

    @classmethod
    def from_hash(cls, player_id: str, data: Dict[str, str]) -> 'PlayerStats':
        return cls(
            player_id=player_id,
            display_name=data.get('display_name', ''),
            points=int(data.get('points', 0)),
            coins=int(data.get('coins', 0)),
            games_played=int(data.get('games_played', 0)),
            games_won=int(data.get('games_won', 0)),
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class LeaderboardEntry:
    """A ranked leaderboard row."""
    player_id: str
    display_name: str
    points: int
    rank: int

    def to_dict(self) -> Dict:
        return asdict(self)
