"""
Match Data Models

Contains all match-related data structures and enums. Models serialize to
plain JSON-compatible dicts for storage and for API responses.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class Verdict(Enum):
    """Per-letter outcome of a guess."""
    EXACT = "exact"
    PRESENT = "present"
    ABSENT = "absent"


class Tier(Enum):
    """AI skill tier. Values are the public difficulty names."""
    RELAXED = "easy"
    FILTERING = "medium"
    DEDUCTIVE = "difficult"


class MatchMode(Enum):
    SINGLE = "single"
    MULTI = "multi"


class MatchPhase(Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


class Winner(Enum):
    PLAYER_A = "player_a"
    PLAYER_B = "player_b"
    DRAW = "draw"


class EndReason(Enum):
    """Why a match reached the finished phase."""
    SOLVED = "solved"
    TIME_LIMIT = "time_limit"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    DISCONNECT = "disconnect"
    QUIT = "quit"


@dataclass(frozen=True)
class GuessResult:
    """A scored guess. Immutable once created."""
    word: str
    feedback: List[Verdict]
    submitted_at: int
    sequence: int = 0

    @property
    def is_correct(self) -> bool:
        return all(v is Verdict.EXACT for v in self.feedback)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'word': self.word,
            'feedback': [v.value for v in self.feedback],
            'submitted_at': self.submitted_at,
            'sequence': self.sequence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GuessResult':
        return cls(
            word=data['word'],
            feedback=[Verdict(v) for v in data['feedback']],
            submitted_at=int(data['submitted_at']),
            sequence=int(data.get('sequence', 0)),
        )


@dataclass
class PlayerState:
    """One side of a match. `guesses` is append-only and chronological."""
    id: str
    display_name: str
    secret_word: str
    guesses: List[GuessResult] = field(default_factory=list)
    is_computer: bool = False
    skill_tier: Optional[Tier] = None
    secret_word_definition: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'display_name': self.display_name,
            'secret_word': self.secret_word,
            'guesses': [g.to_dict() for g in self.guesses],
            'is_computer': self.is_computer,
            'skill_tier': self.skill_tier.value if self.skill_tier else None,
            'secret_word_definition': self.secret_word_definition,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlayerState':
        tier = data.get('skill_tier')
        return cls(
            id=data['id'],
            display_name=data['display_name'],
            secret_word=data['secret_word'],
            guesses=[GuessResult.from_dict(g) for g in data.get('guesses', [])],
            is_computer=bool(data.get('is_computer', False)),
            skill_tier=Tier(tier) if tier else None,
            secret_word_definition=data.get('secret_word_definition'),
        )


@dataclass
class MatchState:
    """Server-side match state. Mutated only by the match service."""
    match_id: str
    mode: MatchMode
    phase: MatchPhase
    started_at: int
    time_limit_ms: int
    word_length: int
    turn_holder: str
    player_a: PlayerState
    player_b: PlayerState
    winner: Optional[Winner] = None
    end_reason: Optional[EndReason] = None
    finished_at: Optional[int] = None
    turn_started_at: Optional[int] = None
    statistics_applied: bool = False
    next_sequence: int = 1
    version: int = 0

    def player(self, player_id: str) -> Optional[PlayerState]:
        if self.player_a.id == player_id:
            return self.player_a
        if self.player_b.id == player_id:
            return self.player_b
        return None

    def opponent_of(self, player_id: str) -> Optional[PlayerState]:
        if self.player_a.id == player_id:
            return self.player_b
        if self.player_b.id == player_id:
            return self.player_a
        return None

    def slot_of(self, player_id: str) -> Optional[Winner]:
        """Winner value that designates the given player."""
        if self.player_a.id == player_id:
            return Winner.PLAYER_A
        if self.player_b.id == player_id:
            return Winner.PLAYER_B
        return None

    def winning_player(self) -> Optional[PlayerState]:
        if self.winner is Winner.PLAYER_A:
            return self.player_a
        if self.winner is Winner.PLAYER_B:
            return self.player_b
        return None

    @property
    def computer_player(self) -> Optional[PlayerState]:
        for p in (self.player_a, self.player_b):
            if p.is_computer:
                return p
        return None

    @property
    def human_players(self) -> List[PlayerState]:
        return [p for p in (self.player_a, self.player_b) if not p.is_computer]

    @property
    def tier(self) -> Optional[Tier]:
        computer = self.computer_player
        return computer.skill_tier if computer else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'match_id': self.match_id,
            'mode': self.mode.value,
            'phase': self.phase.value,
            'winner': self.winner.value if self.winner else None,
            'end_reason': self.end_reason.value if self.end_reason else None,
            'started_at': self.started_at,
            'finished_at': self.finished_at,
            'time_limit_ms': self.time_limit_ms,
            'word_length': self.word_length,
            'turn_holder': self.turn_holder,
            'turn_started_at': self.turn_started_at,
            'player_a': self.player_a.to_dict(),
            'player_b': self.player_b.to_dict(),
            'statistics_applied': self.statistics_applied,
            'next_sequence': self.next_sequence,
            'version': self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MatchState':
        winner = data.get('winner')
        end_reason = data.get('end_reason')
        return cls(
            match_id=data['match_id'],
            mode=MatchMode(data['mode']),
            phase=MatchPhase(data['phase']),
            winner=Winner(winner) if winner else None,
            end_reason=EndReason(end_reason) if end_reason else None,
            started_at=int(data['started_at']),
            finished_at=data.get('finished_at'),
            time_limit_ms=int(data['time_limit_ms']),
            word_length=int(data['word_length']),
            turn_holder=data['turn_holder'],
            turn_started_at=data.get('turn_started_at'),
            player_a=PlayerState.from_dict(data['player_a']),
            player_b=PlayerState.from_dict(data['player_b']),
            statistics_applied=bool(data.get('statistics_applied', False)),
            next_sequence=int(data.get('next_sequence', 1)),
            version=int(data.get('version', 0)),
        )


@dataclass(frozen=True)
class ScoreBreakdown:
    """Derived point breakdown for one player of a finished match."""
    base_points: int
    guess_efficiency_bonus: int
    speed_bonus: int
    letter_accuracy_bonus: int
    difficulty_multiplier: float
    mode_multiplier: float
    total: int
    unique_correct_letters: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MatchmakingEntry:
    """A waiting request in a matchmaking queue."""
    player_id: str
    display_name: str
    secret_word: str
    word_length: int
    enqueued_at: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MatchmakingEntry':
        return cls(
            player_id=data['player_id'],
            display_name=data['display_name'],
            secret_word=data['secret_word'],
            word_length=int(data['word_length']),
            enqueued_at=int(data['enqueued_at']),
        )
