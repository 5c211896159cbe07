"""
Scoring Service

Converts a finished match into points. All functions are pure; callers must
snapshot the remaining time once per settlement and reuse it for display.
"""

import math
from typing import Iterable, Optional

from ..config.game_settings import (
    BASE_WIN_POINTS, GUESS_BONUS_PAR, GUESS_BONUS_PER_GUESS,
    SPEED_BONUS_SECONDS_PER_POINT, SPEED_BONUS_CAP, LETTER_BONUS_PER_LETTER,
    SINGLE_PLAYER_LOSS_POINTS, MULTIPLAYER_LOSS_POINTS, DIFFICULTY_MULTIPLIERS,
    MULTIPLAYER_MULTIPLIER, POINTS_PER_COIN
)
from ..models.match import GuessResult, MatchMode, MatchState, PlayerState, ScoreBreakdown, Tier
from .word_logic import count_correct_letters


def _tier_key(tier) -> Optional[str]:
    if tier is None:
        return None
    return tier.value if isinstance(tier, Tier) else str(tier)


def calculate_score_breakdown(won: bool,
                              guess_count: int,
                              time_remaining_ms: int,
                              tier=None,
                              is_multi: bool = False,
                              guesses: Iterable[GuessResult] = ()) -> ScoreBreakdown:
    """
    Compute the full point breakdown for one player.

    Losses award a flat amount with no multipliers: 100 in multiplayer,
    otherwise 20/30/50 by tier. Wins award base + guess, speed and letter
    bonuses, scaled by the tier and mode multipliers and floored.
    """
    tier_key = _tier_key(tier)

    if not won:
        if is_multi:
            loss_points = MULTIPLAYER_LOSS_POINTS
        else:
            loss_points = SINGLE_PLAYER_LOSS_POINTS.get(tier_key, SINGLE_PLAYER_LOSS_POINTS['easy'])
        return ScoreBreakdown(
            base_points=loss_points,
            guess_efficiency_bonus=0,
            speed_bonus=0,
            letter_accuracy_bonus=0,
            difficulty_multiplier=1.0,
            mode_multiplier=1.0,
            total=loss_points,
            unique_correct_letters=0,
        )

    guess_bonus = max(0, (GUESS_BONUS_PAR - guess_count) * GUESS_BONUS_PER_GUESS)
    speed_bonus = min(SPEED_BONUS_CAP,
                      math.floor(max(0, time_remaining_ms) / 1000 / SPEED_BONUS_SECONDS_PER_POINT))
    correct_letters = count_correct_letters(guesses)
    letter_bonus = LETTER_BONUS_PER_LETTER * correct_letters

    difficulty_multiplier = DIFFICULTY_MULTIPLIERS.get(tier_key, 1.0)
    mode_multiplier = MULTIPLAYER_MULTIPLIER if is_multi else 1.0

    subtotal = BASE_WIN_POINTS + guess_bonus + speed_bonus + letter_bonus
    total = math.floor(subtotal * difficulty_multiplier * mode_multiplier)

    return ScoreBreakdown(
        base_points=BASE_WIN_POINTS,
        guess_efficiency_bonus=guess_bonus,
        speed_bonus=speed_bonus,
        letter_accuracy_bonus=letter_bonus,
        difficulty_multiplier=difficulty_multiplier,
        mode_multiplier=mode_multiplier,
        total=total,
        unique_correct_letters=correct_letters,
    )


def calculate_points(won: bool, guess_count: int, time_remaining_ms: int,
                     tier=None, is_multi: bool = False,
                     guesses: Iterable[GuessResult] = ()) -> int:
    return calculate_score_breakdown(won, guess_count, time_remaining_ms, tier, is_multi, guesses).total


def calculate_coins(points: int) -> int:
    return points // POINTS_PER_COIN


def settlement_time_remaining(match: MatchState, now: int = None) -> int:
    """
    Remaining time used for scoring. Finished matches use the recorded
    finish time so every recomputation agrees with the settlement.
    """
    end = match.finished_at if match.finished_at is not None else now
    elapsed = max(0, end - match.started_at)
    return max(0, match.time_limit_ms - elapsed)


def score_player(match: MatchState, player: PlayerState, now: int = None) -> ScoreBreakdown:
    """Breakdown for one player of a match, derived from the match itself."""
    winner = match.winning_player()
    won = winner is not None and winner.id == player.id
    return calculate_score_breakdown(
        won,
        len(player.guesses),
        settlement_time_remaining(match, now),
        match.tier,
        match.mode is MatchMode.MULTI,
        player.guesses,
    )
