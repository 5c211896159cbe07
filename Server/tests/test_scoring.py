import math

import pytest

from word_duel.models.match import MatchMode, MatchPhase, MatchState, PlayerState, Tier, Winner
from word_duel.services.scoring_service import (
    calculate_coins, calculate_points, calculate_score_breakdown, score_player,
    settlement_time_remaining
)
from word_duel.services.word_logic import create_guess_result


@pytest.mark.parametrize('tier,expected', [
    (Tier.RELAXED, 20),
    (Tier.FILTERING, 30),
    (Tier.DEDUCTIVE, 50),
])
def test_single_player_loss_is_flat_by_tier(tier, expected):
    assert calculate_points(False, 3, 300000, tier) == expected


def test_multiplayer_loss_ignores_time_and_guesses():
    assert calculate_points(False, 1, 600000, None, True) == 100
    assert calculate_points(False, 15, 0, None, True) == 100


def test_multiplayer_first_guess_win():
    guesses = [create_guess_result('CRANE', 'CRANE', 0, 1)]
    breakdown = calculate_score_breakdown(True, 1, 10 * 60 * 1000, None, True, guesses)
    # (50 + 75 + 60 + 25) * 2.5
    assert breakdown.guess_efficiency_bonus == 75
    assert breakdown.speed_bonus == 60
    assert breakdown.letter_accuracy_bonus == 25
    assert breakdown.total == 525


def test_single_player_win_applies_tier_multiplier():
    guesses = [
        create_guess_result('SLATE', 'CRANE', 0, 1),
        create_guess_result('RAISE', 'CRANE', 0, 3),
        create_guess_result('STARE', 'CRANE', 0, 5),
        create_guess_result('CRANE', 'CRANE', 0, 7),
    ]
    breakdown = calculate_score_breakdown(True, 4, 100000, Tier.DEDUCTIVE, False, guesses)
    assert breakdown.speed_bonus == 20
    assert breakdown.guess_efficiency_bonus == 30
    assert breakdown.unique_correct_letters == 5
    assert breakdown.total == math.floor((50 + 30 + 20 + 25) * 1.6)


def test_guess_bonus_floors_at_zero():
    breakdown = calculate_score_breakdown(True, 9, 0, Tier.RELAXED)
    assert breakdown.guess_efficiency_bonus == 0
    assert breakdown.total == 50


def test_multiplayer_win_is_two_and_a_half_times_easy_win():
    single = calculate_points(True, 3, 200000, Tier.RELAXED, False)
    multi = calculate_points(True, 3, 200000, None, True)
    assert multi == math.floor(single * 2.5)


def test_coins_are_points_divided_by_ten():
    assert calculate_coins(525) == 52
    assert calculate_coins(9) == 0


def _finished_match(finished_at):
    human = PlayerState('p1', 'One', 'CRANE', [create_guess_result('CRANE', 'CRANE', 0, 1)])
    computer = PlayerState('ai_m1', 'AI Opponent (Easy)', 'HOUSE', is_computer=True, skill_tier=Tier.RELAXED)
    return MatchState(
        match_id='m1', mode=MatchMode.SINGLE, phase=MatchPhase.FINISHED,
        started_at=0, time_limit_ms=600000, word_length=5, turn_holder='ai_m1',
        player_a=human, player_b=computer, winner=Winner.PLAYER_A, finished_at=finished_at,
    )


def test_settlement_time_uses_finish_time_not_now():
    match = _finished_match(100000)
    assert settlement_time_remaining(match, now=550000) == 500000


def test_score_player_is_stable_across_reads():
    match = _finished_match(100000)
    first = score_player(match, match.player_a, now=200000)
    later = score_player(match, match.player_a, now=900000)
    assert first == later
    assert first.speed_bonus == 60
