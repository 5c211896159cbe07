import threading

import pytest

from word_duel.models.match import EndReason, MatchPhase, Winner
from word_duel.services.word_logic import create_guess_result
from word_duel.utils.errors import (
    AccessDenied, AIUnavailable, GameError, MatchAlreadyFinished, MatchNotFound,
    NotYourTurn, TurnSkipTooSoon, ValidationError
)


def _single(match_service, tier='easy', secret='CRANE'):
    return match_service.create_single_player_match('alice', None, secret, 5, tier)


def _wrong_words(match, count):
    """Dictionary-free guesses that cannot solve the computer's secret."""
    words = ['PLANT', 'BRICK', 'GHOST', 'FLAME', 'AUDIO', 'QUILT', 'MOUSE', 'HOUSE', 'SLATE']
    return [w for w in words if w != match.player_b.secret_word][:count]


def _inject(match_service, match_id, player_id, words):
    """Append scored guesses directly, bypassing turn order."""
    repo = match_service.repository
    match = repo.load_match(match_id)
    player = match.player(player_id)
    secret = match.opponent_of(player_id).secret_word
    for word in words:
        player.guesses.append(create_guess_result(word, secret, match_service.clock(), match.next_sequence))
        match.next_sequence += 1
    repo.save_match(match)
    return match


# Creation

def test_single_player_match_starts_on_human_turn(match_service, dictionary):
    match = _single(match_service, tier='difficult')
    assert match.phase is MatchPhase.ACTIVE
    assert match.turn_holder == 'alice'
    assert match.time_limit_ms == 5 * 60 * 1000
    assert match.player_a.display_name == 'QuietOtter'
    assert match.player_b.is_computer
    assert match.player_b.id == f'ai_{match.match_id}'
    assert match.player_b.display_name == 'AI Opponent (Difficult)'
    assert match.player_b.secret_word in dictionary.words_of_length(5)

    repo = match_service.repository
    assert match.match_id in repo.active_match_ids()
    assert repo.current_match_id('alice') == match.match_id


@pytest.mark.parametrize('secret,length,tier', [
    ('ZZZZZ', 5, 'easy'),
    ('TEAR', 5, 'easy'),
    ('CRANE', 6, 'easy'),
    ('CRANE', 5, 'hard'),
])
def test_single_player_creation_validates_input(match_service, secret, length, tier):
    with pytest.raises(ValidationError):
        match_service.create_single_player_match('alice', None, secret, length, tier)


def test_multiplayer_match_gives_first_turn_to_waiting_player(multi_match):
    assert multi_match.turn_holder == 'alice'
    assert multi_match.time_limit_ms == 10 * 60 * 1000
    assert multi_match.player_a.secret_word == 'CRANE'
    assert multi_match.player_b.secret_word == 'HOUSE'


# Turns

def test_guess_passes_turn_to_computer(match_service):
    match = _single(match_service)
    word = _wrong_words(match, 1)[0]
    response = match_service.submit_guess(match.match_id, 'alice', word)

    assert response['match_ended'] is False
    assert response['guess_result']['word'] == word
    assert response['match_state']['turn_holder'] == match.player_b.id

    with pytest.raises(NotYourTurn):
        match_service.submit_guess(match.match_id, 'alice', word)


def test_ai_turn_hands_turn_back(match_service):
    match = _single(match_service)
    with pytest.raises(NotYourTurn):
        match_service.play_ai_turn(match.match_id)

    match_service.submit_guess(match.match_id, 'alice', _wrong_words(match, 1)[0])
    match_service.play_ai_turn(match.match_id)

    stored = match_service.find_match(match.match_id)
    assert stored.turn_holder == 'alice'
    assert len(stored.player_b.guesses) == 1


def test_invalid_guess_does_not_consume_turn(match_service):
    match = _single(match_service)
    for word in ('ZZZZZ', 'TEAR', 'C4ANE'):
        with pytest.raises(ValidationError):
            match_service.submit_guess(match.match_id, 'alice', word)

    stored = match_service.find_match(match.match_id)
    assert stored.turn_holder == 'alice'
    assert stored.player_a.guesses == []


def test_reads_never_make_ai_moves(match_service, clock):
    match = _single(match_service)
    match_service.submit_guess(match.match_id, 'alice', _wrong_words(match, 1)[0])
    clock.advance(30 * 1000)
    view = match_service.get_match_state(match.match_id, 'alice')
    assert view['turn_holder'] == match.player_b.id
    assert view['player_b']['guesses'] == []


def test_sequences_increase_across_players(match_service, multi_match):
    first = match_service.submit_guess(multi_match.match_id, 'alice', 'SLATE')
    second = match_service.submit_guess(multi_match.match_id, 'bob', 'PLANT')
    assert second['guess_result']['sequence'] > first['guess_result']['sequence']


# Winning and settlement

def test_solving_guess_finishes_and_settles_once(match_service, multi_match):
    match_id = multi_match.match_id
    match_service.submit_guess(match_id, 'alice', 'SLATE')
    response = match_service.submit_guess(match_id, 'bob', 'CRANE')

    assert response['match_ended'] is True
    state = response['match_state']
    assert state['phase'] == 'finished'
    assert state['winner'] == 'player_b'
    assert state['end_reason'] == 'solved'
    assert state['player_a']['secret_word_definition'] == 'a tall wading bird'
    assert response['score_breakdown']['total'] == 525

    # Repeated reads must not re-apply statistics
    for _ in range(3):
        match_service.get_match_state(match_id, 'alice')
        match_service.get_match_state(match_id, 'bob')

    bob = match_service.player_stats('bob')
    alice = match_service.player_stats('alice')
    assert (bob.points, bob.coins, bob.games_played, bob.games_won) == (525, 52, 1, 1)
    assert (alice.points, alice.coins, alice.games_played, alice.games_won) == (100, 10, 1, 0)

    repo = match_service.repository
    assert match_id not in repo.active_match_ids()
    assert repo.current_match_id('alice') is None
    assert repo.current_match_id('bob') is None


def test_guess_after_finish_is_rejected(match_service, multi_match):
    match_service.submit_guess(multi_match.match_id, 'alice', 'HOUSE')
    with pytest.raises(MatchAlreadyFinished):
        match_service.submit_guess(multi_match.match_id, 'bob', 'CRANE')


def test_earlier_solving_guess_wins_regardless_of_slot(match_service, multi_match):
    match_id = multi_match.match_id
    _inject(match_service, match_id, 'bob', ['CRANE'])
    _inject(match_service, match_id, 'alice', ['HOUSE'])

    view = match_service.get_match_state(match_id, 'alice')
    assert view['winner'] == 'player_b'
    assert view['end_reason'] == 'solved'


def test_opponent_secret_hidden_until_finished(match_service, multi_match):
    view = match_service.get_match_state(multi_match.match_id, 'alice')
    assert view['player_a']['secret_word'] == 'CRANE'
    assert view['player_b']['secret_word'] == ''
    assert 'statistics_applied' not in view
    assert 'score_breakdown' not in view

    match_service.submit_guess(multi_match.match_id, 'alice', 'HOUSE')
    view = match_service.get_match_state(multi_match.match_id, 'alice')
    assert view['player_b']['secret_word'] == 'HOUSE'
    assert view['score_breakdown']['total'] > 0


# Time limits and attempt caps

def test_zero_time_limit_finishes_on_next_read(match_service):
    match = _single(match_service)
    stored = match_service.find_match(match.match_id)
    stored.time_limit_ms = 0
    match_service.repository.save_match(stored)

    view = match_service.get_match_state(match.match_id, 'alice')
    assert view['phase'] == 'finished'
    assert view['winner'] == 'draw'
    assert view['end_reason'] == 'time_limit'
    assert match_service.player_stats('alice').points == 20


def test_multiplayer_time_limit(match_service, multi_match, clock):
    clock.advance(10 * 60 * 1000)
    view = match_service.get_match_state(multi_match.match_id, 'alice')
    assert view['winner'] == 'draw'
    assert view['end_reason'] == 'time_limit'
    assert view['time_remaining_ms'] == 0


def test_single_player_attempt_cap_hands_win_to_computer(match_service):
    match = _single(match_service, tier='difficult')
    _inject(match_service, match.match_id, 'alice', _wrong_words(match, 6))

    view = match_service.get_match_state(match.match_id, 'alice')
    assert view['winner'] == 'player_b'
    assert view['end_reason'] == 'attempts_exhausted'
    assert match_service.player_stats('alice').points == 50


def test_easy_tier_has_no_attempt_cap(match_service):
    match = _single(match_service, tier='easy')
    _inject(match_service, match.match_id, 'alice', _wrong_words(match, 8) * 2)
    view = match_service.get_match_state(match.match_id, 'alice')
    assert view['phase'] == 'active'


def test_computer_respects_tier_attempt_budget(match_service):
    match = _single(match_service, tier='difficult')
    computer_id = match.computer_player.id
    _inject(match_service, match.match_id, computer_id,
            ['PLANT', 'BRICK', 'GHOST', 'FLAME', 'AUDIO', 'QUILT'])
    assert match_service.attempt_cap(match, match.computer_player) == 6

    match_service.submit_guess(match.match_id, 'alice', _wrong_words(match, 1)[0])
    response = match_service.play_ai_turn(match.match_id)

    assert response['guess_result'] is None
    assert response['match_ended'] is False
    assert response['match_state']['turn_holder'] == 'alice'
    stored = match_service.find_match(match.match_id)
    assert len(stored.computer_player.guesses) == 6
    assert stored.phase is MatchPhase.ACTIVE


def test_medium_tier_computer_budget(match_service):
    match = _single(match_service, tier='medium')
    assert match_service.attempt_cap(match, match.computer_player) == 10


def test_multiplayer_draw_when_both_exhausted(match_service, multi_match):
    match_id = multi_match.match_id
    _inject(match_service, match_id, 'alice', ['PLANT'] * 15)
    assert match_service.get_match_state(match_id, 'alice')['phase'] == 'active'

    _inject(match_service, match_id, 'bob', ['PLANT'] * 15)
    view = match_service.get_match_state(match_id, 'bob')
    assert view['winner'] == 'draw'
    assert view['end_reason'] == 'attempts_exhausted'


def test_exhausted_player_can_skip_without_waiting(match_service, multi_match):
    match_id = multi_match.match_id
    _inject(match_service, match_id, 'alice', ['PLANT'] * 15)
    with pytest.raises(GameError):
        match_service.submit_guess(match_id, 'alice', 'SLATE')
    view = match_service.skip_turn(match_id, 'alice')
    assert view['turn_holder'] == 'bob'


# Disconnects

def test_silent_opponent_forfeits(match_service, multi_match, clock):
    clock.advance(6 * 60 * 1000)
    view = match_service.get_match_state(multi_match.match_id, 'alice')
    assert view['winner'] == 'player_a'
    assert view['end_reason'] == 'disconnect'


def test_polling_keeps_player_connected(match_service, multi_match, clock):
    clock.advance(4 * 60 * 1000)
    match_service.get_match_state(multi_match.match_id, 'bob')
    clock.advance(2 * 60 * 1000)
    view = match_service.get_match_state(multi_match.match_id, 'alice')
    assert view['phase'] == 'active'


def test_no_disconnect_during_grace_period(match_service, multi_match, clock):
    match_service.disconnect_timeout_ms = 1000
    clock.advance(10 * 1000)
    assert match_service.get_match_state(multi_match.match_id, 'alice')['phase'] == 'active'
    clock.advance(25 * 1000)
    assert match_service.get_match_state(multi_match.match_id, 'alice')['end_reason'] == 'disconnect'


def test_sweep_draws_when_both_players_silent(match_service, multi_match, clock):
    clock.advance(6 * 60 * 1000)
    assert match_service.sweep_active_matches() == []
    stored = match_service.find_match(multi_match.match_id)
    assert stored.winner is Winner.DRAW
    assert stored.end_reason is EndReason.DISCONNECT
    assert match_service.player_stats('alice').games_played == 1


def test_sweep_returns_matches_still_running(match_service, multi_match):
    still_active = match_service.sweep_active_matches()
    assert [m.match_id for m in still_active] == [multi_match.match_id]


# Skip and quit

def test_skip_requires_dwell_unless_forced(match_service, multi_match, clock):
    match_id = multi_match.match_id
    clock.advance(1000)
    with pytest.raises(TurnSkipTooSoon):
        match_service.skip_turn(match_id, 'alice')

    clock.advance(5000)
    assert match_service.skip_turn(match_id, 'alice')['turn_holder'] == 'bob'

    with pytest.raises(NotYourTurn):
        match_service.skip_turn(match_id, 'alice', force=True)
    assert match_service.skip_turn(match_id, 'bob', force=True)['turn_holder'] == 'alice'


def test_skip_and_quit_only_in_multiplayer(match_service):
    match = _single(match_service)
    with pytest.raises(GameError):
        match_service.skip_turn(match.match_id, 'alice', force=True)
    with pytest.raises(GameError):
        match_service.quit_match(match.match_id, 'alice')


def test_quit_hands_win_to_opponent(match_service, multi_match):
    view = match_service.quit_match(multi_match.match_id, 'bob')
    assert view['winner'] == 'player_a'
    assert view['end_reason'] == 'quit'
    with pytest.raises(MatchAlreadyFinished):
        match_service.quit_match(multi_match.match_id, 'bob')


# Failures and access

def test_ai_failure_leaves_match_untouched(match_service, monkeypatch):
    match = _single(match_service)
    match_service.submit_guess(match.match_id, 'alice', _wrong_words(match, 1)[0])

    def boom(*args, **kwargs):
        raise RuntimeError('strategy crashed')

    strategy = match_service.ai_registry.get(match.match_id)
    monkeypatch.setattr(strategy, 'next_guess', boom)
    with pytest.raises(AIUnavailable):
        match_service.play_ai_turn(match.match_id)

    stored = match_service.find_match(match.match_id)
    assert stored.turn_holder == match.player_b.id
    assert stored.player_b.guesses == []


def test_access_checks(match_service, multi_match):
    with pytest.raises(MatchNotFound):
        match_service.get_match_state('missing', 'alice')
    with pytest.raises(AccessDenied):
        match_service.get_match_state(multi_match.match_id, 'mallory')

    single = _single(match_service)
    with pytest.raises(AccessDenied):
        match_service.submit_guess(single.match_id, single.player_b.id, 'SLATE')


def test_listeners_see_every_change(match_service, multi_match):
    seen = []
    match_service.add_listener(lambda m: seen.append((m.match_id, m.turn_holder)))
    match_service.submit_guess(multi_match.match_id, 'alice', 'SLATE')
    assert seen == [(multi_match.match_id, 'bob')]


def test_concurrent_reads_settle_once(match_service, multi_match, clock):
    clock.advance(11 * 60 * 1000)
    errors = []

    def read(player_id):
        try:
            match_service.get_match_state(multi_match.match_id, player_id)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=read, args=(pid,)) for pid in ['alice', 'bob'] * 5]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert match_service.player_stats('alice').games_played == 1
    assert match_service.player_stats('bob').games_played == 1


# Leaderboard

def test_leaderboard_ranks_by_points(match_service, multi_match):
    match_service.submit_guess(multi_match.match_id, 'alice', 'HOUSE')

    board = match_service.leaderboard(10, 'bob')
    assert [e['player_id'] for e in board['leaderboard']] == ['alice', 'bob']
    assert board['leaderboard'][0]['rank'] == 1
    assert board['leaderboard'][0]['display_name'] == 'Alice'
    assert board['total_players'] == 2
    assert board['player_rank'] == 2


def test_unknown_player_stats_are_empty(match_service):
    stats = match_service.player_stats('newcomer')
    assert stats.points == 0
    assert stats.games_played == 0
