import pytest

from word_duel.services.ai_scheduler import MAX_RETRIES, AITurnScheduler


@pytest.fixture()
def scheduler(match_service, spawner):
    timer = AITurnScheduler(match_service, spawner, spawner.sleep, enabled=True)
    match_service.add_listener(timer.on_match_changed)
    return timer


@pytest.fixture()
def ai_turn_match(match_service):
    match = match_service.create_single_player_match('alice', 'Alice', 'CRANE', 5, 'medium')
    word = 'PLANT' if match.player_b.secret_word != 'PLANT' else 'BRICK'
    match_service.submit_guess(match.match_id, 'alice', word)
    return match_service.find_match(match.match_id)


def test_human_guess_arms_one_timer(scheduler, spawner, ai_turn_match):
    assert scheduler.is_pending(ai_turn_match.match_id)
    assert len(spawner.tasks) == 1
    # Already pending, so a second request is ignored
    assert scheduler.schedule(ai_turn_match) is False
    assert len(spawner.tasks) == 1


def test_timer_plays_the_ai_move(scheduler, spawner, match_service, ai_turn_match):
    spawner.run_all()

    stored = match_service.find_match(ai_turn_match.match_id)
    assert len(stored.player_b.guesses) == 1
    assert stored.turn_holder == 'alice'
    assert not scheduler.is_pending(ai_turn_match.match_id)
    # Delay is within the medium tier interval
    assert 0.8 <= spawner.sleeps[0] <= 1.5


def test_cancelled_timer_does_nothing(scheduler, spawner, match_service, ai_turn_match):
    scheduler.cancel(ai_turn_match.match_id)
    spawner.run_all()

    stored = match_service.find_match(ai_turn_match.match_id)
    assert stored.player_b.guesses == []
    assert scheduler.pending_count() == 0


def test_no_timer_on_human_turn(scheduler, spawner, match_service):
    match = match_service.create_single_player_match('bob', None, 'HOUSE', 5, 'easy')
    assert scheduler.schedule(match) is False
    assert spawner.tasks == []


def test_disabled_scheduler_never_spawns(match_service, spawner, ai_turn_match):
    timer = AITurnScheduler(match_service, spawner, spawner.sleep, enabled=False)
    assert timer.schedule(ai_turn_match) is False
    assert spawner.tasks == []


def test_finished_match_cancels_pending_timer(scheduler, match_service, ai_turn_match):
    stored = match_service.find_match(ai_turn_match.match_id)
    stored.time_limit_ms = 0
    match_service.repository.save_match(stored)

    match_service.get_match_state(ai_turn_match.match_id, 'alice')
    assert not scheduler.is_pending(ai_turn_match.match_id)


def test_failed_ai_turn_is_retried_a_bounded_number_of_times(scheduler, spawner, match_service,
                                                             ai_turn_match, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError('strategy crashed')

    strategy = match_service.ai_registry.get(ai_turn_match.match_id)
    monkeypatch.setattr(strategy, 'next_guess', boom)

    runs = 0
    while spawner.tasks:
        spawner.run_all()
        runs += 1

    assert runs == MAX_RETRIES
    assert not scheduler.is_pending(ai_turn_match.match_id)
    stored = match_service.find_match(ai_turn_match.match_id)
    assert stored.player_b.guesses == []
