import pytest

from word_duel.utils.match_logger import MatchLogger, match_logger


def _body(phase):
    return {'success': True, 'data': {'match_state': {
        'phase': phase, 'winner': None, 'turn_holder': 'alice',
        'player_a': {'secret_word': 'CRANE', 'guesses': [{'word': 'SLATE'}]},
        'player_b': {'secret_word': 'HOUSE', 'guesses': []},
    }}}


def test_active_match_secrets_are_not_logged():
    summary = MatchLogger._summarize_body(_body('active'))['data']['match_state']
    assert summary['guess_counts'] == [1, 0]
    assert 'secret_words' not in summary
    assert 'CRANE' not in str(summary)


def test_finished_match_secrets_are_logged():
    summary = MatchLogger._summarize_body(_body('finished'))['data']['match_state']
    assert summary['secret_words'] == ['CRANE', 'HOUSE']


@pytest.fixture()
def scratch_logger(tmp_path):
    yield MatchLogger(str(tmp_path))
    # Both instances share one logging.Logger; point it back at the default file
    match_logger.logger = match_logger._build_logger()


def test_stats_count_entries_by_type(scratch_logger):
    logger = scratch_logger
    logger.log_match_event('m1', 'match_created', 'alice')
    logger.log_match_event('m1', 'guess_submitted', 'alice')
    for handler in logger.logger.handlers:
        handler.flush()

    stats = logger.get_log_stats()
    assert stats['by_event_type'] == {'MATCH_EVENT': 2}
    assert stats['total_entries'] == 2
