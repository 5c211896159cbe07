import os
import random
import sys
import tempfile

import pytest

# Ensure the server root (containing the `word_duel` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
SERVER_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if SERVER_ROOT not in sys.path:
    sys.path.insert(0, SERVER_ROOT)

# Keep test logs out of the working tree
os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='word_duel_logs_'))

from word_duel import create_app
from word_duel.config import TestingConfig
from word_duel.models.match import MatchmakingEntry
from word_duel.services import build_services
from word_duel.services.dictionary_service import DictionaryService
from word_duel.services.store import MemoryStore


WORDS = {
    4: {
        'TEAR': 'a drop of liquid from the eye',
        'RATE': 'a measure or ratio',
        'LANE': 'a narrow road',
        'SORT': 'a kind or type',
        'EARN': 'to gain in return for work',
        'RISE': 'to move upward',
        'WORD': 'a unit of language',
        'BEAR': 'a large heavy mammal',
        'HEAR': 'to perceive sound',
        'GOLD': 'a yellow precious metal',
        'MILK': '',
        'FISH': 'an animal that lives in water',
    },
    5: {
        'CRANE': 'a tall wading bird',
        'SLATE': 'a fine-grained grey rock',
        'RAISE': 'to lift up',
        'ARISE': 'to come into being',
        'STARE': 'to look fixedly',
        'LATER': 'at a subsequent time',
        'SPEED': 'rapidity of movement',
        'ERASE': 'to rub out',
        'HOUSE': 'a building for living in',
        'MOUSE': 'a small rodent',
        'PLANT': 'a living organism such as a tree',
        'BRICK': 'a block of baked clay',
        'GHOST': 'an apparition of a dead person',
        'FLAME': 'a hot glowing body of ignited gas',
        'AUDIO': 'sound, especially recorded sound',
        'QUILT': '',
    },
}


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms

    def seconds(self):
        return self.now / 1000.0


class RecordingSpawner:
    """Stands in for socketio.start_background_task; runs tasks on demand."""

    def __init__(self):
        self.tasks = []
        self.sleeps = []

    def __call__(self, fn, *args):
        self.tasks.append((fn, args))

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def run_all(self):
        tasks, self.tasks = self.tasks, []
        for fn, args in tasks:
            fn(*args)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(clock):
    return MemoryStore(clock=clock.seconds)


@pytest.fixture()
def dictionary():
    return DictionaryService(WORDS)


@pytest.fixture()
def spawner():
    return RecordingSpawner()


@pytest.fixture()
def services(store, dictionary, clock, spawner):
    return build_services(
        TestingConfig, spawner, spawner.sleep,
        store=store, dictionary=dictionary, clock=clock, rng=random.Random(7),
    )


@pytest.fixture()
def match_service(services):
    return services.match_service


@pytest.fixture()
def matchmaking(services):
    return services.matchmaking


@pytest.fixture()
def make_entry(clock):
    def _make(player_id, secret_word='CRANE', word_length=5, enqueued_at=None):
        return MatchmakingEntry(
            player_id=player_id,
            display_name=player_id.capitalize(),
            secret_word=secret_word,
            word_length=word_length,
            enqueued_at=clock.now if enqueued_at is None else enqueued_at,
        )
    return _make


@pytest.fixture()
def multi_match(match_service, make_entry):
    """Active multiplayer match: alice waited (secret CRANE), bob joined (secret HOUSE)."""
    return match_service.create_multiplayer_match(
        make_entry('alice', 'CRANE'), make_entry('bob', 'HOUSE')
    )


@pytest.fixture()
def flask_app(store, dictionary, clock):
    application, _ = create_app(
        TestingConfig, store=store, dictionary=dictionary, clock=clock, rng=random.Random(3)
    )
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = flask_app.socketio.test_client(flask_app)
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()
