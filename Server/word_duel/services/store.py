"""
Key-Value Store

Storage backends behind a small Redis-like interface: plain keys with optional
expiry, counters, versioned documents (compare-and-swap), hashes and sorted
sets. MemoryStore keeps everything in process; MongoStore persists to MongoDB
using pymongo.
"""

import datetime
import threading
import time
from functools import wraps
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from pymongo.server_api import ServerApi

from ..utils.decorators import with_retry
from ..utils.errors import ConflictError, ServiceUnavailable


class Store:
    """
    Interface shared by all storage backends.

    Values passed to `set` and `set_versioned` are strings (JSON documents in
    practice). TTLs are in seconds. `set_versioned` with expected_version 0
    creates the key and fails if it already exists.
    """

    def ping(self) -> bool:
        raise NotImplementedError

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def incr(self, key: str) -> int:
        raise NotImplementedError

    def get_versioned(self, key: str) -> Optional[Tuple[str, int]]:
        raise NotImplementedError

    def set_versioned(self, key: str, value: str, expected_version: int,
                      ttl: Optional[int] = None) -> int:
        raise NotImplementedError

    def hash_get(self, key: str, field: str) -> Optional[str]:
        raise NotImplementedError

    def hash_get_all(self, key: str) -> Dict[str, str]:
        raise NotImplementedError

    def hash_set(self, key: str, mapping: Dict[str, str]) -> None:
        raise NotImplementedError

    def sorted_set_add(self, key: str, member: str, score: float) -> None:
        raise NotImplementedError

    def sorted_set_remove(self, key: str, member: str) -> None:
        raise NotImplementedError

    def sorted_set_range(self, key: str, start: int = 0, stop: int = -1,
                         reverse: bool = False) -> List[Tuple[str, float]]:
        raise NotImplementedError

    def sorted_set_rank(self, key: str, member: str, reverse: bool = False) -> Optional[int]:
        raise NotImplementedError

    def sorted_set_card(self, key: str) -> int:
        raise NotImplementedError


def _slice_bounds(start: int, stop: int, size: int) -> Tuple[int, int]:
    """Convert inclusive, possibly negative, range bounds to slice bounds."""
    if start < 0:
        start = max(0, size + start)
    if stop < 0:
        stop = size + stop
    return start, min(stop, size - 1) + 1


class MemoryStore(Store):
    """Thread-safe in-process store used in tests and single-node deployments."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._lock = threading.RLock()
        self._values: Dict[str, Any] = {}
        self._versions: Dict[str, int] = {}
        self._expires: Dict[str, float] = {}
        self._hashes: Dict[str, Dict[str, str]] = {}
        self._zsets: Dict[str, Dict[str, float]] = {}

    def _expire(self, key: str):
        deadline = self._expires.get(key)
        if deadline is not None and deadline <= self._clock():
            self._values.pop(key, None)
            self._versions.pop(key, None)
            self._expires.pop(key, None)

    def _set_expiry(self, key: str, ttl: Optional[int]):
        if ttl:
            self._expires[key] = self._clock() + ttl
        else:
            self._expires.pop(key, None)

    def ping(self) -> bool:
        return True

    def get(self, key):
        with self._lock:
            self._expire(key)
            return self._values.get(key)

    def set(self, key, value, ttl=None):
        with self._lock:
            self._values[key] = value
            self._versions.pop(key, None)
            self._set_expiry(key, ttl)

    def delete(self, key):
        with self._lock:
            self._values.pop(key, None)
            self._versions.pop(key, None)
            self._expires.pop(key, None)
            self._hashes.pop(key, None)
            self._zsets.pop(key, None)

    def incr(self, key):
        with self._lock:
            self._expire(key)
            value = int(self._values.get(key) or 0) + 1
            self._values[key] = value
            return value

    def get_versioned(self, key):
        with self._lock:
            self._expire(key)
            if key not in self._values:
                return None
            return self._values[key], self._versions.get(key, 0)

    def set_versioned(self, key, value, expected_version, ttl=None):
        with self._lock:
            self._expire(key)
            current = self._versions.get(key, 0) if key in self._values else 0
            if current != expected_version:
                raise ConflictError(f'Version conflict on {key}: expected {expected_version}, found {current}')
            self._values[key] = value
            self._versions[key] = current + 1
            self._set_expiry(key, ttl)
            return current + 1

    def hash_get(self, key, field):
        with self._lock:
            return self._hashes.get(key, {}).get(field)

    def hash_get_all(self, key):
        with self._lock:
            return dict(self._hashes.get(key, {}))

    def hash_set(self, key, mapping):
        with self._lock:
            self._hashes.setdefault(key, {}).update(mapping)

    def sorted_set_add(self, key, member, score):
        with self._lock:
            self._zsets.setdefault(key, {})[member] = float(score)

    def sorted_set_remove(self, key, member):
        with self._lock:
            self._zsets.get(key, {}).pop(member, None)

    def _ordered(self, key, reverse):
        members = self._zsets.get(key, {})
        return sorted(((m, s) for m, s in members.items()),
                      key=lambda item: (item[1], item[0]), reverse=reverse)

    def sorted_set_range(self, key, start=0, stop=-1, reverse=False):
        with self._lock:
            ordered = self._ordered(key, reverse)
            lo, hi = _slice_bounds(start, stop, len(ordered))
            return ordered[lo:hi]

    def sorted_set_rank(self, key, member, reverse=False):
        with self._lock:
            if member not in self._zsets.get(key, {}):
                return None
            for rank, (m, _) in enumerate(self._ordered(key, reverse)):
                if m == member:
                    return rank
            return None

    def sorted_set_card(self, key):
        with self._lock:
            return len(self._zsets.get(key, {}))


def _driver_errors(f):
    """Surface pymongo failures as domain errors; only ServiceUnavailable is retried."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except DuplicateKeyError as e:
            raise ConflictError(f'Concurrent write detected: {e}')
        except PyMongoError as e:
            raise ServiceUnavailable(f'Store unavailable: {e}')
    return decorated_function


def _retrying(f):
    return with_retry(
        attempts=lambda self, *args: self.retry_attempts,
        base_delay=lambda self, *args: self.retry_base_delay,
    )(_driver_errors(f))


class MongoStore(Store):
    """
    MongoDB-backed store.

    Plain and versioned keys live in `kv` ({_id, value, version, expires_at})
    with a TTL index on `expires_at`. Hashes live in `hashes` as
    {_id, fields} and sorted-set members in `zsets` as one document each.
    """

    def __init__(self, mongo_uri: str, db_name: str = 'word_duel',
                 retry_attempts: int = 3, retry_base_delay: float = 0.1):
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay

        self.client = MongoClient(mongo_uri, server_api=ServerApi('1'))
        self.db = self.client[db_name]
        self.kv = self.db.kv
        self.hashes = self.db.hashes
        self.zsets = self.db.zsets

        try:
            self.client.admin.command('ping')
        except PyMongoError as e:
            raise ServiceUnavailable(f'MongoDB connection error: {e}')

        self.kv.create_index("expires_at", expireAfterSeconds=0)  # TTL index
        self.zsets.create_index([("key", ASCENDING), ("score", ASCENDING), ("member", ASCENDING)])

    @staticmethod
    def _now() -> datetime.datetime:
        return datetime.datetime.now(datetime.timezone.utc)

    def _expires_at(self, ttl: Optional[int]) -> Optional[datetime.datetime]:
        return self._now() + datetime.timedelta(seconds=ttl) if ttl else None

    def _live(self, key: str) -> Dict[str, Any]:
        # The TTL monitor deletes lazily, so reads filter expired documents too
        return {'_id': key, '$or': [{'expires_at': None}, {'expires_at': {'$gt': self._now()}}]}

    @_retrying
    def ping(self):
        self.client.admin.command('ping')
        return True

    @_retrying
    def get(self, key):
        doc = self.kv.find_one(self._live(key))
        return doc.get('value') if doc else None

    @_retrying
    def set(self, key, value, ttl=None):
        self.kv.replace_one(
            {'_id': key},
            {'_id': key, 'value': value, 'version': 0, 'expires_at': self._expires_at(ttl)},
            upsert=True,
        )

    @_retrying
    def delete(self, key):
        self.kv.delete_one({'_id': key})
        self.hashes.delete_one({'_id': key})
        self.zsets.delete_many({'key': key})

    @_retrying
    def incr(self, key):
        doc = self.kv.find_one_and_update(
            {'_id': key},
            {'$inc': {'value': 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(doc['value'])

    @_retrying
    def get_versioned(self, key):
        doc = self.kv.find_one(self._live(key))
        if not doc:
            return None
        return doc['value'], int(doc.get('version', 0))

    @_retrying
    def set_versioned(self, key, value, expected_version, ttl=None):
        new_version = expected_version + 1
        fields = {'value': value, 'version': new_version, 'expires_at': self._expires_at(ttl)}

        if expected_version == 0:
            # Drop an expired leftover the TTL monitor has not removed yet
            self.kv.delete_one({'_id': key, 'expires_at': {'$lte': self._now()}})
            try:
                self.kv.insert_one({'_id': key, **fields})
            except DuplicateKeyError:
                raise ConflictError(f'Version conflict on {key}: document already exists')
            return new_version

        result = self.kv.update_one({'_id': key, 'version': expected_version}, {'$set': fields})
        if result.matched_count == 0:
            raise ConflictError(f'Version conflict on {key}: expected {expected_version}')
        return new_version

    @_retrying
    def hash_get(self, key, field):
        doc = self.hashes.find_one({'_id': key}, {f'fields.{field}': 1})
        return (doc or {}).get('fields', {}).get(field)

    @_retrying
    def hash_get_all(self, key):
        doc = self.hashes.find_one({'_id': key})
        return dict((doc or {}).get('fields', {}))

    @_retrying
    def hash_set(self, key, mapping):
        if not mapping:
            return
        self.hashes.update_one(
            {'_id': key},
            {'$set': {f'fields.{name}': value for name, value in mapping.items()}},
            upsert=True,
        )

    @_retrying
    def sorted_set_add(self, key, member, score):
        self.zsets.replace_one(
            {'_id': f'{key}:{member}'},
            {'_id': f'{key}:{member}', 'key': key, 'member': member, 'score': float(score)},
            upsert=True,
        )

    @_retrying
    def sorted_set_remove(self, key, member):
        self.zsets.delete_one({'_id': f'{key}:{member}'})

    @_retrying
    def sorted_set_range(self, key, start=0, stop=-1, reverse=False):
        size = self.zsets.count_documents({'key': key})
        lo, hi = _slice_bounds(start, stop, size)
        if hi <= lo:
            return []
        direction = DESCENDING if reverse else ASCENDING
        cursor = (self.zsets.find({'key': key})
                  .sort([('score', direction), ('member', direction)])
                  .skip(lo)
                  .limit(hi - lo))
        return [(doc['member'], doc['score']) for doc in cursor]

    @_retrying
    def sorted_set_rank(self, key, member, reverse=False):
        doc = self.zsets.find_one({'_id': f'{key}:{member}'})
        if not doc:
            return None
        op = '$gt' if reverse else '$lt'
        return self.zsets.count_documents({
            'key': key,
            '$or': [
                {'score': {op: doc['score']}},
                {'score': doc['score'], 'member': {op: member}},
            ],
        })

    @_retrying
    def sorted_set_card(self, key):
        return self.zsets.count_documents({'key': key})
