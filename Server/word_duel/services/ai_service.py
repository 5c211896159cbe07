"""
AI Opponent Service

Computer opponents for single-player matches. Three tiers share one interface
and differ in how much of the feedback they use to narrow the candidate pool:

- RelaxedAI (easy): exact-position feedback only
- FilteringAI (medium): exact and absent feedback, present letters ignored
- DeductiveAI (difficult): full consistency with every observed feedback
"""

import logging
import random
import threading
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..config.game_settings import (
    STRATEGIC_OPENERS, TIER_MAX_ATTEMPTS, TIER_TURN_INTERVALS_MS, LETTER_FREQUENCY_ORDER
)
from ..models.match import GuessResult, Tier, Verdict
from ..utils.errors import ValidationError
from .dictionary_service import DictionaryService
from .word_logic import generate_feedback

logger = logging.getLogger(__name__)


class AIStrategy:
    """
    Base strategy: strategic opener, used-word tracking and pool fallbacks.

    Subclasses only decide which words stay candidates (`is_candidate`) and
    how to pick among them (`choose`).
    """

    tier: Tier = None

    def __init__(self, dictionary: DictionaryService, rng: random.Random = None):
        self.dictionary = dictionary
        self.rng = rng or random.Random()
        self.used_words: Set[str] = set()

    def word_pool(self, word_length: int) -> List[str]:
        return sorted(self.dictionary.words_of_length(word_length))

    def select_secret_word(self, word_length: int) -> str:
        return self.rng.choice(self.word_pool(word_length))

    def turn_interval_ms(self) -> Tuple[int, int]:
        return TIER_TURN_INTERVALS_MS[self.tier.value]

    def max_attempts(self) -> Optional[int]:
        """Attempt budget for this tier; None means unbounded."""
        return TIER_MAX_ATTEMPTS[self.tier.value]

    def is_candidate(self, word: str, history: Sequence[GuessResult]) -> bool:
        raise NotImplementedError

    def candidate_pool(self, word_length: int, history: Sequence[GuessResult]) -> List[str]:
        """Every pool word still allowed by this tier's reading of the history."""
        relevant = [g for g in history if len(g.word) == word_length]
        return [w for w in self.word_pool(word_length) if self.is_candidate(w, relevant)]

    def choose(self, candidates: List[str], history: Sequence[GuessResult]) -> str:
        return self.rng.choice(candidates)

    def opening_guess(self, word_length: int) -> str:
        pool = set(self.word_pool(word_length))
        openers = [w for w in STRATEGIC_OPENERS.get(word_length, ()) if w in pool and w not in self.used_words]
        if openers:
            return self.rng.choice(openers)
        return self.rng.choice(sorted(pool - self.used_words) or sorted(pool))

    def next_guess(self, word_length: int, history: Sequence[GuessResult]) -> str:
        """
        Produce the next guess. Never repeats a word already guessed in this
        match unless the whole pool has been used, and always returns a word
        of the requested length.
        """
        pool = self.word_pool(word_length)
        if not pool:
            raise ValueError(f'No {word_length}-letter words available')

        self.used_words.update(g.word for g in history)

        if not history:
            guess = self.opening_guess(word_length)
            self.used_words.add(guess)
            return guess

        available = [w for w in self.candidate_pool(word_length, history) if w not in self.used_words]
        if not available:
            available = [w for w in pool if w not in self.used_words]
        if not available:
            logger.info(f"{type(self).__name__} exhausted the {word_length}-letter pool; resetting used words")
            self.used_words.clear()
            available = pool

        guess = self.choose(available, history)
        self.used_words.add(guess)
        return guess


class RelaxedAI(AIStrategy):
    """Keeps words that match every exact position seen so far."""

    tier = Tier.RELAXED

    def is_candidate(self, word, history):
        for guess in history:
            for i, verdict in enumerate(guess.feedback):
                if verdict is Verdict.EXACT and word[i] != guess.word[i]:
                    return False
        return True


class FilteringAI(AIStrategy):
    """Uses exact and absent feedback. Present letters are ignored."""

    tier = Tier.FILTERING

    def is_candidate(self, word, history):
        for guess in history:
            # A letter is absent from the secret only if no copy of it scored
            credited = {letter for letter, verdict in zip(guess.word, guess.feedback)
                        if verdict is not Verdict.ABSENT}
            for i, verdict in enumerate(guess.feedback):
                letter = guess.word[i]
                if verdict is Verdict.EXACT and word[i] != letter:
                    return False
                if verdict is Verdict.ABSENT and letter not in credited and letter in word:
                    return False
        return True


class DeductiveAI(AIStrategy):
    """Keeps only words that would have produced exactly the observed feedback."""

    tier = Tier.DEDUCTIVE

    def is_candidate(self, word, history):
        return all(generate_feedback(guess.word, word) == list(guess.feedback) for guess in history)

    def word_score(self, word: str) -> float:
        counts: Dict[str, int] = {}
        for letter in word:
            counts[letter] = counts.get(letter, 0) + 1

        score = len(counts) * 10
        score -= sum(5 * (n - 1) for n in counts.values() if n > 1)
        for letter in word:
            index = LETTER_FREQUENCY_ORDER.find(letter)
            if index != -1:
                score += 12 - index

        return score + self.rng.random() * 5

    def choose(self, candidates, history):
        if len(candidates) == 1:
            return candidates[0]
        return max(candidates, key=self.word_score)


STRATEGIES = {
    Tier.RELAXED: RelaxedAI,
    Tier.FILTERING: FilteringAI,
    Tier.DEDUCTIVE: DeductiveAI,
}


def parse_tier(value) -> Tier:
    """Accept a Tier or its public name ('easy', 'medium', 'difficult')."""
    if isinstance(value, Tier):
        return value
    try:
        return Tier(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown difficulty: {value}. Use easy, medium or difficult")


class AIOpponentRegistry:
    """
    Holds one strategy instance per single-player match.

    Strategies are rebuilt on demand from the guess history, so losing the
    registry (for example after a restart) costs nothing but the random state.
    """

    def __init__(self, dictionary: DictionaryService, rng: random.Random = None):
        self.dictionary = dictionary
        self.rng = rng or random.Random()
        self._strategies: Dict[str, AIStrategy] = {}
        self._lock = threading.Lock()

    def build(self, tier) -> AIStrategy:
        return STRATEGIES[parse_tier(tier)](self.dictionary, random.Random(self.rng.random()))

    def create(self, match_id: str, tier) -> AIStrategy:
        strategy = self.build(tier)
        with self._lock:
            self._strategies[match_id] = strategy
        return strategy

    def get(self, match_id: str) -> Optional[AIStrategy]:
        with self._lock:
            return self._strategies.get(match_id)

    def get_or_create(self, match_id: str, tier) -> AIStrategy:
        with self._lock:
            strategy = self._strategies.get(match_id)
            if strategy is None:
                strategy = self._strategies[match_id] = self.build(tier)
            return strategy

    def cleanup(self, match_id: str):
        with self._lock:
            self._strategies.pop(match_id, None)

    def active_count(self) -> int:
        with self._lock:
            return len(self._strategies)

    def select_secret_word(self, tier, word_length: int) -> str:
        return self.build(tier).select_secret_word(word_length)

    def turn_interval_ms(self, tier) -> Tuple[int, int]:
        return TIER_TURN_INTERVALS_MS[parse_tier(tier).value]

    def random_turn_delay_ms(self, tier) -> int:
        low, high = self.turn_interval_ms(tier)
        return self.rng.randint(low, high)

    def max_attempts(self, tier) -> Optional[int]:
        return TIER_MAX_ATTEMPTS[parse_tier(tier).value]
