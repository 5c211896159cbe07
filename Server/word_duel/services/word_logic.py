"""
Word Logic

Pure functions for guess evaluation. Nothing here keeps state, so every
function is safe to call from any thread.
"""

import re
import time
from typing import Iterable, List, Optional

from ..models.match import GuessResult, Verdict
from ..utils.errors import ValidationError

_WORD_PATTERN = re.compile(r'^[A-Z]+$')


def normalize_word(word: str) -> str:
    return word.strip().upper()


def generate_feedback(guess: str, secret: str) -> List[Verdict]:
    """
    Evaluate a guess against a secret word.

    Exact matches are marked and consumed first, then each remaining guess
    letter is credited as PRESENT against one unconsumed secret letter, so a
    letter is never credited more often than it occurs in the secret.

    Raises:
        ValidationError: If the two words differ in length
    """
    guess_chars: List[Optional[str]] = list(normalize_word(guess))
    secret_chars: List[Optional[str]] = list(normalize_word(secret))

    if len(guess_chars) != len(secret_chars):
        raise ValidationError('Guess and secret word must be the same length')

    feedback: List[Optional[Verdict]] = [None] * len(guess_chars)

    # First pass: exact position matches
    for i, letter in enumerate(guess_chars):
        if letter == secret_chars[i]:
            feedback[i] = Verdict.EXACT
            secret_chars[i] = None
            guess_chars[i] = None

    # Second pass: present letters and misses
    for i, letter in enumerate(guess_chars):
        if letter is None:
            continue
        if letter in secret_chars:
            feedback[i] = Verdict.PRESENT
            secret_chars[secret_chars.index(letter)] = None
        else:
            feedback[i] = Verdict.ABSENT

    return feedback


def create_guess_result(guess: str, secret: str, submitted_at: int = None, sequence: int = 0) -> GuessResult:
    """Score a guess and wrap it in an immutable GuessResult."""
    if submitted_at is None:
        submitted_at = int(time.time() * 1000)
    return GuessResult(
        word=normalize_word(guess),
        feedback=generate_feedback(guess, secret),
        submitted_at=submitted_at,
        sequence=sequence,
    )


def has_solved(guesses: Iterable[GuessResult]) -> bool:
    return any(g.is_correct for g in guesses)


def first_winning_guess(guesses: Iterable[GuessResult]) -> Optional[GuessResult]:
    return next((g for g in guesses if g.is_correct), None)


def count_correct_letters(guesses: Iterable[GuessResult]) -> int:
    """Distinct letters ever marked EXACT or PRESENT across the guesses."""
    letters = set()
    for guess in guesses:
        for letter, verdict in zip(guess.word, guess.feedback):
            if verdict in (Verdict.EXACT, Verdict.PRESENT):
                letters.add(letter.upper())
    return len(letters)


def is_valid_word_format(word, expected_length: int) -> bool:
    """Check that `word` is `expected_length` letters A-Z (case-insensitive)."""
    if not word or not isinstance(word, str):
        return False
    normalized = normalize_word(word)
    return len(normalized) == expected_length and bool(_WORD_PATTERN.match(normalized))
