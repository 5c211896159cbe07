"""
Game Configuration Constants Module

This module defines the Word Duel rule constants: supported word lengths,
per-tier limits, scoring weights and AI pacing. The bundled dictionaries
(word -> definition) are loaded and validated here as well.
"""

import json
import os
from typing import Dict, Final, Optional, Tuple

# Supported secret word lengths
WORD_LENGTHS: Final[Tuple[int, ...]] = (4, 5)

# AI tiers, ordered from weakest to strongest
TIERS: Final[Tuple[str, ...]] = ('easy', 'medium', 'difficult')

# Single player time limits per tier (milliseconds)
TIER_TIME_LIMITS_MS: Final[Dict[str, int]] = {
    'easy': 10 * 60 * 1000,
    'medium': 7 * 60 * 1000,
    'difficult': 5 * 60 * 1000,
}

# Maximum guesses per tier; None means unbounded
TIER_MAX_ATTEMPTS: Final[Dict[str, Optional[int]]] = {
    'easy': None,
    'medium': 10,
    'difficult': 6,
}

# Per-player guess cap in multiplayer matches
MULTIPLAYER_MAX_ATTEMPTS: Final[int] = 15

# AI turn intervals per tier (milliseconds, inclusive range)
TIER_TURN_INTERVALS_MS: Final[Dict[str, Tuple[int, int]]] = {
    'easy': (1000, 2000),
    'medium': (800, 1500),
    'difficult': (6000, 7000),
}

# Scoring weights
BASE_WIN_POINTS: Final[int] = 50
GUESS_BONUS_PAR: Final[int] = 6
GUESS_BONUS_PER_GUESS: Final[int] = 15
SPEED_BONUS_SECONDS_PER_POINT: Final[int] = 5
SPEED_BONUS_CAP: Final[int] = 60
LETTER_BONUS_PER_LETTER: Final[int] = 5
SINGLE_PLAYER_LOSS_POINTS: Final[Dict[str, int]] = {'easy': 20, 'medium': 30, 'difficult': 50}
MULTIPLAYER_LOSS_POINTS: Final[int] = 100
DIFFICULTY_MULTIPLIERS: Final[Dict[str, float]] = {'easy': 1.0, 'medium': 1.3, 'difficult': 1.6}
MULTIPLAYER_MULTIPLIER: Final[float] = 2.5
POINTS_PER_COIN: Final[int] = 10

# Strategic opening guesses chosen for common-letter coverage
STRATEGIC_OPENERS: Final[Dict[int, Tuple[str, ...]]] = {
    4: ('TEAR', 'RATE', 'LANE', 'SORT', 'EARN', 'RISE'),
    5: ('CRANE', 'SLATE', 'RAISE', 'ARISE', 'STARE', 'LATER'),
}

# English letter frequency order used by the deductive AI ranking
LETTER_FREQUENCY_ORDER: Final[str] = 'ETAOINSHRDLU'

# Definition used when a secret word has no dictionary entry
DEFAULT_DEFINITION: Final[str] = 'a word'

# Anonymous display names handed out in order; overflow names get a numeric suffix
ANON_NAME_POOL: Final[Tuple[str, ...]] = (
    'QuietOtter', 'BraveLynx', 'SwiftHeron', 'CleverFinch', 'MightyBadger',
    'GentleMoose', 'BoldFalcon', 'CalmTortoise', 'LuckyMarten', 'SharpKestrel',
    'WittyPuffin', 'NimbleHare', 'SteadyBison', 'CuriousWren', 'HumbleLlama',
    'JollyWalrus', 'KeenOsprey', 'MellowPanda', 'PluckyRaven', 'SunnyGecko',
)
ANON_OVERFLOW_START: Final[int] = 6001


def _load_dictionary(word_length: int) -> Dict[str, str]:
    """
    Load the word -> definition map for one word length.

    Returns:
        Dict[str, str]: Uppercase words mapped to their definitions

    Raises:
        FileNotFoundError: If the JSON file is not found
        ValueError: If the JSON is not an object or contains invalid words
    """
    config_dir = os.path.dirname(os.path.abspath(__file__))
    json_file_path = os.path.join(config_dir, f'words_{word_length}.json')

    try:
        with open(json_file_path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Word list file not found: {json_file_path}")

    if not isinstance(raw, dict):
        raise ValueError(f"{json_file_path} must contain an object of word -> definition")

    if not raw:
        raise ValueError("Word list cannot be empty")

    dictionary = {}
    for word, definition in raw.items():
        upper = word.strip().upper()
        if len(upper) != word_length:
            raise ValueError(f"Word '{upper}' is not {word_length} characters long")
        if not upper.isalpha():
            raise ValueError(f"Word '{upper}' contains non-alphabetic characters")
        dictionary[upper] = definition or ''
    return dictionary


# Bundled dictionaries keyed by word length
DICTIONARIES: Final[Dict[int, Dict[str, str]]] = {
    length: _load_dictionary(length) for length in WORD_LENGTHS
}


def validate_word_list_integrity() -> bool:
    """
    Validates the integrity and consistency of the bundled dictionaries.

    Every word must have the length of its dictionary, be purely alphabetic
    and uppercase, and every strategic opener must be a dictionary word.

    Raises:
        ValueError: If any validation check fails with detailed error message
    """
    for length, dictionary in DICTIONARIES.items():
        if not dictionary:
            raise ValueError(f"{length}-letter word list cannot be empty")

        for index, word in enumerate(dictionary):
            if len(word) != length:
                raise ValueError(f"Word at index {index} '{word}' is not {length} characters long")
            if not word.isalpha() or not word.isupper():
                raise ValueError(f"Word at index {index} '{word}' is not uppercase alphabetic")

        missing = [w for w in STRATEGIC_OPENERS.get(length, ()) if w not in dictionary]
        if missing:
            raise ValueError(f"Strategic openers missing from {length}-letter list: {missing}")

    return True


def get_word_statistics() -> dict:
    """
    Analyzes the word lists and returns statistical information for game balancing.

    Returns:
        dict: Per-length totals, average vowel count and most common letters
    """
    vowels = set('AEIOU')
    stats = {}
    for length, dictionary in DICTIONARIES.items():
        words = list(dictionary)
        if not words:
            stats[length] = {"error": "Word list is empty"}
            continue

        total_vowels = sum(len([char for char in word if char in vowels]) for word in words)
        letter_frequency = {}
        for word in words:
            for char in word:
                letter_frequency[char] = letter_frequency.get(char, 0) + 1

        stats[length] = {
            "total_words": len(words),
            "avg_vowel_count": round(total_vowels / len(words), 2),
            "most_common_letters": sorted(letter_frequency.items(), key=lambda x: x[1], reverse=True)[:5]
        }
    return stats


if __name__ == "__main__":

    try:
        validate_word_list_integrity()
        print(" Word list validation passed")
        print(f" Word statistics: {get_word_statistics()}")
    except ValueError as config_error:
        print(f" Configuration validation failed: {config_error}")
        exit(1)
