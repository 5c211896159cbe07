"""
Dictionary Service

Word validation and definition lookup. The bundled JSON dictionaries are the
offline word set; an optional primary lookup (for example a remote dictionary
client) is consulted first and falls back to the offline set when it is
unavailable.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from ..config.game_settings import DICTIONARIES, WORD_LENGTHS
from ..utils.errors import ServiceUnavailable
from .word_logic import normalize_word, is_valid_word_format

logger = logging.getLogger(__name__)


class WordLookup(Protocol):
    def is_valid_word(self, word: str) -> bool: ...

    def definition_of(self, word: str) -> Optional[str]: ...


@dataclass
class WordValidation:
    is_valid: bool
    word: str
    error: Optional[str] = None


class DictionaryService:
    """Validates words and resolves definitions."""

    def __init__(self, dictionaries: Dict[int, Dict[str, str]] = None, primary: WordLookup = None):
        source = dictionaries if dictionaries is not None else DICTIONARIES
        self.dictionaries = {
            length: {normalize_word(w): d for w, d in words.items()}
            for length, words in source.items()
        }
        self.primary = primary

    def words_of_length(self, word_length: int) -> List[str]:
        return list(self.dictionaries.get(word_length, {}).keys())

    def _offline_has(self, word: str) -> bool:
        return word in self.dictionaries.get(len(word), {})

    def is_valid_word(self, word: str) -> bool:
        return self.validate_word(word).is_valid

    def validate_word(self, word: str) -> WordValidation:
        """Check format and dictionary membership of a word."""
        normalized = normalize_word(word or '')
        if not any(is_valid_word_format(normalized, n) for n in WORD_LENGTHS):
            return WordValidation(False, normalized, f'Word must be {" or ".join(map(str, WORD_LENGTHS))} letters containing only letters')

        if self.primary is not None:
            try:
                if self.primary.is_valid_word(normalized):
                    return WordValidation(True, normalized)
                return WordValidation(False, normalized, f"{normalized} doesn't appear in the dictionary")
            except ServiceUnavailable as e:
                logger.warning(f"Primary dictionary unavailable, using offline word list: {e}")

        if self._offline_has(normalized):
            return WordValidation(True, normalized)
        return WordValidation(False, normalized, f"{normalized} doesn't appear in the dictionary")

    def definition_of(self, word: str) -> Optional[str]:
        """Definition for a word, or None when no source knows it."""
        normalized = normalize_word(word or '')
        if self.primary is not None:
            try:
                definition = self.primary.definition_of(normalized)
                if definition:
                    return definition
            except ServiceUnavailable as e:
                logger.warning(f"Primary dictionary unavailable for definition lookup: {e}")
        return self.dictionaries.get(len(normalized), {}).get(normalized) or None
