"""
Error Types

Every error the service raises on purpose derives from WordDuelError and
carries the HTTP status, the public error code and whether a client may retry.
"""


class WordDuelError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    code = 'SERVER_ERROR'
    retryable = False

    def __init__(self, message: str, status_code: int = None, retryable: bool = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable

    def to_dict(self) -> dict:
        return {
            'success': False,
            'error': self.message,
            'code': self.code,
            'retryable': self.retryable
        }


class ValidationError(WordDuelError):
    """Malformed input: bad word length or characters, missing fields."""
    status_code = 400
    code = 'VALIDATION_ERROR'


class GameError(WordDuelError):
    """A request that is well-formed but not allowed by the match rules."""
    status_code = 400
    code = 'GAME_ERROR'


class MatchNotFound(GameError):
    status_code = 404

    def __init__(self, message: str = 'Game not found'):
        super().__init__(message)


class NotYourTurn(GameError):
    def __init__(self, message: str = 'Not your turn - please wait for opponent'):
        super().__init__(message)


class MatchNotActive(GameError):
    def __init__(self, message: str = 'Game is not active'):
        super().__init__(message)


class MatchAlreadyFinished(GameError):
    def __init__(self, message: str = 'Game has already ended'):
        super().__init__(message)


class AccessDenied(GameError):
    status_code = 403

    def __init__(self, message: str = 'Access denied to this game'):
        super().__init__(message)


class TurnSkipTooSoon(GameError):
    def __init__(self, message: str = 'Cannot skip turn so quickly'):
        super().__init__(message)


class AIUnavailable(GameError):
    def __init__(self, message: str = 'AI cannot make a guess at this time'):
        super().__init__(message)


class ConflictError(WordDuelError):
    """The stored record changed between read and write."""
    status_code = 409
    code = 'GAME_ERROR'
    retryable = True


class ServiceUnavailable(WordDuelError):
    """Store or dictionary failure that may succeed on retry."""
    status_code = 503
    code = 'SERVER_ERROR'
    retryable = True
