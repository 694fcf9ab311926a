"""
CHIPCASINO - Game errors

Every rejected engine or ledger operation raises a GameError subclass.
The HTTP layer turns these into {"error": message} with `status_code`.
Nothing in here is raised after chips have moved.
"""


class GameError(ValueError):
    """Base class for rejected game operations."""
    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)


# ── Validation errors (no state touched) ──

class InvalidGameParameters(GameError):
    default_message = "Invalid game parameters"


class MalformedBetError(GameError):
    default_message = "Invalid bet format"


class InvalidMoveError(GameError):
    default_message = "Invalid move"


# ── State errors ──

class GameFinishedError(GameError):
    status_code = 409
    default_message = "Game is already finished"


class RoundStillRunningError(GameError):
    status_code = 409
    default_message = "Round is still running"


class NotFoundError(GameError):
    status_code = 404
    default_message = "Not found"


class NotOwnedError(GameError):
    status_code = 403
    default_message = "Not owned by caller"


# ── Ledger errors ──

class InsufficientBalanceError(GameError):
    default_message = "Insufficient balance"


class CooldownError(GameError):
    default_message = "On cooldown"

    def __init__(self, message: str = None, seconds_remaining: int = 0):
        super().__init__(message)
        self.seconds_remaining = seconds_remaining
