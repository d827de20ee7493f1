# core/errors.py
from __future__ import annotations


class BattleError(Exception):
    """
    Base for every failure the battle subsystem reports to a caller.
    The REST layer turns it into a JSON error, the bot into a chat reply.
    """

    code = "BATTLE_ERROR"
    status_code = 400

    def __init__(self, message: str | None = None):
        self.message = message or self.code
        super().__init__(self.message)


class NotFoundError(BattleError):
    code = "NOT_FOUND"
    status_code = 404


class BattleEndedError(BattleError):
    code = "BATTLE_ENDED"
    status_code = 409


class NotYourTurnError(BattleError):
    code = "NOT_YOUR_TURN"
    status_code = 409


class InvalidMoveError(BattleError):
    code = "INVALID_MOVE"
    status_code = 400


class NoPpError(InvalidMoveError):
    code = "NO_PP"


class DataFetchError(BattleError):
    code = "DATA_FETCH_FAILED"
    status_code = 502
