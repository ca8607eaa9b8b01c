from __future__ import annotations


class ChessError(ValueError):
    """Base class for errors raised by the rules core."""


class MalformedPosition(ChessError):
    """A serialized position could not be parsed or describes an impossible board."""


class IllegalMove(ChessError):
    """A submitted move is not legal in the current position.

    The board is left exactly as it was before the call.
    """


class InconsistentUndo(ChessError):
    """An undo record does not match the board it is being applied to."""
