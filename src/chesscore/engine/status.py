from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from .attacks import in_check
from .movegen import has_legal_moves
from .pieces import BB, BN, WB, WN

if TYPE_CHECKING:  # pragma: no cover
    from .board import Board


FIFTY_MOVE_HALFMOVES = 100
DARK_SQUARES = 0xAA55AA55AA55AA55


class PositionStatus(Enum):
    NORMAL = "normal"
    CHECK = "check"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"


def classify(board: "Board") -> PositionStatus:
    """Classify the position for the side to move.

    Repetition and the fifty-move rule are not considered here; see
    :func:`is_fifty_move_draw` and the caller's position history.
    """
    checked = in_check(board)
    if has_legal_moves(board):
        return PositionStatus.CHECK if checked else PositionStatus.NORMAL
    return PositionStatus.CHECKMATE if checked else PositionStatus.STALEMATE


def is_fifty_move_draw(board: "Board") -> bool:
    return board.halfmove_clock >= FIFTY_MOVE_HALFMOVES


def is_insufficient_material(board: "Board") -> bool:
    """K vs K, K+minor vs K, K+B vs K+B with bishops on same-coloured squares."""
    occ = board.occupancy()
    total = occ.bit_count()
    if total == 2:
        return True
    minors = board.bb[WN] | board.bb[WB] | board.bb[BN] | board.bb[BB]
    if total == 3:
        return bool(minors)
    if total == 4:
        wb, bb = board.bb[WB], board.bb[BB]
        if wb.bit_count() == 1 and bb.bit_count() == 1:
            return bool(wb & DARK_SQUARES) == bool(bb & DARK_SQUARES)
    return False

