from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import IllegalMove
from .pieces import PieceType


PROMOTION_PIECES = {
    "q": PieceType.QUEEN,
    "r": PieceType.ROOK,
    "b": PieceType.BISHOP,
    "n": PieceType.KNIGHT,
}
PROMOTION_CHARS = {v: k for k, v in PROMOTION_PIECES.items()}


class MoveKind(Enum):
    """Special-move tag, derived from origin/destination and board state."""

    NORMAL = "normal"
    DOUBLE_PAWN_PUSH = "double_pawn_push"
    EN_PASSANT = "en_passant"
    CASTLE_KINGSIDE = "castle_kingside"
    CASTLE_QUEENSIDE = "castle_queenside"


@dataclass(frozen=True)
class Move:
    """Engine-internal move representation.

    Attributes:
        from_sq (int): Origin square index (0-based, a1=0 .. h8=63).
        to_sq (int): Destination square index.
        promotion (Optional[PieceType]): Promotion piece for pawn moves
            reaching the last rank.
        kind (MoveKind): Tag filled in by the move generator. It does not take
            part in equality; the applier re-derives it from the board.
    """

    from_sq: int
    to_sq: int
    promotion: Optional[PieceType] = None
    kind: MoveKind = field(default=MoveKind.NORMAL, compare=False)

    def to_uci(self) -> str:
        """Serialize the move into coordinate notation.

        Returns:
            str: Move encoded like ``"e2e4"`` or ``"e7e8q"``.
        """
        promo = PROMOTION_CHARS[self.promotion] if self.promotion is not None else ""
        return square_to_str(self.from_sq) + square_to_str(self.to_sq) + promo

    def __str__(self) -> str:
        return self.to_uci()


def parse_uci(uci: str) -> Move:
    """Parse a coordinate-notation move string.

    Args:
        uci (str): Move encoded in long algebraic notation (e.g. ``"e2e4"``).

    Returns:
        Move: Parsed move with an untagged ``kind``.

    Raises:
        IllegalMove: If the string has an invalid length, squares, or promotion
            piece.
    """
    if not isinstance(uci, str) or len(uci) not in (4, 5):
        raise IllegalMove(f"invalid move notation: {uci!r}")
    try:
        from_sq = str_to_square(uci[0:2])
        to_sq = str_to_square(uci[2:4])
    except ValueError as e:
        raise IllegalMove(f"invalid move notation: {uci!r}") from e
    if from_sq == to_sq:
        raise IllegalMove(f"null move is not accepted: {uci!r}")
    promo: Optional[PieceType] = None
    if len(uci) == 5:
        ch = uci[4].lower()
        if ch not in PROMOTION_PIECES:
            raise IllegalMove(f"invalid promotion piece: {uci[4]!r}")
        promo = PROMOTION_PIECES[ch]
    return Move(from_sq, to_sq, promo)


def str_to_square(s: str) -> int:
    """Convert algebraic notation into a 0-based square index.

    Args:
        s (str): Square name such as ``"e4"``.

    Returns:
        int: Zero-based square index.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if len(s) != 2 or s[0] < "a" or s[0] > "h" or s[1] < "1" or s[1] > "8":
        raise ValueError(f"invalid square: {s!r}")
    file = ord(s[0]) - ord("a")
    rank = int(s[1]) - 1
    return rank * 8 + file


def square_to_str(idx: int) -> str:
    """Convert a 0-based square index into algebraic notation.

    Raises:
        ValueError: If ``idx`` is outside the valid square range.
    """
    if idx < 0 or idx > 63:
        raise ValueError(f"invalid square index: {idx}")
    file = idx % 8
    rank = idx // 8
    return chr(ord("a") + file) + str(rank + 1)
