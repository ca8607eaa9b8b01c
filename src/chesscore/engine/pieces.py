from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, IntEnum
from typing import Dict, List, Tuple


class Color(Enum):
    """Side colour; values are the FEN side-to-move tokens."""

    WHITE = "w"
    BLACK = "b"

    @property
    def opposite(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE


class PieceType(IntEnum):
    PAWN = 0
    KNIGHT = 1
    BISHOP = 2
    ROOK = 3
    QUEEN = 4
    KING = 5


@dataclass(frozen=True)
class Piece:
    """Occupied cell contents: a colour and a piece type."""

    color: Color
    piece_type: PieceType

    @property
    def index(self) -> int:
        return PIECE_INDEX[(self.color, self.piece_type)]

    def __str__(self) -> str:
        return PIECE_TO_CHAR[self.index]


# Piece indices for bitboards
WP, WN, WB, WR, WQ, WK, BP, BN, BB, BR, BQ, BK = range(12)
PIECE_ORDER = [WP, WN, WB, WR, WQ, WK, BP, BN, BB, BR, BQ, BK]
PIECE_TO_CHAR = {
    WP: "P",
    WN: "N",
    WB: "B",
    WR: "R",
    WQ: "Q",
    WK: "K",
    BP: "p",
    BN: "n",
    BB: "b",
    BR: "r",
    BQ: "q",
    BK: "k",
}
CHAR_TO_PIECE = {v: k for k, v in PIECE_TO_CHAR.items()}

# (colour, type) -> bitboard index, and the reverse
PIECE_INDEX: Dict[Tuple[Color, PieceType], int] = {
    (color, pt): (0 if color is Color.WHITE else 6) + int(pt)
    for color in Color
    for pt in PieceType
}
INDEX_TO_PIECE: List[Piece] = [Piece(color, pt) for color in Color for pt in PieceType]

# Per-colour index ranges used by the generators
OWN_INDICES: Dict[Color, Tuple[int, ...]] = {
    Color.WHITE: (WP, WN, WB, WR, WQ, WK),
    Color.BLACK: (BP, BN, BB, BR, BQ, BK),
}


def piece_index(color: Color, piece_type: PieceType) -> int:
    return PIECE_INDEX[(color, piece_type)]


@dataclass(frozen=True)
class CastlingRights:
    """Four independent castling flags.

    Rights can only be revoked; there is no operation that restores one.
    """

    white_kingside: bool = True
    white_queenside: bool = True
    black_kingside: bool = True
    black_queenside: bool = True

    @classmethod
    def none(cls) -> "CastlingRights":
        return cls(False, False, False, False)

    @classmethod
    def from_fen(cls, field: str) -> "CastlingRights":
        """Parse the castling field of a FEN string (``"KQkq"`` subset or ``"-"``).

        Raises:
            ValueError: On unknown letters, duplicates or an empty field.
        """
        if field == "-":
            return cls.none()
        if not field or any(ch not in "KQkq" for ch in field) or len(set(field)) != len(field):
            raise ValueError(f"invalid castling rights: {field!r}")
        return cls(
            white_kingside="K" in field,
            white_queenside="Q" in field,
            black_kingside="k" in field,
            black_queenside="q" in field,
        )

    def to_fen(self) -> str:
        s = "".join(ch for ch, flag in zip("KQkq", self.flags()) if flag)
        return s or "-"

    def flags(self) -> Tuple[bool, bool, bool, bool]:
        """Flags in fixed ``KQkq`` order."""
        return (
            self.white_kingside,
            self.white_queenside,
            self.black_kingside,
            self.black_queenside,
        )

    def kingside(self, color: Color) -> bool:
        return self.white_kingside if color is Color.WHITE else self.black_kingside

    def queenside(self, color: Color) -> bool:
        return self.white_queenside if color is Color.WHITE else self.black_queenside

    def revoke(self, color: Color, *, kingside: bool = False, queenside: bool = False) -> "CastlingRights":
        """Return a copy with the named rights of ``color`` cleared."""
        if color is Color.WHITE:
            return replace(
                self,
                white_kingside=self.white_kingside and not kingside,
                white_queenside=self.white_queenside and not queenside,
            )
        return replace(
            self,
            black_kingside=self.black_kingside and not kingside,
            black_queenside=self.black_queenside and not queenside,
        )

    def __bool__(self) -> bool:
        return any(self.flags())
