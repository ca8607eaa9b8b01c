from __future__ import annotations

from typing import List, Optional, TYPE_CHECKING

from .pieces import CastlingRights, Color

if TYPE_CHECKING:  # pragma: no cover
    from .board import Board


MASK64 = 0xFFFFFFFFFFFFFFFF


class _SplitMix64:
    def __init__(self, seed: int) -> None:
        self.state = seed & MASK64

    def next(self) -> int:
        # Deterministic 64-bit SplitMix64
        self.state = (self.state + 0x9E3779B97F4A7C15) & MASK64
        z = self.state
        z = (z ^ (z >> 30)) * 0xBF58476D1CE4E5B9 & MASK64
        z = (z ^ (z >> 27)) * 0x94D049BB133111EB & MASK64
        z = z ^ (z >> 31)
        return z & MASK64


class Zobrist:
    """Zobrist hashing seeds.

    Table layout:
    - piece_square[12][64]: indices follow the bitboard piece order (WP..BK)
    - side_to_move: toggle for black side to move
    - castling[4]: K, Q, k, q
    - ep_file[8]: files a..h
    """

    piece_square: List[List[int]]
    side_to_move: int
    castling: List[int]
    ep_file: List[int]

    def __init__(self, seed: int = 0xC0FFEE_F00D_DEAD) -> None:
        prng = _SplitMix64(seed)
        self.piece_square = [[prng.next() for _ in range(64)] for _ in range(12)]
        self.side_to_move = prng.next()
        self.castling = [prng.next() for _ in range(4)]
        self.ep_file = [prng.next() for _ in range(8)]


# Global deterministic table
ZOBRIST = Zobrist()


def castling_key(rights: CastlingRights) -> int:
    h = 0
    for i, flag in enumerate(rights.flags()):
        if flag:
            h ^= ZOBRIST.castling[i]
    return h


def ep_key(ep_square: Optional[int]) -> int:
    if ep_square is None:
        return 0
    return ZOBRIST.ep_file[ep_square % 8]


def compute_hash_from_scratch(board: "Board") -> int:
    """Compute the 64-bit position key of ``board``.

    The applier keeps ``board.zobrist_hash`` in step incrementally; this
    function is the reference it must agree with.
    """
    h = 0
    for p in range(12):
        bb = board.bb[p]
        while bb:
            lsb = bb & -bb
            h ^= ZOBRIST.piece_square[p][lsb.bit_length() - 1]
            bb ^= lsb
    if board.side_to_move is Color.BLACK:
        h ^= ZOBRIST.side_to_move
    h ^= castling_key(board.castling)
    h ^= ep_key(board.ep_square)
    return h & MASK64
