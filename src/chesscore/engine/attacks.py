"""Square attack detection.

Attacks are found by reversal: from the target square we walk each piece
type's pattern and look for an attacker of that type at the far end, instead
of enumerating the attacker's moves. The king on the target side is *not*
treated as transparent; a king standing on a line still blocks it. Callers
that need the square behind the king (king escape squares) must test a board
on which the king has already moved.
"""

from __future__ import annotations

from typing import List, Optional, Tuple, TYPE_CHECKING

from .pieces import BB, BK, BN, BP, BQ, BR, WB, WK, WN, WP, WQ, WR, Color

if TYPE_CHECKING:  # pragma: no cover
    from .board import Board


KNIGHT_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (-1, 2),
    (1, 2),
    (-2, 1),
    (2, 1),
    (-2, -1),
    (2, -1),
    (-1, -2),
    (1, -2),
)
KING_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (-1, -1),
    (0, -1),
    (1, -1),
    (-1, 0),
    (1, 0),
    (-1, 1),
    (0, 1),
    (1, 1),
)
BISHOP_DIRS: Tuple[Tuple[int, int], ...] = ((-1, -1), (1, -1), (-1, 1), (1, 1))
ROOK_DIRS: Tuple[Tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))
QUEEN_DIRS: Tuple[Tuple[int, int], ...] = BISHOP_DIRS + ROOK_DIRS


# --- Precomputed lookup tables ---


def _build_targets(offsets: Tuple[Tuple[int, int], ...]) -> Tuple[Tuple[int, ...], ...]:
    targets: List[Tuple[int, ...]] = []
    for sq in range(64):
        f, r = sq % 8, sq // 8
        targets.append(
            tuple(
                (r + dr) * 8 + (f + df)
                for df, dr in offsets
                if 0 <= f + df < 8 and 0 <= r + dr < 8
            )
        )
    return tuple(targets)


def _build_masks(targets: Tuple[Tuple[int, ...], ...]) -> Tuple[int, ...]:
    masks: List[int] = []
    for sq_targets in targets:
        mask = 0
        for to_sq in sq_targets:
            mask |= 1 << to_sq
        masks.append(mask)
    return tuple(masks)


def _build_rays(
    directions: Tuple[Tuple[int, int], ...],
) -> Tuple[Tuple[Tuple[int, ...], ...], ...]:
    rays_per_square = []
    for sq in range(64):
        f, r = sq % 8, sq // 8
        square_rays = []
        for df, dr in directions:
            tf, tr = f + df, r + dr
            ray: List[int] = []
            while 0 <= tf < 8 and 0 <= tr < 8:
                ray.append(tr * 8 + tf)
                tf += df
                tr += dr
            square_rays.append(tuple(ray))
        rays_per_square.append(tuple(square_rays))
    return tuple(rays_per_square)


# Squares a pawn of the given colour must stand on to attack the index square.
_WHITE_PAWN_SOURCES = _build_masks(_build_targets(((-1, -1), (1, -1))))
_BLACK_PAWN_SOURCES = _build_masks(_build_targets(((-1, 1), (1, 1))))

KNIGHT_TARGETS = _build_targets(KNIGHT_OFFSETS)
KING_TARGETS = _build_targets(KING_OFFSETS)
KNIGHT_MASKS = _build_masks(KNIGHT_TARGETS)
KING_MASKS = _build_masks(KING_TARGETS)
BISHOP_RAYS = _build_rays(BISHOP_DIRS)
ROOK_RAYS = _build_rays(ROOK_DIRS)
QUEEN_RAYS = _build_rays(QUEEN_DIRS)

# Attacker bitboard indices per colour: pawn, knight, king, bishop, rook, queen
_ATTACKERS = {
    Color.WHITE: (WP, WN, WK, WB, WR, WQ, _WHITE_PAWN_SOURCES),
    Color.BLACK: (BP, BN, BK, BB, BR, BQ, _BLACK_PAWN_SOURCES),
}


def _attacker_bits(bb: List[int], sq: int, by_color: Color) -> int:
    """Bitboard of ``by_color`` pieces attacking ``sq`` on piece bitboards ``bb``."""
    pawn, knight, king, bishop, rook, queen, pawn_sources = _ATTACKERS[by_color]
    found = bb[pawn] & pawn_sources[sq]
    found |= bb[knight] & KNIGHT_MASKS[sq]
    found |= bb[king] & KING_MASKS[sq]

    occ = 0
    for b in bb:
        occ |= b

    diag = bb[bishop] | bb[queen]
    if diag:
        for ray in BISHOP_RAYS[sq]:
            for o in ray:
                if (occ >> o) & 1:
                    if (diag >> o) & 1:
                        found |= 1 << o
                    break

    straight = bb[rook] | bb[queen]
    if straight:
        for ray in ROOK_RAYS[sq]:
            for o in ray:
                if (occ >> o) & 1:
                    if (straight >> o) & 1:
                        found |= 1 << o
                    break
    return found


def is_attacked(board: "Board", sq: int, by_color: Color) -> bool:
    """Return True if square ``sq`` is attacked by ``by_color``.

    Covers pawn captures (never pushes or en passant), knights, the king and
    slider rays for bishops, rooks and queens. Side-effect free.
    """
    bb = board.bb
    pawn, knight, king, _bishop, _rook, _queen, pawn_sources = _ATTACKERS[by_color]
    # Cheap leaper tests first
    if bb[pawn] & pawn_sources[sq] or bb[knight] & KNIGHT_MASKS[sq] or bb[king] & KING_MASKS[sq]:
        return True
    return bool(_attacker_bits(bb, sq, by_color))


def attackers(board: "Board", sq: int, by_color: Color) -> List[int]:
    """Return the squares of every ``by_color`` piece attacking ``sq``, ascending."""
    bits = _attacker_bits(board.bb, sq, by_color)
    squares: List[int] = []
    while bits:
        lsb = bits & -bits
        squares.append(lsb.bit_length() - 1)
        bits ^= lsb
    return squares


def in_check(board: "Board", color: Optional[Color] = None) -> bool:
    """Return True if ``color`` (default: side to move) has its king attacked."""
    side = board.side_to_move if color is None else color
    return is_attacked(board, board.king_square(side), side.opposite)
