from __future__ import annotations

from typing import Iterator, List, TYPE_CHECKING

from .attacks import (
    BISHOP_RAYS,
    KING_TARGETS,
    KNIGHT_TARGETS,
    QUEEN_RAYS,
    ROOK_RAYS,
    attackers,
    is_attacked,
)
from .move import Move, MoveKind
from .pieces import Color, PieceType, piece_index

if TYPE_CHECKING:  # pragma: no cover
    from .board import Board


PROMOS = (PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP, PieceType.KNIGHT)


def _squares(bits: int) -> Iterator[int]:
    while bits:
        lsb = bits & -bits
        yield lsb.bit_length() - 1
        bits ^= lsb


def pseudo_legal_moves(board: "Board") -> List[Move]:
    """Return all pseudo-legal moves for the side to move.

    Moves may leave the mover's own king attacked. Castling is the exception:
    it is only emitted when the king does not start on, pass through or land
    on an attacked square. Order is deterministic (pawns, knights, bishops,
    rooks, queens, king; origins ascending).
    """
    color = board.side_to_move
    own = board.occupancy(color)
    enemy = board.occupancy(color.opposite)
    moves: List[Move] = []
    _gen_pawns(board, color, own | enemy, enemy, moves)
    for sq in _squares(board.bb[piece_index(color, PieceType.KNIGHT)]):
        _gen_leaper(sq, KNIGHT_TARGETS[sq], own, moves)
    for pt, rays in (
        (PieceType.BISHOP, BISHOP_RAYS),
        (PieceType.ROOK, ROOK_RAYS),
        (PieceType.QUEEN, QUEEN_RAYS),
    ):
        for sq in _squares(board.bb[piece_index(color, pt)]):
            _gen_slider(sq, rays[sq], own, enemy, moves)
    _gen_king(board, color, own, moves)
    return moves


def _gen_pawns(board: "Board", color: Color, occ_all: int, enemy: int, moves: List[Move]) -> None:
    if color is Color.WHITE:
        step, start_rank, promo_rank = 8, 1, 6
    else:
        step, start_rank, promo_rank = -8, 6, 1
    enemy_pawns = board.bb[piece_index(color.opposite, PieceType.PAWN)]

    for from_sq in _squares(board.bb[piece_index(color, PieceType.PAWN)]):
        file_idx = from_sq % 8
        rank_idx = from_sq // 8
        promotes = rank_idx == promo_rank

        # Pushes
        to_sq = from_sq + step
        if not (occ_all >> to_sq) & 1:
            if promotes:
                moves.extend(Move(from_sq, to_sq, promo) for promo in PROMOS)
            else:
                moves.append(Move(from_sq, to_sq))
                to2 = to_sq + step
                if rank_idx == start_rank and not (occ_all >> to2) & 1:
                    moves.append(Move(from_sq, to2, kind=MoveKind.DOUBLE_PAWN_PUSH))

        # Captures, towards the a-file then the h-file
        for df in (-1, 1):
            if not 0 <= file_idx + df < 8:
                continue
            cap = from_sq + step + df
            if (enemy >> cap) & 1:
                if promotes:
                    moves.extend(Move(from_sq, cap, promo) for promo in PROMOS)
                else:
                    moves.append(Move(from_sq, cap))
            elif (
                cap == board.ep_square
                and not (occ_all >> cap) & 1
                and (enemy_pawns >> (from_sq + df)) & 1
            ):
                moves.append(Move(from_sq, cap, kind=MoveKind.EN_PASSANT))


def _gen_leaper(from_sq: int, targets, own: int, moves: List[Move]) -> None:
    for to_sq in targets:
        # Valid iff empty or enemy-occupied
        if not (own >> to_sq) & 1:
            moves.append(Move(from_sq, to_sq))


def _gen_slider(from_sq: int, rays, own: int, enemy: int, moves: List[Move]) -> None:
    for ray in rays:
        for to_sq in ray:
            if (own >> to_sq) & 1:
                break
            moves.append(Move(from_sq, to_sq))
            if (enemy >> to_sq) & 1:
                break


def _gen_king(board: "Board", color: Color, own: int, moves: List[Move], castling: bool = True) -> None:
    from_sq = board.king_square(color)
    _gen_leaper(from_sq, KING_TARGETS[from_sq], own, moves)
    if castling:
        _gen_castling(board, color, from_sq, moves)


def _gen_castling(board: "Board", color: Color, king_sq: int, moves: List[Move]) -> None:
    rights = board.castling
    if not (rights.kingside(color) or rights.queenside(color)):
        return
    base = 0 if color is Color.WHITE else 56
    # Precondition: king on its home square and not in check
    if king_sq != base + 4:
        return
    opp = color.opposite
    if is_attacked(board, king_sq, opp):
        return
    occ_all = board.occupancy()
    rooks = board.bb[piece_index(color, PieceType.ROOK)]

    # Kingside: f and g empty and not attacked
    if rights.kingside(color) and (rooks >> (base + 7)) & 1:
        f_sq, g_sq = base + 5, base + 6
        if not (occ_all >> f_sq) & 1 and not (occ_all >> g_sq) & 1:
            if not is_attacked(board, f_sq, opp) and not is_attacked(board, g_sq, opp):
                moves.append(Move(king_sq, g_sq, kind=MoveKind.CASTLE_KINGSIDE))
    # Queenside: b, c and d empty; only c and d must be safe
    if rights.queenside(color) and (rooks >> base) & 1:
        b_sq, c_sq, d_sq = base + 1, base + 2, base + 3
        if not ((occ_all >> b_sq) & 1 or (occ_all >> c_sq) & 1 or (occ_all >> d_sq) & 1):
            if not is_attacked(board, d_sq, opp) and not is_attacked(board, c_sq, opp):
                moves.append(Move(king_sq, c_sq, kind=MoveKind.CASTLE_QUEENSIDE))


def _leaves_king_safe(board: "Board", move: Move, color: Color) -> bool:
    board.make_move(move)
    safe = not is_attacked(board, board.king_square(color), color.opposite)
    board.unmake_move()
    return safe


def legal_moves(board: "Board", *, king_only_on_double_check: bool = False) -> List[Move]:
    """Return the legal moves for the side to move.

    Each pseudo-legal candidate is made on the board, the mover's king is
    tested with ``is_attacked`` and the move is unmade again, so the board is
    left as it was found.

    Args:
        board: Position to generate for.
        king_only_on_double_check: When set, count the checkers first and, if
            there are two or more, generate king moves only. The result is the
            same either way; this only skips candidates that cannot be legal.
    """
    color = board.side_to_move
    if king_only_on_double_check:
        king_sq = board.king_square(color)
        if len(attackers(board, king_sq, color.opposite)) >= 2:
            candidates: List[Move] = []
            _gen_king(board, color, board.occupancy(color), candidates, castling=False)
        else:
            candidates = pseudo_legal_moves(board)
    else:
        candidates = pseudo_legal_moves(board)
    return [m for m in candidates if _leaves_king_safe(board, m, color)]


def has_legal_moves(board: "Board") -> bool:
    """Return True if the side to move has at least one legal move."""
    color = board.side_to_move
    return any(_leaves_king_safe(board, m, color) for m in pseudo_legal_moves(board))
