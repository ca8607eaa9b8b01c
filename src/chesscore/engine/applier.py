"""Move application with reversible state.

``apply_mut`` validates a move against the board's *geometry* (there is a
piece of the side to move on the origin, the destination is not friendly,
promotion and castling are well formed) before touching anything, so it is
atomic: it either applies fully or raises :class:`IllegalMove` with the board
untouched. It does not test for self-check; search loops feed it generated
legal moves. ``apply`` is the checked entry point that also rejects moves
outside ``legal_moves``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional, Tuple, TYPE_CHECKING

from .errors import IllegalMove, InconsistentUndo
from .move import Move, MoveKind
from .movegen import legal_moves
from .pieces import (
    INDEX_TO_PIECE,
    OWN_INDICES,
    CastlingRights,
    Color,
    PieceType,
    piece_index,
)
from .zobrist import MASK64, ZOBRIST, castling_key, ep_key

if TYPE_CHECKING:  # pragma: no cover
    from .board import Board


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CastleGeometry:
    king_from: int
    king_to: int
    rook_from: int
    rook_to: int


CASTLES: Dict[Tuple[Color, MoveKind], CastleGeometry] = {
    (Color.WHITE, MoveKind.CASTLE_KINGSIDE): CastleGeometry(4, 6, 7, 5),
    (Color.WHITE, MoveKind.CASTLE_QUEENSIDE): CastleGeometry(4, 2, 0, 3),
    (Color.BLACK, MoveKind.CASTLE_KINGSIDE): CastleGeometry(60, 62, 63, 61),
    (Color.BLACK, MoveKind.CASTLE_QUEENSIDE): CastleGeometry(60, 58, 56, 59),
}

# Rook home square -> (colour, kingside?) whose right it guards
ROOK_HOMES: Dict[int, Tuple[Color, bool]] = {
    0: (Color.WHITE, False),
    7: (Color.WHITE, True),
    56: (Color.BLACK, False),
    63: (Color.BLACK, True),
}


@dataclass(frozen=True)
class UndoRecord:
    """Everything needed to reverse one ``apply_mut`` exactly."""

    move: Move
    moved_piece: int
    placed_piece: int
    captured_piece: Optional[int]
    capture_sq: Optional[int]
    prev_castling: CastlingRights
    prev_ep_square: Optional[int]
    prev_halfmove_clock: int
    prev_fullmove_number: int
    prev_hash: int
    hash_after: int

    @property
    def kind(self) -> MoveKind:
        return self.move.kind


def _piece_on(board: "Board", sq: int, indices: Tuple[int, ...]) -> Optional[int]:
    for p in indices:
        if (board.bb[p] >> sq) & 1:
            return p
    return None


def derive_kind(board: "Board", move: Move) -> Tuple[MoveKind, int]:
    """Classify ``move`` from origin, destination and board state.

    Returns:
        Tuple[MoveKind, int]: The move kind and the bitboard index of the
        piece on the origin square.

    Raises:
        IllegalMove: If the move is geometrically malformed for this board.
    """
    color = board.side_to_move
    if not (0 <= move.from_sq < 64 and 0 <= move.to_sq < 64) or move.from_sq == move.to_sq:
        raise IllegalMove(f"invalid squares in move {move!r}")
    moved = _piece_on(board, move.from_sq, OWN_INDICES[color])
    if moved is None:
        raise IllegalMove(f"no {color.name.lower()} piece on {move.from_sq}")
    if _piece_on(board, move.to_sq, OWN_INDICES[color]) is not None:
        raise IllegalMove(f"destination of {move.to_uci()} holds a friendly piece")

    piece_type = INDEX_TO_PIECE[moved].piece_type
    last_rank = 7 if color is Color.WHITE else 0
    if piece_type is PieceType.PAWN and move.to_sq // 8 == last_rank:
        if move.promotion not in (
            PieceType.QUEEN,
            PieceType.ROOK,
            PieceType.BISHOP,
            PieceType.KNIGHT,
        ):
            raise IllegalMove(f"pawn move {move.to_uci()} requires a promotion piece")
    elif move.promotion is not None:
        raise IllegalMove(f"promotion not allowed for {move.to_uci()}")

    delta = move.to_sq - move.from_sq
    if piece_type is PieceType.PAWN:
        if abs(delta) == 16:
            return MoveKind.DOUBLE_PAWN_PUSH, moved
        if (
            move.to_sq == board.ep_square
            and move.from_sq % 8 != move.to_sq % 8
            and not (board.occupancy() >> move.to_sq) & 1
        ):
            victim_sq = (move.from_sq // 8) * 8 + move.to_sq % 8
            if not (board.bb[piece_index(color.opposite, PieceType.PAWN)] >> victim_sq) & 1:
                raise IllegalMove(f"no pawn to capture en passant with {move.to_uci()}")
            return MoveKind.EN_PASSANT, moved
        return MoveKind.NORMAL, moved
    if piece_type is PieceType.KING and abs(delta) == 2 and move.from_sq // 8 == move.to_sq // 8:
        kind = MoveKind.CASTLE_KINGSIDE if delta > 0 else MoveKind.CASTLE_QUEENSIDE
        geo = CASTLES[(color, kind)]
        rook = piece_index(color, PieceType.ROOK)
        if move.from_sq != geo.king_from or not (board.bb[rook] >> geo.rook_from) & 1:
            raise IllegalMove(f"castling {move.to_uci()} without king and rook on home squares")
        return kind, moved
    return MoveKind.NORMAL, moved


def _ep_target_after(board: "Board", move: Move, color: Color) -> Optional[int]:
    """En passant target after a double push, if an enemy pawn can use it."""
    enemy_pawn = board.bb[piece_index(color.opposite, PieceType.PAWN)]
    to_file = move.to_sq % 8
    neighbours = 0
    if to_file > 0:
        neighbours |= 1 << (move.to_sq - 1)
    if to_file < 7:
        neighbours |= 1 << (move.to_sq + 1)
    if enemy_pawn & neighbours:
        return (move.from_sq + move.to_sq) // 2
    return None


def _castling_after(
    rights: CastlingRights, color: Color, moved_type: PieceType, from_sq: int, to_sq: int
) -> CastlingRights:
    if moved_type is PieceType.KING:
        rights = rights.revoke(color, kingside=True, queenside=True)
    for sq in (from_sq, to_sq):
        if sq in ROOK_HOMES:
            owner, kingside = ROOK_HOMES[sq]
            rights = rights.revoke(owner, kingside=kingside, queenside=not kingside)
    return rights


def apply_mut(board: "Board", move: Move) -> UndoRecord:
    """Apply ``move`` to ``board`` in place and return the record that reverses it.

    Raises:
        IllegalMove: If the move is malformed for this board (see module notes).
            The board is unchanged in that case.
    """
    kind, moved = derive_kind(board, move)
    if kind is not move.kind:
        move = replace(move, kind=kind)
    color = board.side_to_move
    from_sq, to_sq = move.from_sq, move.to_sq
    moved_type = INDEX_TO_PIECE[moved].piece_type

    captured: Optional[int]
    capture_sq: Optional[int]
    if kind is MoveKind.EN_PASSANT:
        # Captured pawn sits beside the origin, on the destination file
        capture_sq = (from_sq // 8) * 8 + to_sq % 8
        captured = piece_index(color.opposite, PieceType.PAWN)
    else:
        capture_sq = to_sq
        captured = _piece_on(board, to_sq, OWN_INDICES[color.opposite])
        if captured is None:
            capture_sq = None

    placed = piece_index(color, move.promotion) if move.promotion is not None else moved

    prev_castling = board.castling
    prev_ep = board.ep_square
    prev_hash = board.zobrist_hash
    prev_halfmove = board.halfmove_clock
    prev_fullmove = board.fullmove_number

    bb = board.bb
    h = prev_hash ^ ep_key(prev_ep) ^ castling_key(prev_castling)

    bb[moved] &= ~(1 << from_sq)
    h ^= ZOBRIST.piece_square[moved][from_sq]
    if captured is not None and capture_sq is not None:
        bb[captured] &= ~(1 << capture_sq)
        h ^= ZOBRIST.piece_square[captured][capture_sq]
    bb[placed] |= 1 << to_sq
    h ^= ZOBRIST.piece_square[placed][to_sq]

    if kind in (MoveKind.CASTLE_KINGSIDE, MoveKind.CASTLE_QUEENSIDE):
        geo = CASTLES[(color, kind)]
        rook = piece_index(color, PieceType.ROOK)
        bb[rook] &= ~(1 << geo.rook_from)
        bb[rook] |= 1 << geo.rook_to
        h ^= ZOBRIST.piece_square[rook][geo.rook_from]
        h ^= ZOBRIST.piece_square[rook][geo.rook_to]

    board.ep_square = _ep_target_after(board, move, color) if kind is MoveKind.DOUBLE_PAWN_PUSH else None
    board.castling = _castling_after(prev_castling, color, moved_type, from_sq, to_sq)

    if moved_type is PieceType.PAWN or captured is not None:
        board.halfmove_clock = 0
    else:
        board.halfmove_clock += 1
    if color is Color.BLACK:
        board.fullmove_number += 1
    board.side_to_move = color.opposite

    h ^= ep_key(board.ep_square) ^ castling_key(board.castling) ^ ZOBRIST.side_to_move
    board.zobrist_hash = h & MASK64

    return UndoRecord(
        move=move,
        moved_piece=moved,
        placed_piece=placed,
        captured_piece=captured,
        capture_sq=capture_sq,
        prev_castling=prev_castling,
        prev_ep_square=prev_ep,
        prev_halfmove_clock=prev_halfmove,
        prev_fullmove_number=prev_fullmove,
        prev_hash=prev_hash,
        hash_after=board.zobrist_hash,
    )


def _check_undo(board: "Board", record: UndoRecord) -> None:
    move = record.move
    mover = INDEX_TO_PIECE[record.moved_piece].color
    problems = []
    if board.zobrist_hash != record.hash_after:
        problems.append("position key differs")
    if board.side_to_move is not mover.opposite:
        problems.append("wrong side to move")
    if not (board.bb[record.placed_piece] >> move.to_sq) & 1:
        problems.append("moved piece not on destination")
    if (board.occupancy() >> move.from_sq) & 1:
        problems.append("origin square occupied")
    if record.capture_sq is not None and record.capture_sq != move.to_sq:
        if (board.occupancy() >> record.capture_sq) & 1:
            problems.append("en passant square occupied")
    if move.kind in (MoveKind.CASTLE_KINGSIDE, MoveKind.CASTLE_QUEENSIDE):
        geo = CASTLES[(mover, move.kind)]
        rook = piece_index(mover, PieceType.ROOK)
        if not (board.bb[rook] >> geo.rook_to) & 1 or (board.occupancy() >> geo.rook_from) & 1:
            problems.append("castled rook not in place")
    if problems:
        logger.error("undo of %s rejected: %s", move.to_uci(), ", ".join(problems))
        raise InconsistentUndo(f"undo record for {move.to_uci()} does not match board: {', '.join(problems)}")


def undo(board: "Board", record: UndoRecord) -> "Board":
    """Reverse ``record`` on ``board`` in place and return the board.

    Raises:
        InconsistentUndo: If the board is not in the state ``record`` left it
            in. The board is unchanged in that case.
    """
    _check_undo(board, record)
    move = record.move
    bb = board.bb

    bb[record.placed_piece] &= ~(1 << move.to_sq)
    bb[record.moved_piece] |= 1 << move.from_sq
    if record.captured_piece is not None and record.capture_sq is not None:
        bb[record.captured_piece] |= 1 << record.capture_sq

    mover = INDEX_TO_PIECE[record.moved_piece].color
    if move.kind in (MoveKind.CASTLE_KINGSIDE, MoveKind.CASTLE_QUEENSIDE):
        geo = CASTLES[(mover, move.kind)]
        rook = piece_index(mover, PieceType.ROOK)
        bb[rook] &= ~(1 << geo.rook_to)
        bb[rook] |= 1 << geo.rook_from

    board.side_to_move = mover
    board.castling = record.prev_castling
    board.ep_square = record.prev_ep_square
    board.halfmove_clock = record.prev_halfmove_clock
    board.fullmove_number = record.prev_fullmove_number
    board.zobrist_hash = record.prev_hash
    return board


def apply(board: "Board", move: Move) -> Tuple["Board", UndoRecord]:
    """Return a new Board with ``move`` applied if legal, plus its undo record.

    - Validates the move against generated legal moves.
    - Applies move using in-place mechanics on a cloned board.
    - Keeps the original board unchanged.

    Raises:
        IllegalMove: If ``move`` is not among ``legal_moves(board)``.
    """
    for candidate in legal_moves(board):
        if candidate == move:
            new_board = board.copy()
            return new_board, apply_mut(new_board, candidate)
    logger.debug("rejected illegal move %s in %s", move.to_uci(), board.to_fen())
    raise IllegalMove(f"illegal move: {move.to_uci()}")
