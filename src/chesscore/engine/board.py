from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .applier import UndoRecord, apply_mut, undo
from .attacks import is_attacked
from .errors import MalformedPosition
from .move import Move, square_to_str, str_to_square
from .pieces import (
    BK,
    BP,
    CHAR_TO_PIECE,
    INDEX_TO_PIECE,
    OWN_INDICES,
    PIECE_ORDER,
    PIECE_TO_CHAR,
    WK,
    WP,
    CastlingRights,
    Color,
    Piece,
    PieceType,
    piece_index,
)
from .zobrist import compute_hash_from_scratch


logger = logging.getLogger(__name__)

STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

BACK_RANKS = 0x00000000000000FF | 0xFF00000000000000


def _set_bit(bb: int, sq: int) -> int:
    return bb | (1 << sq)


def _get_bit(bb: int, sq: int) -> bool:
    return (bb >> sq) & 1 == 1


@dataclass(eq=False)
class Board:
    """Board state with bitboards and FEN I/O.

    Notes:
    - Squares are 0..63 (a1=0 .. h8=63), rank-major from white's perspective.
    - Fields are read by the generators; only the applier (``make_move`` /
      ``unmake_move`` and ``chesscore.engine.applier``) writes them.
    - Equality compares the full position state (placement, side to move,
      castling rights, en passant target and both counters) and ignores the
      undo history.
    """

    # 12 piece bitboards, indexed by the constants in ``pieces``
    bb: List[int]
    side_to_move: Color
    castling: CastlingRights
    ep_square: Optional[int]
    halfmove_clock: int
    fullmove_number: int
    # undo records pushed by make_move, popped by unmake_move
    _history: List[UndoRecord] = field(default_factory=list, repr=False)
    # incremental zobrist hash of current position
    zobrist_hash: int = 0

    @classmethod
    def startpos(cls) -> "Board":
        """Create a board initialized to the standard chess starting position."""
        return cls.from_fen(STARTPOS_FEN)

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        """Create a board from a Forsyth–Edwards Notation (FEN) string.

        Args:
            fen (str): FEN string describing the position to load.

        Returns:
            Board: Board instance initialized with state encoded in ``fen``.

        Raises:
            MalformedPosition: If ``fen`` is empty, has the wrong number of
                fields, contains invalid piece placement, castling rights, en
                passant square or move counters, or describes a position that
                cannot arise in play (king count, pawns on the back ranks, side
                not to move in check).
        """
        if not fen or not isinstance(fen, str):
            raise MalformedPosition("FEN must be a non-empty string")
        parts = fen.strip().split()
        if len(parts) != 6:
            raise MalformedPosition("FEN must have 6 fields")
        placement, stm, castling_field, ep, halfmove, fullmove = parts

        # Parse piece placement
        ranks = placement.split("/")
        if len(ranks) != 8:
            raise MalformedPosition("FEN board must have 8 ranks")
        bb = [0] * 12
        for rank_idx, rank in enumerate(ranks[::-1]):  # start from rank 1 (bottom)
            file_idx = 0
            prev_digit = False
            for ch in rank:
                if ch in "0123456789":
                    n = int(ch)
                    if n < 1 or n > 8 or prev_digit:
                        raise MalformedPosition("invalid empty count in FEN rank")
                    file_idx += n
                    prev_digit = True
                else:
                    if ch not in CHAR_TO_PIECE:
                        raise MalformedPosition(f"invalid piece in FEN: {ch!r}")
                    if file_idx >= 8:
                        raise MalformedPosition("too many squares in FEN rank")
                    p = CHAR_TO_PIECE[ch]
                    bb[p] = _set_bit(bb[p], rank_idx * 8 + file_idx)
                    file_idx += 1
                    prev_digit = False
            if file_idx != 8:
                raise MalformedPosition("rank does not sum to 8 squares in FEN")

        if stm not in ("w", "b"):
            raise MalformedPosition("side to move must be 'w' or 'b'")
        side_to_move = Color(stm)

        try:
            castling = CastlingRights.from_fen(castling_field)
        except ValueError as e:
            raise MalformedPosition(str(e)) from e

        ep_square: Optional[int]
        if ep == "-":
            ep_square = None
        else:
            try:
                ep_square = str_to_square(ep)
            except ValueError as e:
                raise MalformedPosition("invalid en passant square") from e
            # White to move captures onto rank 6, black onto rank 3
            expected_rank = 5 if side_to_move is Color.WHITE else 2
            if ep_square // 8 != expected_rank:
                raise MalformedPosition("invalid en passant square rank")

        if not all(c.isascii() and c.isdigit() for c in (halfmove, fullmove)):
            raise MalformedPosition("invalid move counters in FEN")
        halfmove_clock = int(halfmove)
        fullmove_number = int(fullmove)
        if fullmove_number <= 0:
            raise MalformedPosition("invalid move counters in FEN")

        board = cls(
            bb=bb,
            side_to_move=side_to_move,
            castling=castling,
            ep_square=ep_square,
            halfmove_clock=halfmove_clock,
            fullmove_number=fullmove_number,
        )
        board._validate_material()
        board._validate_ep_square()
        if is_attacked(board, board.king_square(side_to_move.opposite), side_to_move):
            raise MalformedPosition("side not to move is in check")
        # Initialize zobrist hash deterministically
        board.zobrist_hash = compute_hash_from_scratch(board)
        logger.debug("loaded position %s", fen)
        return board

    def _validate_material(self) -> None:
        for king, name in ((WK, "white"), (BK, "black")):
            count = self.bb[king].bit_count()
            if count != 1:
                raise MalformedPosition(f"expected exactly one {name} king, found {count}")
        if (self.bb[WP] | self.bb[BP]) & BACK_RANKS:
            raise MalformedPosition("pawns may not stand on the first or last rank")
        for color in Color:
            pawns = self.bb[piece_index(color, PieceType.PAWN)].bit_count()
            total = sum(self.bb[p].bit_count() for p in OWN_INDICES[color])
            if pawns > 8 or total > 16:
                raise MalformedPosition(f"too many {color.name.lower()} pieces")

            # A castling right needs the king and that rook on their home squares
            base = 0 if color is Color.WHITE else 56
            king = self.bb[piece_index(color, PieceType.KING)]
            rooks = self.bb[piece_index(color, PieceType.ROOK)]
            for held, rook_sq in (
                (self.castling.kingside(color), base + 7),
                (self.castling.queenside(color), base),
            ):
                if held and not (_get_bit(king, base + 4) and _get_bit(rooks, rook_sq)):
                    raise MalformedPosition(
                        f"castling right without king and rook on {square_to_str(rook_sq)}"
                    )

    def _validate_ep_square(self) -> None:
        if self.ep_square is None:
            return
        # The pawn that double-pushed stands one rank past the target
        step = -8 if self.side_to_move is Color.WHITE else 8
        pushed_sq = self.ep_square + step
        origin_sq = self.ep_square - step
        occ = self.occupancy()
        enemy_pawns = self.bb[piece_index(self.side_to_move.opposite, PieceType.PAWN)]
        if _get_bit(occ, self.ep_square) or _get_bit(occ, origin_sq):
            raise MalformedPosition("en passant square or the square behind it is occupied")
        if not _get_bit(enemy_pawns, pushed_sq):
            raise MalformedPosition("no pawn stands on the square past the en passant target")

    def to_fen(self) -> str:
        """Serialize the current position into a normalized FEN string."""
        ranks_str: List[str] = []
        for rank_idx in range(7, -1, -1):  # 7..0 maps to ranks 8..1
            run = 0
            row = []
            for file_idx in range(8):
                ch = self._piece_char_at(rank_idx * 8 + file_idx)
                if ch is None:
                    run += 1
                else:
                    if run > 0:
                        row.append(str(run))
                        run = 0
                    row.append(ch)
            if run > 0:
                row.append(str(run))
            ranks_str.append("".join(row))
        placement = "/".join(ranks_str)

        ep = square_to_str(self.ep_square) if self.ep_square is not None else "-"
        return (
            f"{placement} {self.side_to_move.value} {self.castling.to_fen()} {ep} "
            f"{self.halfmove_clock} {self.fullmove_number}"
        )

    def _piece_char_at(self, sq: int) -> Optional[str]:
        idx = self.piece_index_at(sq)
        return PIECE_TO_CHAR[idx] if idx is not None else None

    # --- Read-only queries ---
    def piece_index_at(self, sq: int) -> Optional[int]:
        """Return the bitboard index of the piece on ``sq``, or ``None`` if empty."""
        for idx in PIECE_ORDER:
            if _get_bit(self.bb[idx], sq):
                return idx
        return None

    def piece_at(self, sq: int) -> Optional[Piece]:
        """Return the contents of ``sq``: a :class:`Piece`, or ``None`` when empty.

        Raises:
            ValueError: If ``sq`` is off the board.
        """
        if sq < 0 or sq > 63:
            raise ValueError(f"invalid square index: {sq}")
        idx = self.piece_index_at(sq)
        return INDEX_TO_PIECE[idx] if idx is not None else None

    def occupancy(self, color: Optional[Color] = None) -> int:
        """Bitboard of occupied squares, for one colour or both."""
        indices = range(12) if color is None else OWN_INDICES[color]
        occ = 0
        for p in indices:
            occ |= self.bb[p]
        return occ

    def king_square(self, color: Color) -> int:
        king_bb = self.bb[WK if color is Color.WHITE else BK]
        if king_bb == 0:
            raise ValueError(f"no {color.name.lower()} king on board")
        return (king_bb & -king_bb).bit_length() - 1

    # --- Mutation through the applier ---
    def make_move(self, move: Move) -> UndoRecord:
        """Apply ``move`` in place and push its undo record onto the history."""
        record = apply_mut(self, move)
        self._history.append(record)
        return record

    def unmake_move(self) -> None:
        """Undo the most recent :meth:`make_move`."""
        if not self._history:
            raise ValueError("no move to unmake")
        undo(self, self._history[-1])
        self._history.pop()

    def copy(self) -> "Board":
        """Clone the position state; the history is not copied."""
        return Board(
            bb=list(self.bb),
            side_to_move=self.side_to_move,
            castling=self.castling,
            ep_square=self.ep_square,
            halfmove_clock=self.halfmove_clock,
            fullmove_number=self.fullmove_number,
            zobrist_hash=self.zobrist_hash,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return (
            self.bb == other.bb
            and self.side_to_move is other.side_to_move
            and self.castling == other.castling
            and self.ep_square == other.ep_square
            and self.halfmove_clock == other.halfmove_clock
            and self.fullmove_number == other.fullmove_number
        )

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        rows: List[str] = []
        for rank in range(7, -1, -1):
            row = [self._piece_char_at(rank * 8 + f) or "." for f in range(8)]
            rows.append(f"{rank + 1} {' '.join(row)}")
        rows.append("  a b c d e f g h")
        return "\n".join(rows)
