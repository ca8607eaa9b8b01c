from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .board import Board
from .errors import IllegalMove
from .move import Move, parse_uci
from .movegen import legal_moves
from .status import PositionStatus, classify, is_fifty_move_draw, is_insufficient_material


logger = logging.getLogger(__name__)


@dataclass
class Game:
    """Game wrapper around a board; the command-interface facade of the core.

    Responsibility: own one board, accept positions and moves as text, expose
    legal moves and the position status, and keep the position history that
    repetition detection needs. Performs no I/O.
    """

    board: Board
    move_stack: List[Move] = field(default_factory=list)
    repetition: Dict[int, int] = field(default_factory=dict)
    king_only_on_double_check: bool = False

    @classmethod
    def new(cls, **kwargs) -> "Game":
        return cls(board=Board.startpos(), **kwargs)

    @classmethod
    def from_fen(cls, fen: str, **kwargs) -> "Game":
        return cls(board=Board.from_fen(fen), **kwargs)

    def __post_init__(self) -> None:
        self._reset_history()

    def _reset_history(self) -> None:
        self.move_stack = []
        self.repetition = {self.board.zobrist_hash: 1}

    # --- Command interface ---
    def new_game(self) -> None:
        """Reset to the standard starting position."""
        self.board = Board.startpos()
        self._reset_history()

    def set_position(self, fen: str) -> None:
        """Load ``fen``; on ``MalformedPosition`` the current game is kept."""
        self.board = Board.from_fen(fen)
        self._reset_history()

    def apply_move(self, move_text: str) -> Move:
        """Apply a move given in coordinate notation and return it.

        Raises:
            IllegalMove: If the text is not a legal move here; nothing changes.
        """
        return self.push(parse_uci(move_text))

    def push(self, move: Move) -> Move:
        # Validate legality against the generated moves, which carry their kind
        legal = self.legal_move_objects()
        matched = next((m for m in legal if m == move), None)
        if matched is None:
            logger.debug("rejected illegal move %s in %s", move.to_uci(), self.to_fen())
            raise IllegalMove(f"illegal move: {move.to_uci()}")
        self.board.make_move(matched)
        self.move_stack.append(matched)
        h = self.board.zobrist_hash
        self.repetition[h] = self.repetition.get(h, 0) + 1
        return matched

    def legal_moves(self) -> List[str]:
        return [m.to_uci() for m in self.legal_move_objects()]

    def legal_move_objects(self) -> List[Move]:
        return legal_moves(self.board, king_only_on_double_check=self.king_only_on_double_check)

    def classify(self) -> PositionStatus:
        return classify(self.board)

    def undo_move(self) -> Move:
        if not self.move_stack:
            raise IllegalMove("no moves to undo")
        # Decrement count for current position
        curr = self.board.zobrist_hash
        if curr in self.repetition:
            self.repetition[curr] -= 1
            if self.repetition[curr] <= 0:
                del self.repetition[curr]
        self.board.unmake_move()
        return self.move_stack.pop()

    def to_fen(self) -> str:
        return self.board.to_fen()

    # --- Draw inputs ---
    def repetition_count(self) -> int:
        return self.repetition.get(self.board.zobrist_hash, 0)

    def is_threefold_repetition(self) -> bool:
        return self.repetition_count() >= 3

    def is_draw(self) -> bool:
        """Stalemate, fifty-move rule, threefold repetition or dead material."""
        return (
            self.classify() is PositionStatus.STALEMATE
            or is_fifty_move_draw(self.board)
            or self.is_threefold_repetition()
            or is_insufficient_material(self.board)
        )

    def move_history_uci(self) -> List[str]:
        return [m.to_uci() for m in self.move_stack]
