from .applier import UndoRecord, apply, apply_mut, undo
from .attacks import attackers, in_check, is_attacked
from .board import STARTPOS_FEN, Board
from .errors import ChessError, IllegalMove, InconsistentUndo, MalformedPosition
from .game import Game
from .move import Move, MoveKind, parse_uci, square_to_str, str_to_square
from .movegen import has_legal_moves, legal_moves, pseudo_legal_moves
from .perft import divide, perft
from .pieces import CastlingRights, Color, Piece, PieceType
from .status import PositionStatus, classify, is_fifty_move_draw, is_insufficient_material

__all__ = [
    "STARTPOS_FEN",
    "Board",
    "CastlingRights",
    "ChessError",
    "Color",
    "Game",
    "IllegalMove",
    "InconsistentUndo",
    "MalformedPosition",
    "Move",
    "MoveKind",
    "Piece",
    "PieceType",
    "PositionStatus",
    "UndoRecord",
    "apply",
    "apply_mut",
    "attackers",
    "classify",
    "divide",
    "has_legal_moves",
    "in_check",
    "is_attacked",
    "is_fifty_move_draw",
    "is_insufficient_material",
    "legal_moves",
    "parse_uci",
    "perft",
    "pseudo_legal_moves",
    "square_to_str",
    "str_to_square",
    "undo",
]
