from __future__ import annotations

from chesscore.engine.attacks import attackers, in_check, is_attacked
from chesscore.engine.board import Board
from chesscore.engine.move import str_to_square as sq
from chesscore.engine.movegen import legal_moves
from chesscore.engine.pieces import Color


def test_pawn_attacks_are_directional() -> None:
    b = Board.from_fen("4k3/8/8/8/4P3/8/8/4K3 w - - 0 1")
    assert is_attacked(b, sq("d5"), Color.WHITE)
    assert is_attacked(b, sq("f5"), Color.WHITE)
    assert not is_attacked(b, sq("e5"), Color.WHITE)
    assert not is_attacked(b, sq("d3"), Color.WHITE)


def test_knight_and_king_attacks() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/8/1N2K3 w - - 0 1")
    assert is_attacked(b, sq("c3"), Color.WHITE)
    assert is_attacked(b, sq("d2"), Color.WHITE)
    assert is_attacked(b, sq("f2"), Color.WHITE)
    assert not is_attacked(b, sq("b3"), Color.WHITE)
    assert is_attacked(b, sq("d7"), Color.BLACK)


def test_slider_attacks_stop_at_blockers() -> None:
    b = Board.from_fen("4k3/8/8/8/8/2p5/8/R3K3 b - - 0 1")
    assert is_attacked(b, sq("a8"), Color.WHITE)
    assert is_attacked(b, sq("d1"), Color.WHITE)
    assert not is_attacked(b, sq("g1"), Color.WHITE)


def test_king_is_not_transparent_for_attacks() -> None:
    # The rook on a1 checks g1; h1 lies behind the king
    b = Board.from_fen("4k3/8/8/8/8/8/8/r5K1 w - - 0 1")
    assert in_check(b)
    assert not is_attacked(b, sq("h1"), Color.BLACK)
    # The legal filter still sees h1 as covered once the king has moved
    moves = {m.to_uci() for m in legal_moves(b)}
    assert "g1h1" not in moves
    assert "g1f1" not in moves
    assert moves == {"g1f2", "g1g2", "g1h2"}


def test_attackers_lists_every_checker() -> None:
    # Knight on d3 and rook on e8 both hit e1
    b = Board.from_fen("4r1k1/8/8/8/8/3n4/8/4K3 w - - 0 1")
    assert attackers(b, sq("e1"), Color.BLACK) == [sq("d3"), sq("e8")]
    assert attackers(b, sq("a4"), Color.BLACK) == []


def test_in_check_defaults_to_side_to_move() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/8/r3K3 w - - 0 1")
    assert in_check(b)
    assert in_check(b, Color.WHITE)
    assert not in_check(b, Color.BLACK)


def test_back_rank_mate_with_shielded_square() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/5PPP/r5K1 w - - 0 1")
    assert legal_moves(b) == []
    assert in_check(b)
    # h1 only becomes attacked once the king leaves g1
    assert not is_attacked(b, sq("h1"), Color.BLACK)
