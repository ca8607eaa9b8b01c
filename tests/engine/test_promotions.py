from __future__ import annotations

from chesscore.engine.board import Board
from chesscore.engine.move import parse_uci
from chesscore.engine.movegen import legal_moves
from chesscore.engine.pieces import BN, BP, WP, WQ, WR


def _uci_set(moves):
    return set(m.to_uci() for m in moves)


def test_white_pawn_push_promotions() -> None:
    # White pawn on e7 can promote to e8 (ensure e8 is empty)
    fen = "k7/4P3/8/8/8/8/8/4K3 w - - 0 1"
    b = Board.from_fen(fen)
    ms = _uci_set(legal_moves(b))
    assert ms >= {"e7e8q", "e7e8r", "e7e8b", "e7e8n"}
    # A pawn on the seventh never moves without promoting
    assert "e7e8" not in ms


def test_white_pawn_capture_promotion() -> None:
    # White pawn on e7 capturing d8 promotes
    fen = "3rk3/4P3/8/8/8/8/8/4K3 w - - 0 1"
    b = Board.from_fen(fen)
    ms = _uci_set(legal_moves(b))
    assert ms >= {"e7d8q", "e7d8r", "e7d8b", "e7d8n"}


def test_black_pawn_push_promotions() -> None:
    # Black pawn on d2 can promote to d1
    fen = "4k3/8/8/8/8/8/3p4/6K1 b - - 0 1"
    b = Board.from_fen(fen)
    ms = _uci_set(legal_moves(b))
    assert ms >= {"d2d1q", "d2d1r", "d2d1b", "d2d1n"}


def test_promotion_places_chosen_piece_and_undo_restores_pawn() -> None:
    fen = "k7/4P3/8/8/8/8/8/4K3 w - - 0 1"
    b = Board.from_fen(fen)
    b.make_move(parse_uci("e7e8q"))
    assert b.to_fen() == "k3Q3/8/8/8/8/8/8/4K3 b - - 0 1"
    assert b.bb[WQ] and not b.bb[WP]
    b.unmake_move()
    assert b.to_fen() == fen

    b.make_move(parse_uci("e7e8r"))
    assert b.bb[WR] and not b.bb[WQ]


def test_underpromotion_with_capture() -> None:
    b = Board.from_fen("4k3/8/8/8/8/8/3p4/2R3K1 b - - 0 1")
    b.make_move(parse_uci("d2c1n"))
    assert b.to_fen() == "4k3/8/8/8/8/8/8/2n3K1 w - - 0 2"
    assert b.bb[BN] and not b.bb[BP]


def test_undo_record_tracks_pawn_and_promoted_piece() -> None:
    b = Board.from_fen("k7/4P3/8/8/8/8/8/4K3 w - - 0 1")
    record = b.make_move(parse_uci("e7e8q"))
    assert record.moved_piece == WP
    assert record.placed_piece == WQ
