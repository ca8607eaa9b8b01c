from __future__ import annotations

import pytest

from chesscore.engine.board import STARTPOS_FEN
from chesscore.engine.errors import IllegalMove, MalformedPosition
from chesscore.engine.game import Game
from chesscore.engine.status import PositionStatus


def test_new_game_state() -> None:
    g = Game.new()
    assert g.to_fen() == STARTPOS_FEN
    assert len(g.legal_moves()) == 20
    assert g.classify() is PositionStatus.NORMAL
    assert g.repetition_count() == 1
    assert not g.is_draw()


def test_apply_move_and_undo() -> None:
    g = Game.new()
    mv = g.apply_move("e2e4")
    assert mv.to_uci() == "e2e4"
    assert g.to_fen() == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
    assert g.move_history_uci() == ["e2e4"]

    undone = g.undo_move()
    assert undone.to_uci() == "e2e4"
    assert g.to_fen() == STARTPOS_FEN
    assert g.move_history_uci() == []


@pytest.mark.parametrize("text", ["e2e5", "e7e5", "e2", "e2e4x", "z9e4", "e2e2", ""])
def test_illegal_or_garbled_move_leaves_game_unchanged(text: str) -> None:
    g = Game.new()
    with pytest.raises(IllegalMove):
        g.apply_move(text)
    assert g.to_fen() == STARTPOS_FEN
    assert g.move_history_uci() == []


def test_promotion_requires_piece_letter() -> None:
    g = Game.from_fen("k7/4P3/8/8/8/8/8/4K3 w - - 0 1")
    with pytest.raises(IllegalMove):
        g.apply_move("e7e8")
    g.apply_move("e7e8N")
    assert g.to_fen() == "k3N3/8/8/8/8/8/8/4K3 b - - 0 1"


def test_undo_without_moves_raises() -> None:
    g = Game.new()
    with pytest.raises(IllegalMove, match="no moves"):
        g.undo_move()


def test_set_position_and_malformed_position_keeps_game() -> None:
    g = Game.new()
    g.apply_move("e2e4")
    with pytest.raises(MalformedPosition):
        g.set_position("8/8/8/8/8/8/8/8 w - - 0 1")
    assert g.move_history_uci() == ["e2e4"]

    fen = "7k/6Q1/6K1/8/8/8/8/8 b - - 0 1"
    g.set_position(fen)
    assert g.to_fen() == fen
    assert g.move_history_uci() == []
    assert g.classify() is PositionStatus.CHECKMATE
    assert g.legal_moves() == []


def test_new_game_resets() -> None:
    g = Game.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
    g.apply_move("a1a7")
    g.new_game()
    assert g.to_fen() == STARTPOS_FEN
    assert g.move_history_uci() == []


def test_threefold_repetition_by_knight_shuffle() -> None:
    g = Game.new()
    shuffle = ["g1f3", "g8f6", "f3g1", "f6g8"]
    for uci in shuffle:
        g.apply_move(uci)
    assert g.repetition_count() == 2
    assert not g.is_threefold_repetition()

    for uci in shuffle:
        g.apply_move(uci)
    assert g.repetition_count() == 3
    assert g.is_threefold_repetition()
    assert g.is_draw()
    # Same placement, but the counters moved on
    assert g.to_fen() == "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 8 5"

    g.undo_move()
    assert not g.is_threefold_repetition()


def test_draw_by_stalemate_and_material() -> None:
    assert Game.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1").is_draw()
    assert Game.from_fen("k7/8/8/8/8/8/8/6NK w - - 0 1").is_draw()
    assert Game.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 100 80").is_draw()
    assert not Game.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 99 80").is_draw()


def test_double_check_flag_is_carried() -> None:
    g = Game.from_fen("4r1k1/8/8/8/8/3n4/8/4K3 w - - 0 1", king_only_on_double_check=True)
    plain = Game.from_fen("4r1k1/8/8/8/8/3n4/8/4K3 w - - 0 1")
    assert sorted(g.legal_moves()) == sorted(plain.legal_moves())


def test_en_passant_from_played_moves_removes_pawn_behind_destination() -> None:
    g = Game.new()
    for uci in ("e2e4", "a7a6", "e4e5", "d7d5"):
        g.apply_move(uci)
    # The double push landed beside the e5 pawn, so d6 is the target
    assert g.to_fen().split()[3] == "d6"
    assert "e5d6" in g.legal_moves()

    g.apply_move("e5d6")
    fen = g.to_fen()
    assert fen.split()[0] == "rnbqkbnr/1pp1pppp/p2P4/8/8/8/PPPP1PPP/RNBQKBNR"
    assert g.board.piece_at(35) is None  # d5
    assert fen.split()[4] == "0"
