from __future__ import annotations

import pytest

from chesscore.engine.applier import apply, apply_mut, undo
from chesscore.engine.board import Board, STARTPOS_FEN
from chesscore.engine.errors import IllegalMove, InconsistentUndo
from chesscore.engine.move import Move, str_to_square
from chesscore.engine.movegen import legal_moves
from chesscore.engine.zobrist import compute_hash_from_scratch


POSITIONS = [
    STARTPOS_FEN,
    "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1",
    "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1",
    "r3k2r/Pppp1ppp/1b3nbN/nP6/BBP1P3/q4N2/Pp1P2PP/R2Q1RK1 w kq - 0 1",
    "4k3/8/8/3Pp3/8/8/8/4K3 w - e6 0 1",
]


def test_make_unmake_restores_position() -> None:
    b = Board.from_fen(STARTPOS_FEN)
    h_before = compute_hash_from_scratch(b)
    # e2e4
    mv = Move(str_to_square("e2"), str_to_square("e4"))
    # Ensure move is in generated moves
    gen = {m.to_uci() for m in legal_moves(b)}
    assert mv.to_uci() in gen
    b.make_move(mv)
    b.unmake_move()
    assert b.to_fen() == STARTPOS_FEN
    assert compute_hash_from_scratch(b) == h_before


@pytest.mark.parametrize("fen", POSITIONS)
def test_every_legal_move_is_reversible(fen: str) -> None:
    b = Board.from_fen(fen)
    for mv in legal_moves(b):
        before = b.copy()
        record = apply_mut(b, mv)
        assert b != before
        undo(b, record)
        assert b == before
        assert b.zobrist_hash == before.zobrist_hash
        assert b.to_fen() == fen


def test_apply_returns_new_board_and_does_not_mutate() -> None:
    b = Board.from_fen(STARTPOS_FEN)
    mv = Move(str_to_square("e2"), str_to_square("e4"))

    b2, record = apply(b, mv)

    # Original board unchanged
    assert b.to_fen() == STARTPOS_FEN
    # No black pawn can take en passant, so no target is recorded
    assert b2.to_fen() == "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
    assert record.moved_piece == record.placed_piece
    assert record.captured_piece is None

    undo(b2, record)
    assert b2 == b


def test_apply_rejects_illegal_move() -> None:
    b = Board.from_fen(STARTPOS_FEN)
    # e2e5 is illegal from the start position
    bad = Move(str_to_square("e2"), str_to_square("e5"))
    with pytest.raises(IllegalMove):
        apply(b, bad)
    assert b.to_fen() == STARTPOS_FEN


def test_apply_mut_rejects_move_from_empty_square() -> None:
    b = Board.startpos()
    with pytest.raises(IllegalMove):
        apply_mut(b, Move(str_to_square("e4"), str_to_square("e5")))
    assert b == Board.startpos()


def test_apply_mut_rejects_capture_of_own_piece() -> None:
    b = Board.startpos()
    with pytest.raises(IllegalMove):
        apply_mut(b, Move(str_to_square("a1"), str_to_square("a2")))
    assert b == Board.startpos()


def test_apply_mut_rejects_missing_promotion_piece() -> None:
    b = Board.from_fen("k7/4P3/8/8/8/8/8/4K3 w - - 0 1")
    before = b.copy()
    with pytest.raises(IllegalMove):
        apply_mut(b, Move(str_to_square("e7"), str_to_square("e8")))
    assert b == before


def test_undo_rejects_record_from_other_board() -> None:
    b = Board.startpos()
    record = apply_mut(b, Move(str_to_square("e2"), str_to_square("e4")))

    other = Board.startpos()
    with pytest.raises(InconsistentUndo):
        undo(other, record)
    assert other == Board.startpos()


def test_undo_rejects_stale_record() -> None:
    b = Board.startpos()
    first = apply_mut(b, Move(str_to_square("g1"), str_to_square("f3")))
    apply_mut(b, Move(str_to_square("g8"), str_to_square("f6")))
    snapshot = b.copy()

    with pytest.raises(InconsistentUndo):
        undo(b, first)
    assert b == snapshot


def test_unmake_without_history_raises() -> None:
    b = Board.startpos()
    with pytest.raises(ValueError):
        b.unmake_move()
