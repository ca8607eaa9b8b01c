from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException, Response
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from ... import __version__
from ...config import Settings, get_settings
from ...engine.errors import ChessError
from ...engine.game import Game
from ...engine.perft import divide, perft
from ...engine.board import Board
from ...engine.status import is_fifty_move_draw
from .error import (
    chess_error_handler,
    exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
)
from .logging_middleware import RequestIDLoggingMiddleware
from .session import InMemorySessionStore


logger = logging.getLogger(__name__)


class CreateGameRequest(BaseModel):
    fen: Optional[str] = Field(default=None, description="FEN string; default is the start position")


class CreateGameResponse(BaseModel):
    game_id: str
    fen: str


class SetPositionRequest(BaseModel):
    fen: str = Field(..., description="FEN string")


class MoveRequest(BaseModel):
    move: str = Field(..., description="Coordinate move string, e.g., e2e4 or e7e8q")


class PerftRequest(BaseModel):
    fen: str = Field(..., description="FEN string")
    depth: int = Field(default=1, ge=0)
    divide: bool = False


class PerftResponse(BaseModel):
    fen: str
    depth: int
    nodes: int
    divide: Optional[Dict[str, int]] = None


class LegalMovesResponse(BaseModel):
    game_id: str
    moves: list[str]


class GameState(BaseModel):
    game_id: str
    fen: str
    side_to_move: str
    status: str
    legal_moves: list[str]
    in_check: bool
    fifty_move_rule: bool
    repetition_count: int
    draw: bool
    last_move: Optional[str]
    move_history: list[str]


def _state(game_id: str, game: Game) -> GameState:
    status = game.classify()
    history = game.move_history_uci()
    return GameState(
        game_id=game_id,
        fen=game.to_fen(),
        side_to_move=game.board.side_to_move.value,
        status=status.value,
        legal_moves=game.legal_moves(),
        in_check=status.value in ("check", "checkmate"),
        fifty_move_rule=is_fifty_move_draw(game.board),
        repetition_count=game.repetition_count(),
        draw=game.is_draw(),
        last_move=history[-1] if history else None,
        move_history=history,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Chess Rules Core API", version=__version__)

    logging.basicConfig(level=settings.log_level.upper())

    # Middleware & error handling
    app.add_middleware(RequestIDLoggingMiddleware)
    app.add_exception_handler(ChessError, chess_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    # In-memory session store for games
    store = InMemorySessionStore(king_only_on_double_check=settings.double_check_fast_path)
    app.state.sessions = store

    @app.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/games", response_model=CreateGameResponse)
    async def create_game(req: Optional[CreateGameRequest] = None) -> CreateGameResponse:
        game = store.new_game()
        if req is not None and req.fen:
            game.set_position(req.fen)
        game_id = store.create(game)
        logger.info("created game %s", game_id)
        return CreateGameResponse(game_id=game_id, fen=game.to_fen())

    @app.get("/api/games/{game_id}/state", response_model=GameState)
    async def get_state(game_id: str) -> GameState:
        return _state(game_id, _require_game(store, game_id))

    @app.get("/api/games/{game_id}/moves", response_model=LegalMovesResponse)
    async def get_moves(game_id: str) -> LegalMovesResponse:
        game = _require_game(store, game_id)
        return LegalMovesResponse(game_id=game_id, moves=game.legal_moves())

    @app.post("/api/games/{game_id}/new", response_model=GameState)
    async def new_game(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        game.new_game()
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/position", response_model=GameState)
    async def set_position(game_id: str, req: SetPositionRequest) -> GameState:
        game = _require_game(store, game_id)
        game.set_position(req.fen)
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/move", response_model=GameState)
    async def make_move(game_id: str, req: MoveRequest) -> GameState:
        game = _require_game(store, game_id)
        game.apply_move(req.move)
        return _state(game_id, game)

    @app.post("/api/games/{game_id}/undo", response_model=GameState)
    async def undo(game_id: str) -> GameState:
        game = _require_game(store, game_id)
        game.undo_move()
        return _state(game_id, game)

    @app.delete("/api/games/{game_id}", status_code=204)
    async def delete_game(game_id: str) -> Response:
        if not store.delete(game_id):
            raise HTTPException(status_code=404, detail="game not found")
        return Response(status_code=204)

    @app.post("/api/perft", response_model=PerftResponse)
    async def run_perft(req: PerftRequest) -> PerftResponse:
        if req.depth > settings.perft_max_depth:
            raise HTTPException(
                status_code=400,
                detail=f"depth must be <= {settings.perft_max_depth}",
            )
        board = Board.from_fen(req.fen)
        if req.divide and req.depth >= 1:
            counts = divide(board, req.depth)
            return PerftResponse(fen=req.fen, depth=req.depth, nodes=sum(counts.values()), divide=counts)
        return PerftResponse(fen=req.fen, depth=req.depth, nodes=perft(board, req.depth))

    return app


def _require_game(store: InMemorySessionStore, game_id: str) -> Game:
    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="game not found")
    return game
