from __future__ import annotations

import threading
import uuid
from typing import Dict, Optional

from ...engine.game import Game


class InMemorySessionStore:
    """Thread-safe in-memory game session store.

    The lock guards the mapping only. Each ``Game`` is owned by its session
    and is never shared between sessions.
    """

    def __init__(self, *, king_only_on_double_check: bool = False) -> None:
        self._lock = threading.RLock()
        self._games: Dict[str, Game] = {}
        self._king_only_on_double_check = king_only_on_double_check

    def new_game(self) -> Game:
        return Game.new(king_only_on_double_check=self._king_only_on_double_check)

    def create(self, game: Optional[Game] = None) -> str:
        """Create a new game session and return its ``game_id``."""
        gid = str(uuid.uuid4())
        if game is None:
            game = self.new_game()
        with self._lock:
            self._games[gid] = game
        return gid

    def get(self, game_id: str) -> Optional[Game]:
        with self._lock:
            return self._games.get(game_id)

    def delete(self, game_id: str) -> bool:
        with self._lock:
            return self._games.pop(game_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)
