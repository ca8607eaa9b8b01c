"""Service configuration.

Settings are read from ``CHESSCORE_*`` environment variables or an optional
``.env.chesscore`` file. The engine itself takes no configuration; these
values are consumed by the HTTP adapter and the command-line entry point.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHESSCORE_",
        env_file=".env.chesscore",
        env_file_encoding="utf-8",
    )

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = "INFO"

    # Upper bound for the perft endpoint; perft grows exponentially with depth
    perft_max_depth: int = Field(default=4, ge=0)

    # Passed to move generation for every game session
    double_check_fast_path: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
