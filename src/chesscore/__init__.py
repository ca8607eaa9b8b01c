"""Chess rules core: board, move generation, attack detection and position status."""

__version__ = "0.1.0"
