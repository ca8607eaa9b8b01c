"""HTTP adapter over the rules core."""
