"""Mapping from the model's normalized 1000x1000 grid to device pixels."""
from __future__ import annotations

NORMALIZED_GRID = 1000
NORMALIZED_MAX = NORMALIZED_GRID - 1


def denormalize(n: int, dimension: int) -> int:
    """Map a normalized coordinate in [0, 999] onto [0, dimension).

    Values outside the grid are clamped first, so malformed model output can
    never yield a negative or out-of-screen pixel.
    """
    if dimension <= 0:
        raise ValueError(f"dimension must be positive, got {dimension}")
    n = max(0, min(NORMALIZED_MAX, int(n)))
    return (n * dimension) // NORMALIZED_GRID


def denormalize_point(x: int, y: int, screen_size: tuple[int, int]) -> tuple[int, int]:
    width, height = screen_size
    return denormalize(x, width), denormalize(y, height)
