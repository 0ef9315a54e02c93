# solver/collision.py
from typing import Iterable, Tuple

from config import CFG
from models import Grid, PlacedTile


def exceeds_bounds(position: Tuple[int, int], w: int, h: int, grid: Grid,
                   tolerance: float = CFG.HEIGHT_TOLERANCE) -> bool:
    x0, y0 = position
    if x0 + w > grid.columns:
        return True
    # Tiles may overflow the nominal height by ``tolerance``, never the width.
    return y0 + h > grid.row_limit(tolerance)


def overlaps_any(position: Tuple[int, int], w: int, h: int, tiles: Iterable[PlacedTile]) -> bool:
    x0, y0 = position
    x1 = x0 + w
    y1 = y0 + h
    for t in tiles:
        if x1 > t.x0 and x0 < t.x1 and y1 > t.y0 and y0 < t.y1:
            return True
    return False


def collide(position: Tuple[int, int], w: int, h: int, tiles: Iterable[PlacedTile], grid: Grid,
            *, tolerance: float = CFG.HEIGHT_TOLERANCE) -> bool:
    """True when a ``w``×``h`` tile anchored at ``position`` leaves the grid or hits a tile."""
    if exceeds_bounds(position, w, h, grid, tolerance):
        return True
    return overlaps_any(position, w, h, tiles)


__all__ = ["collide", "exceeds_bounds", "overlaps_any"]
