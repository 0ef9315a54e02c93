# solver/grid.py
import logging
import math
from typing import Optional, Sequence

from config import CFG
from models import Grid, GridOverflow, Item

log = logging.getLogger(__name__)


def weight_sum(items: Sequence[Item]) -> int:
    """Sum of doubled weights; doubling keeps every shape an even number of units."""
    return sum(item.doubled for item in items)


def _attempt(width: int, height: int, weight_unit: int, doubled_sum: int, ratio: int) -> Optional[Grid]:
    side = int(math.floor(math.sqrt(weight_unit) / ratio))
    if side < 1:
        log.debug("grid ratio=%d: unit side collapsed to %d", ratio, side)
        return None
    cols = int(width // side)
    if cols < 1:
        log.debug("grid ratio=%d: unit side %d wider than area %s", ratio, side, width)
        return None
    total = doubled_sum * ratio * ratio
    rows = int(math.ceil(total / cols))
    if rows * side > height:
        log.debug("grid ratio=%d: rows*side=%d exceeds height %s", ratio, rows * side, height)
        return None
    return Grid(unit_side=side, columns=cols, rows=rows, total_units=total, scale_ratio=ratio)


def build_grid(items: Sequence[Item], width: float, height: float, *,
               max_scale: Optional[int] = None) -> Grid:
    """Quantize a ``width``×``height`` area into square units sized for ``items``.

    The unit side starts at ``sqrt(area / weight_sum)`` and is divided by an
    increasing scale ratio until the rows fit the area height.  Raises
    :class:`GridOverflow` when ``max_scale`` ratios all fail.
    """
    if max_scale is None:
        max_scale = int(CFG.MAX_SCALE_ATTEMPTS)
    doubled_sum = weight_sum(items)
    if doubled_sum <= 0:
        raise GridOverflow("weight sum must be positive")

    area = width * height
    weight_unit = int(area // doubled_sum)
    log.debug("area=%s weight_sum=%d weight_unit=%d", area, doubled_sum, weight_unit)

    for ratio in range(1, max_scale + 1):
        grid = _attempt(width, height, weight_unit, doubled_sum, ratio)
        if grid is None:
            continue
        log.info(
            "grid found: side=%d cols=%d rows=%d units=%d ratio=%d",
            grid.unit_side, grid.columns, grid.rows, grid.total_units, grid.scale_ratio,
        )
        return grid

    raise GridOverflow(
        f"no unit side fits a {width:g} × {height:g} area after {max_scale} scaling attempts"
    )


__all__ = ["build_grid", "weight_sum"]
