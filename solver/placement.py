# solver/placement.py
"""Placement engine: anchors, shape searches and the per-item retry loop.

Every configuration owns one :class:`PlacementContext`; nothing here keeps
state between configurations.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from config import CFG
from models import Grid, Item, PlacedTile, PlacementOverflow, ValidationError
from solver.collision import collide
from solver.factors import FactorCache

log = logging.getLogger(__name__)

Position = Tuple[int, int]


class ShapeSearch(str, Enum):
    UP = "Up"
    DOWN = "Down"
    UP_POSITION = "UpPosition"
    DOWN_POSITION = "DownPosition"

    @property
    def scans_positions(self) -> bool:
        return self in (ShapeSearch.UP_POSITION, ShapeSearch.DOWN_POSITION)

    @classmethod
    def parse(cls, name) -> "ShapeSearch":
        if isinstance(name, cls):
            return name
        text = str(name or "").strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        raise ValidationError(
            f"unknown shape search {name!r} (expected one of {', '.join(m.value for m in cls)})"
        )


def parse_criteria_pair(pair: Sequence) -> Tuple[ShapeSearch, ShapeSearch]:
    if isinstance(pair, str) or len(pair) != 2:
        raise ValidationError(f"criteria must name exactly two shape searches, got {pair!r}")
    return ShapeSearch.parse(pair[0]), ShapeSearch.parse(pair[1])


@dataclass(frozen=True)
class Candidate:
    w: int
    h: int
    position: Position


@dataclass
class PlacementContext:
    grid: Grid
    configuration_id: int
    criteria: Tuple[ShapeSearch, ShapeSearch]
    max_ratio: float = CFG.MAX_RATIO
    max_attempts: int = CFG.MAX_ATTEMPTS
    tolerance: float = CFG.HEIGHT_TOLERANCE
    factor_cache: FactorCache = field(default_factory=FactorCache)
    filled: Set[Position] = field(default_factory=set)
    tiles: List[PlacedTile] = field(default_factory=list)
    overflows: List[PlacementOverflow] = field(default_factory=list)
    position: Position = (0, 0)

    @property
    def advances(self) -> bool:
        # Only plain Up/Down pairs walk the anchor; position scans are exhaustive already.
        return not any(s.scans_positions for s in self.criteria)

    @property
    def row_bound(self) -> int:
        return int(math.ceil(self.grid.row_limit(self.tolerance)))

    def collides(self, w: int, h: int, position: Optional[Position] = None) -> bool:
        return collide(
            self.position if position is None else position,
            w, h, self.tiles, self.grid, tolerance=self.tolerance,
        )

    def seek_position(self) -> Position:
        """First free cell, scanning rows top-down and columns left-right."""
        for y in range(self.row_bound):
            for x in range(self.grid.columns):
                if (x, y) not in self.filled:
                    return (x, y)
        return (0, self.row_bound)

    def next_position(self, position: Position) -> Position:
        x, y = position
        if x + 1 >= self.grid.columns:
            return (0, y + 1)
        return (x + 1, y)

    def positions_from(self, start: Position) -> Iterator[Position]:
        x, y = start
        while y < self.row_bound:
            yield (x, y)
            x, y = self.next_position((x, y))

    def commit(self, item: Item, w: int, h: int, position: Position) -> PlacedTile:
        x0, y0 = position
        tile = PlacedTile(item, x0, y0, x0 + w, y0 + h)
        self.tiles.append(tile)
        for x in range(tile.x0, tile.x1):
            for y in range(tile.y0, tile.y1):
                self.filled.add((x, y))
        return tile

    def empty_units(self) -> int:
        return sum(
            1
            for x in range(self.grid.columns)
            for y in range(self.grid.rows)
            if (x, y) not in self.filled
        )


# ---------- shape searches ----------

def _up_widths(fs: Sequence[int]) -> range:
    return range(len(fs) // 2, len(fs) - 1)


def _down_widths(fs: Sequence[int]) -> range:
    return range(len(fs) // 2 - 1, -1, -1)


def search_up(fs: Sequence[int], units: int, ctx: PlacementContext) -> Optional[Candidate]:
    """Widen from the middle factor, anchored at the current position."""
    for idx in _up_widths(fs):
        w = fs[idx]
        h = units // w
        if not ctx.collides(w, h):
            return Candidate(w, h, ctx.position)
    return None


def search_down(fs: Sequence[int], units: int, ctx: PlacementContext) -> Optional[Candidate]:
    """Narrow from below the middle factor until tiles get too tall."""
    for idx in _down_widths(fs):
        w = fs[idx]
        h = units // w
        if h / w > ctx.max_ratio:
            break
        if not ctx.collides(w, h):
            return Candidate(w, h, ctx.position)
    return None


def search_up_position(fs: Sequence[int], units: int, ctx: PlacementContext) -> Optional[Candidate]:
    for idx in _up_widths(fs):
        w = fs[idx]
        h = units // w
        for pos in ctx.positions_from(ctx.position):
            if not ctx.collides(w, h, pos):
                return Candidate(w, h, pos)
    return None


def search_down_position(fs: Sequence[int], units: int, ctx: PlacementContext) -> Optional[Candidate]:
    for idx in _down_widths(fs):
        w = fs[idx]
        h = units // w
        if h / w > ctx.max_ratio:
            break
        for pos in ctx.positions_from(ctx.position):
            if not ctx.collides(w, h, pos):
                return Candidate(w, h, pos)
    return None


SearchFn = Callable[[Sequence[int], int, PlacementContext], Optional[Candidate]]

STRATEGIES: Dict[ShapeSearch, SearchFn] = {
    ShapeSearch.UP: search_up,
    ShapeSearch.DOWN: search_down,
    ShapeSearch.UP_POSITION: search_up_position,
    ShapeSearch.DOWN_POSITION: search_down_position,
}


# ---------- per-item placement ----------

def initial_shape(fs: Sequence[int], units: int, index: int) -> Tuple[int, int]:
    # Alternate between the middle factor and its neighbour for shape variety.
    idx = min(len(fs) // 2 + (index % 2), len(fs) - 1)
    w = fs[idx]
    return w, units // w


def place_item(ctx: PlacementContext, item: Item, index: int) -> PlacedTile:
    units = ctx.grid.units_for(item)
    fs = ctx.factor_cache.get(units)
    ctx.position = ctx.seek_position()
    w, h = initial_shape(fs, units, index)

    found: Optional[Candidate] = None
    if not ctx.collides(w, h):
        found = Candidate(w, h, ctx.position)
        log.debug("item %r placed at first attempt (%d×%d at %s)", item.id, w, h, ctx.position)

    attempts = 1
    while found is None and attempts < ctx.max_attempts:
        for strategy in ctx.criteria:
            found = STRATEGIES[strategy](fs, units, ctx)
            if found is not None:
                log.debug(
                    "item %r placed with %s (%d×%d at %s)",
                    item.id, strategy.value, found.w, found.h, found.position,
                )
                break
        if found is None:
            if not ctx.advances:
                break
            ctx.position = ctx.next_position(ctx.position)
        attempts += 1

    if found is None:
        overflow = PlacementOverflow(
            item=item,
            configuration_id=ctx.configuration_id,
            x0=ctx.position[0],
            y0=ctx.position[1],
            width=w,
            height=h,
            attempts=attempts,
        )
        ctx.overflows.append(overflow)
        log.warning(
            "placement overflow: no position found for item %r in configuration %d after %d attempts",
            item.id, ctx.configuration_id, attempts,
        )
        found = Candidate(w, h, ctx.position)

    return ctx.commit(item, found.w, found.h, found.position)


def order_items(items: Sequence[Item]) -> List[Item]:
    """Heaviest first; equal weights keep their input order."""
    return sorted(items, key=lambda it: -it.weight)


__all__ = [
    "Candidate",
    "PlacementContext",
    "STRATEGIES",
    "ShapeSearch",
    "initial_shape",
    "order_items",
    "parse_criteria_pair",
    "place_item",
    "search_down",
    "search_down_position",
    "search_up",
    "search_up_position",
]
