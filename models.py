from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional, Tuple, Union

from config import CFG


class LayoutError(ValueError):
    """Base class for errors that reject a layout request."""


class ValidationError(LayoutError):
    pass


class GridOverflow(LayoutError):
    """No unit side fits the area height within the allowed scaling attempts."""


@dataclass(frozen=True)
class Item:
    id: Hashable
    weight: float

    @property
    def doubled(self) -> int:
        return int(round(self.weight * 2))


@dataclass(frozen=True)
class Grid:
    unit_side: int
    columns: int
    rows: int
    total_units: int
    scale_ratio: int

    def row_limit(self, tolerance: float = CFG.HEIGHT_TOLERANCE) -> float:
        return self.rows + self.rows * tolerance

    def units_for(self, item: Item) -> int:
        return item.doubled * self.scale_ratio * self.scale_ratio

    def as_dict(self) -> Dict[str, int]:
        return {
            "unit_side": self.unit_side,
            "columns": self.columns,
            "rows": self.rows,
            "total_units": self.total_units,
            "scale_ratio": self.scale_ratio,
        }


@dataclass(frozen=True)
class PlacedTile:
    item: Item
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    @property
    def area(self) -> int:
        return self.width * self.height

    def overlaps(self, other: "PlacedTile") -> bool:
        return (
            self.x1 > other.x0 and self.x0 < other.x1
            and self.y1 > other.y0 and self.y0 < other.y1
        )

    def to_length_tuple(self, unit_side: int) -> Tuple[int, int, int, int]:
        """(left, top, width, height) in area units."""
        return (
            self.x0 * unit_side,
            self.y0 * unit_side,
            self.width * unit_side,
            self.height * unit_side,
        )

    def as_dict(self, unit_side: Optional[int] = None) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.item.id,
            "weight": self.item.weight,
            "x0": self.x0,
            "y0": self.y0,
            "x1": self.x1,
            "y1": self.y1,
        }
        if unit_side:
            left, top, width, height = self.to_length_tuple(unit_side)
            out.update(left=left, top=top, width=width, height=height)
        return out


@dataclass(frozen=True)
class PlacementOverflow:
    item: Item
    configuration_id: int
    x0: int
    y0: int
    width: int
    height: int
    attempts: int


@dataclass
class Configuration:
    id: int
    criteria: Tuple[str, str]
    tiles: List[PlacedTile] = field(default_factory=list)
    empty_units: int = 0
    overflows: List[PlacementOverflow] = field(default_factory=list)

    @property
    def overflow_count(self) -> int:
        return len(self.overflows)

    def as_dict(self, unit_side: Optional[int] = None) -> Dict[str, Any]:
        return {
            "id": self.id,
            "criteria": list(self.criteria),
            "empty_units": self.empty_units,
            "overflow_count": self.overflow_count,
            "tiles": [t.as_dict(unit_side) for t in self.tiles],
        }


@dataclass(frozen=True)
class LayoutOptions:
    max_ratio: float = CFG.MAX_RATIO
    criteria: Dict[int, Tuple[str, str]] = field(default_factory=lambda: dict(CFG.CRITERIA))
    max_attempts: int = CFG.MAX_ATTEMPTS
    return_all: bool = CFG.RETURN_ALL
    height_tolerance: float = CFG.HEIGHT_TOLERANCE
    workers: int = CFG.WORKERS


@dataclass
class LayoutResult:
    grid: Grid
    configurations: List[Configuration]
    options: LayoutOptions
    # Either the ranked list or the single best configuration.
    selection: Union[List[Configuration], Configuration]
    elapsed: float = 0.0

    @property
    def unit_side(self) -> int:
        return self.grid.unit_side

    @property
    def best(self) -> Configuration:
        return self.configurations[0]

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "grid": self.grid.as_dict(),
            "unit_side": self.unit_side,
            "elapsed": round(self.elapsed, 4),
        }
        if isinstance(self.selection, list):
            out["configurations"] = [c.as_dict(self.unit_side) for c in self.selection]
        else:
            out["configuration"] = self.selection.as_dict(self.unit_side)
        return out
