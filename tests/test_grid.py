import math

import pytest

from models import GridOverflow, Item
from solver.grid import build_grid, weight_sum


def _items(*weights):
    return [Item(i + 1, w) for i, w in enumerate(weights)]


def test_weight_sum_doubles_each_weight():
    assert weight_sum(_items(4, 2, 1, 1)) == 16
    assert weight_sum(_items(0.5, 1.5)) == 4


def test_single_item_collapses_to_exact_grid():
    grid = build_grid(_items(1), 100, 100)
    assert grid.scale_ratio == 6
    assert grid.unit_side == 11
    assert (grid.columns, grid.rows) == (9, 8)
    assert grid.total_units == 72
    assert grid.units_for(Item(1, 1)) == grid.columns * grid.rows


def test_four_items_on_400_by_300():
    grid = build_grid(_items(4, 2, 1, 1), 400, 300)
    assert grid.scale_ratio == 4
    assert grid.unit_side == 21
    assert (grid.columns, grid.rows) == (19, 14)
    assert grid.total_units == 256
    assert grid.row_limit(0.2) == pytest.approx(16.8)


@pytest.mark.parametrize(
    "weights,width,height",
    [
        ((1,), 100, 100),
        ((4, 2, 1, 1), 400, 300),
        ((5, 3, 3, 2, 1, 1, 1), 800, 600),
        ((10, 1), 1024, 768),
        ((0.5, 0.5, 2.5), 300, 900),
        ((7, 7, 7), 1920, 1080),
    ],
)
def test_grid_validity(weights, width, height):
    items = _items(*weights)
    grid = build_grid(items, width, height)
    assert grid.columns >= 1
    assert grid.rows >= 1
    assert grid.rows * grid.unit_side <= height
    assert grid.columns * grid.unit_side <= width
    assert grid.total_units == weight_sum(items) * grid.scale_ratio ** 2
    assert grid.rows == math.ceil(grid.total_units / grid.columns)
    for item in items:
        units = grid.units_for(item)
        assert isinstance(units, int) and units > 0


def test_tiny_area_overflows():
    with pytest.raises(GridOverflow):
        build_grid(_items(1), 1, 1)


def test_scale_budget_is_respected():
    # The single-item 100×100 case needs six scaling attempts.
    with pytest.raises(GridOverflow):
        build_grid(_items(1), 100, 100, max_scale=5)
    assert build_grid(_items(1), 100, 100, max_scale=6).scale_ratio == 6


def test_unit_wider_than_area_retries_with_smaller_side():
    # sqrt(1000*10/2) ≈ 70 > width 10, so ratio 1 has no whole column.
    grid = build_grid(_items(1), 10, 1000)
    assert grid.columns >= 1
    assert grid.unit_side <= 10
