from models import Grid, Item, PlacedTile
from solver.collision import collide, exceeds_bounds, overlaps_any

GRID = Grid(unit_side=10, columns=10, rows=10, total_units=100, scale_ratio=1)


def _tile(x0, y0, x1, y1):
    return PlacedTile(Item("t", 1), x0, y0, x1, y1)


def test_width_is_a_hard_bound():
    assert collide((8, 0), 3, 1, [], GRID)
    assert not collide((8, 0), 2, 1, [], GRID)


def test_height_allows_twenty_percent_overshoot():
    assert not collide((0, 10), 1, 2, [], GRID)
    assert collide((0, 10), 1, 3, [], GRID)
    assert collide((0, 9), 1, 2, [], GRID, tolerance=0.0)


def test_touching_edges_do_not_collide():
    tiles = [_tile(0, 0, 2, 2)]
    assert not collide((2, 0), 2, 2, tiles, GRID)
    assert not collide((0, 2), 2, 2, tiles, GRID)
    assert collide((1, 1), 2, 2, tiles, GRID)


def test_helpers_split_bounds_and_overlap():
    tiles = [_tile(4, 4, 6, 6)]
    assert exceeds_bounds((9, 0), 2, 1, GRID)
    assert not exceeds_bounds((4, 4), 2, 2, GRID)
    assert overlaps_any((5, 5), 3, 3, tiles)
    assert not overlaps_any((6, 6), 3, 3, tiles)


def test_collide_is_pure():
    tiles = [_tile(0, 0, 3, 3)]
    snapshot = list(tiles)
    collide((1, 1), 1, 1, tiles, GRID)
    assert tiles == snapshot
