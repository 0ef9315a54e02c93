import json
import os
import tempfile
import unittest

from config import CFG
from io_files import write_layout_json, write_tiles
from models import Configuration, Grid, Item, LayoutOptions, LayoutResult, PlacedTile


def _configuration():
    tiles = [
        PlacedTile(Item(1, 2), 0, 0, 4, 2),
        PlacedTile(Item("b", 1), 0, 2, 2, 4),
    ]
    return Configuration(id=0, criteria=("Up", "Down"), tiles=tiles, empty_units=4)


class WriteOutputsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self._orig_tiles = CFG.TILES_OUT
        self._orig_json = CFG.LAYOUT_JSON

    def tearDown(self) -> None:
        CFG.TILES_OUT = self._orig_tiles
        CFG.LAYOUT_JSON = self._orig_json

    def test_write_tiles_uses_configured_relative_path(self) -> None:
        CFG.TILES_OUT = "outputs/custom_tiles.txt"

        path = write_tiles(_configuration(), 10, self.tmpdir.name)

        expected = os.path.join(self.tmpdir.name, "outputs", "custom_tiles.txt")
        self.assertEqual(path, expected)
        self.assertTrue(os.path.exists(path))

        with open(path, "r", encoding="utf-8") as fh:
            contents = fh.read()
        self.assertIn("configuration 0 (Up/Down)", contents)
        self.assertIn("1 w2 @ [0,4)×[0,2) -> (0,0) size (40×20)", contents)
        self.assertIn("b w1 @ [0,2)×[2,4) -> (0,20) size (20×20)", contents)

    def test_write_tiles_without_layout(self) -> None:
        CFG.TILES_OUT = "empty.txt"
        path = write_tiles(None, 10, self.tmpdir.name)
        with open(path, "r", encoding="utf-8") as fh:
            self.assertEqual(fh.read(), "No layout\n")

    def test_write_layout_json_accepts_absolute_path(self) -> None:
        target = os.path.join(self.tmpdir.name, "json", "layout.json")
        CFG.LAYOUT_JSON = target

        grid = Grid(unit_side=10, columns=4, rows=4, total_units=12, scale_ratio=1)
        configuration = _configuration()
        result = LayoutResult(
            grid=grid,
            configurations=[configuration],
            options=LayoutOptions(return_all=False),
            selection=configuration,
        )

        path = write_layout_json(result, self.tmpdir.name)

        self.assertEqual(path, target)
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        self.assertEqual(data["unit_side"], 10)
        self.assertEqual(data["grid"]["columns"], 4)
        tiles = data["configuration"]["tiles"]
        self.assertEqual(tiles[0]["id"], 1)
        self.assertEqual((tiles[0]["left"], tiles[0]["width"]), (0, 40))
        self.assertEqual(tiles[1]["top"], 20)


if __name__ == "__main__":
    unittest.main()
