"""Helpers for writing layout results to disk."""

from __future__ import annotations

import json
import os
from typing import Optional

from config import CFG
from models import Configuration, LayoutResult


def _resolve_output_path(base_dir: str, configured_name: str, fallback: str) -> str:
    """Return the absolute path where an output artifact should be written."""

    name = (configured_name or "").strip() or fallback
    if os.path.isabs(name):
        return name
    return os.path.join(base_dir, name)


def write_tiles(configuration: Optional[Configuration], unit_side: int, base_dir: str) -> str:
    """Write one line per placed tile, in grid units and area units."""

    path = _resolve_output_path(base_dir, CFG.TILES_OUT, "tiles.txt")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        if configuration is None or not configuration.tiles:
            f.write("No layout\n")
            return path
        f.write(
            f"# configuration {configuration.id} ({'/'.join(configuration.criteria)}) "
            f"empty={configuration.empty_units} overflow={configuration.overflow_count} "
            f"unit_side={unit_side}\n"
        )
        for t in configuration.tiles:
            left, top, width, height = t.to_length_tuple(unit_side)
            f.write(
                f"{t.item.id} w{t.item.weight:g} @ [{t.x0},{t.x1})×[{t.y0},{t.y1}) "
                f"-> ({left},{top}) size ({width}×{height})\n"
            )
    return path


def write_layout_json(result: LayoutResult, base_dir: str) -> str:
    """Dump the selected configuration(s) plus grid as JSON records."""

    path = _resolve_output_path(base_dir, CFG.LAYOUT_JSON, "layout.json")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(result.as_dict(), fh, ensure_ascii=False, indent=2, default=str)
    return path


__all__ = ["write_layout_json", "write_tiles"]
