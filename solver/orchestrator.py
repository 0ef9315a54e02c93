# Orchestrator: grid → one placement run per criteria pair → ranking
from __future__ import annotations

import logging
import time
import traceback
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from config import CFG, configure_logging
from items import coerce_items, parse_area, parse_items, parse_options, validate_area, validate_items
from models import (
    Configuration,
    Grid,
    Item,
    LayoutError,
    LayoutOptions,
    LayoutResult,
    ValidationError,
)
from progress import (
    log_run_detail, record_configuration, set_configuration, set_configuration_total,
    set_elapsed, set_grid, set_item_count, set_message, set_progress_pct, set_status,
)
from solver.factors import FactorCache
from solver.grid import build_grid
from solver.placement import PlacementContext, ShapeSearch, order_items, parse_criteria_pair, place_item
from solver.workers import run_configurations_isolated

log = logging.getLogger(__name__)

CriteriaMap = Dict[int, Tuple[ShapeSearch, ShapeSearch]]


# ---------- options ----------

def build_options(options: Optional[LayoutOptions] = None, **overrides: Any) -> LayoutOptions:
    """Merge ``overrides`` over ``options`` (or the current ``CFG`` values)."""
    if options is None:
        options = LayoutOptions(
            max_ratio=float(CFG.MAX_RATIO),
            criteria=dict(CFG.CRITERIA),
            max_attempts=int(CFG.MAX_ATTEMPTS),
            return_all=bool(CFG.RETURN_ALL),
            height_tolerance=float(CFG.HEIGHT_TOLERANCE),
            workers=int(CFG.WORKERS),
        )
    known = {k: v for k, v in overrides.items() if k in LayoutOptions.__dataclass_fields__}
    return replace(options, **known) if known else options


def resolve_criteria(options: LayoutOptions) -> CriteriaMap:
    if not options.criteria:
        raise ValidationError("at least one criteria pair is required")
    if options.max_ratio <= 0:
        raise ValidationError(f"max_ratio must be positive, got {options.max_ratio:g}")
    if options.max_attempts < 1:
        raise ValidationError(f"max_attempts must be at least 1, got {options.max_attempts}")
    if options.height_tolerance < 0:
        raise ValidationError(f"height_tolerance must not be negative, got {options.height_tolerance:g}")
    return {int(cid): parse_criteria_pair(pair) for cid, pair in options.criteria.items()}


# ---------- configuration runner ----------

def run_configuration(
    grid: Grid,
    ordered_items: Sequence[Item],
    config_id: int,
    criteria: Tuple[ShapeSearch, ShapeSearch],
    options: LayoutOptions,
    *,
    factor_cache: Optional[FactorCache] = None,
) -> Configuration:
    """Place every item under one criteria pair and score the empty units."""
    criteria = parse_criteria_pair(criteria)
    ctx = PlacementContext(
        grid=grid,
        configuration_id=config_id,
        criteria=criteria,
        max_ratio=options.max_ratio,
        max_attempts=options.max_attempts,
        tolerance=options.height_tolerance,
        factor_cache=factor_cache if factor_cache is not None else FactorCache(),
    )
    for index, item in enumerate(ordered_items):
        place_item(ctx, item, index)

    configuration = Configuration(
        id=config_id,
        criteria=tuple(s.value for s in criteria),
        tiles=list(ctx.tiles),
        empty_units=ctx.empty_units(),
        overflows=list(ctx.overflows),
    )
    log.info(
        "configuration %d %s: empty=%d overflow=%d",
        config_id, "/".join(configuration.criteria),
        configuration.empty_units, configuration.overflow_count,
    )
    return configuration


def run_configurations(
    grid: Grid,
    ordered_items: Sequence[Item],
    criteria_map: CriteriaMap,
    options: LayoutOptions,
) -> List[Configuration]:
    total = len(criteria_map)
    set_configuration_total(total)

    if options.workers > 1 and total > 1:
        log_run_detail("Worker pool", workers=options.workers, configurations=total)
        results = run_configurations_isolated(grid, ordered_items, criteria_map, options, options.workers)
        for done, configuration in enumerate(results, start=1):
            record_configuration(configuration.empty_units, configuration.overflow_count)
            set_progress_pct(100.0 * done / total)
        return results

    # One cache for the serial run; factor lists are pure functions of n.
    cache = FactorCache()
    results: List[Configuration] = []
    for done, (config_id, criteria) in enumerate(sorted(criteria_map.items()), start=1):
        set_configuration(config_id, [s.value for s in criteria])
        configuration = run_configuration(
            grid, ordered_items, config_id, criteria, options, factor_cache=cache,
        )
        record_configuration(configuration.empty_units, configuration.overflow_count)
        set_progress_pct(100.0 * done / total)
        results.append(configuration)
    set_configuration(None)
    return results


# ---------- selector ----------

def rank_configurations(configurations: Sequence[Configuration]) -> List[Configuration]:
    """Ascending empty units; ties keep configuration-id order."""
    by_id = sorted(configurations, key=lambda c: c.id)
    return sorted(by_id, key=lambda c: c.empty_units)


def select_configurations(
    ranked: Sequence[Configuration], return_all: bool,
) -> Union[List[Configuration], Configuration]:
    if not ranked:
        raise LayoutError("no configurations to select from")
    if return_all:
        return list(ranked)
    return ranked[0]


# ---------- public entrypoints ----------

def solve_layout(
    items: Sequence[Any],
    width: float,
    height: float,
    options: Optional[LayoutOptions] = None,
    **overrides: Any,
) -> LayoutResult:
    """Compute every configured layout for ``items`` inside ``width``×``height``.

    Raises :class:`~models.ValidationError` for malformed input and
    :class:`~models.GridOverflow` when no unit grid fits the area.
    """
    t0 = time.time()
    item_list = validate_items(coerce_items(items))
    width, height = validate_area(width, height)
    opts = build_options(options, **overrides)
    criteria_map = resolve_criteria(opts)

    set_item_count(len(item_list))
    grid = build_grid(item_list, width, height)
    set_grid(f"{grid.columns} × {grid.rows} units @ {grid.unit_side}")
    log_run_detail(
        "Run setup",
        items=len(item_list),
        area=f"{width:g}x{height:g}",
        unit_side=grid.unit_side,
        scale_ratio=grid.scale_ratio,
        configurations=len(criteria_map),
    )

    ordered = order_items(item_list)
    configurations = run_configurations(grid, ordered, criteria_map, opts)
    ranked = rank_configurations(configurations)
    return LayoutResult(
        grid=grid,
        configurations=ranked,
        options=opts,
        selection=select_configurations(ranked, opts.return_all),
        elapsed=time.time() - t0,
    )


def solve_orchestrator(payload: Any) -> Tuple[bool, Optional[LayoutResult], Optional[str], Dict[str, Any]]:
    """
    Request-facing wrapper around :func:`solve_layout`.
    Returns: (ok, result, reason, meta); never raises.
    """
    t0 = time.time()
    set_status("Solving")
    solver_log = logging.getLogger("solver")
    previous_level = solver_log.level
    try:
        items, err = parse_items(payload)
        if err or not items:
            raise ValidationError(f"Bad items: {err or 'nothing parsed from request'}")
        if not isinstance(payload, dict):
            raise ValidationError("Bad request: expected a mapping with items, width and height")
        width, height = parse_area(payload)
        overrides = parse_options(payload)
        verbosity = overrides.pop("log_verbosity", None)
        if verbosity is not None:
            configure_logging(verbosity)

        result = solve_layout(items, width, height, **overrides)
    except LayoutError as e:
        set_status("Error")
        set_message(str(e))
        return False, None, str(e), {"error": type(e).__name__}
    except Exception as e:
        set_status("Error")
        reason = f"layout exception: {type(e).__name__}: {e}"
        log.error("%s\n%s", reason, traceback.format_exc())
        set_message(reason)
        return False, None, reason, {"trace": reason}
    finally:
        # A request-level verbosity only applies to its own run.
        solver_log.setLevel(previous_level)

    elapsed = time.time() - t0
    set_status("Solved")
    set_elapsed(elapsed)
    best = result.best
    message = f"best configuration {best.id} ({'/'.join(best.criteria)}) leaves {best.empty_units} empty units"
    set_message(message)
    meta = {
        "note": message,
        "elapsed": elapsed,
        "item_count": len(best.tiles),
        "overflow_count": sum(c.overflow_count for c in result.configurations),
    }
    return True, result, None, meta


__all__ = [
    "build_options",
    "rank_configurations",
    "resolve_criteria",
    "run_configuration",
    "run_configurations",
    "select_configurations",
    "solve_layout",
    "solve_orchestrator",
]
