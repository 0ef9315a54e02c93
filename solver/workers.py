# solver/workers.py
import multiprocessing as mp
import traceback
from typing import Dict, List, Sequence, Tuple

from models import Configuration, Grid, Item, LayoutOptions


# Worker must be top-level (picklable on Windows spawn)
def _configuration_worker(job):
    grid, items, config_id, criteria, options = job
    try:
        from solver.orchestrator import run_configuration  # import inside child
        return ("ok", config_id, run_configuration(grid, items, config_id, criteria, options))
    except MemoryError:
        return ("err", config_id, "Child ran out of memory")
    except Exception as e:
        return ("exc", config_id, f"{e}\n{traceback.format_exc()}")


def run_configurations_isolated(
    grid: Grid,
    ordered_items: Sequence[Item],
    criteria_map: Dict[int, Tuple],
    options: LayoutOptions,
    workers: int,
) -> List[Configuration]:
    """Evaluate every configuration in a spawn-based process pool.

    Each child builds its own factor cache.  Results come back in
    configuration-id order; a failed child raises ``RuntimeError`` naming the
    configuration.
    """
    jobs = [
        (grid, list(ordered_items), config_id, criteria, options)
        for config_id, criteria in sorted(criteria_map.items())
    ]
    if not jobs:
        return []

    ctx = mp.get_context("spawn")  # safest on Windows
    with ctx.Pool(processes=max(1, min(int(workers), len(jobs)))) as pool:
        results = pool.map(_configuration_worker, jobs)

    out: List[Configuration] = []
    for tag, config_id, payload in results:
        if tag != "ok":
            raise RuntimeError(f"configuration {config_id} failed in worker: {payload}")
        out.append(payload)
    return out


__all__ = ["run_configurations_isolated"]
