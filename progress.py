from __future__ import annotations

import json
import logging
import os
import time
import threading
from pathlib import Path
from typing import Any, Dict, Optional

# ------------------------------
# Thread-safe global progress state
# ------------------------------

PROGRESS_LOCK = threading.Lock()


def _state_file_path() -> Path:
    configured = os.environ.get("PROGRESS_STATE_FILE")
    if configured:
        return Path(configured)
    return Path(__file__).resolve().parent / "logs" / "progress_state.json"


STATE_FILE = _state_file_path()
STATE_FILE_TMP = STATE_FILE.with_name(STATE_FILE.name + ".tmp")
_LAST_STATE_MTIME: float = 0.0


def _init_logger() -> logging.Logger:
    logger = logging.getLogger("weighted_tiles.run_log")
    if logger.handlers:
        return logger

    log_path = Path(__file__).resolve().parent / "logs" / "layout_runs.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    except OSError:
        # Run logging is optional; layouts still compute without it.
        logger.handlers.clear()
    return logger


RUN_LOGGER = _init_logger()


def _log_enabled() -> bool:
    return bool(RUN_LOGGER.handlers)


def _fmt_seconds(seconds: Optional[float]) -> Optional[str]:
    if seconds is None:
        return None
    try:
        return f"{float(seconds):.2f}s"
    except (TypeError, ValueError):
        return None


def _emit_log(event: str, **fields: Any) -> None:
    if not _log_enabled():
        return
    extras = [
        f"{key}={value}"
        for key, value in fields.items()
        if value is not None and value != ""
    ]
    try:
        if extras:
            RUN_LOGGER.info("%s | %s", event, " ".join(extras))
        else:
            RUN_LOGGER.info("%s", event)
    except Exception:
        # Logging failures must never bubble back to callers.
        pass


def log_run_detail(event: str, **fields: Any) -> None:
    """Append a free-form ``event | k=v`` line to the run log."""
    with PROGRESS_LOCK:
        _emit_log(event, **fields)


LOG_STATE: Dict[str, Any] = {
    "run_start": None,
    "configuration": "",
    "configuration_start": None,
}

# Single source of truth for progress polling
PROGRESS: Dict[str, Any] = {
    "status": "Idle",              # Idle | Solving | Solved | Error
    "configuration": "",           # configuration id being placed
    "configuration_total": "",     # number of configurations in the run
    "criteria": "",                # e.g. "Up/Down"
    "grid": "",                    # e.g. "19 × 14 units @ 21"
    "percent": 0.0,                # 0..100 float
    "best_empty": None,            # lowest empty units so far
    "overflow_count": 0,           # overflowed items across finished configurations
    "item_count": 0,
    "elapsed_start": None,         # t0 (float) when solving started
    "elapsed": 0.0,                # seconds snapshot
    "message": "",
    "done": False,
    "ok": None,
    "result_url": "",
    "run_id": 0,                   # monotonically increasing identifier
}


def _persist_locked() -> None:
    global _LAST_STATE_MTIME
    try:
        STATE_FILE.parent.mkdir(parents=True, exist_ok=True)
        with STATE_FILE_TMP.open("w", encoding="utf-8") as fh:
            json.dump(PROGRESS, fh, ensure_ascii=False, separators=(",", ":"))
        STATE_FILE_TMP.replace(STATE_FILE)
        try:
            _LAST_STATE_MTIME = STATE_FILE.stat().st_mtime
        except OSError:
            _LAST_STATE_MTIME = time.time()
    except (OSError, TypeError, ValueError):
        # Persistence must never break layout progress updates.
        pass


def _load_persisted_locked(force: bool = False) -> None:
    global _LAST_STATE_MTIME
    try:
        stat = STATE_FILE.stat()
    except OSError:
        return
    if not force and stat.st_mtime <= _LAST_STATE_MTIME:
        return
    try:
        with STATE_FILE.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError):
        return
    if not isinstance(data, dict):
        return
    for key in PROGRESS.keys():
        if key in data:
            PROGRESS[key] = data[key]
    _LAST_STATE_MTIME = stat.st_mtime


def _finalize_configuration_locked(now: Optional[float] = None, *, reason: Optional[str] = None) -> None:
    configuration = LOG_STATE.get("configuration")
    if configuration == "":
        return
    if now is None:
        now = _now()
    start = LOG_STATE.get("configuration_start")
    duration = None
    if isinstance(start, (int, float)):
        duration = max(0.0, float(now) - float(start))
    _emit_log(
        "Configuration finished",
        configuration=configuration,
        criteria=PROGRESS.get("criteria") or "",
        duration=_fmt_seconds(duration),
        reason=reason,
    )
    LOG_STATE["configuration"] = ""
    LOG_STATE["configuration_start"] = None


def _log_configuration_transition_locked(new_configuration: str) -> None:
    prev = LOG_STATE.get("configuration")
    if new_configuration == prev:
        return
    now = _now()
    if prev != "":
        _finalize_configuration_locked(now, reason="switch")
    LOG_STATE["configuration"] = new_configuration
    if new_configuration != "":
        LOG_STATE["configuration_start"] = now
        _emit_log(
            "Configuration started",
            configuration=new_configuration,
            criteria=PROGRESS.get("criteria") or "",
            grid=PROGRESS.get("grid") or "",
        )
    else:
        LOG_STATE["configuration_start"] = None


# ------------------------------
# Helpers
# ------------------------------

def _now() -> float:
    return time.time()


def _fmt_elapsed(seconds: float) -> str:
    seconds = max(0.0, float(seconds))
    if seconds < 60:
        return f"{int(seconds)}s"
    m, s = divmod(int(seconds), 60)
    if m < 60:
        return f"{m}m {s}s"
    h, m = divmod(m, 60)
    return f"{h}h {m}m"


def reset() -> None:
    with PROGRESS_LOCK:
        now = _now()
        _finalize_configuration_locked(now, reason="reset")
        try:
            current_run_id = int(PROGRESS.get("run_id", 0))
        except (TypeError, ValueError):
            current_run_id = 0
        PROGRESS.update({
            "status": "Idle",
            "configuration": "",
            "configuration_total": "",
            "criteria": "",
            "grid": "",
            "percent": 0.0,
            "best_empty": None,
            "overflow_count": 0,
            "item_count": 0,
            "elapsed_start": None,
            "elapsed": 0.0,
            "message": "",
            "done": False,
            "ok": None,
            "result_url": "",
            "run_id": current_run_id + 1,
        })
        LOG_STATE.update({
            "run_start": None,
            "configuration": "",
            "configuration_start": None,
        })
        _emit_log("Progress reset")
        _persist_locked()


def start_timer() -> None:
    with PROGRESS_LOCK:
        now = _now()
        PROGRESS["elapsed_start"] = now
        PROGRESS["elapsed"] = 0.0
        LOG_STATE["run_start"] = now
        _emit_log("Run timer started")
        _persist_locked()


def _touch_elapsed_locked() -> None:
    t0 = PROGRESS.get("elapsed_start")
    if t0 is not None:
        PROGRESS["elapsed"] = _now() - float(t0)


# ------------------------------
# Setters (tolerant)
# ------------------------------

def set_status(v: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["status"] = str(v)
        _persist_locked()


def set_configuration(config_id: Any, criteria: Any = None) -> None:
    with PROGRESS_LOCK:
        config_str = "" if config_id is None else str(config_id)
        if criteria is not None:
            if isinstance(criteria, (list, tuple)):
                criteria = "/".join(str(c) for c in criteria)
            PROGRESS["criteria"] = str(criteria)
        PROGRESS["configuration"] = config_str
        _log_configuration_transition_locked(config_str)
        _persist_locked()


def set_configuration_total(v: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["configuration_total"] = "" if v is None else str(v)
        _persist_locked()


def set_grid(v: Any) -> None:
    with PROGRESS_LOCK:
        grid_str = "" if v is None else str(v)
        if grid_str != PROGRESS.get("grid"):
            _emit_log("Grid updated", grid=grid_str)
        PROGRESS["grid"] = grid_str
        _persist_locked()


def set_progress_pct(pct: Any) -> None:
    try:
        f = float(pct)
    except (TypeError, ValueError):
        f = 0.0
    f = max(0.0, min(100.0, f))
    with PROGRESS_LOCK:
        PROGRESS["percent"] = f
        _touch_elapsed_locked()
        _persist_locked()


def record_configuration(empty_units: Any, overflow_count: Any = 0) -> None:
    """Fold one finished configuration into the best-so-far counters."""
    try:
        empty = int(empty_units)
    except (TypeError, ValueError):
        return
    try:
        overflow = max(0, int(overflow_count))
    except (TypeError, ValueError):
        overflow = 0
    with PROGRESS_LOCK:
        best = PROGRESS.get("best_empty")
        if best is None or empty < int(best):
            PROGRESS["best_empty"] = empty
            _emit_log("Best progress", empty_units=empty)
        PROGRESS["overflow_count"] = int(PROGRESS.get("overflow_count") or 0) + overflow
        _persist_locked()


def set_item_count(n: Any) -> None:
    try:
        i = int(n)
    except (TypeError, ValueError):
        i = 0
    with PROGRESS_LOCK:
        PROGRESS["item_count"] = max(0, i)
        _persist_locked()


def set_elapsed(seconds: Any) -> None:
    try:
        f = float(seconds)
    except (TypeError, ValueError):
        f = 0.0
    with PROGRESS_LOCK:
        PROGRESS["elapsed"] = max(0.0, f)
        _persist_locked()


def set_message(msg: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["message"] = "" if msg is None else str(msg)
        _persist_locked()


def set_result_url(url: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["result_url"] = "" if url is None else str(url)
        _persist_locked()


def set_done(ok: Any = None, *, reason: Any = None, message: Any = None) -> None:
    """Mark the run complete.

    ``ok`` picks the final status (``Solved``/``Error``); without it a still
    idle status becomes ``Solved``.  ``reason`` and ``message`` both land in the
    ``message`` field, ``message`` winning when both are given.
    """
    final_status: Optional[str] = None
    ok_flag: Optional[bool] = None
    if ok is not None:
        ok_flag = bool(ok)
        final_status = "Solved" if ok_flag else "Error"

    final_message = message if message is not None else reason

    with PROGRESS_LOCK:
        _touch_elapsed_locked()
        now = _now()
        if final_status is not None:
            PROGRESS["status"] = final_status
        elif PROGRESS.get("status") in ("", "Idle", None):
            PROGRESS["status"] = "Solved"
            ok_flag = True
        PROGRESS["percent"] = 100.0
        if final_message is not None:
            PROGRESS["message"] = str(final_message)
        PROGRESS["done"] = True
        if ok_flag is not None:
            PROGRESS["ok"] = ok_flag
        _finalize_configuration_locked(now, reason="run_complete")
        run_start = LOG_STATE.get("run_start")
        total = max(0.0, now - float(run_start)) if isinstance(run_start, (int, float)) else None
        LOG_STATE["run_start"] = None
        _emit_log(
            "Run finished",
            status=PROGRESS.get("status"),
            ok=PROGRESS.get("ok"),
            duration=_fmt_seconds(total),
            best_empty=PROGRESS.get("best_empty"),
            overflow_count=PROGRESS.get("overflow_count"),
            message=PROGRESS.get("message"),
        )
        _persist_locked()


# ------------------------------
# Snapshots for pollers
# ------------------------------

def snapshot() -> Dict[str, Any]:
    with PROGRESS_LOCK:
        _load_persisted_locked()
        _touch_elapsed_locked()
        out = {k: v for k, v in PROGRESS.items() if k != "elapsed_start"}
        out["elapsed_str"] = _fmt_elapsed(PROGRESS["elapsed"])
        return out


def as_json() -> Dict[str, Any]:
    return snapshot()


with PROGRESS_LOCK:
    _load_persisted_locked(force=True)
