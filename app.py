# app.py: JSON front door for layout runs; progress no-cache
from __future__ import annotations
import logging
import os
import time
from typing import Any, Dict, Tuple

from flask import Flask, request, send_from_directory, jsonify, url_for

from solver.orchestrator import solve_orchestrator
from config import CFG, configure_logging
from io_files import write_tiles, write_layout_json

from progress import (
    reset as progress_reset,
    as_json as progress_json,
    start_timer as progress_start,
    set_status, set_progress_pct, set_done, set_result_url,
)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

log = logging.getLogger(__name__)


def _resolve_output_paths(configured: str, fallback: str) -> Tuple[str, str, str]:
    name = (configured or "").strip() or fallback
    if os.path.isabs(name):
        full_path = name
    else:
        full_path = os.path.abspath(os.path.join(BASE_DIR, name))
    directory = os.path.dirname(full_path) or BASE_DIR
    filename = os.path.basename(full_path) or fallback
    return full_path, directory, filename


_TILES_FULL_PATH, TILES_DIR, TILES_FILENAME = _resolve_output_paths(CFG.TILES_OUT, "tiles.txt")
_JSON_FULL_PATH, JSON_DIR, JSON_FILENAME = _resolve_output_paths(CFG.LAYOUT_JSON, "layout.json")

LAST_RESULT: Dict[str, Any] = {
    "ok": False,
    "reason": "no layout computed yet",
    "elapsed_str": "0s",
    "tiles_filename": TILES_FILENAME,
    "json_filename": JSON_FILENAME,
}

app = Flask(__name__)


@app.after_request
def _no_cache_progress(resp):
    if request.path == "/progress":
        resp.headers["Cache-Control"] = "no-store, max-age=0"
        resp.headers["Pragma"] = "no-cache"
        resp.headers["Expires"] = "0"
    return resp


@app.route("/")
def index():
    return jsonify({
        "service": "weighted-tiles",
        "endpoints": ["/solve", "/result/latest", "/progress", "/download/tiles", "/download/json"],
    })


@app.route("/result/latest")
def result_latest():
    return jsonify(LAST_RESULT)


def _fmt_elapsed(seconds: float) -> str:
    if seconds < 1:
        return "0s"
    m, s = divmod(int(seconds), 60)
    if m == 0:
        return f"{s}s"
    h, m = divmod(m, 60)
    if h == 0:
        return f"{m}m {s}s"
    return f"{h}h {m}m {s}s"


def _merge_like_mapping() -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        merged.update(payload)

    form_dict = request.form.to_dict(flat=False)
    for k, v in form_dict.items():
        merged.setdefault(k, v if isinstance(v, list) else [v])

    args_dict = request.args.to_dict(flat=False)
    for k, v in args_dict.items():
        merged.setdefault(k, v if isinstance(v, list) else [v])

    return merged


def _finalize_solver_progress(ok_flag: bool, reason_text: str) -> None:
    """Write the terminal solver status without clobbering failure states."""

    set_status("Solved" if ok_flag else "error")
    set_done(ok_flag, reason=reason_text)


@app.route("/solve", methods=["POST"])
def solve():
    progress_reset()
    progress_start()
    set_status("Solving")
    set_progress_pct(0)

    t0 = time.time()
    like = _merge_like_mapping()
    ok, result, reason, meta = solve_orchestrator(like)

    if not ok or result is None:
        reason = reason or "No layout (unspecified)."
        _finalize_solver_progress(False, reason)
        LAST_RESULT.clear()
        LAST_RESULT.update({
            "ok": False,
            "reason": reason,
            "error": meta.get("error"),
            "elapsed_str": _fmt_elapsed(time.time() - t0),
            "tiles_filename": TILES_FILENAME,
            "json_filename": JSON_FILENAME,
        })
        set_result_url(url_for("result_latest"))
        # Rejected input is the caller's fault; anything else is ours.
        status = 400 if meta.get("error") else 500
        return jsonify(LAST_RESULT), status

    _finalize_solver_progress(True, meta.get("note", ""))

    tiles_name = TILES_FILENAME
    json_name = JSON_FILENAME
    try:
        tiles_path = write_tiles(result.best, result.unit_side, BASE_DIR)
        tiles_name = os.path.basename(tiles_path) or TILES_FILENAME
        json_path = write_layout_json(result, BASE_DIR)
        json_name = os.path.basename(json_path) or JSON_FILENAME
    except OSError as e:
        log.warning("could not write layout files: %s", e)

    LAST_RESULT.clear()
    LAST_RESULT.update(result.as_dict())
    LAST_RESULT.update({
        "ok": True,
        "note": meta.get("note"),
        "overflow_count": meta.get("overflow_count", 0),
        "elapsed_str": _fmt_elapsed(time.time() - t0),
        "tiles_filename": tiles_name,
        "json_filename": json_name,
    })
    set_result_url(url_for("result_latest"))
    return jsonify(LAST_RESULT)


@app.route("/download/tiles")
def download_tiles():
    return send_from_directory(TILES_DIR, TILES_FILENAME, as_attachment=True)


@app.route("/download/json")
def download_json():
    return send_from_directory(JSON_DIR, JSON_FILENAME, as_attachment=True)


@app.route("/progress")
def progress():
    return jsonify(progress_json())


if __name__ == "__main__":
    configure_logging()
    app.run(debug=False)
