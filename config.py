# config.py
import logging
import os

# ======= Shape heuristics =======
MAX_RATIO          = float(os.getenv("WT_MAX_RATIO", "3"))
HEIGHT_TOLERANCE   = float(os.getenv("WT_HEIGHT_TOLERANCE", "0.2"))

# ======= Search caps =======
MAX_ATTEMPTS       = int(os.getenv("WT_MAX_ATTEMPTS", "10000"))
MAX_SCALE_ATTEMPTS = int(os.getenv("WT_MAX_SCALE_ATTEMPTS", "9"))
WORKERS            = int(os.getenv("WT_WORKERS", "1"))

# ======= Result shape =======
RETURN_ALL = int(os.getenv("WT_RETURN_ALL", "1")) != 0

# ======= Criteria pairs =======
# Configuration id -> the two shape searches tried when the first shape collides.
DEFAULT_CRITERIA = {
    0: ("Up", "Down"),
    1: ("Down", "Up"),
    2: ("UpPosition", "DownPosition"),
    3: ("DownPosition", "UpPosition"),
    4: ("Up", "DownPosition"),
    5: ("Down", "UpPosition"),
}


def parse_criteria(text):
    """Parse ``"Up/Down; Down/Up"`` (or comma separated pairs) into a criteria map.

    An empty value keeps :data:`DEFAULT_CRITERIA`.
    """
    text = (text or "").strip()
    if not text:
        return dict(DEFAULT_CRITERIA)
    sep = ";" if ";" in text else ","
    out = {}
    for idx, chunk in enumerate(c for c in text.split(sep) if c.strip()):
        pair = tuple(p.strip() for p in chunk.replace(":", "/").split("/") if p.strip())
        out[idx] = pair
    return out


CRITERIA = parse_criteria(os.getenv("WT_CRITERIA", ""))

# ======= Logging =======
# 0 = silent ... 5 = per-collision chatter (very slow with many criteria).
LOG_VERBOSITY = int(os.getenv("WT_LOG_VERBOSITY", "2"))

_VERBOSITY_LEVELS = {
    0: logging.CRITICAL,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
    5: logging.DEBUG,
}


def verbosity_to_level(verbosity: int) -> int:
    try:
        v = int(verbosity)
    except (TypeError, ValueError):
        v = 2
    return _VERBOSITY_LEVELS[max(0, min(5, v))]


def configure_logging(verbosity=None) -> None:
    level = verbosity_to_level(CFG.LOG_VERBOSITY if verbosity is None else verbosity)
    logger = logging.getLogger("solver")
    logger.setLevel(level)
    if not logging.getLogger().handlers and not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(handler)


# ======= Output names =======
TILES_OUT   = os.getenv("WT_TILES_OUT", "tiles.txt")
LAYOUT_JSON = os.getenv("WT_LAYOUT_JSON", "layout.json")


class CFG:
    MAX_RATIO        = MAX_RATIO
    HEIGHT_TOLERANCE = HEIGHT_TOLERANCE

    MAX_ATTEMPTS       = MAX_ATTEMPTS
    MAX_SCALE_ATTEMPTS = MAX_SCALE_ATTEMPTS
    WORKERS            = WORKERS

    RETURN_ALL = RETURN_ALL
    CRITERIA   = CRITERIA

    LOG_VERBOSITY = LOG_VERBOSITY

    TILES_OUT   = TILES_OUT
    LAYOUT_JSON = LAYOUT_JSON


__all__ = [
    "CFG",
    "DEFAULT_CRITERIA",
    "configure_logging",
    "parse_criteria",
    "verbosity_to_level",
]
