# items.py: tolerant item / area / option parser
from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from config import parse_criteria
from models import Item, ValidationError

# Accept form keys like weight_12, weight[12], w_abc.
_WEIGHT_KEY_RE = re.compile(r"^(?:weight|w)(?:_|\[)(?P<id>[^\]]+)\]?$")


def _to_float(x: Any) -> Optional[float]:
    try:
        f = float(x)
    except (TypeError, ValueError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


def _to_int(x: Any) -> Optional[int]:
    f = _to_float(x)
    return None if f is None else int(f)


def _as_listish(val: Any) -> List[Any]:
    if val is None:
        return []
    if isinstance(val, (list, tuple)):
        return list(val)
    return [val]


def _first(val: Any) -> Any:
    """Form mappings carry lists; JSON carries scalars."""
    if isinstance(val, (list, tuple)):
        return val[0] if val else None
    return val


def _to_bool(val: Any) -> Optional[bool]:
    val = _first(val)
    if val is None:
        return None
    if isinstance(val, bool):
        return val
    text = str(val).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    return None


def _normalize_id(raw: Any) -> Any:
    # Numeric strings from forms become ints so they match JSON ids.
    if isinstance(raw, str):
        text = raw.strip()
        if re.fullmatch(r"-?\d+", text):
            return int(text)
        return text
    return raw


def coerce_item(obj: Any, index: int) -> Item:
    """Build an :class:`Item` from an Item, ``{id, weight}`` mapping or ``(id, weight)`` pair."""
    if isinstance(obj, Item):
        return obj
    if isinstance(obj, Mapping):
        raw_id = obj.get("id", index)
        raw_weight = obj.get("weight")
    elif isinstance(obj, (list, tuple)) and len(obj) == 2:
        raw_id, raw_weight = obj
    else:
        raise ValidationError(f"item #{index} is not an {{id, weight}} record: {obj!r}")
    weight = _to_float(_first(raw_weight))
    if weight is None:
        raise ValidationError(f"item {raw_id!r} has no numeric weight")
    return Item(_normalize_id(_first(raw_id)), weight)


def coerce_items(items: Iterable[Any]) -> List[Item]:
    if items is None or isinstance(items, (str, bytes)):
        raise ValidationError("items must be a sequence of {id, weight} records")
    return [coerce_item(obj, idx) for idx, obj in enumerate(items)]


def validate_items(items: List[Item]) -> List[Item]:
    if not items:
        raise ValidationError("at least one item is required")
    for item in items:
        if not math.isfinite(item.weight):
            raise ValidationError(f"item {item.id!r} has non-finite weight {item.weight!r}")
        if item.weight <= 0:
            raise ValidationError(f"item {item.id!r} has non-positive weight {item.weight:g}")
        doubled = item.weight * 2
        if abs(doubled - round(doubled)) > 1e-9:
            raise ValidationError(
                f"item {item.id!r} weight {item.weight:g} is not a multiple of 0.5"
            )
    return items


def validate_area(width: Any, height: Any) -> Tuple[float, float]:
    w = _to_float(width)
    h = _to_float(height)
    if w is None or h is None:
        raise ValidationError(f"area must be numeric, got {width!r} × {height!r}")
    if w <= 0 or h <= 0:
        raise ValidationError(f"area must be positive, got {w:g} × {h:g}")
    return w, h


def parse_items(payload: Any) -> Tuple[List[Item], Optional[str]]:
    """
    Return (items, error_message_or_None).
    Accepts many shapes (JSON or form). See app.py for how the mapping is built.
    """
    if not payload:
        return [], "nothing parsed from request"

    # --- Shape 1: explicit JSON items list --------------------------------
    raw_items = payload.get("items") if isinstance(payload, Mapping) else payload
    if isinstance(raw_items, (list, tuple)) and len(raw_items) == 1 and isinstance(raw_items[0], str):
        # form posts wrap the JSON text in a one-element list
        raw_items = raw_items[0]
    if isinstance(raw_items, str):
        try:
            raw_items = json.loads(raw_items)
        except ValueError:
            return [], "items field is not valid JSON"
    if isinstance(raw_items, (list, tuple)) and raw_items:
        try:
            return coerce_items(raw_items), None
        except ValidationError as e:
            return [], str(e)

    if not isinstance(payload, Mapping):
        return [], "nothing parsed from request"

    # --- Shape 2: parallel arrays -----------------------------------------
    for id_key, weight_key in (("id", "weight"), ("id[]", "weight[]"), ("ids", "weights")):
        ids = _as_listish(payload.get(id_key))
        weights = _as_listish(payload.get(weight_key))
        if ids and weights and not isinstance(payload.get(weight_key), Mapping):
            if len(ids) != len(weights):
                return [], f"{id_key}/{weight_key} lengths differ ({len(ids)} vs {len(weights)})"
            try:
                return [coerce_item((i, w), idx) for idx, (i, w) in enumerate(zip(ids, weights))], None
            except ValidationError as e:
                return [], str(e)

    # --- Shape 3: {"weights": {id: weight}} -------------------------------
    weights_map = payload.get("weights")
    if isinstance(weights_map, Mapping) and weights_map:
        try:
            return [coerce_item((k, v), idx) for idx, (k, v) in enumerate(weights_map.items())], None
        except ValidationError as e:
            return [], str(e)

    # --- Shape 4: per-item keys (weight_<id>) -----------------------------
    out: List[Item] = []
    for idx, (k, v) in enumerate(payload.items()):
        m = _WEIGHT_KEY_RE.match(str(k))
        if not m:
            continue
        try:
            out.append(coerce_item((m.group("id"), v), idx))
        except ValidationError as e:
            return [], str(e)
    if out:
        return out, None

    return [], "nothing parsed from request"


def parse_area(payload: Mapping) -> Tuple[float, float]:
    width = _first(payload.get("width", payload.get("w")))
    height = _first(payload.get("height", payload.get("h")))
    area = payload.get("area")
    if (width is None or height is None) and isinstance(area, (list, tuple)) and len(area) == 2:
        width, height = area
    return validate_area(width, height)


def parse_options(payload: Mapping) -> Dict[str, Any]:
    """Pick layout option overrides out of a request mapping.

    Both the snake_case names and the legacy ``get_all_configurations`` /
    ``log_verbosity`` spellings are understood.  Unknown keys are ignored.
    """
    src: Mapping = payload
    nested = _first(payload.get("options"))
    if isinstance(nested, str):
        try:
            nested = json.loads(nested)
        except ValueError:
            raise ValidationError("options field is not valid JSON")
    if isinstance(nested, Mapping):
        src = {**payload, **nested}

    out: Dict[str, Any] = {}
    for key in ("max_ratio", "height_tolerance"):
        if key in src:
            val = _to_float(_first(src[key]))
            if val is None:
                raise ValidationError(f"{key} must be numeric")
            out[key] = val
    for key in ("max_attempts", "workers", "log_verbosity"):
        if key in src:
            val = _to_int(_first(src[key]))
            if val is None:
                raise ValidationError(f"{key} must be an integer")
            out[key] = val

    for key in ("return_all", "get_all_configurations"):
        if key in src:
            flag = _to_bool(src[key])
            if flag is None:
                raise ValidationError(f"{key} must be a boolean")
            out["return_all"] = flag

    criteria = src.get("criteria")
    if criteria is not None:
        out["criteria"] = _coerce_criteria(criteria)
    return out


def _coerce_criteria(raw: Any) -> Dict[int, Tuple[str, ...]]:
    if isinstance(raw, (list, tuple)) and len(raw) == 1 and isinstance(raw[0], str):
        raw = raw[0]
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return parse_criteria(raw)
    if isinstance(raw, Mapping):
        out: Dict[int, Tuple[str, ...]] = {}
        for k, v in raw.items():
            cid = _to_int(k)
            if cid is None:
                raise ValidationError(f"criteria id {k!r} is not an integer")
            out[cid] = tuple(_as_listish(v))
        return out
    if isinstance(raw, (list, tuple)):
        # A single pair or a list of pairs.
        if len(raw) == 2 and all(isinstance(p, str) for p in raw):
            return {0: tuple(raw)}
        return {idx: tuple(_as_listish(pair)) for idx, pair in enumerate(raw)}
    raise ValidationError(f"criteria must be a mapping or list of pairs, got {raw!r}")


__all__ = [
    "coerce_item",
    "coerce_items",
    "parse_area",
    "parse_items",
    "parse_options",
    "validate_area",
    "validate_items",
]
