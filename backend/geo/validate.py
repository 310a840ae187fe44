from __future__ import annotations

import math
from typing import Any

# How deep the numeric scalars sit inside `coordinates` for each geometry type.
_SCALAR_DEPTH: dict[str, int] = {
    "Point": 1,
    "LineString": 2,
    "Polygon": 3,
}


def _coerce_scalar(v: Any) -> float:
    # bool is an int subclass, but `true` is not a coordinate.
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return 0
    try:
        f = float(v)
    except OverflowError:
        # ints past float range (JSON allows arbitrarily long integers)
        return 0
    return f if math.isfinite(f) else 0


def _coerce(value: Any, depth: int) -> Any:
    if depth == 0:
        return _coerce_scalar(value)
    if isinstance(value, (list, tuple)):
        return [_coerce(v, depth - 1) for v in value]
    # Wrong shape at container level: keep it, `structure_problem` reports it.
    return value


def validate_coordinates(coordinates: Any, geometry_type: str | None) -> Any:
    """
    Repair untrusted coordinates: every non-numeric (or non-finite) scalar becomes 0.

    Point, LineString and Polygon (all rings, holes included) are coerced; other geometry
    types pass through unchanged. Never raises.
    """
    if coordinates is None:
        return None
    depth = _SCALAR_DEPTH.get(geometry_type or "")
    if depth is None:
        return coordinates
    return _coerce(coordinates, depth)


def _is_position(v: Any) -> bool:
    return (
        isinstance(v, list)
        and len(v) >= 2
        and all(isinstance(c, (int, float)) for c in v)
    )


def structure_problem(coordinates: Any, geometry_type: str | None) -> str | None:
    """
    Why validated coordinates still can't be drawn, or None if they can.

    Only the polygon's outer ring is inspected; holes go to the renderer as-is.
    """
    if coordinates is None or coordinates == []:
        return "empty coordinates"
    if geometry_type == "Point":
        if not _is_position(coordinates):
            return "point needs [lon, lat]"
        return None
    if geometry_type == "LineString":
        if not isinstance(coordinates, list) or not all(
            _is_position(v) for v in coordinates
        ):
            return "line vertices must be [lon, lat]"
        if len(coordinates) < 2:
            return "line needs at least 2 vertices"
        return None
    if geometry_type == "Polygon":
        if not isinstance(coordinates, list):
            return "polygon needs a list of rings"
        outer = coordinates[0]
        if not isinstance(outer, list) or not all(_is_position(v) for v in outer):
            return "outer ring vertices must be [lon, lat]"
        if len(outer) < 3:
            return "outer ring needs at least 3 vertices"
        return None
    return None
