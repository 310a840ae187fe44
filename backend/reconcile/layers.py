from __future__ import annotations

import math
from typing import Any

from renderer.types import LayerSpec

DEFAULT_COLOR = "#4F46E5"  # indigo
DEFAULT_POINT_RADIUS = 8.0
DEFAULT_POINT_OPACITY = 0.8
DEFAULT_LINE_WIDTH = 2.0
DEFAULT_LINE_OPACITY = 1.0
DEFAULT_FILL_COLOR = DEFAULT_COLOR
DEFAULT_FILL_OPACITY = 0.3

# Older payloads use stroke* names for the outline.
_STYLE_ALIASES = {"color": "strokeColor", "weight": "strokeWidth"}


def _style_value(style: dict[str, Any], key: str) -> Any:
    v = style.get(key)
    if v is None and key in _STYLE_ALIASES:
        v = style.get(_STYLE_ALIASES[key])
    return v


def _style_color(style: dict[str, Any], key: str, default: str) -> str:
    v = _style_value(style, key)
    return v.strip() if isinstance(v, str) and v.strip() else default


def _style_number(style: dict[str, Any], key: str, default: float) -> float:
    v = _style_value(style, key)
    if isinstance(v, bool):
        return default
    try:
        f = float(v)
    except (TypeError, ValueError, OverflowError):
        return default
    return f if math.isfinite(f) and f >= 0 else default


def layer_ids_for(layer_prefix: str, geometry_type: str | None) -> list[str]:
    if geometry_type == "Polygon":
        return [f"{layer_prefix}-fill", f"{layer_prefix}-outline"]
    if geometry_type in {"Point", "LineString"}:
        return [layer_prefix]
    return []


def layer_specs_for(
    geometry_type: str | None,
    *,
    source_id: str,
    layer_prefix: str,
    style: dict[str, Any],
) -> list[LayerSpec]:
    """
    Renderer layers for one feature, chosen by geometry type.

    The first spec is the one pointer interactions attach to. Unknown geometry types get
    no layers: their source stays installed but inert.
    """
    if geometry_type == "Point":
        return [
            LayerSpec(
                id=layer_prefix,
                type="circle",
                source=source_id,
                paint={
                    "circle-radius": _style_number(style, "radius", DEFAULT_POINT_RADIUS),
                    "circle-color": _style_color(style, "color", DEFAULT_COLOR),
                    "circle-opacity": _style_number(
                        style, "opacity", DEFAULT_POINT_OPACITY
                    ),
                },
            )
        ]

    if geometry_type == "LineString":
        return [
            LayerSpec(
                id=layer_prefix,
                type="line",
                source=source_id,
                paint={
                    "line-color": _style_color(style, "color", DEFAULT_COLOR),
                    "line-width": _style_number(style, "weight", DEFAULT_LINE_WIDTH),
                    "line-opacity": _style_number(
                        style, "opacity", DEFAULT_LINE_OPACITY
                    ),
                },
            )
        ]

    if geometry_type == "Polygon":
        fill_id, outline_id = layer_ids_for(layer_prefix, geometry_type)
        return [
            LayerSpec(
                id=fill_id,
                type="fill",
                source=source_id,
                paint={
                    "fill-color": _style_color(style, "fillColor", DEFAULT_FILL_COLOR),
                    "fill-opacity": _style_number(
                        style, "fillOpacity", DEFAULT_FILL_OPACITY
                    ),
                },
            ),
            LayerSpec(
                id=outline_id,
                type="line",
                source=source_id,
                paint={
                    "line-color": _style_color(style, "color", DEFAULT_COLOR),
                    "line-width": _style_number(style, "weight", DEFAULT_LINE_WIDTH),
                    "line-opacity": _style_number(
                        style, "opacity", DEFAULT_LINE_OPACITY
                    ),
                },
            ),
        ]

    return []
