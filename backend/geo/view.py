from __future__ import annotations

import math
from functools import lru_cache

from pyproj import Transformer

from geo.aoi import BBox

# Web Mercator world extent in meters (EPSG:3857 spans +-20037508.34).
_WORLD_M = 2 * 20037508.342789244
# MapLibre zoom levels are defined on 512px tiles.
_TILE_PX = 512.0
_MAX_MERCATOR_LAT = 85.05112878


@lru_cache(maxsize=1)
def transformer_4326_to_3857() -> Transformer:
    return Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)


@lru_cache(maxsize=1)
def transformer_3857_to_4326() -> Transformer:
    return Transformer.from_crs("EPSG:3857", "EPSG:4326", always_xy=True)


def camera_for_bounds(
    bounds: BBox,
    *,
    width: int,
    height: int,
    padding: int,
    max_zoom: float = 22.0,
) -> tuple[tuple[float, float], float]:
    """
    Center ([lon, lat]) + zoom that fits `bounds` into a `width`x`height` viewport with
    `padding` pixels on every side.

    The center is taken in Web Mercator, like a real map camera, so it is not the plain
    lat midpoint for tall boxes. A zero-area box (single point) ends at `max_zoom`.
    """
    b = bounds.normalized()
    fwd = transformer_4326_to_3857()
    min_lat = max(-_MAX_MERCATOR_LAT, b.min_lat)
    max_lat = min(_MAX_MERCATOR_LAT, b.max_lat)
    x0, y0 = fwd.transform(b.min_lon, min_lat)
    x1, y1 = fwd.transform(b.max_lon, max_lat)

    cx, cy = (x0 + x1) / 2.0, (y0 + y1) / 2.0
    lon, lat = transformer_3857_to_4326().transform(cx, cy)

    avail_w = max(1.0, float(width) - 2.0 * padding)
    avail_h = max(1.0, float(height) - 2.0 * padding)
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)

    zooms = []
    if dx > 0:
        zooms.append(math.log2((avail_w * _WORLD_M) / (_TILE_PX * dx)))
    if dy > 0:
        zooms.append(math.log2((avail_h * _WORLD_M) / (_TILE_PX * dy)))
    zoom = min(zooms) if zooms else max_zoom
    return (float(lon), float(lat)), float(max(0.0, min(max_zoom, zoom)))
