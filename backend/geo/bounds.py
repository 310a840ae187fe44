from __future__ import annotations

from typing import Any, Iterable, Iterator

from shapely.geometry import MultiPoint

from geo.aoi import BBox


def coordinate_pairs(geometry_type: str | None, coordinates: Any) -> Iterator[tuple[float, float]]:
    """
    Lon/lat pairs a geometry contributes to a bounding box.

    Point -> itself, LineString -> every vertex, Polygon -> outer ring only.
    Expects coordinates that already went through `geo.validate`.
    """
    if geometry_type == "Point":
        yield (float(coordinates[0]), float(coordinates[1]))
    elif geometry_type == "LineString":
        for v in coordinates:
            yield (float(v[0]), float(v[1]))
    elif geometry_type == "Polygon":
        for v in coordinates[0]:
            yield (float(v[0]), float(v[1]))


def bounds_of_geometries(geometries: Iterable[tuple[str | None, Any]]) -> BBox | None:
    pairs: list[tuple[float, float]] = []
    for geometry_type, coordinates in geometries:
        pairs.extend(coordinate_pairs(geometry_type, coordinates))
    if not pairs:
        return None
    min_lon, min_lat, max_lon, max_lat = MultiPoint(pairs).bounds
    return BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)
