from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BBox:
    """
    WGS84 bounding box in lon/lat degrees.

    Convention used throughout this repo:
    - minLon, minLat, maxLon, maxLat
    """

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def normalized(self) -> "BBox":
        min_lon = min(self.min_lon, self.max_lon)
        max_lon = max(self.min_lon, self.max_lon)
        min_lat = min(self.min_lat, self.max_lat)
        max_lat = max(self.min_lat, self.max_lat)
        return BBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat)

    @property
    def south_west(self) -> tuple[float, float]:
        return (self.min_lon, self.min_lat)

    @property
    def north_east(self) -> tuple[float, float]:
        return (self.max_lon, self.max_lat)

    @classmethod
    def from_corners(
        cls, south_west: tuple[float, float], north_east: tuple[float, float]
    ) -> "BBox":
        return cls(
            min_lon=float(south_west[0]),
            min_lat=float(south_west[1]),
            max_lon=float(north_east[0]),
            max_lat=float(north_east[1]),
        ).normalized()

    def to_dict(self) -> dict[str, float]:
        return {
            "minLon": self.min_lon,
            "minLat": self.min_lat,
            "maxLon": self.max_lon,
            "maxLat": self.max_lat,
        }
