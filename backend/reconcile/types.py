from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from geo.aoi import BBox

# Every renderer object the engine installs carries this prefix; anything else belongs to
# the base style and is never touched.
OWNED_PREFIX = "viz"


def is_owned(object_id: str) -> bool:
    return object_id.startswith(f"{OWNED_PREFIX}-")


def source_id_for(index: int) -> str:
    return f"{OWNED_PREFIX}-source-{index}"


def layer_prefix_for(index: int) -> str:
    return f"{OWNED_PREFIX}-layer-{index}"


@dataclass(frozen=True)
class PreparedFeature:
    """
    A feature whose geometry went through validation and is safe to hand to a renderer.
    """

    index: int
    feature_id: str
    geometry_type: str
    coordinates: Any
    properties: dict[str, Any]
    title: str | None = None
    data: Any = None
    style: dict[str, Any] = field(default_factory=dict)

    @property
    def is_interactive(self) -> bool:
        return bool(self.title) or bool(self.data)

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "id": self.feature_id,
            "geometry": {"type": self.geometry_type, "coordinates": self.coordinates},
            "properties": self.properties,
        }


@dataclass(frozen=True)
class SkippedFeature:
    feature_id: str
    index: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"featureId": self.feature_id, "index": self.index, "reason": self.reason}


@dataclass
class ReconcileReport:
    """
    Outcome of one reconciliation pass (diagnostics only; renderer state is the truth).
    """

    sources: list[str] = field(default_factory=list)
    layers: list[str] = field(default_factory=list)
    bound_layers: list[str] = field(default_factory=list)
    skipped: list[SkippedFeature] = field(default_factory=list)
    removed: int = 0
    bounds: BBox | None = None
    camera: str = "unchanged"  # "fit" | "bounds" | "center" | "zoom" | "unchanged"
    fatal: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sources": list(self.sources),
            "layers": list(self.layers),
            "boundLayers": list(self.bound_layers),
            "skipped": [s.to_dict() for s in self.skipped],
            "removed": self.removed,
            "bounds": self.bounds.to_dict() if self.bounds is not None else None,
            "camera": self.camera,
            "fatal": self.fatal,
        }
