from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Geometry(BaseModel):
    """
    Untrusted geometry as produced upstream.

    `coordinates` stays untyped on purpose: it is repaired by `geo.validate`, not rejected
    at parse time, so one bad feature never fails the whole payload.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    type: str | None = None
    coordinates: Any = None


class FeatureProperties(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str | None = None
    title: str | None = None
    # label -> scalar; anything else is rendered stringified by the popup.
    data: Any = None
    # Free-form style hints (color, fillColor, opacity, fillOpacity, weight, radius).
    style: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", "title", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str | None:
        if v is None:
            return None
        return str(v)

    @field_validator("style", mode="before")
    @classmethod
    def _style_mapping(cls, v: Any) -> dict[str, Any]:
        return dict(v) if isinstance(v, dict) else {}


class Feature(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    type: str = "Feature"
    id: str | None = None
    geometry: Geometry | None = None
    properties: FeatureProperties = Field(default_factory=FeatureProperties)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> str | None:
        if v is None:
            return None
        return str(v)

    @field_validator("geometry", mode="before")
    @classmethod
    def _geometry_object(cls, v: Any) -> Any:
        # Anything that is not an object is treated as a missing geometry.
        return v if isinstance(v, (dict, Geometry)) else None

    @field_validator("properties", mode="before")
    @classmethod
    def _properties_object(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, FeatureProperties)) else {}

    def feature_id(self, index: int) -> str:
        return self.id or self.properties.id or f"feature-{index}"

    @property
    def is_interactive(self) -> bool:
        return bool(self.properties.title) or bool(self.properties.data)


class ConfigBounds(BaseModel):
    model_config = ConfigDict(frozen=True)

    southWest: tuple[float, float]  # [lon, lat]
    northEast: tuple[float, float]  # [lon, lat]


class MapConfig(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    fitBounds: bool = True
    center: tuple[float, float] | None = None  # [lon, lat]
    zoom: float | None = None
    bounds: ConfigBounds | None = None
    # Points may open their popup on hover instead of click.
    popupTrigger: Literal["click", "hover"] = "click"


class Visualization(BaseModel):
    """
    One complete description of what should be drawn.

    Every update is a wholesale replacement; the engine never patches a previous one.
    """

    model_config = ConfigDict(frozen=True)

    features: list[Feature] = Field(default_factory=list)
    config: MapConfig = Field(default_factory=MapConfig)

    @field_validator("config", mode="before")
    @classmethod
    def _config_object(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, MapConfig)) else {}


_TITLE_KEYS = ("title", "name", "ZIP", "zip", "zipCode")


def visualization_from_feature_collection(
    collection: dict[str, Any], *, fit_bounds: bool = True
) -> Visualization:
    """
    Convert a plain GeoJSON FeatureCollection (flat properties, e.g. ZIP code stats) into
    a `Visualization`: a title key becomes the popup heading, other scalars become rows.
    """
    features: list[dict[str, Any]] = []
    for i, raw in enumerate(collection.get("features") or []):
        if not isinstance(raw, dict):
            continue
        props = raw.get("properties") or {}
        if not isinstance(props, dict):
            props = {}

        title_key = next((k for k in _TITLE_KEYS if props.get(k) not in (None, "")), None)
        title = None
        if title_key is not None:
            title = (
                f"ZIP {props[title_key]}"
                if title_key in {"ZIP", "zip", "zipCode"}
                else str(props[title_key])
            )
        data = {
            k: v
            for k, v in props.items()
            if k not in {"id", "style", title_key}
            and (v is None or isinstance(v, (str, int, float, bool)))
        }
        features.append(
            {
                "type": "Feature",
                "id": raw.get("id") or props.get("id") or props.get("ZIP"),
                "geometry": raw.get("geometry"),
                "properties": {
                    "title": title,
                    "data": data,
                    "style": props.get("style") or {},
                },
            }
        )
    return Visualization.model_validate(
        {"features": features, "config": {"fitBounds": fit_bounds}}
    )
