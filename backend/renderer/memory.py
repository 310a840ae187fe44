from __future__ import annotations

import copy
from typing import Any

from geo.aoi import BBox
from geo.view import camera_for_bounds
from renderer.types import (
    CameraTransition,
    LayerSpec,
    PointerEvent,
    PointerHandler,
    Popup,
    RendererError,
)

_GEOJSON_GEOMETRY_TYPES = {
    "Point",
    "MultiPoint",
    "LineString",
    "MultiLineString",
    "Polygon",
    "MultiPolygon",
    "GeometryCollection",
}
_LAYER_TYPES = {
    "background",
    "fill",
    "line",
    "symbol",
    "raster",
    "circle",
    "fill-extrusion",
    "heatmap",
    "hillshade",
}
_POINTER_EVENTS = {"click", "mouseenter", "mouseleave", "mousemove"}


def _geojson_features(data: dict[str, Any]) -> list[dict[str, Any]]:
    t = data.get("type")
    if t == "FeatureCollection":
        feats = data.get("features")
        if not isinstance(feats, list):
            raise RendererError("FeatureCollection needs a `features` array")
        return feats
    if t == "Feature":
        return [data]
    raise RendererError(f"Unsupported GeoJSON root type {t!r}")


class InMemoryRenderer:
    """
    A MapLibre-like renderer kept entirely in process.

    Holds the style object graph (sources + ordered layers), per-layer pointer handlers,
    the cursor, at most one popup and the camera. It enforces the same rules a real
    renderer does (unique ids, layers need their source, a source can't be removed while
    layers use it), which is what makes it useful for exercising reconciliation.
    """

    def __init__(
        self,
        style: dict[str, Any],
        *,
        center: tuple[float, float],
        zoom: float,
        width: int = 900,
        height: int = 600,
    ) -> None:
        sources = style.get("sources") or {}
        layers = style.get("layers") or []
        if not isinstance(sources, dict) or not isinstance(layers, list):
            raise RendererError("Style needs `sources` object and `layers` array")
        for layer in layers:
            if not isinstance(layer, dict) or not layer.get("id"):
                raise RendererError("Every style layer needs an `id`")

        self._meta = {k: v for k, v in style.items() if k not in {"sources", "layers"}}
        self._sources: dict[str, dict[str, Any]] = copy.deepcopy(sources)
        self._layers: list[dict[str, Any]] = copy.deepcopy(layers)
        self._handlers: dict[tuple[str, str], list[PointerHandler]] = {}
        self._removed = False

        self.center: tuple[float, float] = (float(center[0]), float(center[1]))
        self.zoom = float(zoom)
        self.width = int(width)
        self.height = int(height)
        self.cursor = ""
        self.popup: Popup | None = None
        self.transitions: list[CameraTransition] = []

    # -- object graph -------------------------------------------------------

    def add_source(self, source_id: str, data: dict[str, Any]) -> None:
        self._check_alive()
        if source_id in self._sources:
            raise RendererError(f"There is already a source with ID {source_id!r}")
        if not isinstance(data, dict):
            raise RendererError(f"Source {source_id!r} data must be a GeoJSON object")
        for feat in _geojson_features(data):
            geom = (feat or {}).get("geometry") if isinstance(feat, dict) else None
            gtype = geom.get("type") if isinstance(geom, dict) else None
            if gtype not in _GEOJSON_GEOMETRY_TYPES:
                raise RendererError(f"Unknown geometry type {gtype!r} in {source_id!r}")
        self._sources[source_id] = {"type": "geojson", "data": copy.deepcopy(data)}

    def add_layer(self, layer: LayerSpec) -> None:
        self._check_alive()
        if self.get_layer(layer.id) is not None:
            raise RendererError(f"Layer with id {layer.id!r} already exists")
        if layer.type not in _LAYER_TYPES:
            raise RendererError(f"Unknown layer type {layer.type!r}")
        if layer.source not in self._sources:
            raise RendererError(
                f"Source {layer.source!r} not found for layer {layer.id!r}"
            )
        self._layers.append(layer.to_style())

    def remove_layer(self, layer_id: str) -> None:
        self._check_alive()
        for i, layer in enumerate(self._layers):
            if layer["id"] == layer_id:
                del self._layers[i]
                self.off(layer_id)
                return
        raise RendererError(f"Layer {layer_id!r} does not exist")

    def remove_source(self, source_id: str) -> None:
        self._check_alive()
        if source_id not in self._sources:
            raise RendererError(f"Source {source_id!r} does not exist")
        for layer in self._layers:
            if layer.get("source") == source_id:
                raise RendererError(
                    f"Source {source_id!r} cannot be removed while layer "
                    f"{layer['id']!r} is using it"
                )
        del self._sources[source_id]

    def layer_ids(self) -> list[str]:
        return [layer["id"] for layer in self._layers]

    def source_ids(self) -> list[str]:
        return list(self._sources.keys())

    def get_layer(self, layer_id: str) -> dict[str, Any] | None:
        for layer in self._layers:
            if layer["id"] == layer_id:
                return layer
        return None

    def get_source(self, source_id: str) -> dict[str, Any] | None:
        return self._sources.get(source_id)

    def style(self) -> dict[str, Any]:
        """Snapshot of the current style document (like MapLibre's `getStyle()`)."""
        return {
            **copy.deepcopy(self._meta),
            "sources": copy.deepcopy(self._sources),
            "layers": copy.deepcopy(self._layers),
        }

    # -- interaction --------------------------------------------------------

    def on(self, event: str, layer_id: str, handler: PointerHandler) -> None:
        self._check_alive()
        if event not in _POINTER_EVENTS:
            raise RendererError(f"Unsupported layer event {event!r}")
        if self.get_layer(layer_id) is None:
            raise RendererError(f"Cannot bind {event!r}: layer {layer_id!r} not found")
        self._handlers.setdefault((event, layer_id), []).append(handler)

    def off(self, layer_id: str) -> None:
        for key in [k for k in self._handlers if k[1] == layer_id]:
            del self._handlers[key]

    def handler_count(self, layer_id: str | None = None) -> int:
        return sum(
            len(hs)
            for (_, lid), hs in self._handlers.items()
            if layer_id is None or lid == layer_id
        )

    def fire(self, event: str, layer_id: str, lng_lat: tuple[float, float]) -> int:
        """
        Dispatch a pointer event on a layer, as the hosting UI would. Returns the number
        of handlers that ran.
        """
        self._check_alive()
        layer = self.get_layer(layer_id)
        if layer is None:
            return 0
        source = self._sources.get(layer.get("source") or "") or {}
        data = source.get("data")
        features = _geojson_features(data) if isinstance(data, dict) else []
        ev = PointerEvent(
            type=event,
            layer_id=layer_id,
            lng_lat=(float(lng_lat[0]), float(lng_lat[1])),
            features=copy.deepcopy(features),
        )
        handlers = list(self._handlers.get((event, layer_id), []))
        for h in handlers:
            h(ev)
        return len(handlers)

    def set_cursor(self, cursor: str) -> None:
        self.cursor = cursor

    def show_popup(self, popup: Popup) -> None:
        self._check_alive()
        self.popup = popup

    def close_popup(self) -> None:
        self.popup = None

    # -- camera -------------------------------------------------------------

    def fit_bounds(self, bounds: BBox, *, padding: int, duration_ms: int) -> None:
        self._check_alive()
        center, zoom = camera_for_bounds(
            bounds, width=self.width, height=self.height, padding=padding
        )
        self.center, self.zoom = center, zoom
        self.transitions.append(
            CameraTransition(
                center=center, zoom=zoom, duration_ms=int(duration_ms), bounds=bounds
            )
        )

    def jump_to(self, center: tuple[float, float], zoom: float | None = None) -> None:
        self._check_alive()
        self.center = (float(center[0]), float(center[1]))
        if zoom is not None:
            self.zoom = float(zoom)
        self.transitions.append(
            CameraTransition(center=self.center, zoom=self.zoom, duration_ms=0)
        )

    # -- lifecycle ----------------------------------------------------------

    @property
    def removed(self) -> bool:
        return self._removed

    def remove(self) -> None:
        self._handlers.clear()
        self._layers.clear()
        self._sources.clear()
        self.popup = None
        self._removed = True

    def _check_alive(self) -> None:
        if self._removed:
            raise RendererError("Map has been removed")
