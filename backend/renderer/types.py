from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from geo.aoi import BBox


class RendererError(Exception):
    """A renderer refused a call (duplicate id, missing source, bad geometry, ...)."""


@dataclass(frozen=True)
class LayerSpec:
    """
    A style-spec layer addressed by string id, painting one source.
    """

    id: str
    type: str  # "circle" | "line" | "fill" (renderers may accept more)
    source: str
    paint: dict[str, Any] = field(default_factory=dict)

    def to_style(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "paint": dict(self.paint),
        }


@dataclass(frozen=True)
class PointerEvent:
    type: str
    layer_id: str
    lng_lat: tuple[float, float]
    # GeoJSON features of the layer's source under the pointer.
    features: list[dict[str, Any]] = field(default_factory=list)


PointerHandler = Callable[[PointerEvent], None]


@dataclass(frozen=True)
class Popup:
    """
    Transient overlay anchored at a map coordinate: optional heading + `label: value` rows.
    """

    anchor: tuple[float, float]
    title: str | None = None
    rows: tuple[tuple[str, str], ...] = ()

    @property
    def lines(self) -> list[str]:
        out = [self.title] if self.title else []
        out.extend(f"{label}: {value}" for label, value in self.rows)
        return out

    def to_html(self) -> str:
        parts = ['<div style="color: black; padding: 8px;">']
        if self.title:
            parts.append(
                '<h3 style="font-weight: bold; margin-bottom: 8px;">'
                f"{html.escape(self.title)}</h3>"
            )
        parts.append(
            "<br/>".join(
                f"<strong>{html.escape(label)}:</strong> {html.escape(value)}"
                for label, value in self.rows
            )
        )
        parts.append("</div>")
        return "".join(parts)


@dataclass(frozen=True)
class CameraTransition:
    center: tuple[float, float]  # [lon, lat]
    zoom: float
    duration_ms: int
    bounds: BBox | None = None


class MapRenderer(Protocol):
    """
    The only surface the engine, binder and fitter use to touch a map.

    - InMemoryRenderer: style-spec object graph kept in process (tests, figure export)
    """

    def add_source(self, source_id: str, data: dict[str, Any]) -> None: ...

    def add_layer(self, layer: LayerSpec) -> None: ...

    def remove_layer(self, layer_id: str) -> None: ...

    def remove_source(self, source_id: str) -> None: ...

    def layer_ids(self) -> list[str]: ...

    def source_ids(self) -> list[str]: ...

    def on(self, event: str, layer_id: str, handler: PointerHandler) -> None: ...

    def off(self, layer_id: str) -> None: ...

    def set_cursor(self, cursor: str) -> None: ...

    def show_popup(self, popup: Popup) -> None: ...

    def close_popup(self) -> None: ...

    def fit_bounds(self, bounds: BBox, *, padding: int, duration_ms: int) -> None: ...

    def jump_to(self, center: tuple[float, float], zoom: float | None = None) -> None: ...

    def remove(self) -> None: ...
