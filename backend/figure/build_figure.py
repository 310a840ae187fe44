from __future__ import annotations

from typing import Any

from figure.traces import trace_circle, trace_fill, trace_line
from reconcile.types import ReconcileReport, is_owned
from renderer.memory import InMemoryRenderer

_TRACE_BUILDERS = {
    "fill": trace_fill,
    "line": trace_line,
    "circle": trace_circle,
}


def build_figure(
    renderer: InMemoryRenderer, *, report: ReconcileReport | None = None
) -> dict[str, Any]:
    """
    Plotly `scattermapbox` payload of everything the engine currently has installed.

    Traces follow the renderer's layer order, so later features still draw on top.
    Base-style layers are not part of the figure; the basemap comes from mapbox.style.
    """
    traces: list[dict[str, Any]] = []
    counts = {"fill": 0, "line": 0, "circle": 0}
    for layer_id in renderer.layer_ids():
        if not is_owned(layer_id):
            continue
        layer = renderer.get_layer(layer_id) or {}
        build = _TRACE_BUILDERS.get(layer.get("type") or "")
        if build is None:
            continue
        traces.append(build(layer, renderer.get_source(layer.get("source") or "")))
        counts[layer["type"]] += 1

    lon, lat = renderer.center
    meta: dict[str, Any] = {
        "stats": {
            "ownedSources": sum(1 for s in renderer.source_ids() if is_owned(s)),
            "fillLayers": counts["fill"],
            "lineLayers": counts["line"],
            "circleLayers": counts["circle"],
        }
    }
    if report is not None:
        meta["stats"]["skipped"] = len(report.skipped)
        meta["warnings"] = [s.to_dict() for s in report.skipped]
    if renderer.popup is not None:
        meta["popup"] = {
            "anchor": list(renderer.popup.anchor),
            "lines": renderer.popup.lines,
        }

    return {
        "data": traces,
        "layout": {
            "mapbox": {
                "center": {"lat": lat, "lon": lon},
                "zoom": renderer.zoom,
                "style": "carto-positron",
            },
            "showlegend": False,
            "margin": {"l": 0, "r": 0, "t": 0, "b": 0},
            "meta": meta,
        },
    }
