from __future__ import annotations

from typing import Any


def _rgba(color: Any, opacity: Any) -> str:
    """
    Plotly wants opacity baked into `fillcolor`; expand `#rrggbb`/`#rgb` into rgba().
    Other color strings pass through unchanged.
    """
    c = str(color or "").strip()
    try:
        a = float(opacity)
    except (TypeError, ValueError):
        a = 1.0
    h = c.lstrip("#")
    if c.startswith("#") and len(h) == 3:
        h = "".join(ch * 2 for ch in h)
    if c.startswith("#") and len(h) == 6:
        try:
            r, g, b = (int(h[i : i + 2], 16) for i in (0, 2, 4))
        except ValueError:
            return c
        return f"rgba({r}, {g}, {b}, {a:g})"
    return c


def _source_features(source: dict[str, Any] | None) -> list[dict[str, Any]]:
    data = (source or {}).get("data") or {}
    if data.get("type") == "Feature":
        return [data]
    return [f for f in data.get("features") or [] if isinstance(f, dict)]


def _label(feature: dict[str, Any]) -> str:
    props = feature.get("properties") or {}
    return str(props.get("title") or feature.get("id") or "")


def _geometry(feature: dict[str, Any]) -> tuple[str | None, Any]:
    geom = feature.get("geometry") or {}
    return geom.get("type"), geom.get("coordinates")


def trace_fill(layer: dict[str, Any], source: dict[str, Any] | None) -> dict[str, Any]:
    lons: list[float | None] = []
    lats: list[float | None] = []
    names: list[str] = []
    for f in _source_features(source):
        gtype, coords = _geometry(f)
        if gtype != "Polygon" or not coords:
            continue
        # Outer ring only; holes are not drawn in the figure.
        ring = list(coords[0])
        if not ring:
            continue
        if ring[0] != ring[-1]:
            ring = [*ring, ring[0]]
        for lon, lat, *_ in ring:
            lons.append(lon)
            lats.append(lat)
        lons.append(None)
        lats.append(None)
        names.append(_label(f))

    paint = layer.get("paint") or {}
    return {
        "type": "scattermapbox",
        "name": names[0] if names else layer["id"],
        "uid": layer["id"],
        "lon": lons,
        "lat": lats,
        "mode": "lines",
        "fill": "toself",
        "fillcolor": _rgba(paint.get("fill-color"), paint.get("fill-opacity", 1.0)),
        "line": {"color": "rgba(0, 0, 0, 0)", "width": 0},
        "hoverinfo": "text",
        "text": names[0] if names else "",
        "showlegend": False,
    }


def trace_line(layer: dict[str, Any], source: dict[str, Any] | None) -> dict[str, Any]:
    lons: list[float | None] = []
    lats: list[float | None] = []
    names: list[str] = []
    for f in _source_features(source):
        gtype, coords = _geometry(f)
        if gtype == "LineString":
            rings = [coords or []]
        elif gtype == "Polygon":
            rings = list(coords or [])[:1]
        else:
            continue
        for ring in rings:
            if len(ring) < 2:
                continue
            for lon, lat, *_ in ring:
                lons.append(lon)
                lats.append(lat)
            lons.append(None)
            lats.append(None)
        names.append(_label(f))

    paint = layer.get("paint") or {}
    return {
        "type": "scattermapbox",
        "name": names[0] if names else layer["id"],
        "uid": layer["id"],
        "lon": lons,
        "lat": lats,
        "mode": "lines",
        "opacity": float(paint.get("line-opacity", 1.0)),
        "line": {
            "color": paint.get("line-color") or "#4F46E5",
            "width": float(paint.get("line-width") or 2),
        },
        "hoverinfo": "skip",
        "showlegend": False,
    }


def trace_circle(layer: dict[str, Any], source: dict[str, Any] | None) -> dict[str, Any]:
    pts: list[tuple[dict[str, Any], Any]] = []
    for f in _source_features(source):
        gtype, coords = _geometry(f)
        if gtype == "Point" and coords:
            pts.append((f, coords))
    paint = layer.get("paint") or {}
    return {
        "type": "scattermapbox",
        "name": _label(pts[0][0]) if pts else layer["id"],
        "uid": layer["id"],
        "lon": [c[0] for _, c in pts],
        "lat": [c[1] for _, c in pts],
        "mode": "markers",
        "text": [_label(f) for f, _ in pts],
        "marker": {
            # circle-radius is a radius, plotly marker size a diameter
            "size": float(paint.get("circle-radius") or 8) * 2,
            "color": paint.get("circle-color") or "#4F46E5",
            "opacity": float(paint.get("circle-opacity", 1.0)),
        },
        "hovertemplate": "%{text}<extra></extra>",
        "showlegend": False,
    }
