from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from typing import Any, Union

import httpx
from loguru import logger

from session.config import (
    http_timeout_s,
    style_base_url,
    style_map_name,
    style_version_pattern,
)


class StyleError(Exception):
    """The style document could not be fetched or is not a usable style."""


@dataclass(frozen=True)
class StyleProvider:
    """
    Style documents behind two sequential calls: list versions, then fetch one version.

    Both calls are keyed by the API credential of the hosting environment.
    """

    api_key: str
    base_url: str = field(default_factory=style_base_url)
    version_pattern: str = field(default_factory=style_version_pattern)
    map_name: str = field(default_factory=style_map_name)

    def versions_url(self) -> str:
        return f"{self.base_url}/maps/orbis/assets/styles"

    def style_url(self, version: str) -> str:
        return f"{self.base_url}/maps/orbis/assets/styles/{version}/style.json"

    async def list_versions(self, client: httpx.AsyncClient) -> list[str]:
        resp = await client.get(
            self.versions_url(), params={"key": self.api_key, "apiVersion": "1"}
        )
        resp.raise_for_status()
        return parse_versions(resp.json())

    async def fetch_style(self, client: httpx.AsyncClient, version: str) -> dict[str, Any]:
        resp = await client.get(
            self.style_url(version),
            params={
                "key": self.api_key,
                "apiVersion": "1",
                "map": self.map_name,
                "hillshade": "hillshade_light",
                "trafficFlow": "flow_relative-light",
                "trafficIncidents": "incidents_light",
            },
        )
        resp.raise_for_status()
        return resp.json()

    async def resolve(self, client: httpx.AsyncClient) -> dict[str, Any]:
        versions = await self.list_versions(client)
        version = select_version(versions, self.version_pattern)
        logger.info(f"Using style version {version} ({len(versions)} available)")
        return await self.fetch_style(client, version)


StyleSource = Union[dict[str, Any], str, StyleProvider]


def parse_versions(payload: Any) -> list[str]:
    """
    Accepts `["0.1.0", ...]`, `{"versions": [...]}` and entries shaped like
    `{"version": "0.1.0"}` / `{"name": "0.1.0"}`.
    """
    items = payload.get("versions") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise StyleError("Style version list has an unexpected shape")
    out: list[str] = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("version") or item.get("name")
        if isinstance(item, str) and item.strip():
            out.append(item.strip())
    return out


def _version_key(v: str) -> tuple:
    parts: list[tuple[int, int | str]] = []
    for p in v.split("."):
        parts.append((0, int(p)) if p.isdigit() else (1, p))
    return tuple(parts)


def select_version(versions: list[str], pattern: str) -> str:
    matching = [v for v in versions if fnmatch.fnmatchcase(v, pattern)]
    if not matching:
        raise StyleError(f"No style version matches {pattern!r} (have {versions})")
    return max(matching, key=_version_key)


def check_style(doc: Any) -> dict[str, Any]:
    if not isinstance(doc, dict):
        raise StyleError("Style document is not a JSON object")
    if doc.get("version") != 8:
        raise StyleError(f"Unsupported style version {doc.get('version')!r}")
    if not isinstance(doc.get("sources", {}), dict) or not isinstance(
        doc.get("layers", []), list
    ):
        raise StyleError("Style needs `sources` object and `layers` array")
    return doc


async def resolve_style(
    source: StyleSource, *, client: httpx.AsyncClient | None = None
) -> dict[str, Any]:
    """
    Turn a style source (inline document, style URL, or provider) into a style document.

    Network and parse failures are raised as `StyleError`.
    """
    if isinstance(source, dict):
        return check_style(dict(source))

    if client is None:
        async with httpx.AsyncClient(timeout=http_timeout_s()) as own_client:
            return await resolve_style(source, client=own_client)

    try:
        if isinstance(source, StyleProvider):
            doc = await source.resolve(client)
        else:
            resp = await client.get(source)
            resp.raise_for_status()
            doc = resp.json()
    except httpx.HTTPError as e:
        raise StyleError(f"Style request failed: {e}") from e
    except ValueError as e:
        # json decoding errors
        raise StyleError(f"Style response is not valid JSON: {e}") from e
    return check_style(doc)


def blank_style() -> dict[str, Any]:
    return {"version": 8, "sources": {}, "layers": []}


def build_tile_style(api_key: str | None, *, base_url: str | None = None) -> dict[str, Any]:
    """
    Minimal vector-tile style that needs no style round trip: the provider's tiles and a
    single roads layer.
    """
    base = (base_url or style_base_url()).rstrip("/")
    return {
        "version": 8,
        "sources": {
            "tomtom": {
                "type": "vector",
                "tiles": [
                    f"{base}/maps/orbis/map-display/tile/{{z}}/{{x}}/{{y}}.pbf"
                    f"?apiVersion=1&key={api_key or ''}&view=Unified"
                ],
                "minzoom": 0,
                "maxzoom": 22,
            }
        },
        "layers": [
            {
                "id": "road-layer",
                "type": "line",
                "source": "tomtom",
                "source-layer": "roads",
                "paint": {"line-color": "#ff0000", "line-width": 2},
            }
        ],
    }
