from __future__ import annotations

import asyncio

import httpx
import pytest

from reconcile import reconcile
from session.session import SessionState, create
from session.style import (
    StyleError,
    StyleProvider,
    blank_style,
    parse_versions,
    resolve_style,
    select_version,
)
from viz.types import Visualization

_PROVIDER = StyleProvider(
    api_key="test-key",
    base_url="https://maps.test",
    version_pattern="0.*",
    map_name="basic_street-light",
)

_PROVIDER_STYLE = {
    "version": 8,
    "sources": {"vectorTiles": {"type": "vector", "tiles": []}},
    "layers": [{"id": "background", "type": "background"}],
}


def _viz(fid: str) -> Visualization:
    return Visualization.model_validate(
        {
            "features": [
                {
                    "type": "Feature",
                    "id": fid,
                    "geometry": {"type": "Point", "coordinates": [-97.7, 30.3]},
                }
            ]
        }
    )


def _provider_transport(seen: list[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/maps/orbis/assets/styles":
            return httpx.Response(200, json={"versions": ["0.2.0", "0.10.0", "1.0.0"]})
        if request.url.path == "/maps/orbis/assets/styles/0.10.0/style.json":
            return httpx.Response(200, json=_PROVIDER_STYLE)
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def test_provider_style_takes_two_round_trips():
    seen: list[httpx.Request] = []

    async def run():
        async with httpx.AsyncClient(transport=_provider_transport(seen)) as client:
            s = create(_PROVIDER, client=client)
            assert s.state == SessionState.loading_style
            signal = await s.await_ready()
            return s, signal

    s, signal = asyncio.run(run())

    assert signal.ok
    assert s.state == SessionState.ready
    assert s.renderer.layer_ids() == ["background"]
    assert [r.url.path for r in seen] == [
        "/maps/orbis/assets/styles",
        "/maps/orbis/assets/styles/0.10.0/style.json",
    ]
    assert all(r.url.params["key"] == "test-key" for r in seen)
    assert seen[1].url.params["map"] == "basic_street-light"


def test_failed_style_request_moves_session_to_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "down"})

    async def run():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            s = create(_PROVIDER, client=client)
            reconcile(s, _viz("queued"))
            signal = await s.await_ready()
            return s, signal

    s, signal = asyncio.run(run())

    assert not signal.ok
    assert s.state == SessionState.error
    assert "StyleError" in s.error_message
    assert signal.message == s.error_message
    assert not s.has_pending
    # Updates on a failed session are dropped.
    assert reconcile(s, _viz("late")) is None


def test_unsupported_style_document_is_an_error():
    async def run():
        s = create({"version": 7, "sources": {}, "layers": []})
        return await s.await_ready()

    signal = asyncio.run(run())
    assert signal.status == "error"
    assert "Unsupported style version" in signal.message


def test_renderer_construction_failure_is_an_error():
    def broken_factory(style, *, center, zoom):
        raise RuntimeError("no GL context")

    async def run():
        s = create(blank_style(), renderer_factory=broken_factory)
        await s.await_ready()
        return s

    s = asyncio.run(run())
    assert s.state == SessionState.error
    assert "no GL context" in s.error_message
    assert s.renderer is None


def test_updates_during_style_load_keep_only_the_last():
    async def run():
        s = create(blank_style())
        assert reconcile(s, _viz("first")) is None
        assert reconcile(s, _viz("second")) is None
        assert s.has_pending
        await s.await_ready()
        return s

    s = asyncio.run(run())

    assert s.state == SessionState.ready
    assert not s.has_pending
    assert s.last_applied.features[0].id == "second"
    data = s.renderer.get_source("viz-source-0")["data"]
    assert data["features"][0]["id"] == "second"


def test_dispose_before_ready_cancels_the_load():
    async def run():
        s = create(blank_style())
        reconcile(s, _viz("never"))
        s.dispose()
        signal = await s.await_ready()
        return s, signal

    s, signal = asyncio.run(run())

    assert s.state == SessionState.disposed
    assert s.renderer is None
    assert not s.has_pending
    assert not signal.ok
    assert reconcile(s, _viz("after")) is None


def test_dispose_removes_renderer_and_is_idempotent(session):
    renderer = session.renderer
    reconcile(session, _viz("a"))

    session.dispose()
    assert session.state == SessionState.disposed
    assert renderer.removed
    assert renderer.layer_ids() == []

    session.dispose()
    assert session.state == SessionState.disposed


def test_status_reports_last_pass_warnings(session):
    reconcile(
        session,
        Visualization.model_validate(
            {"features": [{"type": "Feature", "id": "x", "geometry": None}]}
        ),
    )
    status = session.status()
    assert status["state"] == "ready"
    assert status["warnings"] == [
        {"featureId": "x", "index": 0, "reason": "missing geometry"}
    ]


def test_style_url_source_is_fetched_once():
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json=_PROVIDER_STYLE)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await resolve_style("https://tiles.test/style.json", client=client)

    doc = asyncio.run(run())
    assert seen == ["https://tiles.test/style.json"]
    assert doc["layers"][0]["id"] == "background"


def test_non_json_style_response_is_a_style_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>nope</html>")

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await resolve_style("https://tiles.test/style.json", client=client)

    with pytest.raises(StyleError):
        asyncio.run(run())


def test_version_selection_prefers_newest_numeric_match():
    versions = parse_versions([{"version": "0.9.1"}, {"name": "0.10.0"}, "1.2.0", ""])
    assert versions == ["0.9.1", "0.10.0", "1.2.0"]
    assert select_version(versions, "0.*") == "0.10.0"
    assert select_version(versions, "*") == "1.2.0"
    with pytest.raises(StyleError):
        select_version(versions, "2.*")
    with pytest.raises(StyleError):
        parse_versions({"items": []})
