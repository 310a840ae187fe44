from __future__ import annotations

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

import api.chat_stream as chat_stream
from agent.client import AssistantReply, BackendError
from api.chat_stream import handle_chat_message, reset_session
from main import app
from viz.types import Visualization

_STATIONS = Visualization.model_validate(
    {
        "features": [
            {
                "type": "Feature",
                "id": "st-1",
                "geometry": {"type": "Point", "coordinates": [-97.74, 30.27]},
                "properties": {"title": "Station 1", "data": {"Chargers": 4}},
            },
            {"type": "Feature", "id": "broken", "geometry": {"type": "Point"}},
        ]
    }
)


@pytest.fixture(autouse=True)
def _isolated_session(monkeypatch):
    monkeypatch.delenv("TOMTOM_API_KEY", raising=False)
    monkeypatch.delenv("NEXT_PUBLIC_TOMTOM_API_KEY", raising=False)
    monkeypatch.setattr(chat_stream, "_WORD_DELAY_S", 0)
    reset_session()
    yield
    reset_session()


def _reply_with(monkeypatch, reply: AssistantReply | Exception):
    async def fake_ask_backend(message, **_kwargs):
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(chat_stream, "ask_backend", fake_ask_backend)


def _parse(body: str) -> list[tuple[str, str]]:
    # SSE chunks are "event: X\ndata: Y\n\n"
    events = []
    for chunk in body.split("\n\n"):
        if not chunk.startswith("event:"):
            continue
        head, data = chunk.split("\n", 1)
        events.append((head.split(":", 1)[1].strip(), data.split(":", 1)[1].strip()))
    return events


def _collect(message: str) -> list[tuple[str, str]]:
    async def run():
        return "".join([chunk async for chunk in handle_chat_message(message)])

    return _parse(asyncio.run(run()))


def test_stream_emits_text_warnings_plot_and_commit(monkeypatch):
    _reply_with(monkeypatch, AssistantReply(text="Found one station", visualization=_STATIONS))

    events = _collect("stations in Austin")
    kinds = [k for k, _ in events]

    assert kinds[:3] == ["append", "append", "append"]
    assert kinds[-3:] == ["warnings", "plot_data", "commit"]
    assert " ".join(d for k, d in events if k == "append") == "Found one station"

    warnings = json.loads(dict(events)["warnings"])
    assert warnings == [{"featureId": "broken", "index": 1, "reason": "empty coordinates"}]

    plot = json.loads(dict(events)["plot_data"])
    assert [t["uid"] for t in plot["data"]] == ["viz-layer-0"]
    assert plot["layout"]["meta"]["stats"]["skipped"] == 1


def test_text_only_reply_has_no_plot(monkeypatch):
    _reply_with(monkeypatch, AssistantReply(text="Hello there"))

    kinds = [k for k, _ in _collect("hi")]
    assert "plot_data" not in kinds
    assert kinds[-1] == "commit"
    assert chat_stream.current_session() is None


def test_backend_failure_is_reported_in_the_chat(monkeypatch):
    _reply_with(monkeypatch, BackendError("Backend responded with 503"))

    events = _collect("hi")
    text = " ".join(d for k, d in events if k == "append")
    assert text.startswith("Backend error: BackendError:")
    assert "503" in text
    assert events[-1][0] == "commit"


def test_failed_map_session_is_reported_and_recreated(monkeypatch):
    _reply_with(monkeypatch, AssistantReply(text="ok", visualization=_STATIONS))
    monkeypatch.setattr(
        chat_stream,
        "default_style_source",
        lambda: {"version": 7, "sources": {}, "layers": []},
    )

    text = " ".join(d for k, d in _collect("hi") if k == "append")
    assert "Map unavailable" in text
    failed = chat_stream.current_session()
    assert failed.state.value == "error"

    monkeypatch.setattr(chat_stream, "default_style_source", lambda: {"version": 8})
    kinds = [k for k, _ in _collect("again")]
    assert "plot_data" in kinds
    assert chat_stream.current_session() is not failed


def test_chat_endpoint_streams_sse(monkeypatch):
    _reply_with(monkeypatch, AssistantReply(text="Found one station", visualization=_STATIONS))
    client = TestClient(app)

    resp = client.post("/chat", json={"message": "stations in Austin"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    kinds = [k for k, _ in _parse(resp.text)]
    assert {"append", "warnings", "plot_data", "commit"}.issubset(kinds)

    status = client.get("/session").json()
    assert status["state"] == "ready"
    assert status["warnings"][0]["featureId"] == "broken"


def test_chat_endpoint_rejects_empty_message():
    client = TestClient(app)
    assert client.post("/chat", json={"message": ""}).status_code == 422


def test_session_endpoint_before_first_map():
    client = TestClient(app)
    assert client.get("/session").json()["state"] == "uninitialized"


def test_style_endpoint_embeds_api_key(monkeypatch):
    monkeypatch.setenv("TOMTOM_API_KEY", "abc123")
    client = TestClient(app)

    style = client.get("/style").json()
    assert style["version"] == 8
    assert "key=abc123" in style["sources"]["tomtom"]["tiles"][0]
    assert style["layers"][0]["id"] == "road-layer"
