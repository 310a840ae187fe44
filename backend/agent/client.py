from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from session.config import backend_url, http_timeout_s
from viz.types import Visualization, visualization_from_feature_collection


class BackendError(Exception):
    """The assistant backend failed or answered with an error."""


@dataclass(frozen=True)
class AssistantReply:
    """
    What the assistant backend answered for one user message.

    - text: natural language answer (streamed to the chat as append events)
    - visualization: optional map content to reconcile onto the session
    """

    text: str
    visualization: Visualization | None = None


def _unwrap_visualization(raw: Any) -> Any:
    # Either a bare {features, config} or a {type, data: {features, config}} envelope.
    if isinstance(raw, dict) and "features" not in raw and isinstance(raw.get("data"), dict):
        return raw["data"]
    return raw


def parse_reply(payload: Any) -> AssistantReply:
    if not isinstance(payload, dict):
        raise BackendError("Backend reply is not a JSON object")
    if payload.get("error"):
        raise BackendError(str(payload["error"]))

    text = str(payload.get("message") or payload.get("text") or "")

    visualization: Visualization | None = None
    raw = _unwrap_visualization(payload.get("visualization"))
    try:
        if isinstance(raw, dict):
            visualization = Visualization.model_validate(raw)
        elif isinstance(payload.get("geojson"), dict):
            visualization = visualization_from_feature_collection(payload["geojson"])
    except ValidationError as e:
        # The text is still worth showing when the map part is unusable.
        logger.warning(f"Dropping unparseable visualization: {e.error_count()} error(s)")
        visualization = None

    return AssistantReply(text=text, visualization=visualization)


async def ask_backend(
    message: str, *, client: httpx.AsyncClient | None = None
) -> AssistantReply:
    """
    Forward one user message to the assistant backend (`POST {BACKEND_URL}/chat`).
    """
    if client is None:
        async with httpx.AsyncClient(timeout=http_timeout_s()) as own_client:
            return await ask_backend(message, client=own_client)

    url = f"{backend_url()}/chat"
    try:
        resp = await client.post(url, json={"message": message})
    except httpx.HTTPError as e:
        raise BackendError(f"Backend unreachable: {e}") from e
    if resp.status_code >= 400:
        raise BackendError(f"Backend responded with {resp.status_code}")
    try:
        payload = resp.json()
    except ValueError as e:
        raise BackendError("Backend reply is not valid JSON") from e
    return parse_reply(payload)
