from __future__ import annotations

import json
from asyncio import sleep
from enum import Enum

from loguru import logger

from agent.client import ask_backend
from figure.build_figure import build_figure
from reconcile.engine import reconcile
from renderer.memory import InMemoryRenderer
from session.config import tomtom_api_key
from session.session import MapSession, SessionState, create
from session.style import StyleProvider, StyleSource, blank_style

_WORD_DELAY_S = 0.02


class EventType(str, Enum):
    append = "append"
    commit = "commit"
    plot_data = "plot_data"
    warnings = "warnings"


def format_event(type: EventType, data: str):
    return f"event: {type.value}\ndata: {data}\n\n"


# The app drives exactly one map session.
_session: MapSession | None = None


def default_style_source() -> StyleSource:
    key = tomtom_api_key()
    if key:
        return StyleProvider(api_key=key)
    logger.info("No map API key configured; using a blank base style")
    return blank_style()


def current_session() -> MapSession | None:
    return _session


async def get_session() -> MapSession:
    """
    The live session, (re)created when there is none or the previous one failed.
    """
    global _session
    if _session is None or _session.state in {SessionState.error, SessionState.disposed}:
        _session = create(default_style_source())
    await _session.await_ready()
    return _session


def reset_session() -> None:
    global _session
    if _session is not None and _session.state != SessionState.disposed:
        _session.dispose()
    _session = None


async def handle_chat_message(message: str):
    try:
        reply = await ask_backend(message)

        for word in reply.text.replace("\n", " \n ").split():
            yield format_event(EventType.append, word)
            await sleep(_WORD_DELAY_S)

        if reply.visualization is not None:
            session = await get_session()
            signal = session.signal()
            if not signal.ok:
                raise RuntimeError(f"Map unavailable: {signal.message}")

            report = reconcile(session, reply.visualization) or session.last_report
            if report is not None and report.skipped:
                yield format_event(
                    EventType.warnings,
                    json.dumps([s.to_dict() for s in report.skipped], ensure_ascii=False),
                )
            if isinstance(session.renderer, InMemoryRenderer):
                plot = build_figure(session.renderer, report=report)
                yield format_event(
                    EventType.plot_data, json.dumps(plot, ensure_ascii=False)
                )

        # Commit the message (punctuation ends the buffer on frontend).
        yield format_event(EventType.commit, ".")
    except Exception as e:
        logger.error(f"Chat request failed: {type(e).__name__}: {e}")
        msg = f"Backend error: {type(e).__name__}: {e}"
        for word in msg.split():
            yield format_event(EventType.append, word)
        yield format_event(EventType.commit, ".")
