from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Literal

import httpx
from loguru import logger

from renderer.memory import InMemoryRenderer
from renderer.types import MapRenderer
from session.config import DEFAULT_CENTER, DEFAULT_ZOOM
from session.style import StyleSource, resolve_style
from viz.types import Visualization

if TYPE_CHECKING:
    from reconcile.engine import ReconcileReport


class SessionState(str, Enum):
    uninitialized = "uninitialized"
    loading_style = "loading_style"
    ready = "ready"
    reconciling = "reconciling"
    disposed = "disposed"
    error = "error"


@dataclass(frozen=True)
class SessionSignal:
    status: Literal["ready", "error"]
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ready"


# (style, *, center, zoom) -> renderer
RendererFactory = Callable[..., MapRenderer]


class MapSession:
    """
    Owns exactly one live renderer: style acquisition, readiness gate, teardown.

    The session is passed explicitly to the engine, binder and fitter; nothing reaches
    the renderer through globals. While the style loads (or a pass is running) updates
    are queued with last-writer-wins and replayed once the session is `ready`.
    """

    def __init__(
        self,
        *,
        center: tuple[float, float] = DEFAULT_CENTER,
        zoom: float = DEFAULT_ZOOM,
        renderer_factory: RendererFactory = InMemoryRenderer,
    ) -> None:
        self.state = SessionState.uninitialized
        self.renderer: MapRenderer | None = None
        self.error_message: str | None = None
        self.center = center
        self.zoom = zoom
        self.last_report: ReconcileReport | None = None
        self.last_applied: Visualization | None = None
        self._renderer_factory = renderer_factory
        self._pending: Visualization | None = None
        self._load_task: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"MapSession(state={self.state.value})"

    @property
    def is_ready(self) -> bool:
        return self.state == SessionState.ready and self.renderer is not None

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def queue(self, visualization: Visualization) -> None:
        if self._pending is not None:
            logger.debug("Replacing queued visualization (last writer wins)")
        self._pending = visualization

    def take_pending(self) -> Visualization | None:
        if not self.is_ready:
            return None
        v, self._pending = self._pending, None
        return v

    def fail(self, message: str) -> None:
        """Move to `error`; the session must be recreated to recover."""
        logger.error(f"Map session failed: {message}")
        self.state = SessionState.error
        self.error_message = message
        self._pending = None

    def signal(self) -> SessionSignal:
        if self.state in {SessionState.ready, SessionState.reconciling}:
            return SessionSignal(status="ready")
        if self.state == SessionState.error:
            return SessionSignal(status="error", message=self.error_message)
        return SessionSignal(status="error", message=f"Map session is {self.state.value}")

    async def await_ready(self) -> SessionSignal:
        if self.state == SessionState.disposed:
            logger.warning("await_ready() on a disposed map session")
        task = self._load_task
        if task is not None and not task.done():
            # asyncio.wait doesn't raise if dispose() cancelled the load.
            await asyncio.wait({task})
        return self.signal()

    async def _load(self, style_source: StyleSource, client: httpx.AsyncClient | None) -> None:
        self.state = SessionState.loading_style
        try:
            style = await resolve_style(style_source, client=client)
            renderer = self._renderer_factory(style, center=self.center, zoom=self.zoom)
        except Exception as e:
            self.fail(f"{type(e).__name__}: {e}")
            return

        self.renderer = renderer
        self.state = SessionState.ready
        logger.info("Map session ready")

        pending = self.take_pending()
        if pending is not None:
            # Lazily import: the engine depends on this module.
            from reconcile.engine import reconcile

            reconcile(self, pending)

    def dispose(self) -> None:
        if self.state == SessionState.disposed:
            logger.warning("dispose() on an already disposed map session")
            return
        task = self._load_task
        if task is not None and not task.done():
            task.cancel()
        renderer = self.renderer
        self.renderer = None
        self._pending = None
        self.state = SessionState.disposed
        if renderer is not None:
            try:
                renderer.remove()
            except Exception as e:
                logger.warning(f"Renderer teardown raised during dispose: {e}")
        logger.info("Map session disposed")

    def status(self) -> dict[str, Any]:
        report = self.last_report
        return {
            "state": self.state.value,
            "error": self.error_message,
            "pending": self.has_pending,
            "warnings": [w.to_dict() for w in report.skipped] if report else [],
        }


def create(
    style_source: StyleSource,
    *,
    center: tuple[float, float] | None = None,
    zoom: float | None = None,
    renderer_factory: RendererFactory | None = None,
    client: httpx.AsyncClient | None = None,
) -> MapSession:
    """
    Start a map session. Must be called on a running event loop; returns at once in
    `loading_style`. Use `await session.await_ready()` for the ready/error signal.
    """
    session = MapSession(
        center=center or DEFAULT_CENTER,
        zoom=DEFAULT_ZOOM if zoom is None else zoom,
        renderer_factory=renderer_factory or InMemoryRenderer,
    )
    session.state = SessionState.loading_style
    session._load_task = asyncio.get_running_loop().create_task(
        session._load(style_source, client)
    )
    return session
