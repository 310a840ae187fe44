from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from loguru import logger

from reconcile.types import PreparedFeature
from renderer.types import PointerEvent, Popup

if TYPE_CHECKING:
    from session.session import MapSession


def _stringify(v: Any) -> str:
    try:
        return str(v)
    except Exception:
        return repr(v)


def popup_rows(data: Any) -> tuple[tuple[str, str], ...]:
    """
    `label: value` rows for a feature's data. A non-mapping value is shown as one row
    instead of failing the popup.
    """
    if data is None or data == {}:
        return ()
    if isinstance(data, Mapping):
        return tuple((_stringify(k), _stringify(v)) for k, v in data.items())
    return (("data", _stringify(data)),)


def popup_for(feature: PreparedFeature, ev: PointerEvent) -> Popup:
    # A polygon/line has no canonical anchor, so use the pointer position.
    if feature.geometry_type == "Point":
        anchor = (float(feature.coordinates[0]), float(feature.coordinates[1]))
    else:
        anchor = ev.lng_lat
    return Popup(anchor=anchor, title=feature.title, rows=popup_rows(feature.data))


def bind(
    session: "MapSession",
    layer_id: str,
    feature: PreparedFeature,
    *,
    trigger: str = "click",
) -> None:
    """
    Wire cursor affordance and the popup for one freshly installed layer.

    Handlers close over this pass's feature only; the engine drops them together with the
    layer on the next pass, so they can't outlive the data they show.
    """
    renderer = session.renderer
    if renderer is None:
        logger.warning(f"bind({layer_id!r}) on a session without a renderer")
        return

    def on_enter(_ev: PointerEvent) -> None:
        renderer.set_cursor("pointer")

    def on_leave(_ev: PointerEvent) -> None:
        renderer.set_cursor("")

    def on_trigger(ev: PointerEvent) -> None:
        renderer.show_popup(popup_for(feature, ev))

    renderer.on("mouseenter", layer_id, on_enter)
    renderer.on("mouseleave", layer_id, on_leave)
    renderer.on(trigger, layer_id, on_trigger)
