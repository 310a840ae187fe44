from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from loguru import logger

from geo.aoi import BBox
from geo.bounds import bounds_of_geometries
from reconcile.types import PreparedFeature
from session.config import FIT_DURATION_MS, FIT_PADDING_PX

if TYPE_CHECKING:
    from session.session import MapSession


def features_bounds(features: Sequence[PreparedFeature]) -> BBox | None:
    return bounds_of_geometries((f.geometry_type, f.coordinates) for f in features)


def fit(session: "MapSession", features: Sequence[PreparedFeature]) -> BBox | None:
    """
    Smoothly move the camera onto everything in `features`.

    With nothing to cover the camera is left where it is rather than reset.
    """
    bounds = features_bounds(features)
    if bounds is None:
        logger.debug("Nothing to fit; camera unchanged")
        return None
    renderer = session.renderer
    if renderer is None:
        logger.warning("fit() on a session without a renderer")
        return None
    renderer.fit_bounds(bounds, padding=FIT_PADDING_PX, duration_ms=FIT_DURATION_MS)
    return bounds
