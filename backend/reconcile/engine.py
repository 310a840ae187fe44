from __future__ import annotations

from loguru import logger

from geo.aoi import BBox
from geo.validate import structure_problem, validate_coordinates
from reconcile.interactions import bind
from reconcile.layers import layer_specs_for
from reconcile.types import (
    PreparedFeature,
    ReconcileReport,
    SkippedFeature,
    is_owned,
    layer_prefix_for,
    source_id_for,
)
from reconcile.viewport import fit
from renderer.types import MapRenderer
from session.config import FIT_DURATION_MS, FIT_PADDING_PX
from session.session import MapSession, SessionState
from viz.types import Feature, Visualization


def prepare_feature(index: int, feature: Feature) -> PreparedFeature | SkippedFeature:
    fid = feature.feature_id(index)
    geom = feature.geometry
    if geom is None:
        return SkippedFeature(feature_id=fid, index=index, reason="missing geometry")
    if not geom.type:
        return SkippedFeature(feature_id=fid, index=index, reason="missing geometry type")

    coords = validate_coordinates(geom.coordinates, geom.type)
    problem = structure_problem(coords, geom.type)
    if problem is not None:
        return SkippedFeature(feature_id=fid, index=index, reason=problem)

    props = feature.properties
    return PreparedFeature(
        index=index,
        feature_id=fid,
        geometry_type=geom.type,
        coordinates=coords,
        properties=props.model_dump(),
        title=props.title,
        data=props.data,
        style=dict(props.style),
    )


def remove_owned(renderer: MapRenderer) -> int:
    """
    Remove every engine-owned object: handlers + layers (topmost first), then sources.

    Layers go first because a source can't be removed while a layer uses it.
    """
    removed = 0
    for layer_id in reversed(renderer.layer_ids()):
        if is_owned(layer_id):
            renderer.off(layer_id)
            renderer.remove_layer(layer_id)
            removed += 1
    for source_id in renderer.source_ids():
        if is_owned(source_id):
            renderer.remove_source(source_id)
            removed += 1
    return removed


def _install(renderer: MapRenderer, feature: PreparedFeature) -> list[str]:
    source_id = source_id_for(feature.index)
    renderer.add_source(
        source_id, {"type": "FeatureCollection", "features": [feature.to_geojson()]}
    )
    installed: list[str] = []
    try:
        for spec in layer_specs_for(
            feature.geometry_type,
            source_id=source_id,
            layer_prefix=layer_prefix_for(feature.index),
            style=feature.style,
        ):
            renderer.add_layer(spec)
            installed.append(spec.id)
    except Exception:
        _rollback(renderer, source_id, installed)
        raise
    return installed


def _rollback(renderer: MapRenderer, source_id: str, layer_ids: list[str]) -> None:
    # Leftovers still carry the owned prefix, so the next teardown would catch them.
    try:
        for layer_id in reversed(layer_ids):
            renderer.remove_layer(layer_id)
        renderer.remove_source(source_id)
    except Exception as e:
        logger.warning(f"Rollback of {source_id!r} incomplete: {e}")


def _apply_camera(
    session: MapSession,
    visualization: Visualization,
    installed: list[PreparedFeature],
    report: ReconcileReport,
) -> None:
    config = visualization.config
    if config.fitBounds and installed:
        # Explicit camera settings only apply when fitting is off or nothing was drawn.
        report.bounds = fit(session, installed)
        if report.bounds is not None:
            report.camera = "fit"
        return

    renderer = session.renderer
    if renderer is None:
        return
    if config.bounds is not None:
        box = BBox.from_corners(config.bounds.southWest, config.bounds.northEast)
        renderer.fit_bounds(box, padding=FIT_PADDING_PX, duration_ms=FIT_DURATION_MS)
        report.bounds = box
        report.camera = "bounds"
    elif config.center is not None:
        renderer.jump_to(config.center, config.zoom)
        report.camera = "center"
    elif config.zoom is not None:
        renderer.jump_to(renderer.center, config.zoom)
        report.camera = "zoom"


def _run_pass(session: MapSession, visualization: Visualization) -> ReconcileReport:
    report = ReconcileReport()
    renderer = session.renderer
    if renderer is None:
        report.fatal = "Map session has no renderer"
        session.fail(report.fatal)
        return report

    try:
        renderer.close_popup()
        report.removed = remove_owned(renderer)
    except Exception as e:
        # Can't vouch for the owned namespace anymore.
        report.fatal = f"Teardown failed: {type(e).__name__}: {e}"
        session.fail(report.fatal)
        return report

    installed: list[PreparedFeature] = []
    for index, feature in enumerate(visualization.features):
        try:
            prepared = prepare_feature(index, feature)
        except Exception as e:
            prepared = SkippedFeature(
                feature_id=feature.feature_id(index),
                index=index,
                reason=f"invalid feature: {type(e).__name__}: {e}",
            )
        if isinstance(prepared, SkippedFeature):
            logger.warning(
                f"Skipping feature {prepared.feature_id!r} (#{index}): {prepared.reason}"
            )
            report.skipped.append(prepared)
            continue

        try:
            layer_ids = _install(renderer, prepared)
        except Exception as e:
            reason = f"renderer rejected feature: {e}"
            logger.warning(f"Skipping feature {prepared.feature_id!r} (#{index}): {reason}")
            report.skipped.append(
                SkippedFeature(feature_id=prepared.feature_id, index=index, reason=reason)
            )
            continue

        report.sources.append(source_id_for(index))
        report.layers.extend(layer_ids)
        installed.append(prepared)

        if prepared.is_interactive and layer_ids:
            trigger = (
                "mouseenter"
                if prepared.geometry_type == "Point"
                and visualization.config.popupTrigger == "hover"
                else "click"
            )
            try:
                bind(session, layer_ids[0], prepared, trigger=trigger)
                report.bound_layers.append(layer_ids[0])
            except Exception as e:
                logger.warning(f"Could not bind interactions on {layer_ids[0]!r}: {e}")

    try:
        _apply_camera(session, visualization, installed, report)
    except Exception as e:
        logger.warning(f"Camera update failed: {e}")
    return report


def reconcile(session: MapSession, visualization: Visualization) -> ReconcileReport | None:
    """
    Make the session's renderer show exactly `visualization`.

    Returns the report of the last pass that ran, or None when the update was queued
    (style still loading, or a pass already in flight) or the session is unusable.
    A queued update replays as soon as the session is ready again (last writer wins).
    """
    if session.state in {
        SessionState.uninitialized,
        SessionState.loading_style,
        SessionState.reconciling,
    }:
        session.queue(visualization)
        return None
    if not session.is_ready:
        logger.warning(f"reconcile() ignored: map session is {session.state.value}")
        return None

    report: ReconcileReport | None = None
    current: Visualization | None = visualization
    while current is not None:
        session.state = SessionState.reconciling
        try:
            report = _run_pass(session, current)
        finally:
            if session.state == SessionState.reconciling:
                session.state = SessionState.ready
        session.last_report = report
        if report.fatal is None:
            session.last_applied = current
            logger.info(
                f"Reconciled {len(report.sources)} feature(s), "
                f"{len(report.skipped)} skipped, camera={report.camera}"
            )
        current = session.take_pending()
    return report
