"""
Visualization reconciliation.

Takes a declarative `Visualization` and synchronizes it onto a session's renderer:
teardown of owned objects, per-feature install, interaction wiring, camera fit.
"""

from .engine import prepare_feature, reconcile, remove_owned
from .types import OWNED_PREFIX, ReconcileReport, SkippedFeature, is_owned

__all__ = [
    "OWNED_PREFIX",
    "ReconcileReport",
    "SkippedFeature",
    "is_owned",
    "prepare_feature",
    "reconcile",
    "remove_owned",
]
