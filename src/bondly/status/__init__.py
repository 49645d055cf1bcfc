"""Readiness tracking for the status page."""

from .readiness import Readiness, ReadinessState, resolve_readiness, roles_to_check
from .watcher import ReadinessWatcher

__all__ = [
    "Readiness",
    "ReadinessState",
    "ReadinessWatcher",
    "resolve_readiness",
    "roles_to_check",
]
