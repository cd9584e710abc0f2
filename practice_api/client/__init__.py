"""Operator-side workflow: preview, per-instance resolution and commit"""

from .api import SchedulingClient
from .commit import CommitCoordinator, CommitResult
from .resolution import (
    Available,
    Conflict,
    Modified,
    ResolutionTracker,
    Skipped,
    Waitlisted,
)
from .session import PreviewSession

__all__ = [
    "SchedulingClient",
    "CommitCoordinator",
    "CommitResult",
    "ResolutionTracker",
    "Available",
    "Conflict",
    "Skipped",
    "Modified",
    "Waitlisted",
    "PreviewSession",
]
