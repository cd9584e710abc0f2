"""Turns resolved preview state into a single all-or-nothing creation request"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..domain.recurring.types import RecurrenceSpec
from ..errors import ConflictBlockedError
from .api import SchedulingClient
from .resolution import ResolutionTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    created_count: int
    skipped_count: int
    recurring_appointment: Optional[dict] = None
    created_appointments: list = field(default_factory=list)

    @property
    def message(self) -> str:
        message = "Recurring appointment created successfully"
        if self.created_count > 0:
            message += f". {self.created_count} appointment(s) generated and added to calendar"
            if self.skipped_count > 0:
                message += f", {self.skipped_count} skipped"
        return message


class CommitCoordinator:
    def __init__(self, client: SchedulingClient):
        self.client = client

    @staticmethod
    def build_payload(spec: RecurrenceSpec, tracker: ResolutionTracker) -> dict[str, Any]:
        payload = spec.to_dict()
        overrides = tracker.overrides()
        if overrides:
            payload["appointmentOverrides"] = overrides
        return payload

    async def commit(self, spec: RecurrenceSpec, tracker: ResolutionTracker) -> CommitResult:
        """
        Submit the series with its overrides.

        Raises:
            ConflictBlockedError: If any instance is still in conflict; no request is sent
            ServiceError, NetworkError: Passed through unchanged, the tracker is untouched
        """
        if not tracker.can_commit:
            raise ConflictBlockedError(tracker.unresolved())

        payload = self.build_payload(spec, tracker)
        logger.info(
            f"📤 Committing recurring series with "
            f"{len(payload.get('appointmentOverrides', []))} override(s)"
        )
        data = await self.client.create_with_resolution(payload) or {}

        return CommitResult(
            created_count=int(data.get("appointmentsCreated") or 0),
            skipped_count=int(data.get("skippedCount") or 0),
            recurring_appointment=data.get("recurringAppointment"),
            created_appointments=data.get("createdAppointments") or [],
        )
