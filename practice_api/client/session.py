"""
Preview-and-resolve workflow for one recurring appointment dialog.

The presentation layer drives a PreviewSession: open a preview, resolve each
conflicted instance, then confirm. Remote failures are turned into
notifications through the ``notify`` callback and never escape; local state is
only changed after a remote call succeeds.
"""

import logging
from typing import Callable, Optional

from ..domain.recurring.types import PreviewResult, RecurrenceSpec
from ..errors import ConflictBlockedError, NetworkError, ServiceError, ValidationError
from ..shared.validators import format_date, format_time
from .api import SchedulingClient
from .commit import CommitCoordinator, CommitResult
from .resolution import Conflict, InstanceState, ResolutionTracker

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]


def validate_for_preview(spec: RecurrenceSpec) -> None:
    """Required-field check done before any request is sent"""
    if not spec.provider_id or not spec.start_date or not spec.preferred_time:
        raise ValidationError("Please fill in Provider, Start Date, and Preferred Time")
    if not spec.total_occurrences and not spec.end_date:
        raise ValidationError("Please provide Total Appointments or End Date")


def _log_notification(message: str, severity: str) -> None:
    level = {"error": logging.ERROR, "warning": logging.WARNING}.get(severity, logging.INFO)
    logger.log(level, message)


class PreviewSession:
    def __init__(self, client: SchedulingClient, notify: Optional[Notifier] = None):
        self.client = client
        self.notify = notify or _log_notification
        self.coordinator = CommitCoordinator(client)

        self.spec: Optional[RecurrenceSpec] = None
        self.preview: Optional[PreviewResult] = None
        self.tracker: Optional[ResolutionTracker] = None
        self.preview_error: Optional[str] = None

        self.preview_loading = False
        self.commit_loading = False
        self.waitlist_loading: set[int] = set()

    @property
    def is_open(self) -> bool:
        return self.tracker is not None

    @property
    def can_commit(self) -> bool:
        return (
            self.tracker is not None
            and self.tracker.can_commit
            and not self.commit_loading
        )

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    async def open_preview(self, spec: RecurrenceSpec) -> Optional[PreviewResult]:
        if self.preview_loading:
            return None

        try:
            validate_for_preview(spec)
        except ValidationError as e:
            self.notify(e.message, "warning")
            return None

        self.preview_loading = True
        self.preview_error = None
        try:
            result = await self.client.preview(spec.to_dict())
        except (ServiceError, NetworkError) as e:
            self.preview_error = e.message
            self.notify(e.message, "error")
            return None
        finally:
            self.preview_loading = False

        self.spec = spec
        self.preview = result
        self.tracker = ResolutionTracker(result)
        return result

    def close(self) -> None:
        """Discard the preview and every resolution made in it"""
        self.spec = None
        self.preview = None
        self.tracker = None
        self.waitlist_loading.clear()

    # ------------------------------------------------------------------
    # Per-instance actions
    # ------------------------------------------------------------------

    def skip(self, appointment_number: int) -> Optional[InstanceState]:
        if self._waitlist_pending(appointment_number):
            return None
        return self._tracker().skip(appointment_number)

    def unskip(self, appointment_number: int) -> Optional[InstanceState]:
        if self._waitlist_pending(appointment_number):
            return None
        return self._tracker().unskip(appointment_number)

    def edit(
        self, appointment_number: int, custom_date, custom_start_time, custom_end_time
    ) -> Optional[InstanceState]:
        if self._waitlist_pending(appointment_number):
            return None
        return self._tracker().edit(
            appointment_number, custom_date, custom_start_time, custom_end_time
        )

    def reset(self, appointment_number: int) -> Optional[InstanceState]:
        if self._waitlist_pending(appointment_number):
            return None
        return self._tracker().reset(appointment_number)

    def _waitlist_pending(self, appointment_number: int) -> bool:
        """Instances with a waitlist request in flight accept no other action"""
        if appointment_number not in self.waitlist_loading:
            return False
        self.notify(
            f"Appointment #{appointment_number} is being added to the waitlist", "warning"
        )
        return True

    async def add_to_waitlist(self, appointment_number: int, priority: str = "normal") -> bool:
        """Create a waitlist entry for a conflicted instance, then mark it waitlisted"""
        tracker = self._tracker()
        tracker.ensure_can_waitlist(appointment_number)
        if appointment_number in self.waitlist_loading:
            return False

        if not self.spec.patient_id or not self.spec.appointment_type_id:
            self.notify("Patient and appointment type are required to add to waitlist", "warning")
            return False

        instance = tracker.appointment(appointment_number).instance
        payload = {
            "patientId": self.spec.patient_id,
            "providerId": self.spec.provider_id,
            "appointmentTypeId": self.spec.appointment_type_id,
            "preferredDate": format_date(instance.date),
            "preferredTimeStart": format_time(instance.start_time),
            "preferredTimeEnd": format_time(instance.end_time),
            "priority": priority,
            "notes": f"From recurring appointment - Appointment #{appointment_number} had a conflict",
        }

        self.waitlist_loading.add(appointment_number)
        try:
            entry = await self.client.create_waitlist_entry(payload)
        except (ServiceError, NetworkError) as e:
            self.notify(e.message, "error")
            return False
        finally:
            self.waitlist_loading.discard(appointment_number)

        # The dialog may have been closed while the request was in flight
        if self.tracker is not tracker:
            return False

        if tracker.status(appointment_number) != Conflict.status:
            logger.warning(
                f"⚠️ Waitlist entry {entry.get('id')} created but appointment "
                f"#{appointment_number} is now {tracker.status(appointment_number)}"
            )
            self.notify(
                f"Appointment #{appointment_number} changed while it was being added to the waitlist",
                "warning",
            )
            return False

        tracker.mark_waitlisted(appointment_number, entry.get("id"))
        self.notify(f"Appointment #{appointment_number} added to waitlist", "success")
        return True

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    async def confirm(self) -> Optional[CommitResult]:
        """Commit the resolved series. On failure the dialog and overrides stay intact"""
        tracker = self._tracker()
        if self.commit_loading:
            return None

        self.commit_loading = True
        try:
            result = await self.coordinator.commit(self.spec, tracker)
        except ConflictBlockedError as e:
            self.notify(e.message, "warning")
            return None
        except (ServiceError, NetworkError) as e:
            self.notify(e.message, "error")
            return None
        finally:
            self.commit_loading = False

        self.notify(result.message, "success" if result.created_count > 0 else "warning")
        self.close()
        return result

    def _tracker(self) -> ResolutionTracker:
        if self.tracker is None:
            raise ValidationError("No preview is open")
        return self.tracker
