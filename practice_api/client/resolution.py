"""
Per-instance resolution state for one preview session.

Each generated instance is in exactly one state:

    Available   no conflict, always commit-eligible
    Conflict    blocks commit until resolved
    Skipped     operator omitted it          (Conflict --skip--> Skipped --unskip--> Conflict)
    Modified    operator moved it            (Conflict --edit--> Modified --reset--> Conflict)
    Waitlisted  moved to the waitlist queue  (Conflict --waitlist--> Waitlisted, final)

States are replaced wholesale on every transition, so an instance can never be
skipped and rescheduled at the same time. Modified slots are not re-checked
here; the server repeats the conflict check at commit time.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import Any, Optional, Union

from ..domain.recurring.types import PreviewAppointment, PreviewResult
from ..errors import InvalidTransitionError
from ..shared.validators import format_date, format_time, time_to_minutes


@dataclass(frozen=True)
class Available:
    status = "available"


@dataclass(frozen=True)
class Conflict:
    status = "conflict"


@dataclass(frozen=True)
class Skipped:
    status = "skipped"


@dataclass(frozen=True)
class Modified:
    custom_date: date
    custom_start_time: time
    custom_end_time: time

    status = "modified"


@dataclass(frozen=True)
class Waitlisted:
    waitlist_entry_id: Optional[int] = None

    status = "waitlisted"


InstanceState = Union[Available, Conflict, Skipped, Modified, Waitlisted]


@dataclass(frozen=True)
class DisplaySlot:
    """What the preview table shows for an instance"""

    appointment_number: int
    date: date
    start_time: time
    end_time: time
    duration_minutes: int
    status: str
    conflict_reason: Optional[str] = None


class ResolutionTracker:
    """Operator decisions for every instance of one PreviewResult"""

    def __init__(self, preview: PreviewResult):
        self.preview = preview
        self._appointments: dict[int, PreviewAppointment] = {
            a.appointment_number: a for a in preview.appointments
        }
        self._states: dict[int, InstanceState] = {
            number: Conflict() if a.has_conflict else Available()
            for number, a in self._appointments.items()
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def appointment_numbers(self) -> list[int]:
        return sorted(self._states)

    def appointment(self, appointment_number: int) -> PreviewAppointment:
        try:
            return self._appointments[appointment_number]
        except KeyError:
            raise InvalidTransitionError(
                f"Appointment #{appointment_number} is not part of this preview"
            ) from None

    def state(self, appointment_number: int) -> InstanceState:
        self.appointment(appointment_number)
        return self._states[appointment_number]

    def status(self, appointment_number: int) -> str:
        return self.state(appointment_number).status

    def unresolved(self) -> list[int]:
        return [n for n in self.appointment_numbers if isinstance(self._states[n], Conflict)]

    @property
    def can_commit(self) -> bool:
        return not any(isinstance(s, Conflict) for s in self._states.values())

    def counts(self) -> dict[str, int]:
        counts = {"available": 0, "conflict": 0, "skipped": 0, "modified": 0, "waitlisted": 0}
        for state in self._states.values():
            counts[state.status] += 1
        return counts

    def display_slot(self, appointment_number: int) -> DisplaySlot:
        appointment = self.appointment(appointment_number)
        state = self._states[appointment_number]
        instance = appointment.instance

        if isinstance(state, Modified):
            return DisplaySlot(
                appointment_number=appointment_number,
                date=state.custom_date,
                start_time=state.custom_start_time,
                end_time=state.custom_end_time,
                duration_minutes=time_to_minutes(state.custom_end_time)
                - time_to_minutes(state.custom_start_time),
                status=state.status,
            )
        return DisplaySlot(
            appointment_number=appointment_number,
            date=instance.date,
            start_time=instance.start_time,
            end_time=instance.end_time,
            duration_minutes=instance.duration_minutes,
            status=state.status,
            conflict_reason=appointment.conflict.conflict_reason
            if isinstance(state, Conflict)
            else None,
        )

    def rows(self) -> list[DisplaySlot]:
        return [self.display_slot(n) for n in self.appointment_numbers]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def skip(self, appointment_number: int) -> InstanceState:
        self._require(appointment_number, Conflict, "skip")
        return self._set(appointment_number, Skipped())

    def unskip(self, appointment_number: int) -> InstanceState:
        self._require(appointment_number, Skipped, "unskip")
        return self._set(appointment_number, Conflict())

    def edit(
        self,
        appointment_number: int,
        custom_date: date,
        custom_start_time: time,
        custom_end_time: time,
    ) -> InstanceState:
        self._require(appointment_number, Conflict, "edit")
        if time_to_minutes(custom_end_time) <= time_to_minutes(custom_start_time):
            raise InvalidTransitionError(
                f"Appointment #{appointment_number} must end after it starts"
            )
        return self._set(
            appointment_number, Modified(custom_date, custom_start_time, custom_end_time)
        )

    def reset(self, appointment_number: int) -> InstanceState:
        self._require(appointment_number, Modified, "reset")
        return self._set(appointment_number, Conflict())

    def mark_waitlisted(
        self, appointment_number: int, waitlist_entry_id: Optional[int] = None
    ) -> InstanceState:
        """Record a waitlist entry that was already created for this instance"""
        self._require(appointment_number, Conflict, "waitlist")
        return self._set(appointment_number, Waitlisted(waitlist_entry_id))

    def ensure_can_waitlist(self, appointment_number: int) -> None:
        self._require(appointment_number, Conflict, "waitlist")

    def _require(self, appointment_number: int, expected: type, action: str) -> None:
        current = self.state(appointment_number)
        if not isinstance(current, expected):
            raise InvalidTransitionError(
                f"Cannot {action} appointment #{appointment_number} while it is {current.status}"
            )

    def _set(self, appointment_number: int, state: InstanceState) -> InstanceState:
        self._states[appointment_number] = state
        return state

    # ------------------------------------------------------------------
    # Commit payload
    # ------------------------------------------------------------------

    def overrides(self) -> list[dict[str, Any]]:
        """Override entries for every instance with a non-default resolution"""
        result = []
        for number in self.appointment_numbers:
            state = self._states[number]
            if isinstance(state, (Skipped, Waitlisted)):
                result.append({"appointmentNumber": number, "skip": True})
            elif isinstance(state, Modified):
                result.append(
                    {
                        "appointmentNumber": number,
                        "customDate": format_date(state.custom_date),
                        "customStartTime": format_time(state.custom_start_time),
                        "customEndTime": format_time(state.custom_end_time),
                    }
                )
        return result
