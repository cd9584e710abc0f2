"""
Value types for recurrence expansion and conflict detection.

These are plain frozen dataclasses so the expander, the conflict detector and
the operator-side workflow can share them without touching the database. The
``to_dict``/``from_dict`` helpers speak the camelCase wire format of the
``/recurring-appointments`` endpoints.
"""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Any, Optional

from ...shared.validators import format_date, format_time, parse_date, parse_time


class Frequency(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"

    @property
    def unit_days(self) -> int:
        # Fixed-day approximation, not calendar-month arithmetic
        return {"weekly": 7, "monthly": 30, "quarterly": 90}[self.value]


@dataclass(frozen=True)
class RecurrenceSpec:
    """A recurrence rule plus the participants it books"""

    frequency: Frequency
    start_date: date
    preferred_time: time
    interval_count: Optional[int] = 1
    end_date: Optional[date] = None
    total_occurrences: Optional[int] = None
    preferred_day_of_week: Optional[int] = None  # informational only
    provider_id: Optional[int] = None
    patient_id: Optional[int] = None
    appointment_type_id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "patientId": self.patient_id,
            "providerId": self.provider_id,
            "appointmentTypeId": self.appointment_type_id,
            "frequency": self.frequency.value,
            "frequencyValue": self.interval_count,
            "startDate": format_date(self.start_date),
            "endDate": format_date(self.end_date) if self.end_date else None,
            "preferredTime": format_time(self.preferred_time),
            "preferredDayOfWeek": self.preferred_day_of_week,
            "totalAppointments": self.total_occurrences,
        }
        return {key: value for key, value in payload.items() if value is not None}


@dataclass(frozen=True)
class AppointmentInstance:
    sequence_number: int
    date: date
    start_time: time
    end_time: time
    duration_minutes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "appointmentNumber": self.sequence_number,
            "date": format_date(self.date),
            "startTime": format_time(self.start_time),
            "endTime": format_time(self.end_time),
            "durationMinutes": self.duration_minutes,
        }


@dataclass(frozen=True)
class BookedSlot:
    """Snapshot of an existing booking on the provider's calendar"""

    date: date
    start_time: time
    end_time: time
    patient_name: str = ""
    appointment_code: str = ""


@dataclass(frozen=True)
class ConflictingAppointment:
    patient_name: str
    appointment_code: str
    start_time: time
    end_time: time

    def to_dict(self) -> dict[str, Any]:
        return {
            "patientName": self.patient_name,
            "appointmentCode": self.appointment_code,
            "startTime": format_time(self.start_time),
            "endTime": format_time(self.end_time),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConflictingAppointment":
        return cls(
            patient_name=data.get("patientName") or "",
            appointment_code=data.get("appointmentCode") or "",
            start_time=parse_time(data.get("startTime")),
            end_time=parse_time(data.get("endTime")),
        )


@dataclass(frozen=True)
class ConflictInfo:
    has_conflict: bool = False
    conflict_reason: Optional[str] = None
    conflicting_appointments: tuple[ConflictingAppointment, ...] = ()


NO_CONFLICT = ConflictInfo()


@dataclass(frozen=True)
class PreviewAppointment:
    instance: AppointmentInstance
    conflict: ConflictInfo = NO_CONFLICT

    @property
    def appointment_number(self) -> int:
        return self.instance.sequence_number

    @property
    def has_conflict(self) -> bool:
        return self.conflict.has_conflict

    def to_dict(self) -> dict[str, Any]:
        payload = self.instance.to_dict()
        payload["hasConflict"] = self.conflict.has_conflict
        if self.conflict.has_conflict:
            payload["conflictReason"] = self.conflict.conflict_reason
            payload["conflictingAppointments"] = [
                c.to_dict() for c in self.conflict.conflicting_appointments
            ]
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PreviewAppointment":
        instance = AppointmentInstance(
            sequence_number=int(data["appointmentNumber"]),
            date=parse_date(data["date"]),
            start_time=parse_time(data["startTime"]),
            end_time=parse_time(data["endTime"]),
            duration_minutes=int(data.get("durationMinutes") or 0),
        )
        if not data.get("hasConflict"):
            return cls(instance=instance)
        conflict = ConflictInfo(
            has_conflict=True,
            conflict_reason=data.get("conflictReason"),
            conflicting_appointments=tuple(
                ConflictingAppointment.from_dict(c)
                for c in data.get("conflictingAppointments") or []
            ),
        )
        return cls(instance=instance, conflict=conflict)


@dataclass(frozen=True)
class PreviewResult:
    appointments: tuple[PreviewAppointment, ...] = field(default_factory=tuple)

    @property
    def total_count(self) -> int:
        return len(self.appointments)

    @property
    def conflict_count(self) -> int:
        return sum(1 for a in self.appointments if a.has_conflict)

    @property
    def available_count(self) -> int:
        return self.total_count - self.conflict_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalCount": self.total_count,
            "availableCount": self.available_count,
            "conflictCount": self.conflict_count,
            "previewAppointments": [a.to_dict() for a in self.appointments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PreviewResult":
        appointments = [PreviewAppointment.from_dict(a) for a in data.get("previewAppointments") or []]
        appointments.sort(key=lambda a: a.appointment_number)
        return cls(appointments=tuple(appointments))
