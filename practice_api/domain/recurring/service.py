"""Recurring appointment service - Business logic for previewing and creating series"""

import logging
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...errors import SchedulingConflictError, ValidationError
from ...models import Appointment, RecurringAppointment
from ...shared.validators import format_date, format_time, parse_time, time_to_minutes
from .conflicts import ConflictDetector
from .expander import clamp_total, expand, normalize_interval
from .preview import PreviewEngine, spec_from_request
from .repository import RecurringAppointmentRepository, SqlBookingSource
from .schemas import (
    AppointmentOverride,
    RecurringAppointmentRequest,
    RecurringAppointmentUpdate,
    RecurringAppointmentWithResolution,
)
from .types import AppointmentInstance, BookedSlot, Frequency, PreviewResult, RecurrenceSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedSlot:
    """Where an instance will actually be booked after overrides are applied"""

    appointment_number: int
    date: date
    start_time: time
    end_time: time
    modified: bool = False

    @property
    def duration_minutes(self) -> int:
        return time_to_minutes(self.end_time) - time_to_minutes(self.start_time)


@dataclass
class SeriesCreation:
    series: RecurringAppointment
    appointments: list[Appointment]
    skipped_count: int


class RecurringAppointmentService:
    """Service layer for recurring appointment business logic"""

    def __init__(self, db: Session, today: Optional[date] = None):
        self.db = db
        self.repo = RecurringAppointmentRepository()
        self.source = SqlBookingSource(db, self.repo)
        self.today = today

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def preview(self, data: RecurringAppointmentRequest) -> PreviewResult:
        spec = spec_from_request(data, self.today)
        self._check_references(spec)
        return PreviewEngine(self.source).preview(spec)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(self, data: RecurringAppointmentRequest) -> SeriesCreation:
        """Create a series where every generated instance must be free"""
        return self._create_series(data, [])

    def create_with_resolution(self, data: RecurringAppointmentWithResolution) -> SeriesCreation:
        """Create a series applying per-instance skip/reschedule overrides"""
        return self._create_series(data, data.appointmentOverrides or [])

    def _create_series(
        self, data: RecurringAppointmentRequest, overrides: list[AppointmentOverride]
    ) -> SeriesCreation:
        spec = spec_from_request(data, self.today)
        self._check_references(spec)

        timing = self.source.get_appointment_timing(spec.appointment_type_id)
        instances = expand(spec, timing.duration_minutes)
        by_number = self._index_overrides(overrides, len(instances))

        planned, skipped = self._plan_slots(instances, by_number)
        self._ensure_conflict_free(spec, planned, timing.buffer_before, timing.buffer_after)

        series = RecurringAppointment(
            patient_id=spec.patient_id,
            provider_id=spec.provider_id,
            appointment_type_id=spec.appointment_type_id,
            frequency=spec.frequency.value,
            frequency_value=normalize_interval(spec.interval_count),
            start_date=spec.start_date,
            end_date=spec.end_date,
            preferred_time=format_time(spec.preferred_time),
            preferred_day_of_week=spec.preferred_day_of_week,
            total_appointments=clamp_total(spec.total_occurrences),
            notes=data.notes,
            is_active=True if data.isActive is None else data.isActive,
        )
        appointments = self._build_appointments(spec, planned)

        series = self.repo.create_series(self.db, series, appointments)
        logger.info(
            f"✅ Recurring series {series.id} created for provider {spec.provider_id}: "
            f"{len(appointments)} appointments, {skipped} skipped"
        )
        return SeriesCreation(series=series, appointments=appointments, skipped_count=skipped)

    @staticmethod
    def _build_appointments(spec: RecurrenceSpec, planned: list[PlannedSlot]) -> list[Appointment]:
        return [
            Appointment(
                patient_id=spec.patient_id,
                provider_id=spec.provider_id,
                appointment_type_id=spec.appointment_type_id,
                sequence_number=slot.appointment_number,
                appointment_date=slot.date,
                start_time=format_time(slot.start_time),
                end_time=format_time(slot.end_time),
                duration_minutes=slot.duration_minutes,
                status="scheduled",
            )
            for slot in planned
        ]

    def _check_references(self, spec: RecurrenceSpec) -> None:
        if not self.repo.get_provider(self.db, spec.provider_id):
            raise HTTPException(status_code=404, detail="Provider not found")
        if spec.patient_id and not self.repo.get_patient(self.db, spec.patient_id):
            raise HTTPException(status_code=404, detail="Patient not found")
        if spec.appointment_type_id and not self.repo.get_appointment_type(
            self.db, spec.appointment_type_id
        ):
            raise HTTPException(status_code=404, detail="Appointment type not found")

    def _index_overrides(
        self, overrides: list[AppointmentOverride], instance_count: int
    ) -> dict[int, AppointmentOverride]:
        today = self.today or date.today()
        by_number: dict[int, AppointmentOverride] = {}

        for override in overrides:
            number = override.appointmentNumber
            if not 1 <= number <= instance_count:
                raise ValidationError(
                    f"Appointment #{number} is not part of this series",
                    field="appointmentOverrides",
                )
            if number in by_number:
                raise ValidationError(
                    f"Appointment #{number} has more than one override",
                    field="appointmentOverrides",
                )

            if override.skip and override.is_reschedule:
                raise ValidationError(
                    f"Appointment #{number} cannot be both skipped and rescheduled",
                    field="appointmentOverrides",
                )
            if override.is_reschedule:
                if not (override.customDate and override.customStartTime and override.customEndTime):
                    raise ValidationError(
                        f"Appointment #{number} needs a date, start time and end time",
                        field="appointmentOverrides",
                    )
                if override.customDate < today:
                    raise ValidationError(
                        f"Appointment #{number} cannot be moved into the past",
                        field="appointmentOverrides",
                    )
                start = parse_time(override.customStartTime)
                end = parse_time(override.customEndTime)
                if end <= start:
                    raise ValidationError(
                        f"Appointment #{number} must end after it starts",
                        field="appointmentOverrides",
                    )
            elif not override.skip:
                # Neither kind: nothing to apply
                continue

            by_number[number] = override
        return by_number

    @staticmethod
    def _plan_slots(
        instances: list[AppointmentInstance], overrides: dict[int, AppointmentOverride]
    ) -> tuple[list[PlannedSlot], int]:
        planned: list[PlannedSlot] = []
        skipped = 0
        for instance in instances:
            override = overrides.get(instance.sequence_number)
            if override and override.skip:
                skipped += 1
            elif override:
                planned.append(
                    PlannedSlot(
                        appointment_number=instance.sequence_number,
                        date=override.customDate,
                        start_time=parse_time(override.customStartTime),
                        end_time=parse_time(override.customEndTime),
                        modified=True,
                    )
                )
            else:
                planned.append(
                    PlannedSlot(
                        appointment_number=instance.sequence_number,
                        date=instance.date,
                        start_time=instance.start_time,
                        end_time=instance.end_time,
                    )
                )
        return planned, skipped

    def _ensure_conflict_free(
        self, spec: RecurrenceSpec, planned: list[PlannedSlot], buffer_before: int, buffer_after: int
    ) -> None:
        """
        Authoritative commit-time check. Every slot that will be booked,
        modified ones included, is tested against the provider's calendar and
        against the slots accepted before it in the same batch.
        """
        if not planned:
            return

        first = min(slot.date for slot in planned)
        last = max(slot.date for slot in planned)
        bookings = self.source.get_provider_bookings(spec.provider_id, first, last)
        detector = ConflictDetector(buffer_before, buffer_after)

        patient = self.repo.get_patient(self.db, spec.patient_id) if spec.patient_id else None
        patient_name = patient.full_name if patient else ""

        conflicts = []
        accepted: list[BookedSlot] = []
        for slot in planned:
            info = detector.detect_slot(slot.date, slot.start_time, slot.end_time, bookings + accepted)
            if info.has_conflict:
                conflicts.append(
                    {
                        "appointmentNumber": slot.appointment_number,
                        "date": format_date(slot.date),
                        "startTime": format_time(slot.start_time),
                        "endTime": format_time(slot.end_time),
                        "modified": slot.modified,
                        "conflictReason": info.conflict_reason,
                        "conflictingAppointments": [
                            c.to_dict() for c in info.conflicting_appointments
                        ],
                    }
                )
                continue
            accepted.append(
                BookedSlot(
                    date=slot.date,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    patient_name=patient_name,
                    appointment_code=f"#{slot.appointment_number}",
                )
            )

        if conflicts:
            numbers = ", ".join(f"#{c['appointmentNumber']}" for c in conflicts)
            logger.warning(
                f"⚠️ Rejected recurring series for provider {spec.provider_id}: "
                f"unresolved conflicts on {numbers}"
            )
            raise SchedulingConflictError(
                f"Appointments {numbers} still conflict with existing bookings",
                conflicts=conflicts,
            )

    # ------------------------------------------------------------------
    # Series management
    # ------------------------------------------------------------------

    def list_series(self, page: int = 1, limit: int = 10, **filters):
        return self.repo.search_series(self.db, page, limit, **filters)

    def get_series(self, series_id: int) -> RecurringAppointment:
        series = self.repo.get_series_by_id(self.db, series_id)
        if not series:
            raise HTTPException(status_code=404, detail="Recurring appointment not found")
        return series

    def update_series(self, series_id: int, data: RecurringAppointmentUpdate) -> RecurringAppointment:
        series = self.get_series(series_id)

        if data.endDate is not None and data.endDate <= series.start_date:
            raise ValidationError("End date must be after start date", field="endDate")

        updates = {
            "end_date": data.endDate,
            "preferred_time": data.preferredTime,
            "preferred_day_of_week": data.preferredDayOfWeek,
            "notes": data.notes,
            "is_active": data.isActive,
        }
        return self.repo.update_series(self.db, series, **updates)

    def delete_series(self, series_id: int) -> int:
        series = self.get_series(series_id)
        deleted = self.repo.delete_series(self.db, series)
        logger.info(f"🗑️ Recurring series {series_id} deleted with {deleted} appointments")
        return deleted

    def get_linked_appointments(self, series_id: int) -> list[Appointment]:
        self.get_series(series_id)
        return self.repo.get_series_appointments(self.db, series_id)

    def generate_appointments(self, series_id: int, count: int) -> SeriesCreation:
        """
        Extend a series with the next ``count`` instances of its stored rule.

        Numbering continues after the highest sequence number already booked
        and dates follow the rule from the series start date, so rescheduled
        instances do not shift the ones that come after them. The batch is
        all-or-nothing under the same conflict check as creation.
        """
        series = self.get_series(series_id)
        if not series.is_active:
            raise ValidationError(
                "Cannot generate appointments for an inactive recurring appointment",
                field="isActive",
            )

        frequency = Frequency(series.frequency)
        step = timedelta(days=normalize_interval(series.frequency_value) * frequency.unit_days)
        last_number = self.repo.get_last_sequence_number(self.db, series.id)
        spec = RecurrenceSpec(
            frequency=frequency,
            start_date=series.start_date + step * last_number,
            preferred_time=parse_time(series.preferred_time),
            interval_count=series.frequency_value,
            end_date=series.end_date,
            total_occurrences=count,
            preferred_day_of_week=series.preferred_day_of_week,
            provider_id=series.provider_id,
            patient_id=series.patient_id,
            appointment_type_id=series.appointment_type_id,
        )

        timing = self.source.get_appointment_timing(spec.appointment_type_id)
        planned = [
            PlannedSlot(
                appointment_number=last_number + instance.sequence_number,
                date=instance.date,
                start_time=instance.start_time,
                end_time=instance.end_time,
            )
            for instance in expand(spec, timing.duration_minutes)
        ]
        if not planned:
            raise ValidationError(
                "No appointments left to generate before the series end date", field="endDate"
            )
        self._ensure_conflict_free(spec, planned, timing.buffer_before, timing.buffer_after)

        appointments = self._build_appointments(spec, planned)
        total = None
        if series.total_appointments is not None:
            total = max(series.total_appointments, last_number + len(appointments))
        series = self.repo.add_series_appointments(self.db, series, appointments, total)
        logger.info(
            f"➕ Recurring series {series.id} extended with {len(appointments)} appointments "
            f"after #{last_number}"
        )
        return SeriesCreation(series=series, appointments=appointments, skipped_count=0)
