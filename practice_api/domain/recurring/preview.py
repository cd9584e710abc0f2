"""
Preview engine - expands a recurrence rule and annotates every instance with
conflict information. Purely advisory: nothing is written.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol

from ...config import DEFAULT_APPOINTMENT_DURATION, MAX_FREQUENCY_VALUE
from ...errors import ValidationError
from ...shared.validators import parse_time
from .conflicts import ConflictDetector
from .expander import expand
from .schemas import RecurringAppointmentRequest
from .types import BookedSlot, Frequency, PreviewAppointment, PreviewResult, RecurrenceSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppointmentTiming:
    duration_minutes: int = DEFAULT_APPOINTMENT_DURATION
    buffer_before: int = 0
    buffer_after: int = 0


class BookingSource(Protocol):
    """What the preview needs from the Scheduling Service's storage"""

    def get_appointment_timing(self, appointment_type_id: Optional[int]) -> AppointmentTiming: ...

    def get_provider_bookings(
        self, provider_id: int, start_date: date, end_date: date
    ) -> list[BookedSlot]: ...


def spec_from_request(data: RecurringAppointmentRequest, today: Optional[date] = None) -> RecurrenceSpec:
    """
    Check required fields and build an immutable RecurrenceSpec.

    Raises:
        ValidationError: On the first missing or invalid field
    """
    today = today or date.today()

    if not data.providerId or not data.startDate or not data.preferredTime:
        missing = next(
            name
            for name, value in (
                ("providerId", data.providerId),
                ("startDate", data.startDate),
                ("preferredTime", data.preferredTime),
            )
            if not value
        )
        raise ValidationError(
            "Please fill in Provider, Start Date, and Preferred Time", field=missing
        )

    if not data.totalAppointments and not data.endDate:
        raise ValidationError(
            "Please provide Total Appointments or End Date", field="totalAppointments"
        )

    try:
        frequency = Frequency(data.frequency or "weekly")
    except ValueError:
        raise ValidationError("Invalid frequency selected", field="frequency") from None

    if data.frequencyValue is not None and data.frequencyValue > MAX_FREQUENCY_VALUE:
        raise ValidationError(
            f"Frequency value cannot exceed {MAX_FREQUENCY_VALUE}", field="frequencyValue"
        )

    if data.startDate < today:
        raise ValidationError("Start date cannot be in the past", field="startDate")

    if data.endDate and data.endDate <= data.startDate:
        raise ValidationError("End date must be after start date", field="endDate")

    if data.preferredDayOfWeek is not None and not 0 <= data.preferredDayOfWeek <= 6:
        raise ValidationError(
            "Day of week must be between 0 (Sunday) and 6 (Saturday)",
            field="preferredDayOfWeek",
        )

    return RecurrenceSpec(
        frequency=frequency,
        start_date=data.startDate,
        preferred_time=parse_time(data.preferredTime),
        interval_count=data.frequencyValue,
        end_date=data.endDate,
        total_occurrences=data.totalAppointments,
        preferred_day_of_week=data.preferredDayOfWeek,
        provider_id=data.providerId,
        patient_id=data.patientId,
        appointment_type_id=data.appointmentTypeId,
    )


class PreviewEngine:
    """Runs expansion then conflict detection against one batched booking snapshot"""

    def __init__(self, source: BookingSource):
        self.source = source

    def preview(
        self,
        spec: RecurrenceSpec,
        provider_id: Optional[int] = None,
        appointment_type_id: Optional[int] = None,
    ) -> PreviewResult:
        provider_id = provider_id if provider_id is not None else spec.provider_id
        if provider_id is None:
            raise ValidationError("Provider is required", field="providerId")
        if appointment_type_id is None:
            appointment_type_id = spec.appointment_type_id

        timing = self.source.get_appointment_timing(appointment_type_id)
        instances = expand(spec, timing.duration_minutes)
        if not instances:
            return PreviewResult()

        bookings = self.source.get_provider_bookings(
            provider_id, instances[0].date, instances[-1].date
        )
        detector = ConflictDetector(timing.buffer_before, timing.buffer_after)

        appointments = tuple(
            PreviewAppointment(instance=instance, conflict=detector.detect(instance, bookings))
            for instance in instances
        )
        result = PreviewResult(appointments=appointments)
        logger.info(
            f"🔎 Preview for provider {provider_id}: {result.total_count} total, "
            f"{result.available_count} available, {result.conflict_count} conflicts"
        )
        return result
