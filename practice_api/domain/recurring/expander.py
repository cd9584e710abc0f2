"""
Recurrence expansion.

Turns a recurrence rule into the ordered list of candidate appointment
instances. Stepping is a fixed number of days per unit (7/30/90) multiplied by
the interval, so a "monthly" series drifts against calendar months.
"""

import logging
from datetime import timedelta
from typing import Optional

from ...config import MAX_RECURRING_OCCURRENCES
from ...errors import ValidationError
from ...shared.validators import add_minutes
from .types import AppointmentInstance, Frequency, RecurrenceSpec

logger = logging.getLogger(__name__)


def normalize_interval(value: Optional[int]) -> int:
    """Interval falls back to 1 when missing or not a positive integer"""
    try:
        interval = int(value)
    except (TypeError, ValueError):
        return 1
    return interval if interval >= 1 else 1


def clamp_total(value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    try:
        total = int(value)
    except (TypeError, ValueError):
        return None
    return max(1, min(total, MAX_RECURRING_OCCURRENCES))


def expand(spec: RecurrenceSpec, duration_minutes: int) -> list[AppointmentInstance]:
    """
    Enumerate appointment instances for a recurrence rule.

    Generation starts at ``start_date`` and steps by
    ``interval_count * unit_days`` until ``total_occurrences`` instances exist
    or the next date would pass ``end_date``, whichever comes first. The
    result never holds more than MAX_RECURRING_OCCURRENCES instances.

    Raises:
        ValidationError: If the rule has neither an end date nor a total, or
            if an instance would run past midnight
    """
    total = clamp_total(spec.total_occurrences)
    if spec.end_date is None and total is None:
        raise ValidationError(
            "Please provide Total Appointments or End Date", field="totalAppointments"
        )
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError("Appointment duration must be positive", field="durationMinutes")

    frequency = Frequency(spec.frequency)
    step = timedelta(days=normalize_interval(spec.interval_count) * frequency.unit_days)
    limit = total if total is not None else MAX_RECURRING_OCCURRENCES
    end_time = add_minutes(spec.preferred_time, duration_minutes)
    if end_time is None:
        raise ValidationError(
            "Appointments must end before midnight; choose an earlier preferred time",
            field="preferredTime",
        )

    instances: list[AppointmentInstance] = []
    current = spec.start_date
    while len(instances) < limit:
        if spec.end_date is not None and current > spec.end_date:
            break
        instances.append(
            AppointmentInstance(
                sequence_number=len(instances) + 1,
                date=current,
                start_time=spec.preferred_time,
                end_time=end_time,
                duration_minutes=duration_minutes,
            )
        )
        current = current + step

    if total is None and current <= spec.end_date:
        logger.info(
            f"📅 Recurrence capped at {MAX_RECURRING_OCCURRENCES} instances "
            f"(end date {spec.end_date} allows more)"
        )
    return instances
