"""Overlap checks between candidate instances and existing bookings"""

from datetime import date, time
from typing import Iterable

from ...shared.validators import format_time, time_to_minutes
from .types import (
    NO_CONFLICT,
    AppointmentInstance,
    BookedSlot,
    ConflictInfo,
    ConflictingAppointment,
)


def ranges_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open interval test: touching ranges do not overlap"""
    return a_start < b_end and b_start < a_end


class ConflictDetector:
    """
    Decides whether a candidate instance collides with a provider's bookings.

    The appointment type's buffers widen the candidate's occupied window
    (``buffer_before`` minutes earlier, ``buffer_after`` minutes later) before
    the overlap test. Works on a snapshot of bookings and never queries storage.
    """

    def __init__(self, buffer_before: int = 0, buffer_after: int = 0):
        self.buffer_before = max(0, int(buffer_before or 0))
        self.buffer_after = max(0, int(buffer_after or 0))

    def detect(self, instance: AppointmentInstance, bookings: Iterable[BookedSlot]) -> ConflictInfo:
        return self.detect_slot(instance.date, instance.start_time, instance.end_time, bookings)

    def detect_slot(
        self, day: date, start: time, end: time, bookings: Iterable[BookedSlot]
    ) -> ConflictInfo:
        window_start = time_to_minutes(start) - self.buffer_before
        window_end = time_to_minutes(end) + self.buffer_after

        colliding = [
            b
            for b in bookings
            if b.date == day
            and ranges_overlap(
                window_start, window_end, time_to_minutes(b.start_time), time_to_minutes(b.end_time)
            )
        ]
        if not colliding:
            return NO_CONFLICT

        colliding.sort(key=lambda b: (b.start_time, b.end_time, b.appointment_code))
        return ConflictInfo(
            has_conflict=True,
            conflict_reason=_describe(colliding),
            conflicting_appointments=tuple(
                ConflictingAppointment(
                    patient_name=b.patient_name,
                    appointment_code=b.appointment_code,
                    start_time=b.start_time,
                    end_time=b.end_time,
                )
                for b in colliding
            ),
        )


def _describe(colliding: list[BookedSlot]) -> str:
    if len(colliding) == 1:
        b = colliding[0]
        return (
            f"Provider already has an appointment from "
            f"{format_time(b.start_time)} to {format_time(b.end_time)}"
        )
    return f"Provider already has {len(colliding)} overlapping appointments"
