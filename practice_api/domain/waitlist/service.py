"""Waitlist service - Business logic for waitlist entries"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...errors import SchedulingConflictError, ValidationError
from ...models import Appointment, AppointmentType, Patient, Provider, WaitlistEntry
from ...shared.validators import format_date, parse_time, time_to_minutes
from ..recurring.conflicts import ConflictDetector
from ..recurring.repository import SqlBookingSource
from .repository import WaitlistRepository
from .schemas import (
    WAITLIST_PRIORITIES,
    WAITLIST_STATUSES,
    WaitlistConversion,
    WaitlistEntryCreate,
    WaitlistEntryUpdate,
)

logger = logging.getLogger(__name__)


class WaitlistService:
    """Service layer for waitlist business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WaitlistRepository()

    def create_entry(self, data: WaitlistEntryCreate) -> WaitlistEntry:
        """Create a waitlist entry after checking every reference exists"""
        if not self.db.query(Patient).filter(Patient.id == data.patientId).first():
            raise HTTPException(status_code=404, detail="Patient not found")
        if not self.db.query(Provider).filter(Provider.id == data.providerId).first():
            raise HTTPException(status_code=404, detail="Provider not found")
        if not self.db.query(AppointmentType).filter(AppointmentType.id == data.appointmentTypeId).first():
            raise HTTPException(status_code=404, detail="Appointment type not found")

        entry = self.repo.create_entry(
            self.db,
            patient_id=data.patientId,
            provider_id=data.providerId,
            appointment_type_id=data.appointmentTypeId,
            preferred_date=data.preferredDate,
            preferred_time_start=data.preferredTimeStart,
            preferred_time_end=data.preferredTimeEnd,
            priority=data.priority or "normal",
            notes=data.notes,
            status="active",
        )
        logger.info(
            f"📋 Waitlist entry {entry.id} created for patient {data.patientId} "
            f"with provider {data.providerId}"
        )
        return entry

    def get_entry(self, entry_id: int) -> WaitlistEntry:
        entry = self.repo.get_entry_by_id(self.db, entry_id)
        if not entry:
            raise HTTPException(status_code=404, detail="Waitlist entry not found")
        return entry

    def list_entries(
        self,
        page: int = 1,
        limit: int = 10,
        provider_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ):
        if status and status not in WAITLIST_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status selected")
        if priority and priority not in WAITLIST_PRIORITIES:
            raise HTTPException(status_code=400, detail="Invalid priority selected")
        return self.repo.search_entries(
            self.db, page, limit, provider_id, patient_id, status, priority
        )

    def mark_called(self, entry_id: int) -> WaitlistEntry:
        """active → called"""
        entry = self.get_entry(entry_id)
        if entry.status != "active":
            raise HTTPException(
                status_code=400, detail="Only active waitlist entries can be marked as called"
            )
        return self.repo.update_entry(
            self.db, entry, status="called", called_at=datetime.now()
        )

    def mark_scheduled(self, entry_id: int) -> WaitlistEntry:
        """active/called → scheduled"""
        entry = self.get_entry(entry_id)
        if entry.status not in ("active", "called"):
            raise HTTPException(
                status_code=400, detail="Waitlist entry is already scheduled or expired"
            )
        return self.repo.update_entry(
            self.db, entry, status="scheduled", scheduled_at=datetime.now()
        )

    def update_entry(self, entry_id: int, data: WaitlistEntryUpdate) -> WaitlistEntry:
        entry = self.get_entry(entry_id)

        if data.providerId and not self.db.query(Provider).filter(Provider.id == data.providerId).first():
            raise HTTPException(status_code=404, detail="Provider not found")
        if data.appointmentTypeId and not (
            self.db.query(AppointmentType).filter(AppointmentType.id == data.appointmentTypeId).first()
        ):
            raise HTTPException(status_code=404, detail="Appointment type not found")

        # The window is checked against what the entry will hold after the update
        start = data.preferredTimeStart or entry.preferred_time_start
        end = data.preferredTimeEnd or entry.preferred_time_end
        if start and end and parse_time(end) <= parse_time(start):
            raise ValidationError(
                "Preferred end time must be after start time", field="preferredTimeEnd"
            )

        entry = self.repo.update_entry(
            self.db,
            entry,
            provider_id=data.providerId,
            appointment_type_id=data.appointmentTypeId,
            preferred_date=data.preferredDate,
            preferred_time_start=data.preferredTimeStart,
            preferred_time_end=data.preferredTimeEnd,
            priority=data.priority,
            status=data.status,
            notes=data.notes,
        )
        logger.info(f"✏️ Waitlist entry {entry.id} updated")
        return entry

    def convert_to_appointment(
        self, entry_id: int, data: WaitlistConversion
    ) -> tuple[Appointment, WaitlistEntry]:
        """
        Book a waitlisted patient into a concrete slot.

        The slot gets the same buffered overlap check as recurring instances.
        The appointment is created and the entry marked scheduled together.

        Raises:
            HTTPException: 404 for an unknown entry, 400 if the entry is no
                longer waiting
            SchedulingConflictError: If the slot collides with a booking
        """
        entry = self.get_entry(entry_id)
        if entry.status not in ("active", "called"):
            raise HTTPException(
                status_code=400, detail="Waitlist entry is already scheduled or expired"
            )

        start = parse_time(data.startTime)
        end = parse_time(data.endTime)
        source = SqlBookingSource(self.db)
        timing = source.get_appointment_timing(entry.appointment_type_id)
        bookings = source.get_provider_bookings(
            entry.provider_id, data.appointmentDate, data.appointmentDate
        )
        info = ConflictDetector(timing.buffer_before, timing.buffer_after).detect_slot(
            data.appointmentDate, start, end, bookings
        )
        if info.has_conflict:
            logger.warning(
                f"⚠️ Waitlist entry {entry.id} not converted: slot "
                f"{format_date(data.appointmentDate)} {data.startTime} is taken"
            )
            raise SchedulingConflictError(
                info.conflict_reason,
                conflicts=[
                    {
                        "date": format_date(data.appointmentDate),
                        "startTime": data.startTime,
                        "endTime": data.endTime,
                        "conflictReason": info.conflict_reason,
                        "conflictingAppointments": [
                            c.to_dict() for c in info.conflicting_appointments
                        ],
                    }
                ],
            )

        appointment = Appointment(
            patient_id=entry.patient_id,
            provider_id=entry.provider_id,
            appointment_type_id=entry.appointment_type_id,
            appointment_date=data.appointmentDate,
            start_time=data.startTime,
            end_time=data.endTime,
            duration_minutes=time_to_minutes(end) - time_to_minutes(start),
            status="scheduled",
            notes=data.notes or entry.notes,
        )
        appointment = self.repo.schedule_entry(self.db, entry, appointment)
        logger.info(
            f"✅ Waitlist entry {entry.id} converted to appointment {appointment.appointment_code}"
        )
        return appointment, entry

    def delete_entry(self, entry_id: int) -> None:
        entry = self.get_entry(entry_id)
        self.repo.delete_entry(self.db, entry)
