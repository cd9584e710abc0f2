"""Waitlist repository - Database operations for waitlist entries"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, WaitlistEntry
from ...shared.pagination import paginate


class WaitlistRepository:
    """Repository for waitlist database operations"""

    @staticmethod
    def get_entry_by_id(db: Session, entry_id: int) -> Optional[WaitlistEntry]:
        return (
            db.query(WaitlistEntry)
            .options(
                joinedload(WaitlistEntry.patient),
                joinedload(WaitlistEntry.provider),
                joinedload(WaitlistEntry.appointment_type),
            )
            .filter(WaitlistEntry.id == entry_id)
            .first()
        )

    @staticmethod
    def create_entry(db: Session, **entry_data) -> WaitlistEntry:
        entry = WaitlistEntry(**entry_data)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def update_entry(db: Session, entry: WaitlistEntry, **updates) -> WaitlistEntry:
        for key, value in updates.items():
            if value is not None and hasattr(entry, key):
                setattr(entry, key, value)

        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def schedule_entry(db: Session, entry: WaitlistEntry, appointment: Appointment) -> Appointment:
        """Book the appointment and close the entry in one transaction"""
        try:
            db.add(appointment)
            entry.status = "scheduled"
            entry.scheduled_at = datetime.now()
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(appointment)
        db.refresh(entry)
        return appointment

    @staticmethod
    def delete_entry(db: Session, entry: WaitlistEntry) -> None:
        db.delete(entry)
        db.commit()

    @staticmethod
    def search_entries(
        db: Session,
        page: int = 1,
        limit: int = 10,
        provider_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> tuple[list[WaitlistEntry], dict]:
        """Search and filter waitlist entries, oldest first"""
        query = db.query(WaitlistEntry)

        if provider_id:
            query = query.filter(WaitlistEntry.provider_id == provider_id)
        if patient_id:
            query = query.filter(WaitlistEntry.patient_id == patient_id)
        if status:
            query = query.filter(WaitlistEntry.status == status)
        if priority:
            query = query.filter(WaitlistEntry.priority == priority)

        query = query.order_by(WaitlistEntry.created_at.asc(), WaitlistEntry.id.asc())
        return paginate(query, page, limit)
