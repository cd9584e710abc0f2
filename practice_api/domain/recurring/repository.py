"""Recurring appointment repository - Database operations for series and bookings"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...config import BLOCKING_APPOINTMENT_STATUSES, DEFAULT_APPOINTMENT_DURATION
from ...models import Appointment, AppointmentType, Patient, Provider, RecurringAppointment
from ...shared.pagination import paginate
from ...shared.validators import parse_time
from .preview import AppointmentTiming
from .types import BookedSlot

logger = logging.getLogger(__name__)


class RecurringAppointmentRepository:
    """Repository for recurring series and the provider calendar"""

    @staticmethod
    def get_provider(db: Session, provider_id: int) -> Optional[Provider]:
        return db.query(Provider).filter(Provider.id == provider_id).first()

    @staticmethod
    def get_patient(db: Session, patient_id: int) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.id == patient_id).first()

    @staticmethod
    def get_appointment_type(db: Session, appointment_type_id: int) -> Optional[AppointmentType]:
        return db.query(AppointmentType).filter(AppointmentType.id == appointment_type_id).first()

    @staticmethod
    def get_provider_bookings(
        db: Session, provider_id: int, start_date: date, end_date: date
    ) -> list[BookedSlot]:
        """All calendar-blocking appointments for a provider in [start_date, end_date]"""
        appointments = (
            db.query(Appointment)
            .options(joinedload(Appointment.patient))
            .filter(
                Appointment.provider_id == provider_id,
                Appointment.appointment_date >= start_date,
                Appointment.appointment_date <= end_date,
                Appointment.status.in_(BLOCKING_APPOINTMENT_STATUSES),
            )
            .order_by(Appointment.appointment_date, Appointment.start_time)
            .all()
        )

        slots = []
        for a in appointments:
            start_t = parse_time(a.start_time)
            end_t = parse_time(a.end_time)
            if not start_t or not end_t:
                # Can't form an interval; skip
                logger.debug(f"Skipping appointment {a.id} with unparseable times")
                continue
            slots.append(
                BookedSlot(
                    date=a.appointment_date,
                    start_time=start_t,
                    end_time=end_t,
                    patient_name=a.patient.full_name if a.patient else "",
                    appointment_code=a.appointment_code,
                )
            )
        return slots

    @staticmethod
    def create_series(
        db: Session, series: RecurringAppointment, appointments: list[Appointment]
    ) -> RecurringAppointment:
        """Persist a series and all of its appointments in one transaction"""
        try:
            db.add(series)
            db.flush()
            for appointment in appointments:
                appointment.recurring_appointment_id = series.id
            db.add_all(appointments)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(series)
        return series

    @staticmethod
    def get_series_by_id(db: Session, series_id: int) -> Optional[RecurringAppointment]:
        return (
            db.query(RecurringAppointment)
            .options(
                joinedload(RecurringAppointment.patient),
                joinedload(RecurringAppointment.provider),
                joinedload(RecurringAppointment.appointment_type),
            )
            .filter(RecurringAppointment.id == series_id)
            .first()
        )

    @staticmethod
    def search_series(
        db: Session,
        page: int = 1,
        limit: int = 10,
        provider_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        is_active: Optional[bool] = None,
        start_date_from: Optional[date] = None,
        start_date_to: Optional[date] = None,
    ) -> tuple[list[RecurringAppointment], dict]:
        """Search and filter recurring series"""
        query = db.query(RecurringAppointment)

        if provider_id:
            query = query.filter(RecurringAppointment.provider_id == provider_id)
        if patient_id:
            query = query.filter(RecurringAppointment.patient_id == patient_id)
        if is_active is not None:
            query = query.filter(RecurringAppointment.is_active == is_active)
        if start_date_from:
            query = query.filter(RecurringAppointment.start_date >= start_date_from)
        if start_date_to:
            query = query.filter(RecurringAppointment.start_date <= start_date_to)

        query = query.order_by(RecurringAppointment.start_date.desc(), RecurringAppointment.id.desc())
        return paginate(query, page, limit)

    @staticmethod
    def update_series(db: Session, series: RecurringAppointment, **updates) -> RecurringAppointment:
        """Update a series with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(series, key):
                setattr(series, key, value)

        db.commit()
        db.refresh(series)
        return series

    @staticmethod
    def delete_series(db: Session, series: RecurringAppointment) -> int:
        """Delete a series and its appointments. Returns deleted appointment count"""
        appointments = list(series.appointments)
        for appointment in appointments:
            db.delete(appointment)
        deleted = len(appointments)
        db.delete(series)
        db.commit()
        return deleted

    @staticmethod
    def get_series_appointments(db: Session, series_id: int) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.recurring_appointment_id == series_id)
            .order_by(Appointment.appointment_date, Appointment.start_time)
            .all()
        )

    @staticmethod
    def get_last_sequence_number(db: Session, series_id: int) -> int:
        last = (
            db.query(func.max(Appointment.sequence_number))
            .filter(Appointment.recurring_appointment_id == series_id)
            .scalar()
        )
        return last or 0

    @staticmethod
    def add_series_appointments(
        db: Session,
        series: RecurringAppointment,
        appointments: list[Appointment],
        total_appointments: Optional[int] = None,
    ) -> RecurringAppointment:
        """Append appointments to an existing series in one transaction"""
        try:
            for appointment in appointments:
                appointment.recurring_appointment_id = series.id
            db.add_all(appointments)
            if total_appointments is not None:
                series.total_appointments = total_appointments
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(series)
        return series


class SqlBookingSource:
    """BookingSource backed by the practice database"""

    def __init__(self, db: Session, repo: Optional[RecurringAppointmentRepository] = None):
        self.db = db
        self.repo = repo or RecurringAppointmentRepository()

    def get_appointment_timing(self, appointment_type_id: Optional[int]) -> AppointmentTiming:
        if not appointment_type_id:
            return AppointmentTiming()
        appointment_type = self.repo.get_appointment_type(self.db, appointment_type_id)
        if not appointment_type:
            return AppointmentTiming()
        return AppointmentTiming(
            duration_minutes=appointment_type.default_duration or DEFAULT_APPOINTMENT_DURATION,
            buffer_before=appointment_type.buffer_before or 0,
            buffer_after=appointment_type.buffer_after or 0,
        )

    def get_provider_bookings(
        self, provider_id: int, start_date: date, end_date: date
    ) -> list[BookedSlot]:
        return self.repo.get_provider_bookings(self.db, provider_id, start_date, end_date)
