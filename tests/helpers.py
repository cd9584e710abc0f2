"""Shared fixtures: in-memory database wired into the FastAPI app"""

from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from practice_api.database import Base, get_db
from practice_api.main import app
from practice_api.models import Appointment, AppointmentType, Patient, Provider


@dataclass
class Practice:
    provider_id: int
    other_provider_id: int
    patient_id: int
    other_patient_id: int
    appointment_type_id: int
    buffered_type_id: int


def make_session_factory():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_db(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    return app


def clear_overrides():
    app.dependency_overrides.clear()


def seed_practice(db) -> Practice:
    provider = Provider(first_name="Maria", last_name="Lopez", title="MD", specialty="Cardiology")
    other_provider = Provider(first_name="Sam", last_name="Okafor", title="NP", specialty="Family")
    patient = Patient(first_name="John", last_name="Doe", medical_record_number="MRN-1001")
    other_patient = Patient(first_name="Jane", last_name="Roe", medical_record_number="MRN-1002")
    follow_up = AppointmentType(name="Follow-up", code="FU", default_duration=30)
    infusion = AppointmentType(
        name="Infusion", code="INF", default_duration=60, buffer_before=15, buffer_after=15
    )
    db.add_all([provider, other_provider, patient, other_patient, follow_up, infusion])
    db.commit()
    return Practice(
        provider_id=provider.id,
        other_provider_id=other_provider.id,
        patient_id=patient.id,
        other_patient_id=other_patient.id,
        appointment_type_id=follow_up.id,
        buffered_type_id=infusion.id,
    )


def book(db, provider_id, patient_id, day, start, end, status="scheduled", code=None) -> Appointment:
    appointment = Appointment(
        provider_id=provider_id,
        patient_id=patient_id,
        appointment_date=day,
        start_time=start,
        end_time=end,
        status=status,
    )
    if code:
        appointment.appointment_code = code
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def next_monday(days_ahead: int = 7) -> date:
    """A Monday at least ``days_ahead`` days from today"""
    day = date.today() + timedelta(days=days_ahead)
    return day + timedelta(days=(7 - day.weekday()) % 7)
