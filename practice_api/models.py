import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


def generate_appointment_code():
    """Short human-readable booking reference, e.g. APT-3F9A1C2B"""
    return f"APT-{uuid.uuid4().hex[:8].upper()}"


class Provider(Base):
    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    title = Column(String(50), nullable=True)  # MD, DO, NP, PA
    specialty = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="provider")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    medical_record_number = Column(String(50), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="patient")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AppointmentType(Base):
    __tablename__ = "appointment_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    default_duration = Column(Integer, default=30, nullable=False)  # minutes
    buffer_before = Column(Integer, default=0, nullable=False)  # minutes
    buffer_after = Column(Integer, default=0, nullable=False)  # minutes
    color = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class RecurringAppointment(Base):
    """A persisted recurrence series and the rule it was generated from"""

    __tablename__ = "recurring_appointments"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )

    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    appointment_type_id = Column(Integer, ForeignKey("appointment_types.id"), nullable=True)

    # Recurrence rule
    frequency = Column(String(20), nullable=False)  # weekly, monthly, quarterly
    frequency_value = Column(Integer, default=1, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    preferred_time = Column(String(10), nullable=False)  # HH:MM format
    preferred_day_of_week = Column(Integer, nullable=True)  # 0 (Sunday) - 6 (Saturday)
    total_appointments = Column(Integer, nullable=True)

    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient")
    provider = relationship("Provider")
    appointment_type = relationship("AppointmentType")
    appointments = relationship(
        "Appointment",
        back_populates="recurring_appointment",
        order_by="Appointment.sequence_number",
    )


class Appointment(Base):
    """A concrete booking on a provider's calendar"""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    appointment_code = Column(
        String(20), unique=True, nullable=False, index=True, default=generate_appointment_code
    )

    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=True)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    appointment_type_id = Column(Integer, ForeignKey("appointment_types.id"), nullable=True)
    recurring_appointment_id = Column(
        Integer, ForeignKey("recurring_appointments.id"), nullable=True, index=True
    )
    sequence_number = Column(Integer, nullable=True)  # Position within the recurring series

    appointment_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(10), nullable=False)  # HH:MM format
    end_time = Column(String(10), nullable=False)
    duration_minutes = Column(Integer, nullable=True)

    # scheduled, confirmed, checked_in, in_progress, completed, cancelled, no_show
    status = Column(String(50), default="scheduled", nullable=False, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient", back_populates="appointments")
    provider = relationship("Provider", back_populates="appointments")
    appointment_type = relationship("AppointmentType")
    recurring_appointment = relationship("RecurringAppointment", back_populates="appointments")


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False, index=True)
    appointment_type_id = Column(Integer, ForeignKey("appointment_types.id"), nullable=False)

    preferred_date = Column(Date, nullable=True)
    preferred_time_start = Column(String(10), nullable=True)  # HH:MM format
    preferred_time_end = Column(String(10), nullable=True)

    priority = Column(String(20), default="normal", nullable=False)  # urgent, normal, flexible
    # Status workflow: active → called → scheduled (or expired)
    status = Column(String(20), default="active", nullable=False, index=True)
    notes = Column(Text, nullable=True)

    called_at = Column(DateTime, nullable=True)
    scheduled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient")
    provider = relationship("Provider")
    appointment_type = relationship("AppointmentType")
