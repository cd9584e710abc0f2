"""Recurring appointment schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...config import MAX_RECURRING_OCCURRENCES
from ...shared.validators import validate_time_hhmm


class RecurringAppointmentRequest(BaseModel):
    """Recurrence rule as submitted by the scheduling form.

    Required-field checks happen in the service so a missing field is reported
    as a scheduling validation error rather than a schema error.
    """

    patientId: Optional[int] = None
    providerId: Optional[int] = None
    appointmentTypeId: Optional[int] = None
    frequency: Optional[str] = "weekly"
    frequencyValue: Optional[int] = None
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    preferredTime: Optional[str] = None
    preferredDayOfWeek: Optional[int] = None
    totalAppointments: Optional[int] = None
    notes: Optional[str] = None
    isActive: Optional[bool] = True

    @field_validator("preferredTime")
    @classmethod
    def validate_preferred_time(cls, v):
        return validate_time_hhmm(v, "Preferred time")

    @field_validator("frequency")
    @classmethod
    def normalize_frequency(cls, v):
        if v is None:
            return v
        return v.strip().lower() or None


class AppointmentOverride(BaseModel):
    """Operator decision for one generated instance"""

    appointmentNumber: int
    skip: Optional[bool] = None
    customDate: Optional[date] = None
    customStartTime: Optional[str] = None
    customEndTime: Optional[str] = None

    @field_validator("customStartTime")
    @classmethod
    def validate_custom_start(cls, v):
        return validate_time_hhmm(v, "Custom start time")

    @field_validator("customEndTime")
    @classmethod
    def validate_custom_end(cls, v):
        return validate_time_hhmm(v, "Custom end time")

    @property
    def is_reschedule(self) -> bool:
        return any(
            value is not None
            for value in (self.customDate, self.customStartTime, self.customEndTime)
        )


class RecurringAppointmentWithResolution(RecurringAppointmentRequest):
    appointmentOverrides: Optional[list[AppointmentOverride]] = None


class RecurringAppointmentUpdate(BaseModel):
    """Edit-mode changes; the generated appointments are left untouched"""

    endDate: Optional[date] = None
    preferredTime: Optional[str] = None
    preferredDayOfWeek: Optional[int] = None
    notes: Optional[str] = None
    isActive: Optional[bool] = None

    @field_validator("preferredTime")
    @classmethod
    def validate_preferred_time(cls, v):
        return validate_time_hhmm(v, "Preferred time")

    @field_validator("preferredDayOfWeek")
    @classmethod
    def validate_day_of_week(cls, v):
        if v is not None and not 0 <= v <= 6:
            raise ValueError("Day of week must be between 0 (Sunday) and 6 (Saturday)")
        return v


class GenerateAppointmentsRequest(BaseModel):
    count: int = Field(5, ge=1, le=MAX_RECURRING_OCCURRENCES)


class AppointmentResponse(BaseModel):
    id: int
    appointmentCode: str
    appointmentNumber: Optional[int] = None
    patientId: Optional[int] = None
    providerId: int
    appointmentTypeId: Optional[int] = None
    date: date
    startTime: str
    endTime: str
    durationMinutes: Optional[int] = None
    status: str

    model_config = ConfigDict(from_attributes=True)


class RecurringAppointmentResponse(BaseModel):
    id: int
    public_id: Optional[str] = None
    patientId: Optional[int] = None
    patientName: Optional[str] = None
    providerId: int
    providerName: Optional[str] = None
    appointmentTypeId: Optional[int] = None
    appointmentTypeName: Optional[str] = None
    frequency: str
    frequencyValue: int
    startDate: date
    endDate: Optional[date] = None
    preferredTime: str
    preferredDayOfWeek: Optional[int] = None
    totalAppointments: Optional[int] = None
    notes: Optional[str] = None
    isActive: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
