"""Waitlist domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ...shared.validators import parse_time, validate_time_hhmm

WAITLIST_PRIORITIES = ("urgent", "normal", "flexible")
WAITLIST_STATUSES = ("active", "called", "scheduled", "expired")


class WaitlistEntryCreate(BaseModel):
    """Schema for creating a waitlist entry"""

    patientId: int
    providerId: int
    appointmentTypeId: int
    preferredDate: Optional[date] = None
    preferredTimeStart: Optional[str] = None
    preferredTimeEnd: Optional[str] = None
    priority: Optional[str] = "normal"
    notes: Optional[str] = None

    @field_validator("preferredTimeStart")
    @classmethod
    def validate_start(cls, v):
        return validate_time_hhmm(v, "Preferred start time")

    @field_validator("preferredTimeEnd")
    @classmethod
    def validate_end(cls, v):
        return validate_time_hhmm(v, "Preferred end time")

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if not v:
            return "normal"
        if v not in WAITLIST_PRIORITIES:
            raise ValueError("Invalid priority selected")
        return v

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        if v and len(v) > 1000:
            raise ValueError("Notes must not exceed 1000 characters")
        return v

    @model_validator(mode="after")
    def validate_time_window(self):
        if self.preferredTimeStart and self.preferredTimeEnd:
            if parse_time(self.preferredTimeEnd) <= parse_time(self.preferredTimeStart):
                raise ValueError("Preferred end time must be after start time")
        return self


class WaitlistEntryUpdate(BaseModel):
    """Schema for editing a waitlist entry; the patient cannot change"""

    providerId: Optional[int] = None
    appointmentTypeId: Optional[int] = None
    preferredDate: Optional[date] = None
    preferredTimeStart: Optional[str] = None
    preferredTimeEnd: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("preferredTimeStart")
    @classmethod
    def validate_start(cls, v):
        return validate_time_hhmm(v, "Preferred start time")

    @field_validator("preferredTimeEnd")
    @classmethod
    def validate_end(cls, v):
        return validate_time_hhmm(v, "Preferred end time")

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v is not None and v not in WAITLIST_PRIORITIES:
            raise ValueError("Invalid priority selected")
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in WAITLIST_STATUSES:
            raise ValueError("Invalid status selected")
        return v

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        if v and len(v) > 1000:
            raise ValueError("Notes must not exceed 1000 characters")
        return v


class WaitlistConversion(BaseModel):
    """The slot a waitlisted patient is booked into"""

    appointmentDate: date
    startTime: str
    endTime: str
    notes: Optional[str] = None

    @field_validator("startTime")
    @classmethod
    def validate_start(cls, v):
        return validate_time_hhmm(v, "Start time")

    @field_validator("endTime")
    @classmethod
    def validate_end(cls, v):
        return validate_time_hhmm(v, "End time")

    @model_validator(mode="after")
    def validate_time_window(self):
        if not self.startTime or not self.endTime:
            raise ValueError("Please select date and time for the appointment")
        if parse_time(self.endTime) <= parse_time(self.startTime):
            raise ValueError("End time must be after start time")
        return self


class WaitlistEntryResponse(BaseModel):
    id: int
    patientId: int
    patientName: Optional[str] = None
    providerId: int
    providerName: Optional[str] = None
    appointmentTypeId: int
    appointmentTypeName: Optional[str] = None
    preferredDate: Optional[date] = None
    preferredTimeStart: Optional[str] = None
    preferredTimeEnd: Optional[str] = None
    priority: str
    status: str
    notes: Optional[str] = None
    calledAt: Optional[datetime] = None
    scheduledAt: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
