"""Recurring appointment router - FastAPI endpoints for preview and series creation"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import Appointment, RecurringAppointment
from ...shared.responses import success
from .schemas import (
    AppointmentResponse,
    GenerateAppointmentsRequest,
    RecurringAppointmentRequest,
    RecurringAppointmentResponse,
    RecurringAppointmentUpdate,
    RecurringAppointmentWithResolution,
)
from .service import RecurringAppointmentService, SeriesCreation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recurring-appointments", tags=["Recurring Appointments"])


def get_recurring_service(db: Session = Depends(get_db)) -> RecurringAppointmentService:
    """Dependency injection for RecurringAppointmentService"""
    return RecurringAppointmentService(db)


def serialize_series(series: RecurringAppointment) -> dict:
    return RecurringAppointmentResponse(
        id=series.id,
        public_id=series.public_id,
        patientId=series.patient_id,
        patientName=series.patient.full_name if series.patient else None,
        providerId=series.provider_id,
        providerName=series.provider.full_name if series.provider else None,
        appointmentTypeId=series.appointment_type_id,
        appointmentTypeName=series.appointment_type.name if series.appointment_type else None,
        frequency=series.frequency,
        frequencyValue=series.frequency_value,
        startDate=series.start_date,
        endDate=series.end_date,
        preferredTime=series.preferred_time,
        preferredDayOfWeek=series.preferred_day_of_week,
        totalAppointments=series.total_appointments,
        notes=series.notes,
        isActive=series.is_active,
        created_at=series.created_at,
    ).model_dump(mode="json")


def serialize_appointment(appointment: Appointment) -> dict:
    return AppointmentResponse(
        id=appointment.id,
        appointmentCode=appointment.appointment_code,
        appointmentNumber=appointment.sequence_number,
        patientId=appointment.patient_id,
        providerId=appointment.provider_id,
        appointmentTypeId=appointment.appointment_type_id,
        date=appointment.appointment_date,
        startTime=appointment.start_time,
        endTime=appointment.end_time,
        durationMinutes=appointment.duration_minutes,
        status=appointment.status,
    ).model_dump(mode="json")


def serialize_creation(result: SeriesCreation) -> dict:
    return {
        "recurringAppointment": serialize_series(result.series),
        "appointmentsCreated": len(result.appointments),
        "skippedCount": result.skipped_count,
        "createdAppointments": [serialize_appointment(a) for a in result.appointments],
    }


# ============================================================================
# PREVIEW AND CREATION
# ============================================================================


@router.post("/preview")
async def preview_recurring_appointments(
    data: RecurringAppointmentRequest,
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    """Expand the rule and report conflicts without creating anything"""
    result = service.preview(data)
    return success(result.to_dict())


@router.post("/with-resolution")
async def create_recurring_appointment_with_resolution(
    data: RecurringAppointmentWithResolution,
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    """Create a series applying operator overrides; all-or-nothing"""
    result = service.create_with_resolution(data)
    return success(serialize_creation(result))


@router.post("")
async def create_recurring_appointment(
    data: RecurringAppointmentRequest,
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    """Create a series with no overrides"""
    result = service.create(data)
    return success(serialize_creation(result))


# ============================================================================
# SERIES MANAGEMENT
# ============================================================================


@router.get("")
async def get_recurring_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    providerId: Optional[int] = Query(None),
    patientId: Optional[int] = Query(None),
    isActive: Optional[bool] = Query(None),
    startDateFrom: Optional[date] = Query(None),
    startDateTo: Optional[date] = Query(None),
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    """List recurring series with pagination and filters"""
    items, pagination = service.list_series(
        page,
        limit,
        provider_id=providerId,
        patient_id=patientId,
        is_active=isActive,
        start_date_from=startDateFrom,
        start_date_to=startDateTo,
    )
    return success(
        {
            "recurringAppointments": [serialize_series(s) for s in items],
            "pagination": pagination,
        }
    )


@router.get("/{series_id}")
async def get_recurring_appointment(
    series_id: int,
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    series = service.get_series(series_id)
    return success({"recurringAppointment": serialize_series(series)})


@router.put("/{series_id}")
async def update_recurring_appointment(
    series_id: int,
    data: RecurringAppointmentUpdate,
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    series = service.update_series(series_id, data)
    return success({"recurringAppointment": serialize_series(series)})


@router.delete("/{series_id}")
async def delete_recurring_appointment(
    series_id: int,
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    """Delete a series and all of its appointments"""
    deleted = service.delete_series(series_id)
    return success(
        {"deletedAppointments": deleted},
        message=f"Recurring appointment deleted with {deleted} appointment(s)",
    )


@router.get("/{series_id}/appointments")
async def get_linked_appointments(
    series_id: int,
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    appointments = service.get_linked_appointments(series_id)
    return success(
        {
            "appointments": [serialize_appointment(a) for a in appointments],
            "count": len(appointments),
        }
    )


@router.post("/{series_id}/generate")
async def generate_recurring_appointments(
    series_id: int,
    data: Optional[GenerateAppointmentsRequest] = None,
    service: RecurringAppointmentService = Depends(get_recurring_service),
):
    """Book the next instances of an active series"""
    count = data.count if data else GenerateAppointmentsRequest().count
    result = service.generate_appointments(series_id, count)
    return success(
        serialize_creation(result),
        message=f"Generated {len(result.appointments)} appointment(s)",
    )
