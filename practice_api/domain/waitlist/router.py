"""Waitlist router - FastAPI endpoints for waitlist entries"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import WaitlistEntry
from ...shared.responses import success
from ..recurring.router import serialize_appointment
from .schemas import WaitlistConversion, WaitlistEntryCreate, WaitlistEntryResponse, WaitlistEntryUpdate
from .service import WaitlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/waitlist", tags=["Waitlist"])


def get_waitlist_service(db: Session = Depends(get_db)) -> WaitlistService:
    """Dependency injection for WaitlistService"""
    return WaitlistService(db)


def serialize_entry(entry: WaitlistEntry) -> dict:
    return WaitlistEntryResponse(
        id=entry.id,
        patientId=entry.patient_id,
        patientName=entry.patient.full_name if entry.patient else None,
        providerId=entry.provider_id,
        providerName=entry.provider.full_name if entry.provider else None,
        appointmentTypeId=entry.appointment_type_id,
        appointmentTypeName=entry.appointment_type.name if entry.appointment_type else None,
        preferredDate=entry.preferred_date,
        preferredTimeStart=entry.preferred_time_start,
        preferredTimeEnd=entry.preferred_time_end,
        priority=entry.priority,
        status=entry.status,
        notes=entry.notes,
        calledAt=entry.called_at,
        scheduledAt=entry.scheduled_at,
        created_at=entry.created_at,
    ).model_dump(mode="json")


@router.get("")
async def get_waitlist_entries(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    providerId: Optional[int] = Query(None),
    patientId: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    service: WaitlistService = Depends(get_waitlist_service),
):
    """Get waitlist entries with pagination and filters"""
    entries, pagination = service.list_entries(
        page, limit, providerId, patientId, status, priority
    )
    return success(
        {"waitlistEntries": [serialize_entry(e) for e in entries], "pagination": pagination}
    )


@router.post("")
async def create_waitlist_entry(
    data: WaitlistEntryCreate,
    service: WaitlistService = Depends(get_waitlist_service),
):
    entry = service.create_entry(data)
    return success({"waitlistEntry": serialize_entry(entry)})


@router.get("/{entry_id}")
async def get_waitlist_entry(
    entry_id: int,
    service: WaitlistService = Depends(get_waitlist_service),
):
    entry = service.get_entry(entry_id)
    return success({"waitlistEntry": serialize_entry(entry)})


@router.put("/{entry_id}")
async def update_waitlist_entry(
    entry_id: int,
    data: WaitlistEntryUpdate,
    service: WaitlistService = Depends(get_waitlist_service),
):
    entry = service.update_entry(entry_id, data)
    return success({"waitlistEntry": serialize_entry(entry)})


@router.post("/{entry_id}/convert-to-appointment")
async def convert_waitlist_entry(
    entry_id: int,
    data: WaitlistConversion,
    service: WaitlistService = Depends(get_waitlist_service),
):
    """Book the waiting patient and mark the entry scheduled"""
    appointment, entry = service.convert_to_appointment(entry_id, data)
    return success(
        {"appointment": serialize_appointment(appointment), "waitlistEntry": serialize_entry(entry)},
        message="Appointment created from waitlist entry",
    )


@router.post("/{entry_id}/called")
async def mark_waitlist_entry_called(
    entry_id: int,
    service: WaitlistService = Depends(get_waitlist_service),
):
    entry = service.mark_called(entry_id)
    return success({"waitlistEntry": serialize_entry(entry)})


@router.post("/{entry_id}/scheduled")
async def mark_waitlist_entry_scheduled(
    entry_id: int,
    service: WaitlistService = Depends(get_waitlist_service),
):
    entry = service.mark_scheduled(entry_id)
    return success({"waitlistEntry": serialize_entry(entry)})


@router.delete("/{entry_id}")
async def delete_waitlist_entry(
    entry_id: int,
    service: WaitlistService = Depends(get_waitlist_service),
):
    service.delete_entry(entry_id)
    return success(message="Waitlist entry deleted")
