"""Directory router - paged search used to fill patient/provider/type pickers"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...shared.responses import success
from .repository import DirectoryRepository

router = APIRouter(tags=["Directory"])

repo = DirectoryRepository()


@router.get("/patients")
async def search_patients(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    patients, pagination = repo.search_patients(db, search, page, limit)
    return success(
        {
            "patients": [
                {
                    "id": p.id,
                    "firstName": p.first_name,
                    "lastName": p.last_name,
                    "fullName": p.full_name,
                    "dateOfBirth": p.date_of_birth.isoformat() if p.date_of_birth else None,
                    "medicalRecordNumber": p.medical_record_number,
                }
                for p in patients
            ],
            "pagination": pagination,
        }
    )


@router.get("/providers")
async def search_providers(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    providers, pagination = repo.search_providers(db, search, page, limit)
    return success(
        {
            "providers": [
                {
                    "id": p.id,
                    "firstName": p.first_name,
                    "lastName": p.last_name,
                    "fullName": p.full_name,
                    "title": p.title,
                    "specialty": p.specialty,
                }
                for p in providers
            ],
            "pagination": pagination,
        }
    )


@router.get("/appointment-types")
async def search_appointment_types(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    appointment_types, pagination = repo.search_appointment_types(db, search, page, limit)
    return success(
        {
            "appointmentTypes": [
                {
                    "id": t.id,
                    "name": t.name,
                    "code": t.code,
                    "defaultDuration": t.default_duration,
                    "bufferBefore": t.buffer_before,
                    "bufferAfter": t.buffer_after,
                }
                for t in appointment_types
            ],
            "pagination": pagination,
        }
    )
