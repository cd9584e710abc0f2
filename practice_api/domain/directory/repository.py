"""Directory repository - Read-only lookups for patients, providers and appointment types"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import AppointmentType, Patient, Provider
from ...shared.pagination import paginate


class DirectoryRepository:
    """Search-by-term queries used to populate scheduling forms"""

    @staticmethod
    def search_patients(
        db: Session, search: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> tuple[list[Patient], dict]:
        query = db.query(Patient).filter(Patient.is_active.is_(True))

        if search:
            search_term = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    Patient.first_name.ilike(search_term),
                    Patient.last_name.ilike(search_term),
                    Patient.email.ilike(search_term),
                    Patient.medical_record_number.ilike(search_term),
                )
            )

        query = query.order_by(Patient.last_name, Patient.first_name, Patient.id)
        return paginate(query, page, limit)

    @staticmethod
    def search_providers(
        db: Session, search: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> tuple[list[Provider], dict]:
        query = db.query(Provider).filter(Provider.is_active.is_(True))

        if search:
            search_term = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    Provider.first_name.ilike(search_term),
                    Provider.last_name.ilike(search_term),
                    Provider.specialty.ilike(search_term),
                )
            )

        query = query.order_by(Provider.last_name, Provider.first_name, Provider.id)
        return paginate(query, page, limit)

    @staticmethod
    def search_appointment_types(
        db: Session, search: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> tuple[list[AppointmentType], dict]:
        query = db.query(AppointmentType).filter(AppointmentType.is_active.is_(True))

        if search:
            search_term = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(AppointmentType.name.ilike(search_term), AppointmentType.code.ilike(search_term))
            )

        query = query.order_by(AppointmentType.name, AppointmentType.id)
        return paginate(query, page, limit)
