# iris_api/repositories/incidences.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from iris_api.models.incidence import Incidence, IncidenceType
from iris_api.repositories.base import BaseRepository


class IncidenceRepository(BaseRepository):

    def for_employee_period(self, employee_id: int, period_id: int) -> list[Incidence]:
        stmt = (
            select(Incidence)
            .where(Incidence.employee_id == employee_id, Incidence.payroll_period_id == period_id)
            .order_by(Incidence.id.asc())
        )
        return list(self.session.scalars(stmt).unique())

    def for_absence_request(self, request_id: int) -> Optional[Incidence]:
        stmt = select(Incidence).where(Incidence.absence_request_id == request_id)
        return self.session.scalars(stmt).unique().first()

    def type_for(self, company_id: Optional[int], name: str, category: str, effect_type: str,
                 calculation_method: Optional[str] = None) -> IncidenceType:
        """Find the incidence type by (company, category, effect, name) or create it."""
        stmt = select(IncidenceType).where(
            IncidenceType.category == category,
            IncidenceType.effect_type == effect_type,
            IncidenceType.name == name,
        )
        if company_id:
            stmt = stmt.where(IncidenceType.company_id == company_id)
        found = self.session.scalars(stmt).first()
        if found:
            return found
        return self.add(IncidenceType(
            company_id=company_id,
            name=name,
            category=category,
            effect_type=effect_type,
            calculation_method=calculation_method,
        ))
