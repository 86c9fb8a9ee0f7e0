# iris_api/repositories/prenomina.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select, func

from iris_api.models.prenomina import PrenominaMetric
from iris_api.repositories.base import BaseRepository


class PrenominaRepository(BaseRepository):

    def get(self, employee_id: int, period_id: int, for_update: bool = False) -> Optional[PrenominaMetric]:
        stmt = select(PrenominaMetric).where(
            PrenominaMetric.employee_id == employee_id,
            PrenominaMetric.payroll_period_id == period_id,
        )
        if for_update:
            # serializes concurrent calculations of the same pair (no-op on sqlite)
            stmt = stmt.with_for_update(of=PrenominaMetric)
        return self.session.scalars(stmt).unique().first()

    def for_period(self, period_id: int, page: int, size: int):
        stmt = select(PrenominaMetric).where(PrenominaMetric.payroll_period_id == period_id)
        count_stmt = select(func.count(PrenominaMetric.id)).where(PrenominaMetric.payroll_period_id == period_id)
        stmt = stmt.order_by(PrenominaMetric.employee_id.asc())
        return self.paginate(stmt, count_stmt, page, size)
