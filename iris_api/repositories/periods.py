# iris_api/repositories/periods.py
from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import select

from iris_api.models.payroll_period import PayrollPeriod, CALCULABLE_STATUSES
from iris_api.repositories.base import BaseRepository


class PayrollPeriodRepository(BaseRepository):

    def get(self, period_id: int) -> Optional[PayrollPeriod]:
        return self.session.get(PayrollPeriod, period_id)

    def calculable_covering(self, company_id: int, on: date) -> Optional[PayrollPeriod]:
        """Open/calculated period of the company whose window contains ``on``."""
        stmt = (
            select(PayrollPeriod)
            .where(
                PayrollPeriod.company_id == company_id,
                PayrollPeriod.start_date <= on,
                PayrollPeriod.end_date >= on,
                PayrollPeriod.status.in_(CALCULABLE_STATUSES),
            )
            .order_by(PayrollPeriod.start_date.desc(), PayrollPeriod.id.desc())
        )
        return self.session.scalars(stmt).unique().first()
