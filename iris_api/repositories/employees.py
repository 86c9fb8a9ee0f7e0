# iris_api/repositories/employees.py
from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import select

from iris_api.models.employee import Employee
from iris_api.repositories.base import BaseRepository


class EmployeeRepository(BaseRepository):

    def get(self, employee_id: int) -> Optional[Employee]:
        return self.session.get(Employee, employee_id)

    def get_many(self, employee_ids: Iterable[int]) -> dict[int, Employee]:
        ids = list(employee_ids)
        if not ids:
            return {}
        rows = self.session.scalars(select(Employee).where(Employee.id.in_(ids))).unique()
        return {e.id: e for e in rows}

    def active(self, company_id: Optional[int] = None, limit: int = 10000) -> list[Employee]:
        stmt = select(Employee).where(Employee.status == "active")
        if company_id:
            stmt = stmt.where(Employee.company_id == company_id)
        stmt = stmt.order_by(Employee.id.asc()).limit(limit)
        return list(self.session.scalars(stmt).unique())

    def save(self, employee: Employee) -> Employee:
        self.session.add(employee)
        self.session.flush()
        return employee
