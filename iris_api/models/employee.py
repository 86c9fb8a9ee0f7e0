from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal
from typing import Optional

from iris_api.extensions import db
from iris_api.common.decimals import dec, q2
from iris_api.models.enums import CollarType

# (max seniority years, vacation days) - statutory table; last band is open-ended
_VACATION_BANDS = (
    (1, 12),
    (5, 14),
    (10, 16),
    (15, 18),
    (20, 20),
    (25, 22),
    (30, 24),
    (35, 26),
    (40, 28),
    (45, 30),
    (50, 32),
)
_VACATION_DAYS_MAX = 34


class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False)
    user_id    = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)
    supervisor_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)

    code  = db.Column(db.String(32), nullable=False)    # unique per company
    email = db.Column(db.String(255), unique=True, nullable=True)
    first_name = db.Column(db.String(80), nullable=False)
    last_name  = db.Column(db.String(80), nullable=True)

    collar_type = db.Column(db.String(20), nullable=False, default=CollarType.WHITE.value)
    daily_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    integrated_daily_salary = db.Column(db.Numeric(12, 2), nullable=False, default=0)  # SDI

    hire_date = db.Column(db.Date, nullable=True)
    termination_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), default="active", nullable=False)   # active/inactive

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("company_id", "code", name="uq_employee_company_code"),
        db.Index("ix_emp_company_status", "company_id", "status"),
    )

    company    = db.relationship("Company", lazy="joined")
    supervisor = db.relationship("Employee", remote_side=[id], lazy="select")

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    @property
    def collar(self) -> CollarType:
        return CollarType.parse(self.collar_type)

    def seniority_years(self, on: Optional[date] = None) -> float:
        if not self.hire_date:
            return 0.0
        end = on or date.today()
        if self.termination_date and self.termination_date < end:
            end = self.termination_date
        return max((end - self.hire_date).days, 0) / 365.25

    def vacation_days_entitlement(self, on: Optional[date] = None) -> int:
        years = int(self.seniority_years(on))
        if years < 1:
            return _VACATION_BANDS[0][1]
        for upper, days in _VACATION_BANDS:
            if years <= upper:
                return days
        return _VACATION_DAYS_MAX

    def compute_integrated_daily_salary(self, aguinaldo_days, vacation_premium, on: Optional[date] = None) -> Decimal:
        """
        SDI = daily salary * (1 + aguinaldo/365 + vacation_days * premium / 365)
        """
        factor = (
            Decimal("1")
            + dec(aguinaldo_days) / Decimal("365")
            + Decimal(self.vacation_days_entitlement(on)) * dec(vacation_premium) / Decimal("365")
        )
        return q2(dec(self.daily_salary) * factor)
