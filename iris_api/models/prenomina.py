from datetime import datetime
from iris_api.extensions import db
from iris_api.models.enums import CalculationStatus

# incidence-fed buckets; zeroed before every recalculation
ACCUMULATED_FIELDS = (
    "absence_days", "sick_days", "vacation_days",
    "overtime_hours", "double_overtime_hours", "triple_overtime_hours",
    "delays_count", "delay_minutes",
    "bonus_amount", "other_deduction",
)

# derived from the buckets above; recomputed on every calculation
DERIVED_FIELDS = (
    "worked_days", "regular_hours",
    "regular_salary", "overtime_amount", "double_overtime_amount", "triple_overtime_amount",
    "delay_deduction",
    "total_extras", "total_deductions", "gross_income", "net_income",
)

# operator-entered; preserved across recalculation
MANUAL_FIELDS = (
    "unpaid_leave_days", "early_departures_count",
    "commission_amount", "other_extra_amount",
    "loan_deduction", "advance_deduction",
)


def _qty():
    return db.Column(db.Numeric(7, 2), nullable=False, default=0)


def _money():
    return db.Column(db.Numeric(15, 2), nullable=False, default=0)


class PrenominaMetric(db.Model):
    __tablename__ = "prenomina_metrics"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    payroll_period_id = db.Column(db.Integer, db.ForeignKey("payroll_periods.id", ondelete="CASCADE"), nullable=False)
    calculation_status = db.Column(db.String(20), nullable=False, default=CalculationStatus.CALCULATED.value)
    calculation_date = db.Column(db.DateTime)
    calculated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_at = db.Column(db.DateTime)

    # work metrics
    worked_days = _qty()
    regular_hours = _qty()
    overtime_hours = _qty()
    double_overtime_hours = _qty()
    triple_overtime_hours = _qty()

    # leave metrics
    absence_days = _qty()
    sick_days = _qty()
    vacation_days = _qty()
    unpaid_leave_days = _qty()

    delays_count = db.Column(db.Integer, nullable=False, default=0)
    delay_minutes = _qty()
    early_departures_count = db.Column(db.Integer, nullable=False, default=0)

    # monetary amounts
    regular_salary = _money()
    overtime_amount = _money()
    double_overtime_amount = _money()
    triple_overtime_amount = _money()
    bonus_amount = _money()
    commission_amount = _money()
    other_extra_amount = _money()

    # deductions
    loan_deduction = _money()
    advance_deduction = _money()
    other_deduction = _money()
    delay_deduction = _money()

    # summary totals, always recomputed from components
    total_extras = _money()
    total_deductions = _money()
    gross_income = _money()
    net_income = _money()

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "payroll_period_id", name="uq_prenomina_emp_period"),
        db.Index("ix_prenomina_period", "payroll_period_id"),
    )

    employee = db.relationship("Employee", lazy="joined")
    payroll_period = db.relationship("PayrollPeriod", lazy="joined")

    @property
    def is_approved(self) -> bool:
        return self.calculation_status == CalculationStatus.APPROVED.value
