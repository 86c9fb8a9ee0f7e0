from datetime import datetime
from iris_api.extensions import db
from iris_api.models.enums import PeriodStatus

CALCULABLE_STATUSES = (PeriodStatus.OPEN.value, PeriodStatus.CALCULATED.value)


class PayrollPeriod(db.Model):
    __tablename__ = "payroll_periods"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=False, index=True)
    period_code = db.Column(db.String(16), nullable=False)   # YYYY-BW01 | YYYY-M01 | YYYY-W01
    frequency = db.Column(db.String(16), nullable=False, default="biweekly")  # weekly|biweekly|monthly
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=PeriodStatus.OPEN.value)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("company_id", "period_code", name="uq_payroll_period_company_code"),
    )

    company = db.relationship("Company", lazy="joined")

    def calendar_days(self) -> int:
        # inclusive of both ends
        return (self.end_date - self.start_date).days + 1

    def can_calculate(self) -> bool:
        return self.status in CALCULABLE_STATUSES
