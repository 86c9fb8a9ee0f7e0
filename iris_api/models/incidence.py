from datetime import datetime
from iris_api.extensions import db
from iris_api.models.enums import IncidenceStatus


class IncidenceType(db.Model):
    __tablename__ = "incidence_types"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(20), nullable=False)             # absence|sick|vacation|overtime|delay|bonus|deduction|other
    effect_type = db.Column(db.String(20), nullable=False)          # positive|negative|neutral
    calculation_method = db.Column(db.String(30), nullable=True)    # hourly|hourly_double|hourly_triple|daily_rate|...
    default_value = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)


class Incidence(db.Model):
    __tablename__ = "incidences"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False)
    payroll_period_id = db.Column(db.Integer, db.ForeignKey("payroll_periods.id", ondelete="RESTRICT"), nullable=False)
    incidence_type_id = db.Column(db.Integer, db.ForeignKey("incidence_types.id", ondelete="RESTRICT"), nullable=False)
    absence_request_id = db.Column(db.Integer, db.ForeignKey("absence_requests.id", ondelete="SET NULL"), nullable=True)

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    quantity = db.Column(db.Numeric(8, 2), nullable=False)          # days, hours or minutes depending on category
    calculated_amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    comments = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=IncidenceStatus.PENDING.value)

    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    approved_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_incidence_emp_period", "employee_id", "payroll_period_id"),
    )

    incidence_type = db.relationship("IncidenceType", lazy="joined")
