from datetime import datetime
from iris_api.extensions import db
from iris_api.models.enums import ApprovalStage, RequestStatus

DEFAULT_ESCALATION_REASON = "24 hours without approval"


class AbsenceRequest(db.Model):
    """
    One employee's leave/permission request moving through the approval chain.

    ``current_approval_stage`` is only meaningful while ``status`` is PENDING.
    Every write to a pending row is a conditional UPDATE keyed on ``version``
    (see services.absence_approval / services.escalation_service).
    """
    __tablename__ = "absence_requests"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    request_type = db.Column(db.String(30), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    total_days = db.Column(db.Numeric(5, 2), nullable=False)
    reason = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=RequestStatus.PENDING.value)
    current_approval_stage = db.Column(db.String(30), nullable=False, default=ApprovalStage.SUPERVISOR.value)

    last_action_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    escalation_count = db.Column(db.Integer, nullable=False, default=0)
    is_escalated = db.Column(db.Boolean, nullable=False, default=False)
    version = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_absence_pending_sweep", "status", "last_action_at"),
        db.CheckConstraint("escalation_count >= 0", name="ck_absence_escalation_count"),
    )

    employee = db.relationship("Employee", backref="absence_requests")


class ApprovalHistory(db.Model):
    __tablename__ = "approval_history"

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("absence_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    approver_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    approval_stage = db.Column(db.String(30), nullable=False)
    action = db.Column(db.String(20), nullable=False)   # APPROVED|DECLINED
    comments = db.Column(db.Text)
    acted_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    approver = db.relationship("User")


class EscalationLog(db.Model):
    """Append-only audit row, one per stage transition made by the sweep."""
    __tablename__ = "escalation_logs"

    id = db.Column(db.Integer, primary_key=True)
    absence_request_id = db.Column(db.Integer, db.ForeignKey("absence_requests.id", ondelete="CASCADE"),
                                   nullable=False, index=True)
    from_stage = db.Column(db.String(30), nullable=False)
    to_stage = db.Column(db.String(30), nullable=False)
    escalated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    previous_action_at = db.Column(db.DateTime, nullable=True)
    reason = db.Column(db.String(255), nullable=False, default=DEFAULT_ESCALATION_REASON)
