from datetime import datetime

from flask import Blueprint, request, current_app

from iris_api.common.auth import requires_perms, current_user_id
from iris_api.common.errors import InvalidInputError
from iris_api.common.http import ok
from iris_api.common.paging import page_limit, page_meta
from iris_api.models.absence import AbsenceRequest, ApprovalHistory, EscalationLog
from iris_api.models.enums import ApprovalAction, ApprovalStage, RequestStatus
from iris_api.services.absence_approval import AbsenceApprovalService
from iris_api.services.approval_stages import get_required_approver_role
from iris_api.services.escalation_service import EscalationService

bp = Blueprint("absence_requests", __name__, url_prefix="/api/v1/absence-requests")


def _d(s):
    if not s:
        return None
    try:
        return datetime.strptime(str(s), "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInputError(f"invalid date {s!r}, expected YYYY-MM-DD")


def _dt(s):
    if not s:
        return None
    try:
        return datetime.fromisoformat(str(s))
    except ValueError:
        raise InvalidInputError(f"invalid timestamp {s!r}")


def _iso(v):
    return v.isoformat() if v else None


def _pending_label(r: AbsenceRequest):
    if r.status != RequestStatus.PENDING.value:
        return None
    return ApprovalStage.parse(r.current_approval_stage).pending_label


def _approval_row(h: ApprovalHistory):
    return {
        "approver_user_id": h.approver_user_id,
        "approval_stage": h.approval_stage,
        "action": h.action,
        "comments": h.comments,
        "acted_at": _iso(h.acted_at),
    }


def _row(r: AbsenceRequest):
    emp = r.employee
    return {
        "id": r.id,
        "company_id": r.company_id,
        "employee_id": r.employee_id,
        "employee_name": emp.full_name if emp else None,
        "collar_type": emp.collar_type if emp else None,
        "request_type": r.request_type,
        "start_date": _iso(r.start_date),
        "end_date": _iso(r.end_date),
        "total_days": float(r.total_days or 0),
        "reason": r.reason,
        "status": r.status,
        "current_approval_stage": r.current_approval_stage,
        "pending_label": _pending_label(r),
        "last_action_at": _iso(r.last_action_at),
        "escalation_count": r.escalation_count,
        "is_escalated": r.is_escalated,
        "version": r.version,
        "created_at": _iso(r.created_at),
    }


def _log_row(x: EscalationLog):
    return {
        "id": x.id,
        "from_stage": x.from_stage,
        "to_stage": x.to_stage,
        "escalated_at": _iso(x.escalated_at),
        "previous_action_at": _iso(x.previous_action_at),
        "reason": x.reason,
    }


def _body():
    data = request.get_json(silent=True, force=True)
    return data if isinstance(data, dict) else {}


# ---------- create / read ----------

@bp.post("")
@requires_perms("absence.request.create")
def create_request():
    data = _body()
    try:
        employee_id = int(data.get("employee_id"))
    except (TypeError, ValueError):
        raise InvalidInputError("employee_id is required")
    req = AbsenceApprovalService().create_request(
        employee_id=employee_id,
        request_type=data.get("request_type"),
        start_date=_d(data.get("start_date")),
        end_date=_d(data.get("end_date")),
        reason=data.get("reason") or "",
    )
    return ok(_row(req), status=201)


@bp.get("")
@requires_perms("absence.request.read")
def list_requests():
    page, size = page_limit()
    items, total = AbsenceApprovalService().list_requests(
        page, size,
        status=request.args.get("status"),
        stage=request.args.get("stage"),
        employee_id=request.args.get("employee_id", type=int),
        company_id=request.args.get("company_id", type=int),
    )
    return ok([_row(r) for r in items], **page_meta(page, size, total))


@bp.get("/<int:request_id>")
@requires_perms("absence.request.read")
def get_request(request_id: int):
    svc = AbsenceApprovalService()
    data = _row(svc.get_request(request_id))
    data["approvals"] = [_approval_row(h) for h in svc.approval_history(request_id)]
    return ok(data)


@bp.get("/approver-role")
@requires_perms("absence.request.read")
def approver_role():
    role = get_required_approver_role(request.args.get("stage"), request.args.get("collar_type"))
    return ok({"role": role.value})


# ---------- approve / decline ----------

def _act(request_id: int, action: ApprovalAction):
    data = _body()
    svc = AbsenceApprovalService()
    stage = data.get("stage") or svc.get_request(request_id).current_approval_stage
    req = svc.act(request_id, current_user_id(), stage, action, comments=data.get("comments"))
    return ok(_row(req))


@bp.post("/<int:request_id>/approve")
@requires_perms("absence.request.approve")
def approve(request_id: int):
    return _act(request_id, ApprovalAction.APPROVED)


@bp.post("/<int:request_id>/decline")
@requires_perms("absence.request.approve")
def decline(request_id: int):
    return _act(request_id, ApprovalAction.DECLINED)


# ---------- escalations ----------

@bp.get("/<int:request_id>/escalations")
@requires_perms("absence.request.read")
def escalation_history(request_id: int):
    AbsenceApprovalService().get_request(request_id)
    rows = EscalationService().get_escalation_history(request_id)
    return ok([_log_row(x) for x in rows], total=len(rows))


@bp.post("/escalations/run")
@requires_perms("absence.escalation.run")
def run_escalations():
    now = _dt(_body().get("now"))
    result = EscalationService().process_pending_escalations(now=now)
    current_app.logger.info("escalation sweep triggered by user %s", current_user_id())
    return ok(result.to_dict())
