# iris_api/services/absence_approval.py
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from iris_api.common.errors import (
    APIError, NotFoundError, InvalidStateError, InvalidInputError, ConcurrentUpdateError, storage_error,
)
from iris_api.models.absence import AbsenceRequest, ApprovalHistory
from iris_api.models.enums import (
    ApprovalAction, ApprovalStage, EffectType, IncidenceCategory, IncidenceStatus, RequestStatus, RequestType,
)
from iris_api.models.incidence import Incidence
from iris_api.models.user import User
from iris_api.repositories.absence import AbsenceRequestRepository, ApprovalHistoryRepository
from iris_api.repositories.employees import EmployeeRepository
from iris_api.repositories.incidences import IncidenceRepository
from iris_api.repositories.periods import PayrollPeriodRepository
from iris_api.services.approval_stages import determine_next_stage, get_required_approver_role

log = logging.getLogger(__name__)

# request type -> (incidence category, effect) recorded once the request is fully approved
REQUEST_INCIDENCE_MAP = {
    RequestType.VACATION: (IncidenceCategory.VACATION, EffectType.NEUTRAL),
    RequestType.SICK_LEAVE: (IncidenceCategory.SICK, EffectType.NEGATIVE),
    RequestType.PAID_LEAVE: (IncidenceCategory.ABSENCE, EffectType.NEUTRAL),
    RequestType.UNPAID_LEAVE: (IncidenceCategory.ABSENCE, EffectType.NEGATIVE),
    RequestType.PERSONAL: (IncidenceCategory.ABSENCE, EffectType.NEGATIVE),
    RequestType.OTHER: (IncidenceCategory.ABSENCE, EffectType.NEGATIVE),
    RequestType.LATE_ENTRY: (IncidenceCategory.DELAY, EffectType.NEGATIVE),
    RequestType.EARLY_EXIT: (IncidenceCategory.DELAY, EffectType.NEGATIVE),
    RequestType.SHIFT_CHANGE: (IncidenceCategory.OTHER, EffectType.NEUTRAL),
    RequestType.TIME_FOR_TIME: (IncidenceCategory.OTHER, EffectType.NEUTRAL),
}


class AbsenceApprovalService:
    """
    Human side of the approval chain.

    Writes go through the same version-checked UPDATE the escalation sweep
    uses, so an approval and a concurrent escalation cannot both land on the
    same observed state.
    """

    def __init__(self, requests: AbsenceRequestRepository | None = None,
                 employees: EmployeeRepository | None = None,
                 periods: PayrollPeriodRepository | None = None,
                 incidences: IncidenceRepository | None = None,
                 blue_gray_skips_gm: bool | None = None):
        self.requests = requests or AbsenceRequestRepository()
        self.session = self.requests.session
        self.history = ApprovalHistoryRepository(self.session)
        self.employees = employees or EmployeeRepository(self.session)
        self.periods = periods or PayrollPeriodRepository(self.session)
        self.incidences = incidences or IncidenceRepository(self.session)
        if blue_gray_skips_gm is None:
            blue_gray_skips_gm = bool(current_app.config.get("APPROVAL_BLUE_GRAY_SKIPS_GM", True))
        self.blue_gray_skips_gm = blue_gray_skips_gm

    # ---------- reads ----------

    def get_request(self, request_id: int) -> AbsenceRequest:
        req = self.requests.get(request_id)
        if not req:
            raise NotFoundError(f"absence request {request_id} not found")
        return req

    def approval_history(self, request_id: int) -> list[ApprovalHistory]:
        return self.history.for_request(request_id)

    def list_requests(self, page: int, size: int, status=None, stage=None, employee_id=None, company_id=None):
        status = RequestStatus.parse(status).value if status else None
        stage = ApprovalStage.parse(stage).value if stage else None
        return self.requests.search(page, size, status=status, stage=stage,
                                    employee_id=employee_id, company_id=company_id)

    # ---------- create ----------

    def create_request(self, employee_id: int, request_type, start_date: date, end_date: date,
                       reason: str, now: datetime | None = None) -> AbsenceRequest:
        rtype = RequestType.parse(request_type)
        if not start_date or not end_date:
            raise InvalidInputError("start_date and end_date are required")
        if start_date > end_date:
            raise InvalidInputError("start_date must be on or before end_date")
        if not (reason or "").strip():
            raise InvalidInputError("reason is required")

        employee = self.employees.get(employee_id)
        if not employee:
            raise NotFoundError(f"employee {employee_id} not found")

        now = now or datetime.utcnow()
        req = AbsenceRequest(
            company_id=employee.company_id,
            employee_id=employee.id,
            request_type=rtype.value,
            start_date=start_date,
            end_date=end_date,
            total_days=Decimal((end_date - start_date).days + 1),
            reason=reason.strip(),
            status=RequestStatus.PENDING.value,
            current_approval_stage=ApprovalStage.SUPERVISOR.value,
            last_action_at=now,
            escalation_count=0,
            is_escalated=False,
            version=1,
            created_at=now,
        )
        try:
            self.requests.add(req)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise storage_error("create absence request", e)
        log.info("absence request %s created employee_id=%s type=%s", req.id, employee.id, rtype.value)
        return req

    # ---------- approve / decline ----------

    def act(self, request_id: int, approver_user_id: int, stage, action, comments: str | None = None,
            now: datetime | None = None) -> AbsenceRequest:
        action = ApprovalAction.parse(action)
        stage = ApprovalStage.parse(stage)
        now = now or datetime.utcnow()

        try:
            req = self.get_request(request_id)
            if req.status != RequestStatus.PENDING.value:
                raise InvalidStateError(f"request is {req.status}; only pending requests can be acted on")
            if req.current_approval_stage != stage.value:
                raise InvalidStateError(
                    f"request is at stage {req.current_approval_stage}, not {stage.value}")

            collar = req.employee.collar
            required = get_required_approver_role(stage, collar)
            approver = self.session.get(User, approver_user_id)
            if approver is None or not approver.has_role(required.value):
                raise InvalidStateError("unauthorized for this approval stage",
                                        payload={"required_role": required.value})

            final = False
            if action == ApprovalAction.DECLINED:
                values = {"status": RequestStatus.DECLINED.value,
                          "current_approval_stage": ApprovalStage.COMPLETED.value}
            else:
                nxt = determine_next_stage(stage, collar, self.blue_gray_skips_gm)
                if nxt == ApprovalStage.COMPLETED:
                    final = True
                    values = {"status": RequestStatus.APPROVED.value,
                              "current_approval_stage": ApprovalStage.COMPLETED.value}
                else:
                    values = {"current_approval_stage": nxt.value}
            values.update(last_action_at=now, updated_at=now)

            moved = self.requests.compare_and_set(
                req.id, req.version, values,
                conditions=(AbsenceRequest.current_approval_stage == stage.value,),
            )
            if not moved:
                raise ConcurrentUpdateError("absence request changed concurrently; reload and retry")

            self.history.append(ApprovalHistory(
                request_id=req.id,
                approver_user_id=approver_user_id,
                approval_stage=stage.value,
                action=action.value,
                comments=comments,
                acted_at=now,
            ))
            if final:
                self._record_incidence(req, approver_user_id, now)
            self.session.commit()
        except APIError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise storage_error(f"{action.value.lower()} absence request {request_id}", e)

        self.session.refresh(req)
        log.info("absence request %s %s at %s by user %s -> %s/%s", req.id, action.value, stage.value,
                 approver_user_id, req.status, req.current_approval_stage)
        return req

    def _record_incidence(self, req: AbsenceRequest, approver_user_id: int, now: datetime):
        existing = self.incidences.for_absence_request(req.id)
        if existing is not None:
            return existing
        period = self.periods.calculable_covering(req.company_id, req.start_date)
        if period is None:
            log.warning("absence request %s approved but no open payroll period covers %s; no incidence recorded",
                        req.id, req.start_date)
            return None

        rtype = RequestType.parse(req.request_type)
        category, effect = REQUEST_INCIDENCE_MAP[rtype]
        itype = self.incidences.type_for(req.company_id, rtype.value, category.value, effect.value)
        # delay requests carry no minute count; they only bump the delay counter
        quantity = Decimal("0") if category == IncidenceCategory.DELAY else req.total_days
        return self.incidences.add(Incidence(
            employee_id=req.employee_id,
            payroll_period_id=period.id,
            incidence_type_id=itype.id,
            absence_request_id=req.id,
            start_date=req.start_date,
            end_date=req.end_date,
            quantity=quantity,
            calculated_amount=Decimal("0"),
            comments=f"from absence request {req.id}",
            status=IncidenceStatus.APPROVED.value,
            approved_by_user_id=approver_user_id,
            approved_at=now,
        ))
