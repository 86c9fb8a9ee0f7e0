# iris_api/services/escalation_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Callable, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from iris_api.common.errors import APIError, storage_error
from iris_api.models.absence import AbsenceRequest, EscalationLog, DEFAULT_ESCALATION_REASON
from iris_api.models.enums import ApprovalStage, CollarType
from iris_api.repositories.absence import AbsenceRequestRepository, EscalationLogRepository
from iris_api.services.approval_stages import determine_next_stage

log = logging.getLogger(__name__)

ESCALATED = "escalated"
SKIPPED = "skipped"
CONFLICT = "conflict"


@dataclass
class SweepItem:
    request_id: int
    outcome: str
    from_stage: Optional[str] = None
    to_stage: Optional[str] = None
    detail: Optional[str] = None


@dataclass
class EscalationSweepResult:
    now: datetime
    scanned: int = 0
    escalated: int = 0
    skipped: int = 0
    conflicts: int = 0
    items: list = field(default_factory=list)

    def add(self, item: SweepItem):
        self.items.append(item)
        if item.outcome == ESCALATED:
            self.escalated += 1
        elif item.outcome == CONFLICT:
            self.conflicts += 1
        else:
            self.skipped += 1

    def to_dict(self) -> dict:
        d = asdict(self)
        d["now"] = self.now.isoformat()
        return d


@dataclass(frozen=True)
class _Candidate:
    """What the sweep observed when it read the row; the write is conditioned on it."""
    id: int
    version: int
    stage: str
    last_action_at: datetime
    collar_type: Optional[str]


class EscalationService:
    """
    Periodic sweep that pushes stale pending absence requests one stage up.

    A request is stale when its ``last_action_at`` is at least
    ``ESCALATION_THRESHOLD_HOURS`` old. Every escalation is a single
    conditional UPDATE (status, stage, version and staleness re-checked) plus
    one EscalationLog row, committed together. Losing the race against a
    human approver is reported as a conflict and the sweep moves on.
    """

    def __init__(self, requests: AbsenceRequestRepository | None = None,
                 logs: EscalationLogRepository | None = None,
                 threshold_hours: float | None = None,
                 reason: str | None = None,
                 blue_gray_skips_gm: bool | None = None,
                 clock: Callable[[], datetime] = datetime.utcnow):
        cfg = current_app.config
        self.requests = requests or AbsenceRequestRepository()
        self.logs = logs or EscalationLogRepository(self.requests.session)
        self.session = self.requests.session
        hours = threshold_hours if threshold_hours is not None else cfg.get("ESCALATION_THRESHOLD_HOURS", 24)
        self.threshold = timedelta(hours=float(hours))
        self.reason = reason or cfg.get("ESCALATION_REASON") or DEFAULT_ESCALATION_REASON
        self.blue_gray_skips_gm = (
            blue_gray_skips_gm if blue_gray_skips_gm is not None
            else bool(cfg.get("APPROVAL_BLUE_GRAY_SKIPS_GM", True))
        )
        self.clock = clock

    # ---------- sweep ----------

    def process_pending_escalations(self, now: datetime | None = None) -> EscalationSweepResult:
        now = now or self.clock()
        cutoff = now - self.threshold
        result = EscalationSweepResult(now=now)

        try:
            candidates = [self._snapshot(r) for r in self.requests.stale_pending(cutoff)]
        except SQLAlchemyError as e:
            self.session.rollback()
            raise storage_error("load pending requests", e)

        log.info("escalation sweep: %d stale pending request(s), cutoff=%s", len(candidates), cutoff.isoformat())

        for cand in candidates:
            result.scanned += 1
            item = self._escalate(cand, now, cutoff)
            if item.outcome == SKIPPED:
                log.warning("escalation skipped request_id=%s stage=%s: %s", cand.id, cand.stage, item.detail)
            elif item.outcome == CONFLICT:
                log.info("escalation conflict request_id=%s: row changed since read", cand.id)
            result.add(item)

        log.info("escalation sweep done: scanned=%d escalated=%d skipped=%d conflicts=%d",
                 result.scanned, result.escalated, result.skipped, result.conflicts)
        return result

    def _snapshot(self, req: AbsenceRequest) -> _Candidate:
        emp = req.employee
        return _Candidate(
            id=req.id,
            version=req.version,
            stage=req.current_approval_stage,
            last_action_at=req.last_action_at,
            collar_type=emp.collar_type if emp is not None else None,
        )

    def _escalate(self, cand: _Candidate, now: datetime, cutoff: datetime) -> SweepItem:
        if cand.collar_type is None:
            return SweepItem(cand.id, SKIPPED, cand.stage, detail="employee not found")
        try:
            stage = ApprovalStage.parse(cand.stage)
            collar = CollarType.parse(cand.collar_type)
            if stage == ApprovalStage.PAYROLL:
                return SweepItem(cand.id, SKIPPED, stage.value, detail="final stage")
            nxt = determine_next_stage(stage, collar, self.blue_gray_skips_gm)
        except APIError as e:
            return SweepItem(cand.id, SKIPPED, cand.stage, detail=e.message)

        try:
            moved = self.requests.compare_and_set(
                cand.id,
                cand.version,
                values={
                    "current_approval_stage": nxt.value,
                    "last_action_at": now,
                    "escalation_count": AbsenceRequest.escalation_count + 1,
                    "is_escalated": True,
                    "updated_at": now,
                },
                conditions=(
                    AbsenceRequest.current_approval_stage == stage.value,
                    AbsenceRequest.last_action_at <= cutoff,
                ),
            )
            if not moved:
                self.session.rollback()
                return SweepItem(cand.id, CONFLICT, stage.value, detail="request changed since read")

            self.logs.append(EscalationLog(
                absence_request_id=cand.id,
                from_stage=stage.value,
                to_stage=nxt.value,
                escalated_at=now,
                previous_action_at=cand.last_action_at,
                reason=self.reason,
            ))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise storage_error(f"escalate request {cand.id}", e)

        log.info("escalated request_id=%s %s -> %s (collar=%s)", cand.id, stage.value, nxt.value, collar.value)
        return SweepItem(cand.id, ESCALATED, stage.value, nxt.value)

    # ---------- reads ----------

    def get_escalation_history(self, request_id: int) -> list[EscalationLog]:
        try:
            return self.logs.history(request_id)
        except SQLAlchemyError as e:
            raise storage_error("load escalation history", e)
