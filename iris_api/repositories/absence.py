# iris_api/repositories/absence.py
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select, update, func

from iris_api.models.absence import AbsenceRequest, EscalationLog, ApprovalHistory
from iris_api.models.enums import ApprovalStage, RequestStatus
from iris_api.repositories.base import BaseRepository


class AbsenceRequestRepository(BaseRepository):

    def get(self, request_id: int) -> Optional[AbsenceRequest]:
        return self.session.get(AbsenceRequest, request_id)

    def stale_pending(self, cutoff: datetime) -> list[AbsenceRequest]:
        """Pending, not completed, untouched since ``cutoff`` (inclusive)."""
        stmt = (
            select(AbsenceRequest)
            .where(
                AbsenceRequest.status == RequestStatus.PENDING.value,
                AbsenceRequest.current_approval_stage != ApprovalStage.COMPLETED.value,
                AbsenceRequest.last_action_at <= cutoff,
            )
            .order_by(AbsenceRequest.last_action_at.asc(), AbsenceRequest.id.asc())
        )
        return list(self.session.scalars(stmt).unique())

    def compare_and_set(self, request_id: int, expected_version: int, values: dict,
                        conditions: Iterable = ()) -> bool:
        """
        Single conditional UPDATE: applies ``values`` only if the row is still
        PENDING at ``expected_version`` and every extra condition holds.
        Bumps ``version``. Returns False when the row moved on.
        """
        stmt = (
            update(AbsenceRequest)
            .where(
                AbsenceRequest.id == request_id,
                AbsenceRequest.status == RequestStatus.PENDING.value,
                AbsenceRequest.version == expected_version,
                *conditions,
            )
            .values(version=expected_version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def search(self, page: int, size: int, status=None, stage=None, employee_id=None, company_id=None):
        stmt = select(AbsenceRequest)
        if status:
            stmt = stmt.where(AbsenceRequest.status == status)
        if stage:
            stmt = stmt.where(AbsenceRequest.current_approval_stage == stage)
        if employee_id:
            stmt = stmt.where(AbsenceRequest.employee_id == employee_id)
        if company_id:
            stmt = stmt.where(AbsenceRequest.company_id == company_id)
        count_stmt = select(func.count()).select_from(stmt.subquery())
        stmt = stmt.order_by(AbsenceRequest.created_at.desc(), AbsenceRequest.id.desc())
        return self.paginate(stmt, count_stmt, page, size)


class EscalationLogRepository(BaseRepository):

    def append(self, log: EscalationLog) -> EscalationLog:
        return self.add(log)

    def history(self, request_id: int) -> list[EscalationLog]:
        stmt = (
            select(EscalationLog)
            .where(EscalationLog.absence_request_id == request_id)
            .order_by(EscalationLog.escalated_at.asc(), EscalationLog.id.asc())
        )
        return list(self.session.scalars(stmt))


class ApprovalHistoryRepository(BaseRepository):

    def append(self, row: ApprovalHistory) -> ApprovalHistory:
        return self.add(row)

    def for_request(self, request_id: int) -> list[ApprovalHistory]:
        stmt = (
            select(ApprovalHistory)
            .where(ApprovalHistory.request_id == request_id)
            .order_by(ApprovalHistory.acted_at.asc(), ApprovalHistory.id.asc())
        )
        return list(self.session.scalars(stmt).unique())
