# iris_api/services/approval_stages.py
"""
Approval chain for absence requests.

    SUPERVISOR -> MANAGER -> HR -> GENERAL_MANAGER -> PAYROLL -> COMPLETED

White collar walks the whole chain. Blue/gray collar goes HR -> PAYROLL
unless ``blue_gray_skips_gm`` is switched off (APPROVAL_BLUE_GRAY_SKIPS_GM).

Both lookups are pure; they are shared by the escalation sweep and by the
human approval endpoints.
"""
from __future__ import annotations

from iris_api.common.errors import InvalidInputError, InvalidStateError
from iris_api.models.enums import ApprovalStage, ApproverRole, CollarType

REJECTED_TOKENS = frozenset({"rejected", "declined", "pending_rejected"})

_NEXT_STAGE = {
    ApprovalStage.SUPERVISOR: ApprovalStage.MANAGER,
    ApprovalStage.MANAGER: ApprovalStage.HR,
    ApprovalStage.HR: ApprovalStage.GENERAL_MANAGER,
    ApprovalStage.GENERAL_MANAGER: ApprovalStage.PAYROLL,
    ApprovalStage.PAYROLL: ApprovalStage.COMPLETED,
}

# stages whose approver does not depend on the collar type
_FIXED_ROLES = {
    ApprovalStage.SUPERVISOR: ApproverRole.SUPERVISOR,
    ApprovalStage.MANAGER: ApproverRole.MANAGER,
    ApprovalStage.GENERAL_MANAGER: ApproverRole.GM,
    ApprovalStage.PAYROLL: ApproverRole.PAYROLL,
}


def parse_stage(token) -> ApprovalStage:
    """Accepts stage names and ``pending_*`` labels; rejected tokens are an invalid state."""
    if not isinstance(token, ApprovalStage) and str(token or "").strip().lower() in REJECTED_TOKENS:
        raise InvalidStateError("rejected requests cannot be escalated")
    return ApprovalStage.parse(token)


def determine_next_stage(current_stage, employee_class, blue_gray_skips_gm: bool = True) -> ApprovalStage:
    stage = parse_stage(current_stage)
    collar = CollarType.parse(employee_class)

    if stage == ApprovalStage.COMPLETED:
        raise InvalidStateError("request already completed; no further approval stage")
    if stage == ApprovalStage.HR and collar.is_blue_or_gray and blue_gray_skips_gm:
        return ApprovalStage.PAYROLL
    return _NEXT_STAGE[stage]


def get_required_approver_role(pending_stage_label, employee_class) -> ApproverRole:
    stage = parse_stage(pending_stage_label)
    collar = CollarType.parse(employee_class)

    if stage == ApprovalStage.HR:
        return ApproverRole.HR_BLUE_GRAY if collar.is_blue_or_gray else ApproverRole.HR_WHITE
    role = _FIXED_ROLES.get(stage)
    if role is None:
        raise InvalidInputError(f"no approver role for stage {stage.value}")
    return role
