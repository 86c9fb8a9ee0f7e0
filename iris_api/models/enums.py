# iris_api/models/enums.py
"""
Closed vocabularies for the approval workflow and the prenomina calculator.

Values are stored as plain strings in the database; every token that enters
the core from outside (HTTP payloads, CLI, imported rows) goes through
``parse`` so an unknown value fails fast instead of silently defaulting.
"""
from __future__ import annotations

from enum import Enum

from iris_api.common.errors import InvalidInputError


class _Token(str, Enum):
    """str-valued enum with a case-insensitive ``parse``."""

    @classmethod
    def _aliases(cls) -> dict:
        return {}

    @classmethod
    def parse(cls, token):
        if isinstance(token, cls):
            return token
        raw = (str(token) if token is not None else "").strip()
        if not raw:
            raise InvalidInputError(f"{cls.__name__} is required")
        key = raw.lower()
        for member in cls:
            if member.value.lower() == key or member.name.lower() == key:
                return member
        alias = cls._aliases().get(key)
        if alias is not None:
            return cls(alias)
        raise InvalidInputError(f"unknown {cls.__name__}: {raw!r}")


class CollarType(_Token):
    WHITE = "white_collar"
    BLUE = "blue_collar"
    GRAY = "gray_collar"

    @classmethod
    def _aliases(cls) -> dict:
        return {"white": "white_collar", "blue": "blue_collar", "gray": "gray_collar", "grey": "gray_collar",
                "grey_collar": "gray_collar"}

    @property
    def is_blue_or_gray(self) -> bool:
        return self in (CollarType.BLUE, CollarType.GRAY)


class ApprovalStage(_Token):
    SUPERVISOR = "SUPERVISOR"
    MANAGER = "MANAGER"
    HR = "HR"
    GENERAL_MANAGER = "GENERAL_MANAGER"
    PAYROLL = "PAYROLL"
    COMPLETED = "COMPLETED"

    @classmethod
    def _aliases(cls) -> dict:
        return {
            "pending_supervisor": "SUPERVISOR",
            "pending_manager": "MANAGER",
            "pending_hr": "HR",
            "hr_blue_gray": "HR",
            "hr_white": "HR",
            "pending_gm": "GENERAL_MANAGER",
            "gm": "GENERAL_MANAGER",
            "pending_payroll": "PAYROLL",
            "approved": "COMPLETED",
        }

    @property
    def pending_label(self) -> str | None:
        return _PENDING_LABELS.get(self)


_PENDING_LABELS = {
    ApprovalStage.SUPERVISOR: "pending_supervisor",
    ApprovalStage.MANAGER: "pending_manager",
    ApprovalStage.HR: "pending_hr",
    ApprovalStage.GENERAL_MANAGER: "pending_gm",
    ApprovalStage.PAYROLL: "pending_payroll",
}


class ApproverRole(_Token):
    SUPERVISOR = "supervisor"
    MANAGER = "manager"
    HR_BLUE_GRAY = "hr_blue_gray"
    HR_WHITE = "hr_white"
    GM = "gm"
    PAYROLL = "payroll"


class RequestStatus(_Token):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"
    ARCHIVED = "ARCHIVED"

    @classmethod
    def _aliases(cls) -> dict:
        return {"rejected": "DECLINED"}


class RequestType(_Token):
    PAID_LEAVE = "PAID_LEAVE"
    UNPAID_LEAVE = "UNPAID_LEAVE"
    VACATION = "VACATION"
    LATE_ENTRY = "LATE_ENTRY"
    EARLY_EXIT = "EARLY_EXIT"
    SHIFT_CHANGE = "SHIFT_CHANGE"
    TIME_FOR_TIME = "TIME_FOR_TIME"
    SICK_LEAVE = "SICK_LEAVE"
    PERSONAL = "PERSONAL"
    OTHER = "OTHER"


class ApprovalAction(_Token):
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"

    @classmethod
    def _aliases(cls) -> dict:
        return {"approve": "APPROVED", "decline": "DECLINED", "reject": "DECLINED", "rejected": "DECLINED"}


class IncidenceCategory(_Token):
    ABSENCE = "absence"
    SICK = "sick"
    VACATION = "vacation"
    OVERTIME = "overtime"
    DELAY = "delay"
    BONUS = "bonus"
    DEDUCTION = "deduction"
    OTHER = "other"


class EffectType(_Token):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class CalculationMethod(_Token):
    DAILY_RATE = "daily_rate"
    HOURLY_RATE = "hourly_rate"
    FIXED_AMOUNT = "fixed_amount"
    PERCENTAGE = "percentage"
    HOURLY = "hourly"
    HOURLY_DOUBLE = "hourly_double"
    HOURLY_TRIPLE = "hourly_triple"


class IncidenceStatus(_Token):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSED = "processed"

    @property
    def counts_for_payroll(self) -> bool:
        return self in (IncidenceStatus.APPROVED, IncidenceStatus.PROCESSED)


class PeriodStatus(_Token):
    OPEN = "open"
    CALCULATED = "calculated"
    APPROVED = "approved"
    PAID = "paid"
    CLOSED = "closed"


class CalculationStatus(_Token):
    CALCULATED = "calculated"
    APPROVED = "approved"
