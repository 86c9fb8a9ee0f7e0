# iris_api/services/payroll_rates.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from iris_api.common.decimals import dec
from iris_api.common.errors import InvalidInputError


@dataclass(frozen=True)
class PayrollRates:
    """
    Rate settings a prenomina calculation runs with.

    Read once from ``app.config`` so a single calculation never mixes two
    configurations. ``overtime_double_pct`` is the premium over the hourly
    rate for plain overtime (1.00 -> paid at 2x); ``overtime_triple_pct`` the
    premium for double overtime (2.00 -> 3x). Triple overtime uses the fixed
    ``triple_multiplier``.
    """
    hours_per_day: Decimal = Decimal("8")
    overtime_double_pct: Decimal = Decimal("1.00")
    overtime_triple_pct: Decimal = Decimal("2.00")
    triple_multiplier: Decimal = Decimal("3")
    aguinaldo_days: Decimal = Decimal("15")
    vacation_premium: Decimal = Decimal("0.25")

    def __post_init__(self):
        if self.hours_per_day <= 0:
            raise InvalidInputError("PAYROLL_HOURS_PER_DAY must be greater than zero")
        for name in ("overtime_double_pct", "overtime_triple_pct", "triple_multiplier",
                     "aguinaldo_days", "vacation_premium"):
            if getattr(self, name) < 0:
                raise InvalidInputError(f"payroll rate {name} cannot be negative")

    @classmethod
    def from_config(cls, cfg) -> "PayrollRates":
        def _get(key, default):
            value = dec(cfg.get(key), default=None)
            if value is None:
                if cfg.get(key) not in (None, ""):
                    raise InvalidInputError(f"{key} is not a number: {cfg.get(key)!r}")
                return Decimal(default)
            return value

        return cls(
            hours_per_day=_get("PAYROLL_HOURS_PER_DAY", "8"),
            overtime_double_pct=_get("PAYROLL_OVERTIME_DOUBLE_PCT", "1.00"),
            overtime_triple_pct=_get("PAYROLL_OVERTIME_TRIPLE_PCT", "2.00"),
            triple_multiplier=_get("PAYROLL_TRIPLE_MULTIPLIER", "3"),
            aguinaldo_days=_get("PAYROLL_AGUINALDO_DAYS", "15"),
            vacation_premium=_get("PAYROLL_VACATION_PREMIUM", "0.25"),
        )

    @property
    def overtime_factor(self) -> Decimal:
        return Decimal("1") + self.overtime_double_pct

    @property
    def double_overtime_factor(self) -> Decimal:
        return Decimal("1") + self.overtime_triple_pct
