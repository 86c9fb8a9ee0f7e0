# iris_api/services/incidence_classifier.py
"""
Maps an incidence to the prenomina bucket(s) it feeds.

    absence   (negative)      -> absence_days += quantity
    sick                      -> sick_days += quantity
    vacation                  -> vacation_days += quantity
    overtime  hourly          -> overtime_hours += quantity
    overtime  hourly_double   -> double_overtime_hours += quantity
    overtime  hourly_triple   -> triple_overtime_hours += quantity
    delay                     -> delays_count += 1, delay_minutes += quantity
    bonus                     -> bonus_amount += calculated_amount
    deduction                 -> other_deduction += calculated_amount
    other                     -> nothing

Only approved/processed incidences contribute. Every IncidenceCategory must
have a branch in ``classify``; the module refuses to import otherwise.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from iris_api.common.decimals import dec
from iris_api.common.errors import InvalidInputError
from iris_api.models.enums import CalculationMethod, EffectType, IncidenceCategory, IncidenceStatus

ONE = Decimal("1")

_OVERTIME_BUCKETS = {
    CalculationMethod.HOURLY: "overtime_hours",
    CalculationMethod.HOURLY_DOUBLE: "double_overtime_hours",
    CalculationMethod.HOURLY_TRIPLE: "triple_overtime_hours",
}


@dataclass(frozen=True)
class Contribution:
    field: str
    amount: Decimal


def classify(category, effect, method, quantity, calculated_amount) -> tuple[Contribution, ...]:
    category = IncidenceCategory.parse(category)
    effect = EffectType.parse(effect) if effect else EffectType.NEUTRAL
    qty = dec(quantity)
    amount = dec(calculated_amount)

    if category == IncidenceCategory.ABSENCE:
        if effect == EffectType.NEGATIVE:
            return (Contribution("absence_days", qty),)
        return ()
    elif category == IncidenceCategory.SICK:
        return (Contribution("sick_days", qty),)
    elif category == IncidenceCategory.VACATION:
        return (Contribution("vacation_days", qty),)
    elif category == IncidenceCategory.OVERTIME:
        bucket = _OVERTIME_BUCKETS.get(CalculationMethod.parse(method) if method else None)
        if bucket is None:
            raise InvalidInputError(f"overtime incidence needs an hourly calculation method, got {method!r}")
        return (Contribution(bucket, qty),)
    elif category == IncidenceCategory.DELAY:
        return (Contribution("delays_count", ONE), Contribution("delay_minutes", qty))
    elif category == IncidenceCategory.BONUS:
        return (Contribution("bonus_amount", amount),)
    elif category == IncidenceCategory.DEDUCTION:
        return (Contribution("other_deduction", amount),)
    elif category == IncidenceCategory.OTHER:
        return ()
    raise NotImplementedError(f"incidence category {category.value} has no prenomina bucket")


def classify_incidence(incidence) -> tuple[Contribution, ...]:
    """Contributions of a stored Incidence; empty when it is not approved/processed."""
    if not IncidenceStatus.parse(incidence.status).counts_for_payroll:
        return ()
    itype = incidence.incidence_type
    if itype is None:
        raise InvalidInputError(f"incidence {incidence.id} has no incidence type")
    return classify(itype.category, itype.effect_type, itype.calculation_method,
                    incidence.quantity, incidence.calculated_amount)


def _method_probe(category: IncidenceCategory) -> Optional[CalculationMethod]:
    return CalculationMethod.HOURLY if category == IncidenceCategory.OVERTIME else None


def _assert_total():
    for category in IncidenceCategory:
        classify(category, EffectType.NEGATIVE, _method_probe(category), ONE, ONE)


_assert_total()
