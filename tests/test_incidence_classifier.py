from decimal import Decimal
from types import SimpleNamespace

import pytest

from iris_api.common.errors import InvalidInputError
from iris_api.services.incidence_classifier import classify, classify_incidence


def _buckets(contributions):
    return {c.field: c.amount for c in contributions}


@pytest.mark.parametrize("category,effect,method,expected", [
    ("absence", "negative", None, {"absence_days": Decimal("2")}),
    ("absence", "neutral", None, {}),
    ("sick", "positive", None, {"sick_days": Decimal("2")}),
    ("vacation", "neutral", None, {"vacation_days": Decimal("2")}),
    ("overtime", "positive", "hourly", {"overtime_hours": Decimal("2")}),
    ("overtime", "positive", "hourly_double", {"double_overtime_hours": Decimal("2")}),
    ("overtime", "positive", "hourly_triple", {"triple_overtime_hours": Decimal("2")}),
    ("delay", "negative", None, {"delays_count": Decimal("1"), "delay_minutes": Decimal("2")}),
    ("bonus", "positive", "fixed_amount", {"bonus_amount": Decimal("150.50")}),
    ("deduction", "negative", "fixed_amount", {"other_deduction": Decimal("150.50")}),
    ("other", "neutral", None, {}),
])
def test_bucket_table(category, effect, method, expected):
    assert _buckets(classify(category, effect, method, "2", "150.50")) == expected


def test_tokens_are_case_insensitive():
    assert _buckets(classify("Overtime", "POSITIVE", "Hourly_Double", 3, 0)) == {"double_overtime_hours": Decimal("3")}


def test_overtime_without_hourly_method_is_rejected():
    with pytest.raises(InvalidInputError):
        classify("overtime", "positive", "fixed_amount", 2, 0)
    with pytest.raises(InvalidInputError):
        classify("overtime", "positive", None, 2, 0)


def test_unknown_category_is_rejected():
    with pytest.raises(InvalidInputError):
        classify("teleport", "positive", None, 1, 0)


def _incidence(status, category="sick"):
    itype = SimpleNamespace(category=category, effect_type="negative", calculation_method=None)
    return SimpleNamespace(id=1, status=status, incidence_type=itype, quantity=Decimal("1"),
                           calculated_amount=Decimal("0"))


@pytest.mark.parametrize("status", ["pending", "rejected"])
def test_unapproved_incidences_contribute_nothing(status):
    assert classify_incidence(_incidence(status)) == ()


@pytest.mark.parametrize("status", ["approved", "processed"])
def test_approved_and_processed_incidences_count(status):
    assert _buckets(classify_incidence(_incidence(status))) == {"sick_days": Decimal("1")}
