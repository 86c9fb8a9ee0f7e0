from datetime import date
from decimal import Decimal

import pytest

from iris_api.common.errors import InvalidInputError, InvalidStateError, NotFoundError
from iris_api.extensions import db
from iris_api.models.employee import Employee
from iris_api.models.prenomina import PrenominaMetric
from iris_api.services.payroll_rates import PayrollRates
from iris_api.services.prenomina_service import PrenominaService, metric_to_dict


@pytest.fixture
def setup(factory):
    company = factory.company()
    period = factory.period(company, start=date(2026, 3, 1), end=date(2026, 3, 15))
    emp = factory.employee(company, daily_salary="800.00")      # hourly = 100
    for category, qty, effect, method, amount in [
        ("absence", "1", "negative", None, "0"),
        ("sick", "1", "negative", None, "0"),
        ("vacation", "2", "neutral", None, "0"),
        ("overtime", "2", "positive", "hourly", "0"),
        ("overtime", "1", "positive", "hourly_double", "0"),
        ("overtime", "1", "positive", "hourly_triple", "0"),
        ("delay", "30", "negative", None, "0"),
        ("bonus", "1", "positive", "fixed_amount", "500.00"),
        ("deduction", "1", "negative", "fixed_amount", "200.00"),
    ]:
        factory.incidence(emp, period, category, qty, effect, method, amount)
    # never counted
    factory.incidence(emp, period, "absence", "5", status="pending")
    factory.incidence(emp, period, "bonus", "1", "positive", amount="999.00", status="rejected")
    return emp, period


def _numbers(metric):
    d = metric_to_dict(metric)
    d.pop("calculation_date")
    return d


def test_calculation_matches_hand_computed_figures(app, setup):
    emp, period = setup
    m = PrenominaService().calculate_prenomina(emp.id, period.id, actor_id=7)

    assert m.absence_days == Decimal("1.00")
    assert m.sick_days == Decimal("1.00")
    assert m.vacation_days == Decimal("2.00")
    assert m.worked_days == Decimal("11.00")
    assert m.regular_hours == Decimal("88.00")
    assert m.regular_salary == Decimal("8800.00")
    assert m.overtime_amount == Decimal("400.00")
    assert m.double_overtime_amount == Decimal("300.00")
    assert m.triple_overtime_amount == Decimal("300.00")
    assert m.delays_count == 1
    assert m.delay_minutes == Decimal("30.00")
    assert m.delay_deduction == Decimal("50.00")
    assert m.bonus_amount == Decimal("500.00")
    assert m.other_deduction == Decimal("200.00")
    assert m.total_extras == Decimal("1500.00")
    assert m.total_deductions == Decimal("250.00")
    assert m.gross_income == Decimal("10300.00")
    assert m.net_income == Decimal("10050.00")
    assert m.calculation_status == "calculated"
    assert m.calculated_by_user_id == 7


def test_totals_are_consistent(app, setup):
    emp, period = setup
    m = PrenominaService().calculate_prenomina(emp.id, period.id)
    assert m.gross_income == m.regular_salary + m.total_extras
    assert m.net_income == m.gross_income - m.total_deductions


def test_recalculation_is_idempotent(app, setup):
    emp, period = setup
    svc = PrenominaService()
    first = _numbers(svc.calculate_prenomina(emp.id, period.id))
    second = _numbers(svc.calculate_prenomina(emp.id, period.id))
    assert first == second
    assert second["absence_days"] == 1.0
    assert second["delays_count"] == 1


def test_manual_fields_survive_recalculation(app, setup):
    emp, period = setup
    svc = PrenominaService()
    m = svc.calculate_prenomina(emp.id, period.id)
    m.loan_deduction = Decimal("100.00")
    m.commission_amount = Decimal("40.00")
    m.unpaid_leave_days = Decimal("1.00")
    db.session.commit()

    m = svc.calculate_prenomina(emp.id, period.id)
    assert m.loan_deduction == Decimal("100.00")
    assert m.worked_days == Decimal("10.00")
    assert m.regular_salary == Decimal("8000.00")
    assert m.total_extras == Decimal("1540.00")
    assert m.total_deductions == Decimal("350.00")
    assert m.gross_income == Decimal("9540.00")
    assert m.net_income == Decimal("9190.00")


def test_new_incidence_changes_result_without_double_counting(app, setup, factory):
    emp, period = setup
    svc = PrenominaService()
    svc.calculate_prenomina(emp.id, period.id)
    factory.incidence(emp, period, "bonus", "1", "positive", amount="100.00")

    m = svc.calculate_prenomina(emp.id, period.id)
    assert m.bonus_amount == Decimal("600.00")
    assert m.total_extras == Decimal("1600.00")


def test_approved_metric_is_frozen(app, setup):
    emp, period = setup
    svc = PrenominaService()
    svc.calculate_prenomina(emp.id, period.id)

    approved = svc.approve_prenomina(emp.id, period.id, actor_id=3)
    assert approved.calculation_status == "approved"
    assert approved.approved_by_user_id == 3
    assert approved.approved_at is not None

    with pytest.raises(InvalidStateError):
        svc.calculate_prenomina(emp.id, period.id)
    with pytest.raises(InvalidStateError):
        svc.approve_prenomina(emp.id, period.id)


def test_approve_requires_existing_metric(app, setup):
    emp, period = setup
    with pytest.raises(NotFoundError):
        PrenominaService().approve_prenomina(emp.id, period.id)


@pytest.mark.parametrize("status", ["approved", "paid", "closed"])
def test_only_open_or_calculated_periods_accept_calculations(app, factory, status):
    company = factory.company()
    period = factory.period(company, status=status)
    emp = factory.employee(company)
    with pytest.raises(InvalidStateError):
        PrenominaService().calculate_prenomina(emp.id, period.id)


def test_calculated_period_accepts_calculations(app, factory):
    company = factory.company()
    period = factory.period(company, status="calculated")
    emp = factory.employee(company)
    m = PrenominaService().calculate_prenomina(emp.id, period.id)
    assert m.worked_days == Decimal("15.00")
    assert m.net_income == Decimal("12000.00")


def test_missing_employee_or_period(app, factory):
    company = factory.company()
    period = factory.period(company)
    emp = factory.employee(company)
    svc = PrenominaService()
    with pytest.raises(NotFoundError):
        svc.calculate_prenomina(9999, period.id)
    with pytest.raises(NotFoundError):
        svc.calculate_prenomina(emp.id, 9999)
    with pytest.raises(NotFoundError):
        svc.get_prenomina_metrics(emp.id, period.id)


def test_integrated_daily_salary_is_recomputed_on_request(app, factory):
    company = factory.company()
    period = factory.period(company)
    emp = factory.employee(company, daily_salary="800.00", hire_date=date(2023, 1, 1))

    PrenominaService().calculate_prenomina(emp.id, period.id, recalculate_sdi=True)

    db.session.expire_all()
    # 3 years of seniority -> 14 vacation days: 800 * (1 + 15/365 + 14*0.25/365)
    assert db.session.get(Employee, emp.id).integrated_daily_salary == Decimal("840.55")


def test_integrated_daily_salary_untouched_by_default(app, factory):
    company = factory.company()
    period = factory.period(company)
    emp = factory.employee(company)

    PrenominaService().calculate_prenomina(emp.id, period.id)

    db.session.expire_all()
    assert db.session.get(Employee, emp.id).integrated_daily_salary == Decimal("0")


def test_vacation_entitlement_table(app, factory):
    emp = factory.employee(factory.company(), hire_date=date(2000, 1, 1))
    assert emp.vacation_days_entitlement(date(2000, 6, 1)) == 12
    assert emp.vacation_days_entitlement(date(2001, 1, 2)) == 12
    assert emp.vacation_days_entitlement(date(2002, 1, 2)) == 14
    assert emp.vacation_days_entitlement(date(2010, 1, 2)) == 16
    assert emp.vacation_days_entitlement(date(2020, 1, 2)) == 20
    assert emp.vacation_days_entitlement(date(2055, 1, 2)) == 34


def test_rates_come_from_config(app, setup):
    app.config["PAYROLL_OVERTIME_DOUBLE_PCT"] = "0.50"
    emp, period = setup
    m = PrenominaService().calculate_prenomina(emp.id, period.id)
    assert m.overtime_amount == Decimal("300.00")


def test_rates_reject_nonsense():
    with pytest.raises(InvalidInputError):
        PayrollRates(hours_per_day=Decimal("0"))
    with pytest.raises(InvalidInputError):
        PayrollRates.from_config({"PAYROLL_OVERTIME_DOUBLE_PCT": "-1"})
    with pytest.raises(InvalidInputError):
        PayrollRates.from_config({"PAYROLL_HOURS_PER_DAY": "eight"})


def test_list_by_period_is_paged(app, factory):
    company = factory.company()
    period = factory.period(company)
    svc = PrenominaService()
    for _ in range(3):
        svc.calculate_prenomina(factory.employee(company).id, period.id)

    items, total = svc.list_prenomina_metrics(period.id, page=1, page_size=2)
    assert total == 3
    assert len(items) == 2
    items, _ = svc.list_prenomina_metrics(period.id, page=2, page_size=2)
    assert len(items) == 1


def test_first_calculation_updates_row_inserted_concurrently(app, setup, monkeypatch):
    emp, period = setup
    svc = PrenominaService()
    read = svc.metrics.get
    calls = []

    def miss_then_other_writer_inserts(employee_id, period_id, for_update=False):
        calls.append(employee_id)
        if len(calls) == 1:
            # another calculation commits its row after this one looked
            db.session.add(PrenominaMetric(employee_id=employee_id, payroll_period_id=period_id,
                                           commission_amount=Decimal("40.00")))
            db.session.commit()
            return None
        return read(employee_id, period_id, for_update=for_update)

    monkeypatch.setattr(svc.metrics, "get", miss_then_other_writer_inserts)
    m = svc.calculate_prenomina(emp.id, period.id)

    assert len(calls) == 2
    assert PrenominaMetric.query.count() == 1
    assert m.commission_amount == Decimal("40.00")
    assert m.total_extras == Decimal("1540.00")
    assert m.gross_income == Decimal("10340.00")
