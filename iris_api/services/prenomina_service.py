# iris_api/services/prenomina_service.py
"""
Prenomina (pre-payroll) calculator.

One PrenominaMetric row per (employee, period) is rebuilt from scratch on
every calculation: incidence buckets and derived amounts are zeroed, the
approved incidences are re-accumulated, and the totals are recomputed from
their components. Operator-entered fields (unpaid leave, commissions,
loans, advances, ...) are kept as they are.

    hourly            = daily_salary / hours_per_day
    worked_days       = period days - absence - sick - vacation - unpaid leave   (>= 0)
    regular_hours     = worked_days * hours_per_day
    regular_salary    = regular_hours * hourly
    overtime          = hours * hourly * (1 + overtime_double_pct)
    double overtime   = hours * hourly * (1 + overtime_triple_pct)
    triple overtime   = hours * hourly * triple_multiplier
    delay_deduction   = delay_minutes * hourly / 60
    gross_income      = regular_salary + total_extras
    net_income        = gross_income - total_deductions
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from iris_api.common.decimals import ZERO, dec, q2, as_float
from iris_api.common.errors import (
    APIError, NotFoundError, InvalidStateError, InvalidInputError, storage_error,
)
from iris_api.models.enums import CalculationStatus
from iris_api.models.prenomina import PrenominaMetric, ACCUMULATED_FIELDS, DERIVED_FIELDS, MANUAL_FIELDS
from iris_api.repositories.employees import EmployeeRepository
from iris_api.repositories.incidences import IncidenceRepository
from iris_api.repositories.periods import PayrollPeriodRepository
from iris_api.repositories.prenomina import PrenominaRepository
from iris_api.services.incidence_classifier import classify_incidence
from iris_api.services.payroll_rates import PayrollRates

log = logging.getLogger(__name__)

_INT_FIELDS = ("delays_count", "early_departures_count")
MINUTES_PER_HOUR = Decimal("60")


def metric_to_dict(m: PrenominaMetric) -> dict:
    emp = m.employee
    period = m.payroll_period
    d = {
        "id": m.id,
        "employee_id": m.employee_id,
        "employee_name": emp.full_name if emp else None,
        "employee_number": emp.code if emp else None,
        "payroll_period_id": m.payroll_period_id,
        "period_code": period.period_code if period else None,
        "calculation_status": m.calculation_status,
        "calculation_date": m.calculation_date.isoformat() if m.calculation_date else None,
        "calculated_by_user_id": m.calculated_by_user_id,
        "approved_by_user_id": m.approved_by_user_id,
        "approved_at": m.approved_at.isoformat() if m.approved_at else None,
    }
    for name in ACCUMULATED_FIELDS + DERIVED_FIELDS + MANUAL_FIELDS:
        value = getattr(m, name)
        d[name] = int(value or 0) if name in _INT_FIELDS else as_float(value)
    return d


@dataclass
class BulkEmployeeResult:
    employee_id: int
    employee_name: str
    success: bool
    error: Optional[str] = None
    gross_income: Optional[float] = None
    net_income: Optional[float] = None


@dataclass
class BulkCalculationReport:
    payroll_period_id: int
    period_code: str
    total_calculated: int = 0
    total_success: int = 0
    total_failed: int = 0
    total_gross: Decimal = ZERO
    total_net: Decimal = ZERO
    results: list = field(default_factory=list)
    skipped_employee_ids: list = field(default_factory=list)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["total_gross"] = as_float(self.total_gross)
        d["total_net"] = as_float(self.total_net)
        return d


class PrenominaService:

    def __init__(self, employees: EmployeeRepository | None = None,
                 periods: PayrollPeriodRepository | None = None,
                 incidences: IncidenceRepository | None = None,
                 metrics: PrenominaRepository | None = None,
                 rates: PayrollRates | None = None,
                 bulk_limit: int | None = None):
        cfg = current_app.config
        self.employees = employees or EmployeeRepository()
        self.session = self.employees.session
        self.periods = periods or PayrollPeriodRepository(self.session)
        self.incidences = incidences or IncidenceRepository(self.session)
        self.metrics = metrics or PrenominaRepository(self.session)
        self.rates = rates or PayrollRates.from_config(cfg)
        self.bulk_limit = int(bulk_limit or cfg.get("PRENOMINA_BULK_LIMIT", 10000))

    # ---------- single ----------

    def calculate_prenomina(self, employee_id: int, period_id: int,
                            recalculate_sdi: bool = False, actor_id: int | None = None) -> PrenominaMetric:
        for attempt in (1, 2):
            try:
                metric = self._calculate(employee_id, period_id, recalculate_sdi, actor_id)
                self.session.commit()
                break
            except APIError:
                self.session.rollback()
                raise
            except IntegrityError as e:
                self.session.rollback()
                if attempt == 2:
                    raise storage_error(f"calculate prenomina employee={employee_id} period={period_id}", e)
                # another writer inserted the row first; the next pass updates it
                log.info("prenomina employee_id=%s period_id=%s inserted concurrently, recalculating",
                         employee_id, period_id)
            except SQLAlchemyError as e:
                self.session.rollback()
                raise storage_error(f"calculate prenomina employee={employee_id} period={period_id}", e)

        log.info("prenomina calculated employee_id=%s period_id=%s gross=%s net=%s",
                 employee_id, period_id, metric.gross_income, metric.net_income)
        return metric

    def _calculate(self, employee_id, period_id, recalculate_sdi, actor_id) -> PrenominaMetric:
        employee = self.employees.get(employee_id)
        if not employee:
            raise NotFoundError(f"employee {employee_id} not found")
        period = self.periods.get(period_id)
        if not period:
            raise NotFoundError(f"payroll period {period_id} not found")
        if not period.can_calculate():
            raise InvalidStateError(
                f"payroll period {period.period_code} is {period.status}; only open or calculated periods accept calculations")

        metric = self.metrics.get(employee_id, period_id, for_update=True)
        if metric is None:
            metric = PrenominaMetric(employee_id=employee_id, payroll_period_id=period_id)
            for name in MANUAL_FIELDS:
                setattr(metric, name, 0 if name in _INT_FIELDS else ZERO)
            self.session.add(metric)
        elif metric.is_approved:
            raise InvalidStateError(
                f"prenomina for employee {employee_id} in period {period.period_code} is approved; recalculation refused")

        if recalculate_sdi:
            employee.integrated_daily_salary = employee.compute_integrated_daily_salary(
                self.rates.aguinaldo_days, self.rates.vacation_premium, on=period.end_date)
            self.employees.save(employee)

        acc = {name: ZERO for name in ACCUMULATED_FIELDS}
        for inc in self.incidences.for_employee_period(employee_id, period_id):
            for c in classify_incidence(inc):
                acc[c.field] += c.amount
                log.debug("incidence %s -> %s += %s", inc.id, c.field, c.amount)

        for name, value in acc.items():
            setattr(metric, name, int(value) if name in _INT_FIELDS else q2(value))

        self._fill_defaults(metric, period)
        self._compute_amounts(metric, dec(employee.daily_salary))
        self._compute_summary(metric)

        metric.calculation_status = CalculationStatus.CALCULATED.value
        metric.calculation_date = datetime.utcnow()
        metric.calculated_by_user_id = actor_id
        self.session.flush()
        return metric

    def _fill_defaults(self, m: PrenominaMetric, period):
        off_days = dec(m.absence_days) + dec(m.sick_days) + dec(m.vacation_days) + dec(m.unpaid_leave_days)
        worked = max(Decimal(period.calendar_days()) - off_days, ZERO)
        m.worked_days = q2(worked)
        m.regular_hours = q2(worked * self.rates.hours_per_day)

    def _compute_amounts(self, m: PrenominaMetric, daily_salary: Decimal):
        r = self.rates
        hourly = daily_salary / r.hours_per_day
        m.regular_salary = q2(dec(m.regular_hours) * hourly)
        m.overtime_amount = q2(dec(m.overtime_hours) * hourly * r.overtime_factor)
        m.double_overtime_amount = q2(dec(m.double_overtime_hours) * hourly * r.double_overtime_factor)
        m.triple_overtime_amount = q2(dec(m.triple_overtime_hours) * hourly * r.triple_multiplier)
        m.delay_deduction = q2(dec(m.delay_minutes) * hourly / MINUTES_PER_HOUR)

    def _compute_summary(self, m: PrenominaMetric):
        # always from components, never incremental
        m.total_extras = q2(
            dec(m.bonus_amount) + dec(m.commission_amount) + dec(m.other_extra_amount)
            + dec(m.overtime_amount) + dec(m.double_overtime_amount) + dec(m.triple_overtime_amount)
        )
        m.total_deductions = q2(
            dec(m.loan_deduction) + dec(m.advance_deduction) + dec(m.other_deduction) + dec(m.delay_deduction)
        )
        m.gross_income = q2(dec(m.regular_salary) + m.total_extras)
        m.net_income = q2(m.gross_income - m.total_deductions)

    # ---------- bulk ----------

    def bulk_calculate_prenomina(self, period_id: int, employee_ids: Iterable[int] | None = None,
                                 calculate_all: bool = False, actor_id: int | None = None) -> BulkCalculationReport:
        period = self.periods.get(period_id)
        if not period:
            raise NotFoundError(f"payroll period {period_id} not found")
        report = BulkCalculationReport(payroll_period_id=period.id, period_code=period.period_code)

        if calculate_all:
            employees = self.employees.active(company_id=period.company_id, limit=self.bulk_limit)
        else:
            try:
                wanted = list(dict.fromkeys(int(x) for x in (employee_ids or [])))
            except (TypeError, ValueError):
                raise InvalidInputError("employee_ids must be a list of integers")
            if not wanted:
                raise InvalidInputError("employee_ids is required unless calculate_all is set")
            found = self.employees.get_many(wanted)
            report.skipped_employee_ids = [eid for eid in wanted if eid not in found]
            for eid in report.skipped_employee_ids:
                log.warning("prenomina bulk period_id=%s: employee %s not found, skipped", period_id, eid)
            employees = [found[eid] for eid in wanted if eid in found]

        # commits inside the loop expire loaded rows
        targets = [(e.id, e.full_name) for e in employees]

        for eid, name in targets:
            report.total_calculated += 1
            try:
                metric = self.calculate_prenomina(eid, period_id, recalculate_sdi=False, actor_id=actor_id)
            except APIError as e:
                log.warning("prenomina bulk period_id=%s employee_id=%s failed: %s", period_id, eid, e.message)
                report.total_failed += 1
                report.results.append(BulkEmployeeResult(eid, name, False, error=e.message))
                continue
            gross, net = dec(metric.gross_income), dec(metric.net_income)
            report.total_success += 1
            report.total_gross += gross
            report.total_net += net
            report.results.append(BulkEmployeeResult(eid, name, True, gross_income=as_float(gross),
                                                     net_income=as_float(net)))

        log.info("prenomina bulk period=%s calculated=%d ok=%d failed=%d skipped=%d",
                 report.period_code, report.total_calculated, report.total_success,
                 report.total_failed, len(report.skipped_employee_ids))
        return report

    # ---------- approval / reads ----------

    def approve_prenomina(self, employee_id: int, period_id: int, actor_id: int | None = None) -> PrenominaMetric:
        try:
            metric = self.metrics.get(employee_id, period_id, for_update=True)
            if metric is None:
                raise NotFoundError(f"no prenomina for employee {employee_id} in period {period_id}")
            if metric.is_approved:
                raise InvalidStateError("prenomina already approved")
            metric.calculation_status = CalculationStatus.APPROVED.value
            metric.approved_by_user_id = actor_id
            metric.approved_at = datetime.utcnow()
            self.session.commit()
        except APIError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise storage_error("approve prenomina", e)
        log.info("prenomina approved employee_id=%s period_id=%s by=%s", employee_id, period_id, actor_id)
        return metric

    def get_prenomina_metrics(self, employee_id: int, period_id: int) -> PrenominaMetric:
        metric = self.metrics.get(employee_id, period_id)
        if metric is None:
            raise NotFoundError(f"no prenomina for employee {employee_id} in period {period_id}")
        return metric

    def list_prenomina_metrics(self, period_id: int, page: int = 1, page_size: int = 20):
        if not self.periods.get(period_id):
            raise NotFoundError(f"payroll period {period_id} not found")
        return self.metrics.for_period(period_id, page, page_size)
