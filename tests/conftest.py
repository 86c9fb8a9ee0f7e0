import os
from datetime import date, datetime, timedelta
from decimal import Decimal
from itertools import count

import pytest

from iris_api import create_app
from iris_api.extensions import db
from iris_api.models.master import Company
from iris_api.models.employee import Employee
from iris_api.models.payroll_period import PayrollPeriod
from iris_api.models.incidence import Incidence, IncidenceType
from iris_api.models.absence import AbsenceRequest
from iris_api.models.security import Role, UserRole
from iris_api.models.user import User

NOW = datetime(2026, 3, 10, 12, 0, 0)


@pytest.fixture
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "JWT_SECRET_KEY": "test-jwt-secret-with-enough-length-for-hs256",
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def client(app):
    return app.test_client()


class Factory:
    """Small builders for the rows the approval and prenomina tests need."""

    def __init__(self, session):
        self.session = session
        self._seq = count(1)

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        return obj

    def company(self, code=None):
        n = next(self._seq)
        return self._save(Company(code=code or f"C{n}", name=f"Company {n}"))

    def employee(self, company, collar_type="white_collar", daily_salary="800.00",
                 hire_date=date(2023, 1, 1), status="active", user=None):
        n = next(self._seq)
        return self._save(Employee(
            company_id=company.id,
            user_id=user.id if user else None,
            code=f"E{n:03d}",
            email=f"e{n}@test.local",
            first_name="Emp",
            last_name=str(n),
            collar_type=collar_type,
            daily_salary=Decimal(daily_salary),
            integrated_daily_salary=Decimal("0"),
            hire_date=hire_date,
            status=status,
        ))

    def period(self, company, start=date(2026, 3, 1), end=date(2026, 3, 15), status="open", code=None):
        n = next(self._seq)
        return self._save(PayrollPeriod(
            company_id=company.id,
            period_code=code or f"2026-BW{n:02d}",
            frequency="biweekly",
            start_date=start,
            end_date=end,
            status=status,
        ))

    def incidence_type(self, company, category, effect="negative", method=None):
        return self._save(IncidenceType(
            company_id=company.id,
            name=f"{category}/{effect}/{method or '-'}",
            category=category,
            effect_type=effect,
            calculation_method=method,
        ))

    def incidence(self, employee, period, category, quantity="0", effect="negative", method=None,
                  amount="0", status="approved"):
        itype = self.incidence_type(employee.company, category, effect, method)
        return self._save(Incidence(
            employee_id=employee.id,
            payroll_period_id=period.id,
            incidence_type_id=itype.id,
            start_date=period.start_date,
            end_date=period.start_date,
            quantity=Decimal(quantity),
            calculated_amount=Decimal(amount),
            status=status,
        ))

    def user(self, *role_codes, company=None, password="secret"):
        n = next(self._seq)
        u = User(company_id=company.id if company else None, email=f"u{n}@test.local",
                 full_name=f"User {n}", status="active")
        u.set_password(password)
        self._save(u)
        for code in role_codes:
            role = Role.query.filter_by(code=code).first() or self._save(Role(code=code, name=code))
            self.session.add(UserRole(user_id=u.id, role_id=role.id))
        self.session.commit()
        return u

    def request(self, employee, stage="SUPERVISOR", status="PENDING", idle_hours=0, now=NOW,
                request_type="VACATION", start=date(2026, 3, 2), end=date(2026, 3, 3)):
        last = now - timedelta(hours=idle_hours)
        return self._save(AbsenceRequest(
            company_id=employee.company_id,
            employee_id=employee.id,
            request_type=request_type,
            start_date=start,
            end_date=end,
            total_days=Decimal((end - start).days + 1),
            reason="family matters",
            status=status,
            current_approval_stage=stage,
            last_action_at=last,
            escalation_count=0,
            is_escalated=False,
            version=1,
            created_at=last,
        ))


@pytest.fixture
def factory(session):
    return Factory(session)
