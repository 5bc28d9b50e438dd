import os
from datetime import date
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.employment import Employment
from payroll_api.models.deduction import Deduction
from payroll_api.models.user import User
from payroll_api.models.security import Role, UserRole


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    os.environ["PAYROLL_AUDIT_CATALOG_ON_START"] = "0"
    app = create_app()
    app.config["TESTING"] = True
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    with app.app_context():
        yield db.session


@pytest.fixture
def client(app):
    return app.test_client()


# ---------- builders ----------
def add_employee(session, code, first_name="Test", email=None, user_id=None):
    e = Employee(code=code, email=email or f"{code.lower()}@test.local",
                 first_name=first_name, last_name="Emp", user_id=user_id)
    session.add(e); session.commit()
    return e


def add_contract(session, employee, base_salary="1000.00", status="ACTIVE",
                 joining_date=date(2024, 1, 1), code=None):
    c = Employment(employee_id=employee.id, code=code or f"EMPL-{employee.code}-{joining_date.isoformat()}",
                   base_salary=Decimal(base_salary), status=status, joining_date=joining_date)
    session.add(c); session.commit()
    return c


def add_rules(session, **pcts):
    """add_rules(session, Housing="14", Pension="6") -> Deduction rows."""
    out = []
    for i, (name, pct) in enumerate(pcts.items(), start=1):
        d = Deduction(code=f"T{i:03d}", name=name.replace("_", " "), percentage=Decimal(str(pct)))
        session.add(d)
        out.append(d)
    session.commit()
    return out


def add_default_rules(session):
    return add_rules(session, **{
        "Employee_Tax": "30", "Pension": "6", "Medical_Insurance": "5",
        "Housing": "14", "Transport": "14", "Others": "5",
    })


def add_user(session, email, roles=(), password="secret"):
    u = User(email=email, full_name=email.split("@")[0], status="active")
    u.set_password(password)
    session.add(u); session.commit()
    for code in roles:
        r = Role.query.filter_by(code=code).first()
        if not r:
            r = Role(code=code)
            session.add(r); session.commit()
        session.add(UserRole(user_id=u.id, role_id=r.id))
    session.commit()
    return u


def bearer(identity, roles):
    token = create_access_token(identity=str(identity), additional_claims={"roles": list(roles)})
    return {"Authorization": f"Bearer {token}"}
