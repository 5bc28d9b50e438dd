from datetime import date
from decimal import Decimal

import pytest

from payroll_api.common.errors import ConflictError, NotFoundError, ValidationError
from payroll_api.services.employment_service import EmploymentService
from conftest import add_employee, add_contract


def test_active_contract_lookup(session):
    e = add_employee(session, "E001")
    add_contract(session, e, base_salary="1500.00", status="INACTIVE", joining_date=date(2023, 1, 1))
    c = add_contract(session, e, base_salary="2000.00", joining_date=date(2024, 1, 1))
    got = EmploymentService().active_contract_for(e.id)
    assert got.id == c.id
    assert got.base_salary == Decimal("2000.00")


def test_no_active_contract_is_not_found(session):
    e = add_employee(session, "E001")
    add_contract(session, e, status="TERMINATED")
    with pytest.raises(NotFoundError):
        EmploymentService().active_contract_for(e.id)


def test_multiple_active_rows_pick_most_recent_start(session):
    # only reachable when rows bypass the service
    e = add_employee(session, "E001")
    add_contract(session, e, base_salary="1000.00", joining_date=date(2022, 5, 1))
    newest = add_contract(session, e, base_salary="3000.00", joining_date=date(2024, 5, 1))
    add_contract(session, e, base_salary="2000.00", joining_date=date(2023, 5, 1))
    assert EmploymentService().active_contract_for(e.id).id == newest.id


def test_create_rejects_second_active(session):
    svc = EmploymentService()
    e = add_employee(session, "E001")
    svc.create(e.id, "C-1", "1000")
    with pytest.raises(ConflictError):
        svc.create(e.id, "C-2", "1200")
    # inactive contracts are fine
    svc.create(e.id, "C-3", "900", status="inactive")


def test_reactivating_while_another_active_conflicts(session):
    svc = EmploymentService()
    e = add_employee(session, "E001")
    old = svc.create(e.id, "C-1", "1000", status="INACTIVE")
    svc.create(e.id, "C-2", "1200")
    with pytest.raises(ConflictError):
        svc.update(old.id, status="ACTIVE")


def test_duplicate_code_conflicts(session):
    svc = EmploymentService()
    a = add_employee(session, "E001")
    b = add_employee(session, "E002")
    svc.create(a.id, "C-1", "1000")
    with pytest.raises(ConflictError):
        svc.create(b.id, "C-1", "1000")


@pytest.mark.parametrize("salary", ["0", "-5", "x"])
def test_base_salary_must_be_positive(session, salary):
    e = add_employee(session, "E001")
    with pytest.raises(ValidationError):
        EmploymentService().create(e.id, "C-1", salary)


def test_unknown_employee(session):
    with pytest.raises(NotFoundError):
        EmploymentService().create(999, "C-1", "1000")


def test_update_fields(session):
    svc = EmploymentService()
    e = add_employee(session, "E001")
    c = svc.create(e.id, "C-1", "1000", joining_date="2024-02-01")
    svc.update(c.id, base_salary="1100.50", position="Analyst", joining_date="2024-03-01")
    c = svc.get(c.id)
    assert c.base_salary == Decimal("1100.50")
    assert c.position == "Analyst"
    assert c.joining_date == date(2024, 3, 1)
    assert [x.id for x in svc.find_by_employee(e.id, "active")] == [c.id]


def test_base_salary_rounds_half_up(session):
    e = add_employee(session, "E100")
    c = EmploymentService().create(e.id, "EMPL-100", "1000.005")
    assert c.base_salary == Decimal("1000.01")
