from decimal import Decimal

import pytest

from payroll_api.extensions import db
from payroll_api.common.errors import ConflictError, NotFoundError, InvariantViolation, ValidationError
from payroll_api.models.deduction import Deduction
from payroll_api.models.message import Message
from payroll_api.models.payslip import Payslip
from payroll_api.services.payroll_engine import PayrollEngine, SKIPPED, CREATED, FAILED
from payroll_api.services.notification_service import NotificationService
from conftest import add_employee, add_contract, add_rules, add_default_rules


class ExplodingNotifier(NotificationService):
    def notify_approval(self, payslip):
        raise RuntimeError("smtp down")


@pytest.fixture
def engine(session):
    return PayrollEngine()


def test_generate_default_rules(session, engine):
    add_default_rules(session)
    e = add_employee(session, "E001")
    add_contract(session, e, base_salary="1000.00")

    p = engine.generate(e, 5, 2025)
    assert p.id is not None
    assert p.status == "PENDING"
    assert p.housing_amount == Decimal("140.00")
    assert p.transport_amount == Decimal("140.00")
    assert p.gross_salary == Decimal("1280.00")
    assert p.employee_tax_amount == Decimal("300.00")
    assert p.pension_amount == Decimal("60.00")
    assert p.medical_insurance_amount == Decimal("50.00")
    assert p.other_deductions == Decimal("50.00")
    assert p.net_salary == Decimal("820.00")


def test_generated_payslip_conserves_amounts(session, engine):
    add_default_rules(session)
    e = add_employee(session, "E001")
    add_contract(session, e, base_salary="1234.56")
    p = engine.generate(e, 5, 2025)
    db.session.expire_all()
    p = db.session.get(Payslip, p.id)
    assert p.gross_salary == p.base_salary + p.housing_amount + p.transport_amount
    assert p.net_salary == p.gross_salary - (
        p.employee_tax_amount + p.pension_amount + p.medical_insurance_amount + p.other_deductions
    )


def test_generate_twice_conflicts(session, engine):
    add_default_rules(session)
    e = add_employee(session, "E001")
    add_contract(session, e)
    engine.generate(e, 5, 2025)
    with pytest.raises(ConflictError):
        engine.generate(e, 5, 2025)
    assert Payslip.query.count() == 1


def test_lost_race_surfaces_as_conflict(session, engine, monkeypatch):
    """A concurrent insert between the existence check and the save."""
    add_default_rules(session)
    e = add_employee(session, "E001")
    add_contract(session, e)
    engine.generate(e, 5, 2025)

    monkeypatch.setattr(engine.store, "exists", lambda *a, **k: False)
    with pytest.raises(ConflictError):
        engine.generate(e, 5, 2025)
    assert Payslip.query.filter_by(employee_id=e.id, month=5, year=2025).count() == 1


def test_conflict_checked_before_employment(session, engine):
    e = add_employee(session, "E001")
    c = add_contract(session, e)
    engine.generate(e, 5, 2025)
    c.status = "TERMINATED"
    session.commit()
    with pytest.raises(ConflictError):
        engine.generate(e, 5, 2025)


def test_no_active_contract(session, engine):
    e = add_employee(session, "E001")
    add_contract(session, e, status="INACTIVE")
    with pytest.raises(NotFoundError):
        engine.generate(e, 5, 2025)
    assert Payslip.query.count() == 0


def test_over_deduction_persists_nothing(session, engine):
    add_rules(session, Housing="10", Transport="0", Employee_Tax="90", Pension="30")
    e = add_employee(session, "E001")
    add_contract(session, e, base_salary="1000.00")
    with pytest.raises(InvariantViolation):
        engine.generate(e, 5, 2025)
    assert Payslip.query.count() == 0


def test_missing_medical_rule_is_zero(session, engine):
    add_rules(session, Housing="14", Transport="14", Employee_Tax="30", Pension="6", Others="5")
    e = add_employee(session, "E001")
    add_contract(session, e, base_salary="1000.00")
    p = engine.generate(e, 5, 2025)
    assert p.medical_insurance_amount == Decimal("0.00")
    assert p.net_salary == Decimal("870.00")


def test_rule_names_match_case_insensitively(session, engine):
    add_rules(session, HOUSING="14", transport="14")
    e = add_employee(session, "E001")
    add_contract(session, e, base_salary="1000.00")
    p = engine.generate(e, 5, 2025)
    assert p.gross_salary == Decimal("1280.00")


def test_later_rule_edits_do_not_touch_issued_payslips(session, engine):
    rules = add_default_rules(session)
    e = add_employee(session, "E001")
    add_contract(session, e, base_salary="1000.00")
    p = engine.generate(e, 5, 2025)

    housing = next(r for r in rules if r.name == "Housing")
    housing.percentage = Decimal("50")
    session.commit()
    db.session.expire_all()
    assert db.session.get(Payslip, p.id).housing_amount == Decimal("140.00")


@pytest.mark.parametrize("month,year", [(0, 2025), (13, 2025), (5, 0)])
def test_invalid_period(session, engine, month, year):
    e = add_employee(session, "E001")
    with pytest.raises(ValidationError):
        engine.generate(e, month, year)


# ---------- batch ----------
def test_month_batch_partial_failure(session, engine):
    add_default_rules(session)
    ok_emp = add_employee(session, "E001")
    no_contract = add_employee(session, "E002")
    has_slip = add_employee(session, "E003")
    add_contract(session, ok_emp)
    add_contract(session, has_slip)
    engine.generate(has_slip, 5, 2025)

    result = engine.generate_for_month(5, 2025)

    assert len(result.payslips) == 1
    assert result.payslips[0].employee_id == ok_emp.id
    by_code = {i.employee_code: i for i in result.items}
    assert by_code["E001"].outcome == CREATED
    assert (by_code["E002"].outcome, by_code["E002"].reason) == (SKIPPED, "no_active_employment")
    assert (by_code["E003"].outcome, by_code["E003"].reason) == (SKIPPED, "already_exists")
    assert Payslip.query.count() == 2


def test_month_batch_records_failures_and_continues(session, engine):
    add_rules(session, Employee_Tax="120")
    a = add_employee(session, "E001")
    add_contract(session, a, base_salary="1000.00")
    result = engine.generate_for_month(5, 2025)
    assert result.payslips == []
    assert result.items[0].outcome == FAILED
    assert result.items[0].error_code == "INVARIANT_VIOLATION"
    assert result.summary() == {"failed": 1}


def test_month_batch_on_empty_company(session, engine):
    result = engine.generate_for_month(5, 2025)
    assert result.items == []
    assert result.payslips == []


# ---------- approval ----------
def _pending(session, engine, code="E001"):
    if not Deduction.query.count():
        add_default_rules(session)
    e = add_employee(session, code, first_name="Alice")
    add_contract(session, e, base_salary="1000.00")
    return engine.generate(e, 5, 2025)


def test_approve_then_reapprove(session, engine):
    p = _pending(session, engine)
    approved = engine.approve(p.id)
    assert approved.status == "PAID"
    with pytest.raises(ConflictError):
        engine.approve(p.id)


def test_approve_unknown(session, engine):
    with pytest.raises(NotFoundError):
        engine.approve(12345)


def test_approve_records_message(session, engine):
    p = _pending(session, engine)
    engine.approve(p.id)
    msgs = Message.query.filter_by(employee_id=p.employee_id).all()
    assert len(msgs) == 1
    assert msgs[0].month_year == "5/2025"
    assert msgs[0].payslip_id == p.id
    assert msgs[0].message == (
        "Dear Alice,\nYour salary for 5/2025 from Government of Rwanda amounting to 820.00 "
        "has been credited to your account E001 successfully."
    )


def test_notification_failure_does_not_undo_approval(session):
    engine = PayrollEngine(notifier=ExplodingNotifier())
    p = _pending(session, engine)
    engine.approve(p.id)
    db.session.expire_all()
    assert db.session.get(Payslip, p.id).status == "PAID"


def test_approve_month(session, engine):
    a = _pending(session, engine, "E001")
    b = _pending(session, engine, "E002")
    engine.approve(a.id)

    result = engine.approve_for_month(5, 2025)
    assert [p.id for p in result.payslips] == [b.id]
    assert result.summary() == {"approved": 1}
    assert Payslip.query.filter_by(status="PAID").count() == 2


def test_approve_month_keeps_going_when_notifier_breaks(session):
    engine = PayrollEngine(notifier=ExplodingNotifier())
    _pending(session, engine, "E001")
    _pending(session, engine, "E002")
    result = engine.approve_for_month(5, 2025)
    assert len(result.payslips) == 2
    assert Payslip.query.filter_by(status="PENDING").count() == 0


def test_alias_rules_do_not_override_canonical_rules(session, engine):
    add_default_rules(session)
    session.add_all([
        Deduction(code="A000", name="EmployeeTax", percentage=Decimal("50")),
        Deduction(code="A001", name="Other", percentage=Decimal("20")),
    ])
    session.commit()
    e = add_employee(session, "E001")
    add_contract(session, e, base_salary="1000.00")
    p = engine.generate(e, 5, 2025)
    assert p.employee_tax_amount == Decimal("300.00")
    assert p.other_deductions == Decimal("50.00")
    assert p.net_salary == Decimal("820.00")
