from __future__ import annotations

from flask import Blueprint, request

from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payslip import Payslip
from payroll_api.models.security import ROLE_ADMIN, ROLE_MANAGER
from payroll_api.services.payroll_engine import PayrollEngine, BatchResult
from payroll_api.common.auth import requires_roles, is_self_or_roles, current_user
from payroll_api.common.errors import NotFoundError
from payroll_api.common.http import ok, fail

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")
engine = PayrollEngine()


def _money(v):
    return str(v) if v is not None else None


def _row(p: Payslip):
    emp = p.employee
    return {
        "id": p.id,
        "employee": {
            "id": emp.id,
            "code": emp.code,
            "name": emp.full_name,
            "email": emp.email,
        } if emp else None,
        "month": p.month,
        "year": p.year,
        "base_salary": _money(p.base_salary),
        "housing_amount": _money(p.housing_amount),
        "transport_amount": _money(p.transport_amount),
        "employee_tax_amount": _money(p.employee_tax_amount),
        "pension_amount": _money(p.pension_amount),
        "medical_insurance_amount": _money(p.medical_insurance_amount),
        "other_deductions": _money(p.other_deductions),
        "gross_salary": _money(p.gross_salary),
        "net_salary": _money(p.net_salary),
        "status": p.status,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


def _batch(result: BatchResult):
    return ok(
        [_row(p) for p in result.payslips],
        month=result.month,
        year=result.year,
        summary=result.summary(),
        items=[i.to_dict() for i in result.items],
    )


def _employee_or_404(employee_id: int) -> Employee:
    emp = db.session.get(Employee, employee_id)
    if not emp:
        raise NotFoundError(f"Employee not found with id: {employee_id}")
    return emp


# ---------- generation ----------
@bp.post("/generate/<int:employee_id>/<int:month>/<int:year>")
@requires_roles(ROLE_MANAGER)
def generate_payslip(employee_id: int, month: int, year: int):
    emp = _employee_or_404(employee_id)
    payslip = engine.generate(emp, month, year)
    return ok(_row(payslip), 201)


@bp.post("/generate/month/<int:month>/<int:year>")
@requires_roles(ROLE_MANAGER)
def generate_month(month: int, year: int):
    return _batch(engine.generate_for_month(month, year))


# ---------- approval ----------
@bp.put("/approve/<int:payslip_id>")
@requires_roles(ROLE_ADMIN)
def approve_payslip(payslip_id: int):
    return ok(_row(engine.approve(payslip_id)))


@bp.put("/approve/month/<int:month>/<int:year>")
@requires_roles(ROLE_ADMIN)
def approve_month(month: int, year: int):
    return _batch(engine.approve_for_month(month, year))


# ---------- queries ----------
@bp.get("/<int:payslip_id>")
@requires_roles()
def get_payslip(payslip_id: int):
    p = engine.store.get(payslip_id)
    if not is_self_or_roles(p.employee_id, ROLE_MANAGER):
        return fail("Forbidden", status=403)
    return ok(_row(p))


@bp.get("/employee/<int:employee_id>")
@requires_roles()
def list_by_employee(employee_id: int):
    if not is_self_or_roles(employee_id, ROLE_MANAGER):
        return fail("Forbidden", status=403)
    _employee_or_404(employee_id)
    items = engine.store.find_by_employee(employee_id, request.args.get("status"))
    return ok([_row(p) for p in items], total=len(items))


@bp.get("/employee/<int:employee_id>/status/<status>")
@requires_roles()
def list_by_employee_status(employee_id: int, status: str):
    if not is_self_or_roles(employee_id, ROLE_MANAGER):
        return fail("Forbidden", status=403)
    _employee_or_404(employee_id)
    items = engine.store.find_by_employee(employee_id, status)
    return ok([_row(p) for p in items], total=len(items))


@bp.get("/employee/<int:employee_id>/month/<int:month>/<int:year>")
@requires_roles()
def get_for_period(employee_id: int, month: int, year: int):
    if not is_self_or_roles(employee_id, ROLE_MANAGER):
        return fail("Forbidden", status=403)
    _employee_or_404(employee_id)
    return ok(_row(engine.store.find_for_period(employee_id, month, year)))


@bp.get("/status/<status>")
@requires_roles(ROLE_MANAGER)
def list_by_status(status: str):
    items = engine.store.find_by_status(status)
    return ok([_row(p) for p in items], total=len(items))


@bp.get("/month/<int:month>/<int:year>")
@requires_roles(ROLE_MANAGER)
def list_by_period(month: int, year: int):
    items = engine.store.find_by_period(month, year, request.args.get("status"))
    return ok([_row(p) for p in items], total=len(items))


@bp.get("/month/<int:month>/<int:year>/status/<status>")
@requires_roles(ROLE_MANAGER)
def list_by_period_status(month: int, year: int, status: str):
    items = engine.store.find_by_period(month, year, status)
    return ok([_row(p) for p in items], total=len(items))


@bp.get("/current")
@requires_roles()
def list_current():
    u = current_user()
    emp_id = u.employee_id if u else None
    if not emp_id:
        return fail("No employee profile linked to this user", 404, code="NOT_FOUND")
    items = engine.store.find_by_employee(emp_id, request.args.get("status"))
    return ok([_row(p) for p in items], total=len(items))
