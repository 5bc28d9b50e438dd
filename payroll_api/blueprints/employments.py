from __future__ import annotations

from flask import Blueprint, request

from payroll_api.models.employment import Employment
from payroll_api.models.security import ROLE_ADMIN, ROLE_MANAGER
from payroll_api.services.employment_service import EmploymentService
from payroll_api.common.auth import requires_roles, is_self_or_roles
from payroll_api.common.http import ok, fail

bp = Blueprint("employments", __name__, url_prefix="/api/v1/employments")
svc = EmploymentService()


def _row(x: Employment):
    return {
        "id": x.id,
        "code": x.code,
        "employee_id": x.employee_id,
        "employee_code": x.employee.code if x.employee else None,
        "department": x.department,
        "position": x.position,
        "base_salary": str(x.base_salary) if x.base_salary is not None else None,
        "status": x.status,
        "joining_date": x.joining_date.isoformat() if x.joining_date else None,
        "created_at": x.created_at.isoformat() if x.created_at else None,
    }


@bp.get("")
@requires_roles(ROLE_MANAGER)
def list_employments():
    employee_id = request.args.get("employee_id")
    if employee_id:
        try:
            employee_id = int(employee_id)
        except ValueError:
            return fail("employee_id must be integer", 422)
        items = svc.find_by_employee(employee_id, request.args.get("status"))
    else:
        items = svc.find_all(request.args.get("status"))
    return ok([_row(x) for x in items], total=len(items))


@bp.get("/<int:employment_id>")
@requires_roles(ROLE_MANAGER)
def get_employment(employment_id: int):
    return ok(_row(svc.get(employment_id)))


@bp.get("/code/<code>")
@requires_roles(ROLE_MANAGER)
def get_employment_by_code(code: str):
    return ok(_row(svc.find_by_code(code)))


@bp.get("/active/<int:employee_id>")
@requires_roles()
def get_active_employment(employee_id: int):
    if not is_self_or_roles(employee_id, ROLE_MANAGER):
        return fail("Forbidden", status=403)
    return ok(_row(svc.active_contract_for(employee_id)))


@bp.post("")
@requires_roles(ROLE_MANAGER)
def create_employment():
    data = request.get_json(silent=True, force=True) or {}
    if data.get("employee_id") is None:
        return fail("employee_id is required", 422)
    obj = svc.create(
        employee_id=data.get("employee_id"),
        code=data.get("code"),
        base_salary=data.get("base_salary"),
        status=data.get("status"),
        department=data.get("department"),
        position=data.get("position"),
        joining_date=data.get("joining_date"),
    )
    return ok(_row(obj), 201)


@bp.put("/<int:employment_id>")
@requires_roles(ROLE_MANAGER)
def update_employment(employment_id: int):
    data = request.get_json(silent=True, force=True) or {}
    allowed = ("code", "base_salary", "status", "department", "position", "joining_date")
    obj = svc.update(employment_id, **{k: v for k, v in data.items() if k in allowed})
    return ok(_row(obj))


@bp.delete("/<int:employment_id>")
@requires_roles(ROLE_ADMIN)
def delete_employment(employment_id: int):
    svc.delete(employment_id)
    return ok({"id": employment_id, "deleted": True})
