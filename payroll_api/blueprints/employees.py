from __future__ import annotations

from datetime import date

from flask import Blueprint, request, current_app
from sqlalchemy import or_, asc

from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.user import User
from payroll_api.models.employment import Employment
from payroll_api.models.payslip import Payslip
from payroll_api.models.message import Message
from payroll_api.models.security import ROLE_ADMIN, ROLE_MANAGER
from payroll_api.common.auth import requires_roles, is_self_or_roles, current_user
from payroll_api.common.http import ok, fail
from payroll_api.common.paging import paginate, text_q

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")

EMP_STATUSES = ("active", "inactive")

def _row(e: Employee):
    return {
        "id": e.id,
        "code": e.code,
        "email": e.email,
        "first_name": e.first_name,
        "last_name": e.last_name,
        "full_name": e.full_name,
        "phone": e.phone,
        "date_of_birth": e.date_of_birth.isoformat() if e.date_of_birth else None,
        "status": e.status,
        "user_id": e.user_id,
        "created_at": e.created_at.isoformat() if e.created_at else None,
    }

def _s(v) -> str:
    return str(v).strip() if v is not None else ""

def _parse_date(v):
    if v in (None, ""):
        return None
    return date.fromisoformat(str(v))


@bp.get("")
@requires_roles(ROLE_MANAGER)
def list_employees():
    qry = Employee.query
    status = (request.args.get("status") or "").strip().lower()
    if status:
        if status not in EMP_STATUSES:
            return fail("status must be active/inactive", 422)
        qry = qry.filter(Employee.status == status)
    s = text_q()
    if s:
        like = f"%{s}%"
        qry = qry.filter(or_(Employee.code.ilike(like), Employee.email.ilike(like),
                             Employee.first_name.ilike(like), Employee.last_name.ilike(like)))
    items, meta = paginate(qry.order_by(asc(Employee.code)))
    return ok([_row(e) for e in items], **meta)


@bp.get("/<int:employee_id>")
@requires_roles()
def get_employee(employee_id: int):
    if not is_self_or_roles(employee_id, ROLE_MANAGER):
        return fail("Forbidden", status=403)
    e = db.session.get(Employee, employee_id)
    if not e:
        return fail("Employee not found", 404)
    return ok(_row(e))


@bp.get("/code/<code>")
@requires_roles()
def get_employee_by_code(code: str):
    e = Employee.query.filter_by(code=code.strip()).first()
    if not e:
        return fail(f"Employee not found with code: {code}", 404, code="NOT_FOUND")
    if not is_self_or_roles(e.id, ROLE_MANAGER):
        return fail("Forbidden", status=403)
    return ok(_row(e))


@bp.get("/current")
@requires_roles()
def get_current_employee():
    u = current_user()
    emp_id = u.employee_id if u else None
    if not emp_id:
        return fail("No employee profile linked to this user", 404, code="NOT_FOUND")
    return ok(_row(db.session.get(Employee, emp_id)))


@bp.post("")
@requires_roles(ROLE_MANAGER)
def create_employee():
    data = request.get_json(silent=True, force=True) or {}
    code = _s(data.get("code"))
    email = _s(data.get("email")).lower()
    first_name = _s(data.get("first_name"))
    if not code or not email or not first_name:
        return fail("code, email and first_name are required", 422)

    if Employee.query.filter_by(code=code).first():
        return fail("Employee code already exists", 409, code="CONFLICT")
    if Employee.query.filter_by(email=email).first():
        return fail("Employee email already exists", 409, code="CONFLICT")

    try:
        dob = _parse_date(data.get("date_of_birth"))
    except ValueError:
        return fail("date_of_birth must be YYYY-MM-DD", 422)

    user_id = data.get("user_id")
    if user_id is not None and not db.session.get(User, user_id):
        return fail("user_id not found", 404)

    e = Employee(
        code=code,
        email=email,
        first_name=first_name,
        last_name=_s(data.get("last_name")) or None,
        phone=_s(data.get("phone")) or None,
        date_of_birth=dob,
        status="active",
        user_id=user_id,
    )
    db.session.add(e)
    db.session.commit()
    return ok(_row(e), 201)


@bp.put("/<int:employee_id>")
@requires_roles(ROLE_MANAGER)
def update_employee(employee_id: int):
    e = db.session.get(Employee, employee_id)
    if not e:
        return fail("Employee not found", 404)
    data = request.get_json(silent=True, force=True) or {}

    if "email" in data:
        email = _s(data.get("email")).lower()
        if not email:
            return fail("email cannot be empty", 422)
        dup = Employee.query.filter(Employee.email == email, Employee.id != e.id).first()
        if dup:
            return fail("Employee email already exists", 409, code="CONFLICT")
        e.email = email
    if "first_name" in data:
        fn = _s(data.get("first_name"))
        if not fn:
            return fail("first_name cannot be empty", 422)
        e.first_name = fn
    if "last_name" in data:
        e.last_name = _s(data.get("last_name")) or None
    if "phone" in data:
        e.phone = _s(data.get("phone")) or None
    if "date_of_birth" in data:
        try:
            e.date_of_birth = _parse_date(data.get("date_of_birth"))
        except ValueError:
            return fail("date_of_birth must be YYYY-MM-DD", 422)
    if "status" in data:
        st = _s(data.get("status")).lower()
        if st not in EMP_STATUSES:
            return fail("status must be active/inactive", 422)
        e.status = st

    db.session.commit()
    return ok(_row(e))


@bp.delete("/<int:employee_id>")
@requires_roles(ROLE_ADMIN)
def delete_employee(employee_id: int):
    e = db.session.get(Employee, employee_id)
    if not e:
        return fail("Employee not found", 404, code="NOT_FOUND")

    refs = {
        "employments": Employment.query.filter_by(employee_id=e.id).count(),
        "payslips": Payslip.query.filter_by(employee_id=e.id).count(),
        "messages": Message.query.filter_by(employee_id=e.id).count(),
    }
    refs = {k: v for k, v in refs.items() if v}
    if refs:
        return fail("Employee is still referenced", 409, code="CONFLICT", detail=refs)

    code = e.code
    db.session.delete(e)
    db.session.commit()
    current_app.logger.info("Deleted employee %s", code)
    return ok({"id": employee_id, "deleted": True})
