from flask import Blueprint, request

from payroll_api.models.message import Message
from payroll_api.models.security import ROLE_MANAGER
from payroll_api.services.notification_service import NotificationService
from payroll_api.common.auth import requires_roles, is_self_or_roles, current_user
from payroll_api.common.http import ok, fail

bp = Blueprint("messages", __name__, url_prefix="/api/v1/messages")
svc = NotificationService()


def _row(m: Message):
    return {
        "id": m.id,
        "employee_id": m.employee_id,
        "employee_code": m.employee.code if m.employee else None,
        "payslip_id": m.payslip_id,
        "message": m.message,
        "month_year": m.month_year,
        "sent_at": m.sent_at.isoformat() if m.sent_at else None,
    }


@bp.get("")
@requires_roles(ROLE_MANAGER)
def list_messages():
    items = svc.find_all()
    return ok([_row(m) for m in items], total=len(items))


@bp.get("/<int:message_id>")
@requires_roles()
def get_message(message_id: int):
    m = svc.get(message_id)
    if not is_self_or_roles(m.employee_id, ROLE_MANAGER):
        return fail("Forbidden", status=403)
    return ok(_row(m))


@bp.get("/employee/<int:employee_id>")
@requires_roles()
def list_for_employee(employee_id: int):
    if not is_self_or_roles(employee_id, ROLE_MANAGER):
        return fail("Forbidden", status=403)
    items = svc.find_by_employee(employee_id, request.args.get("month_year"))
    return ok([_row(m) for m in items], total=len(items))


@bp.get("/me")
@requires_roles()
def list_mine():
    u = current_user()
    emp_id = u.employee_id if u else None
    if not emp_id:
        return fail("No employee profile linked to this user", 404, code="NOT_FOUND")
    items = svc.find_by_employee(emp_id, request.args.get("month_year"))
    return ok([_row(m) for m in items], total=len(items))
