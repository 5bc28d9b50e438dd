from __future__ import annotations

from flask import Blueprint, request

from payroll_api.models.deduction import Deduction
from payroll_api.models.security import ROLE_ADMIN, ROLE_MANAGER, ROLE_EMPLOYEE
from payroll_api.services.deduction_service import DeductionCatalog
from payroll_api.services.rule_kinds import RuleKind
from payroll_api.common.auth import requires_roles
from payroll_api.common.http import ok, fail

bp = Blueprint("deductions", __name__, url_prefix="/api/v1/deductions")
catalog = DeductionCatalog()


def _row(x: Deduction):
    kind = RuleKind.from_catalog_name(x.name)
    return {
        "id": x.id,
        "code": x.code,
        "name": x.name,
        "percentage": str(x.percentage) if x.percentage is not None else None,
        "kind": kind.name if kind else None,
        "created_at": x.created_at.isoformat() if x.created_at else None,
        "updated_at": x.updated_at.isoformat() if x.updated_at else None,
    }


@bp.get("")
@requires_roles(ROLE_EMPLOYEE, ROLE_MANAGER)
def list_deductions():
    items = catalog.find_all()
    return ok([_row(x) for x in items], total=len(items))


@bp.get("/<int:deduction_id>")
@requires_roles(ROLE_EMPLOYEE, ROLE_MANAGER)
def get_deduction(deduction_id: int):
    return ok(_row(catalog.get(deduction_id)))


@bp.get("/code/<code>")
@requires_roles(ROLE_EMPLOYEE, ROLE_MANAGER)
def get_deduction_by_code(code: str):
    return ok(_row(catalog.find_by_code(code)))


@bp.get("/name/<name>")
@requires_roles(ROLE_EMPLOYEE, ROLE_MANAGER)
def get_deduction_by_name(name: str):
    return ok(_row(catalog.find_by_name(name)))


@bp.get("/audit")
@requires_roles(ROLE_MANAGER)
def audit_deductions():
    a = catalog.audit()
    return ok({
        "clean": a.clean,
        "unmapped": a.unmapped,
        "aliases": {name: kind.value for name, kind in a.aliases.items()},
        "missing": [k.value for k in a.missing],
    })


@bp.post("")
@requires_roles(ROLE_MANAGER)
def create_deduction():
    data = request.get_json(silent=True, force=True) or {}
    if data.get("percentage") is None:
        return fail("percentage is required", 422)
    obj = catalog.create(data.get("code"), data.get("name"), data.get("percentage"))
    return ok(_row(obj), 201)


@bp.put("/<int:deduction_id>")
@requires_roles(ROLE_MANAGER)
def update_deduction(deduction_id: int):
    data = request.get_json(silent=True, force=True) or {}
    obj = catalog.update(
        deduction_id,
        code=data.get("code"),
        name=data.get("name"),
        percentage=data.get("percentage"),
    )
    return ok(_row(obj))


@bp.delete("/<int:deduction_id>")
@requires_roles(ROLE_ADMIN)
def delete_deduction(deduction_id: int):
    catalog.delete(deduction_id)
    return ok({"id": deduction_id, "deleted": True})


@bp.post("/initialize")
@requires_roles(ROLE_ADMIN)
def initialize_deductions():
    created = catalog.seed_defaults()
    return ok({"created": created})
