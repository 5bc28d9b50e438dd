# payroll_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Optional, Set

from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from payroll_api.common.http import fail
from payroll_api.extensions import db
from payroll_api.models.user import User
from payroll_api.models.security import Role, UserRole, ROLE_ADMIN


def _collect_roles_from_db(user_id: int) -> Set[str]:
    q = (
        db.session.query(Role.code)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .distinct()
    )
    return {row[0] for row in q.all()}


def current_user() -> Optional[User]:
    uid = get_jwt_identity()
    if uid is None:
        return None
    try:
        return db.session.get(User, int(uid))
    except (TypeError, ValueError):
        return None


def current_roles() -> Set[str]:
    """Roles from the JWT if issued with them, else a live DB read."""
    claims = get_jwt() or {}
    jwt_roles = set(claims.get("roles") or [])
    if jwt_roles:
        return jwt_roles
    u = current_user()
    return _collect_roles_from_db(u.id) if u else set()


def requires_roles(*codes: str):
    """
    Require that the current user has AT LEAST ONE of the given role codes.
    - Uses roles in JWT if present; falls back to DB.
    - 'admin' role always passes.
    - No codes given: any authenticated user passes.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            if get_jwt_identity() is None:
                return fail("Unauthorized", status=401)

            roles = current_roles()
            if ROLE_ADMIN in roles:
                return fn(*args, **kwargs)

            if codes and not any(r in roles for r in codes):
                return fail("Forbidden", status=403)

            return fn(*args, **kwargs)
        return inner
    return outer


def is_self_or_roles(employee_id: int, *codes: str) -> bool:
    """True if the caller holds one of `codes` (or admin) or is linked to employee_id."""
    roles = current_roles()
    if ROLE_ADMIN in roles or any(r in roles for r in codes):
        return True
    u = current_user()
    return bool(u and u.employee_id == employee_id)
