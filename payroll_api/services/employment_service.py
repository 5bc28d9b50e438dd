from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional

from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.employment import Employment, EMPLOYMENT_STATUSES
from payroll_api.common.errors import NotFoundError, ConflictError, ValidationError

ACTIVE = "ACTIVE"


def _salary(value) -> Decimal:
    try:
        amt = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("base_salary must be a number")
    if not amt.is_finite() or amt <= 0:
        raise ValidationError("base_salary must be positive")
    return amt.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _status(value) -> str:
    s = str(value or ACTIVE).strip().upper()
    if s not in EMPLOYMENT_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(EMPLOYMENT_STATUSES)}")
    return s


def _date(value) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError("joining_date must be YYYY-MM-DD")


class EmploymentService:

    def active_contract_for(self, employee_id: int) -> Employment:
        """
        The employee's ACTIVE contract. If data ever holds more than one,
        the most recent joining_date wins.
        """
        obj = (
            Employment.query
            .filter(Employment.employee_id == employee_id, Employment.status == ACTIVE)
            .order_by(Employment.joining_date.desc(), Employment.id.desc())
            .first()
        )
        if not obj:
            raise NotFoundError(f"No active employment found for employee: {employee_id}")
        return obj

    def get(self, employment_id: int) -> Employment:
        obj = db.session.get(Employment, employment_id)
        if not obj:
            raise NotFoundError(f"Employment not found with id: {employment_id}")
        return obj

    def find_by_code(self, code: str) -> Employment:
        obj = Employment.query.filter_by(code=code).first()
        if not obj:
            raise NotFoundError(f"Employment not found with code: {code}")
        return obj

    def find_by_employee(self, employee_id: int, status: Optional[str] = None) -> List[Employment]:
        qry = Employment.query.filter(Employment.employee_id == employee_id)
        if status:
            qry = qry.filter(Employment.status == _status(status))
        return qry.order_by(Employment.joining_date.desc(), Employment.id.desc()).all()

    def find_all(self, status: Optional[str] = None) -> List[Employment]:
        qry = Employment.query
        if status:
            qry = qry.filter(Employment.status == _status(status))
        return qry.order_by(Employment.id.asc()).all()

    def _guard_single_active(self, employee_id: int, exclude_id: Optional[int] = None):
        qry = Employment.query.filter(
            Employment.employee_id == employee_id,
            Employment.status == ACTIVE,
        )
        if exclude_id is not None:
            qry = qry.filter(Employment.id != exclude_id)
        if qry.first():
            raise ConflictError(f"Employee {employee_id} already has an active employment")

    def create(self, employee_id: int, code: str, base_salary, status=None,
               department=None, position=None, joining_date=None) -> Employment:
        code = str(code or "").strip()
        if not code:
            raise ValidationError("code is required")
        if not db.session.get(Employee, employee_id):
            raise NotFoundError(f"Employee not found with id: {employee_id}")
        if Employment.query.filter_by(code=code).first():
            raise ConflictError(f"Employment with code {code} already exists")

        st = _status(status)
        if st == ACTIVE:
            self._guard_single_active(employee_id)

        obj = Employment(
            employee_id=employee_id,
            code=code,
            base_salary=_salary(base_salary),
            status=st,
            department=department,
            position=position,
            joining_date=_date(joining_date) or date.today(),
        )
        db.session.add(obj)
        db.session.commit()
        return obj

    def update(self, employment_id: int, **data) -> Employment:
        obj = self.get(employment_id)

        if "code" in data and data["code"] is not None:
            code = str(data["code"] or "").strip()
            if not code:
                raise ValidationError("code cannot be empty")
            dup = Employment.query.filter(Employment.code == code, Employment.id != obj.id).first()
            if dup:
                raise ConflictError(f"Employment with code {code} already exists")
            obj.code = code

        if data.get("base_salary") is not None:
            obj.base_salary = _salary(data["base_salary"])
        if data.get("status") is not None:
            st = _status(data["status"])
            if st == ACTIVE and obj.status != ACTIVE:
                self._guard_single_active(obj.employee_id, exclude_id=obj.id)
            obj.status = st
        if "department" in data:
            obj.department = data["department"]
        if "position" in data:
            obj.position = data["position"]
        if "joining_date" in data:
            obj.joining_date = _date(data["joining_date"])

        db.session.commit()
        return obj

    def delete(self, employment_id: int) -> None:
        obj = self.get(employment_id)
        db.session.delete(obj)
        db.session.commit()
