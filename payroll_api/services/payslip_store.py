from __future__ import annotations

from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from payroll_api.extensions import db
from payroll_api.models.payslip import Payslip, PAYSLIP_STATUSES
from payroll_api.common.errors import NotFoundError, ConflictError, ValidationError


def normalize_status(status: Optional[str]) -> Optional[str]:
    if status is None or status == "":
        return None
    s = str(status).strip().upper()
    if s not in PAYSLIP_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(PAYSLIP_STATUSES)}")
    return s


class PayslipStore:
    """Persistence boundary for payslips, keyed by (employee, month, year)."""

    def exists(self, employee_id: int, month: int, year: int) -> bool:
        q = Payslip.query.filter_by(employee_id=employee_id, month=month, year=year)
        return db.session.query(q.exists()).scalar()

    def save(self, payslip: Payslip) -> Payslip:
        """
        Commit the payslip. The (employee_id, month, year) unique constraint
        is the last word on duplicates: a lost race surfaces as CONFLICT.
        """
        db.session.add(payslip)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(
                f"Payslip already exists for employee {payslip.employee_id} "
                f"for {payslip.month}/{payslip.year}"
            )
        return payslip

    def get(self, payslip_id: int) -> Payslip:
        obj = db.session.get(Payslip, payslip_id)
        if not obj:
            raise NotFoundError(f"Payslip not found with id: {payslip_id}")
        return obj

    def find_for_period(self, employee_id: int, month: int, year: int) -> Payslip:
        obj = Payslip.query.filter_by(employee_id=employee_id, month=month, year=year).first()
        if not obj:
            raise NotFoundError(f"Payslip not found for employee {employee_id} for {month}/{year}")
        return obj

    def find_by_employee(self, employee_id: int, status: Optional[str] = None) -> List[Payslip]:
        qry = Payslip.query.filter(Payslip.employee_id == employee_id)
        status = normalize_status(status)
        if status:
            qry = qry.filter(Payslip.status == status)
        return qry.order_by(Payslip.year.desc(), Payslip.month.desc()).all()

    def find_by_status(self, status: str) -> List[Payslip]:
        status = normalize_status(status)
        if not status:
            raise ValidationError("status is required")
        return (
            Payslip.query.filter(Payslip.status == status)
            .order_by(Payslip.year.desc(), Payslip.month.desc(), Payslip.id.asc())
            .all()
        )

    def find_by_period(self, month: int, year: int, status: Optional[str] = None) -> List[Payslip]:
        qry = Payslip.query.filter(Payslip.month == month, Payslip.year == year)
        status = normalize_status(status)
        if status:
            qry = qry.filter(Payslip.status == status)
        return qry.order_by(Payslip.id.asc()).all()
