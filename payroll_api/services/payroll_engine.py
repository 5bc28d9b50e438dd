# payroll_api/services/payroll_engine.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payslip import Payslip, PAYSLIP_PENDING, PAYSLIP_PAID
from payroll_api.common.errors import (
    APIError, NotFoundError, ConflictError, InvariantViolation, ValidationError,
)
from .rule_kinds import RuleKind, DeductionSnapshot
from .deduction_service import DeductionCatalog
from .employment_service import EmploymentService
from .payslip_store import PayslipStore
from .notification_service import NotificationService

log = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def q2(x: Decimal) -> Decimal:
    return x.quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """
    amount × percentage / 100 with two roundings, both half-up to cents:
    first on percentage/100, then on the product.
    e.g. 100.00 at 33.33% -> factor 0.33 -> 33.00
    """
    factor = q2(Decimal(percentage) / HUNDRED)
    return q2(Decimal(amount) * factor)


@dataclass(frozen=True)
class PayslipAmounts:
    base_salary: Decimal
    housing_amount: Decimal
    transport_amount: Decimal
    employee_tax_amount: Decimal
    pension_amount: Decimal
    medical_insurance_amount: Decimal
    other_deductions: Decimal
    gross_salary: Decimal
    net_salary: Decimal

    @property
    def total_deductions(self) -> Decimal:
        return (self.employee_tax_amount + self.pension_amount
                + self.medical_insurance_amount + self.other_deductions)


def compute_amounts(base_salary, snapshot: DeductionSnapshot) -> PayslipAmounts:
    base = q2(Decimal(str(base_salary)))

    def amt(kind: RuleKind) -> Decimal:
        return percent_of(base, snapshot.percentage(kind))

    housing = amt(RuleKind.HOUSING)
    transport = amt(RuleKind.TRANSPORT)
    gross = base + housing + transport

    tax = amt(RuleKind.EMPLOYEE_TAX)
    pension = amt(RuleKind.PENSION)
    medical = amt(RuleKind.MEDICAL_INSURANCE)
    other = amt(RuleKind.OTHER)
    total = tax + pension + medical + other

    if total > gross:
        raise InvariantViolation(
            "Total deductions exceed gross salary",
            payload={"gross_salary": str(gross), "total_deductions": str(total)},
        )

    return PayslipAmounts(
        base_salary=base,
        housing_amount=housing,
        transport_amount=transport,
        employee_tax_amount=tax,
        pension_amount=pension,
        medical_insurance_amount=medical,
        other_deductions=other,
        gross_salary=gross,
        net_salary=gross - total,
    )


# ---------- batch results ----------
CREATED = "created"
APPROVED = "approved"
SKIPPED = "skipped"
FAILED = "failed"

SKIP_EXISTS = "already_exists"
SKIP_NO_EMPLOYMENT = "no_active_employment"


@dataclass
class BatchItem:
    outcome: str
    employee_id: Optional[int] = None
    employee_code: Optional[str] = None
    payslip_id: Optional[int] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None
    error: Optional[str] = None
    payslip: Optional[Payslip] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d.pop("payslip", None)
        return {k: v for k, v in d.items() if v is not None}


@dataclass
class BatchResult:
    month: int
    year: int
    items: List[BatchItem] = field(default_factory=list)

    @property
    def payslips(self) -> List[Payslip]:
        """Only the payslips this batch created/approved."""
        return [i.payslip for i in self.items if i.outcome in (CREATED, APPROVED)]

    def count(self, outcome: str) -> int:
        return sum(1 for i in self.items if i.outcome == outcome)

    def summary(self) -> Dict[str, int]:
        return {k: self.count(k) for k in (CREATED, APPROVED, SKIPPED, FAILED) if self.count(k)}


def _check_period(month, year):
    if not isinstance(month, int) or not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not isinstance(year, int) or year < 1:
        raise ValidationError("year must be a positive integer")


class PayrollEngine:
    """
    Payslip generation and approval.

    Holds no state between calls; everything lives in the store and catalogs.
    """

    def __init__(self, catalog: Optional[DeductionCatalog] = None,
                 employments: Optional[EmploymentService] = None,
                 store: Optional[PayslipStore] = None,
                 notifier: Optional[NotificationService] = None):
        self.catalog = catalog or DeductionCatalog()
        self.employments = employments or EmploymentService()
        self.store = store or PayslipStore()
        self.notifier = notifier or NotificationService()

    # ---------- single employee ----------
    def generate(self, employee: Employee, month: int, year: int,
                 snapshot: Optional[DeductionSnapshot] = None) -> Payslip:
        _check_period(month, year)
        if self.store.exists(employee.id, month, year):
            raise ConflictError(f"Payslip already exists for employee {employee.code} for {month}/{year}")

        contract = self.employments.active_contract_for(employee.id)
        snap = snapshot if snapshot is not None else self.catalog.snapshot()
        amounts = compute_amounts(contract.base_salary, snap)

        payslip = Payslip(
            employee_id=employee.id,
            month=month,
            year=year,
            status=PAYSLIP_PENDING,
            **asdict(amounts),
        )
        return self.store.save(payslip)

    # ---------- whole month ----------
    def generate_for_month(self, month: int, year: int) -> BatchResult:
        _check_period(month, year)
        result = BatchResult(month=month, year=year)
        snap = self.catalog.snapshot()

        for emp in Employee.query.order_by(Employee.id.asc()).all():
            item = BatchItem(outcome=CREATED, employee_id=emp.id, employee_code=emp.code)
            try:
                if self.store.exists(emp.id, month, year):
                    item.outcome, item.reason = SKIPPED, SKIP_EXISTS
                else:
                    payslip = self.generate(emp, month, year, snapshot=snap)
                    item.payslip, item.payslip_id = payslip, payslip.id
            except NotFoundError:
                item.outcome, item.reason = SKIPPED, SKIP_NO_EMPLOYMENT
            except ConflictError:
                # lost a race with a concurrent generate for the same period
                item.outcome, item.reason = SKIPPED, SKIP_EXISTS
            except Exception as e:
                db.session.rollback()
                item.outcome = FAILED
                item.error_code = e.code if isinstance(e, APIError) else type(e).__name__
                item.error = str(e)
                log.warning("Error generating payslip for employee %s (%s/%s): %s",
                            emp.code, month, year, e)
            result.items.append(item)

        log.info("Payroll %s/%s generated: %s", month, year, result.summary())
        return result

    # ---------- approval ----------
    def approve(self, payslip_id: int) -> Payslip:
        payslip = self.store.get(payslip_id)
        if payslip.status == PAYSLIP_PAID:
            raise ConflictError("Payslip is already approved", payload={"payslip_id": payslip_id})

        # compare-and-set so two concurrent approvals cannot both win
        rows = (
            Payslip.query
            .filter(Payslip.id == payslip_id, Payslip.status == PAYSLIP_PENDING)
            .update({Payslip.status: PAYSLIP_PAID, Payslip.updated_at: datetime.utcnow()},
                    synchronize_session=False)
        )
        if rows != 1:
            db.session.rollback()
            raise ConflictError("Payslip is already approved", payload={"payslip_id": payslip_id})
        db.session.commit()
        db.session.refresh(payslip)

        # committed above; notification is best effort
        try:
            self.notifier.notify_approval(payslip)
        except Exception:
            log.exception("Notification for payslip %s failed", payslip_id)
        return payslip

    def approve_for_month(self, month: int, year: int) -> BatchResult:
        _check_period(month, year)
        result = BatchResult(month=month, year=year)
        pending_ids = [p.id for p in self.store.find_by_period(month, year, PAYSLIP_PENDING)]

        for pid in pending_ids:
            item = BatchItem(outcome=APPROVED, payslip_id=pid)
            try:
                payslip = self.approve(pid)
                item.payslip = payslip
                item.employee_id = payslip.employee_id
                item.employee_code = payslip.employee.code if payslip.employee else None
            except Exception as e:
                db.session.rollback()
                item.outcome = FAILED
                item.error_code = e.code if isinstance(e, APIError) else type(e).__name__
                item.error = str(e)
                log.warning("Error approving payslip %s: %s", pid, e)
            result.items.append(item)

        log.info("Payroll %s/%s approved: %s", month, year, result.summary())
        return result
