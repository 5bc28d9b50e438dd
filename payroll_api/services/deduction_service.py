from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from payroll_api.extensions import db
from payroll_api.models.deduction import Deduction
from payroll_api.common.errors import NotFoundError, ConflictError, ValidationError
from .rule_kinds import RuleKind, DeductionSnapshot, audit_catalog, CatalogAudit

log = logging.getLogger(__name__)

DEFAULT_DEDUCTIONS = (
    ("DED001", "Employee Tax", Decimal("30.0")),
    ("DED002", "Pension", Decimal("6.0")),
    ("DED003", "Medical Insurance", Decimal("5.0")),
    ("DED004", "Housing", Decimal("14.0")),
    ("DED005", "Transport", Decimal("14.0")),
    ("DED006", "Others", Decimal("5.0")),
)


def _percentage(value) -> Decimal:
    try:
        pct = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("percentage must be a number")
    if not pct.is_finite() or pct < 0:
        raise ValidationError("percentage must be a non-negative number")
    return pct


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError("code and name must be strings")
    return str(value).strip()


class DeductionCatalog:
    """Named percentage rules, unique by code and by name."""

    def find_all(self) -> List[Deduction]:
        return Deduction.query.order_by(Deduction.code.asc()).all()

    def get(self, deduction_id: int) -> Deduction:
        obj = db.session.get(Deduction, deduction_id)
        if not obj:
            raise NotFoundError(f"Deduction not found with id: {deduction_id}")
        return obj

    def find_by_code(self, code: str) -> Deduction:
        obj = Deduction.query.filter_by(code=(code or "").strip()).first()
        if not obj:
            raise NotFoundError(f"Deduction not found with code: {code}")
        return obj

    def find_by_name(self, name: str) -> Deduction:
        obj = self._by_name((name or "").strip())
        if not obj:
            raise NotFoundError(f"Deduction not found with name: {name}")
        return obj

    def _by_name(self, name: str, exclude_id: Optional[int] = None) -> Optional[Deduction]:
        qry = Deduction.query.filter(db.func.lower(Deduction.name) == name.lower())
        if exclude_id is not None:
            qry = qry.filter(Deduction.id != exclude_id)
        return qry.first()

    def _by_code(self, code: str, exclude_id: Optional[int] = None) -> Optional[Deduction]:
        qry = Deduction.query.filter(Deduction.code == code)
        if exclude_id is not None:
            qry = qry.filter(Deduction.id != exclude_id)
        return qry.first()

    def _guard_kind(self, name: str, exclude_id: Optional[int] = None) -> None:
        """One rule per kind, counting names that only resemble the canonical one."""
        kind = RuleKind.resembling(name)
        if kind is None:
            return
        for other in Deduction.query.all():
            if other.id != exclude_id and RuleKind.resembling(other.name) is kind:
                raise ConflictError(
                    f"Rule {other.name!r} already covers {kind.value}",
                    payload={"kind": kind.name, "existing": other.code},
                )

    def create(self, code: str, name: str, percentage) -> Deduction:
        code = _text(code)
        name = _text(name)
        if not code or not name:
            raise ValidationError("code and name are required")
        pct = _percentage(percentage)

        if self._by_code(code):
            raise ConflictError(f"Deduction with code {code} already exists")
        if self._by_name(name):
            raise ConflictError(f"Deduction with name {name} already exists")
        self._guard_kind(name)

        obj = Deduction(code=code, name=name, percentage=pct)
        db.session.add(obj)
        db.session.commit()
        log.info("Created deduction rule %s (%s %s%%)", code, name, pct)
        return obj

    def update(self, deduction_id: int, code=None, name=None, percentage=None) -> Deduction:
        obj = self.get(deduction_id)

        if code is not None:
            code = _text(code)
            if not code:
                raise ValidationError("code cannot be empty")
            if self._by_code(code, exclude_id=obj.id):
                raise ConflictError(f"Deduction with code {code} already exists")
            obj.code = code

        if name is not None:
            name = _text(name)
            if not name:
                raise ValidationError("name cannot be empty")
            if self._by_name(name, exclude_id=obj.id):
                raise ConflictError(f"Deduction with name {name} already exists")
            self._guard_kind(name, exclude_id=obj.id)
            obj.name = name

        if percentage is not None:
            obj.percentage = _percentage(percentage)

        db.session.commit()
        return obj

    def delete(self, deduction_id: int) -> None:
        obj = self.get(deduction_id)
        db.session.delete(obj)
        db.session.commit()

    def seed_defaults(self) -> int:
        """Insert the default rule set when the catalog is empty. Returns rows created."""
        if Deduction.query.count() > 0:
            return 0
        created = 0
        for code, name, pct in DEFAULT_DEDUCTIONS:
            try:
                db.session.add(Deduction(code=code, name=name, percentage=pct))
                db.session.commit()
                created += 1
            except Exception as e:
                db.session.rollback()
                log.warning("Error creating default deduction %s: %s", name, e)
        return created

    def snapshot(self) -> DeductionSnapshot:
        return DeductionSnapshot.from_rules(self.find_all())

    def audit(self) -> CatalogAudit:
        return audit_catalog(self.find_all())
