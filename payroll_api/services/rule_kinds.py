# payroll_api/services/rule_kinds.py
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

log = logging.getLogger(__name__)


class RuleKind(enum.Enum):
    """Closed set of rule kinds the payroll engine understands.

    Values are the canonical catalog names. A rule belongs to a kind only
    when its name equals the canonical name, ignoring case.
    """
    HOUSING = "Housing"
    TRANSPORT = "Transport"
    EMPLOYEE_TAX = "Employee Tax"
    PENSION = "Pension"
    MEDICAL_INSURANCE = "Medical Insurance"
    OTHER = "Others"

    @classmethod
    def from_catalog_name(cls, name: Optional[str]) -> Optional["RuleKind"]:
        if not name:
            return None
        return _EXACT.get(name.strip().lower())

    @classmethod
    def resembling(cls, name: Optional[str]) -> Optional["RuleKind"]:
        """Kind a name looks like once spacing, `_`, `-` and a trailing `s` are ignored.

        Used to flag near-miss names; never used for computation.
        """
        if not name:
            return None
        return _LOOSE.get(_loose(name))


ALLOWANCE_KINDS = (RuleKind.HOUSING, RuleKind.TRANSPORT)
DEDUCTION_KINDS = (
    RuleKind.EMPLOYEE_TAX,
    RuleKind.PENSION,
    RuleKind.MEDICAL_INSURANCE,
    RuleKind.OTHER,
)


def _loose(name: str) -> str:
    # "Employee Tax", "employee_tax", "EMPLOYEE-TAX" -> "employeetaxs"; "Other", "Others" -> "others"
    s = re.sub(r"[\s_\-]+", "", name).lower()
    return s if s.endswith("s") else s + "s"


_EXACT: Dict[str, RuleKind] = {k.value.lower(): k for k in RuleKind}
_LOOSE: Dict[str, RuleKind] = {_loose(k.value): k for k in RuleKind}


@dataclass(frozen=True)
class DeductionSnapshot:
    """Percentages per rule kind, frozen at the moment a payslip is computed."""
    percentages: Dict[RuleKind, Decimal] = field(default_factory=dict)

    def percentage(self, kind: RuleKind) -> Decimal:
        # a rule missing from the catalog contributes 0%
        return self.percentages.get(kind, Decimal("0"))

    @classmethod
    def from_rules(cls, rules: Iterable) -> "DeductionSnapshot":
        """Build from objects with .name and .percentage.

        Only canonically named rules count; names that merely resemble a kind are ignored.
        """
        out: Dict[RuleKind, Decimal] = {}
        for r in rules:
            kind = RuleKind.from_catalog_name(r.name)
            if kind is None or kind in out:
                continue
            out[kind] = Decimal(str(r.percentage if r.percentage is not None else 0))
        return cls(percentages=out)


@dataclass
class CatalogAudit:
    unmapped: List[str]
    missing: List[RuleKind]
    aliases: Dict[str, RuleKind] = field(default_factory=dict)

    @property
    def clean(self) -> bool:
        return not self.unmapped and not self.missing


def audit_catalog(rules: Iterable) -> CatalogAudit:
    """
    Compare catalog rule names against the known kinds.

    unmapped -> names the engine will never consult (often a typo)
    aliases  -> the subset of unmapped that looks like a kind, e.g. "EmployeeTax"
    missing  -> kinds with no canonically named rule; they compute as 0%
    """
    seen = set()
    unmapped: List[str] = []
    aliases: Dict[str, RuleKind] = {}
    for r in rules:
        kind = RuleKind.from_catalog_name(r.name)
        if kind is not None:
            seen.add(kind)
            continue
        unmapped.append(r.name)
        near = RuleKind.resembling(r.name)
        if near is not None:
            aliases[r.name] = near
    missing = [k for k in RuleKind if k not in seen]

    for name in unmapped:
        if name in aliases:
            log.warning("Deduction rule %r is not used; the engine only reads %r",
                        name, aliases[name].value)
        else:
            log.warning("Deduction rule %r does not map to any payroll rule kind", name)
    if missing:
        log.info("No catalog rule for %s; these compute as 0%%",
                 ", ".join(k.value for k in missing))
    return CatalogAudit(unmapped=unmapped, missing=missing, aliases=aliases)
