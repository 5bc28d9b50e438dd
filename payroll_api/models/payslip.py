from datetime import datetime
from payroll_api.extensions import db

PAYSLIP_PENDING = "PENDING"
PAYSLIP_PAID = "PAID"
PAYSLIP_STATUSES = (PAYSLIP_PENDING, PAYSLIP_PAID)


class Payslip(db.Model):
    __tablename__ = "payslips"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)

    # amounts are copied at generation time, never linked back to the rules
    base_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    housing_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    transport_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    employee_tax_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    pension_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    medical_insurance_amount = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    other_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    gross_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_salary = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    status = db.Column(db.Enum(*PAYSLIP_STATUSES, name="payslip_status_enum"),
                       nullable=False, default=PAYSLIP_PENDING)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", "year", name="uq_payslip_employee_period"),
        db.Index("ix_payslip_period_status", "year", "month", "status"),
    )

    employee = db.relationship("Employee", lazy="joined")

    @property
    def period(self) -> str:
        return f"{self.month}/{self.year}"
