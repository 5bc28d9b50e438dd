from datetime import datetime
from payroll_api.extensions import db


class Deduction(db.Model):
    """
    A named percentage rule applied to base salary.

    Allowances (Housing, Transport) and deductions (Employee Tax, Pension,
    Medical Insurance, Others) share this table; the payroll engine decides
    which side of the payslip a rule lands on.
    """
    __tablename__ = "deductions"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), unique=True, nullable=False)
    name = db.Column(db.String(120), unique=True, nullable=False)
    percentage = db.Column(db.Numeric(7, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
