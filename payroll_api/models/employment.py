from datetime import datetime
from payroll_api.extensions import db

EMPLOYMENT_STATUSES = ("ACTIVE", "INACTIVE", "TERMINATED")


class Employment(db.Model):
    """An employment contract. Only one per employee may be ACTIVE."""
    __tablename__ = "employments"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), unique=True, nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False)

    department = db.Column(db.String(120))
    position = db.Column(db.String(120))
    base_salary = db.Column(db.Numeric(14, 2), nullable=False)
    status = db.Column(db.Enum(*EMPLOYMENT_STATUSES, name="employment_status_enum"),
                       nullable=False, default="ACTIVE")
    joining_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_employment_employee_status", "employee_id", "status"),
    )

    employee = db.relationship("Employee", lazy="joined")
