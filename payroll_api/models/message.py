from datetime import datetime
from payroll_api.extensions import db


class Message(db.Model):
    """Salary notification issued to an employee when a payslip is approved."""
    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    payslip_id = db.Column(db.Integer, db.ForeignKey("payslips.id", ondelete="SET NULL"), nullable=True)
    message = db.Column(db.Text, nullable=False)
    month_year = db.Column(db.String(10), nullable=False)  # "5/2025"
    sent_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    employee = db.relationship("Employee", lazy="joined")
