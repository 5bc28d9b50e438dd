from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from flask import current_app

from payroll_api.extensions import db
from payroll_api.models.message import Message
from payroll_api.models.payslip import Payslip
from payroll_api.common.errors import NotFoundError
from .mailer import Mailer, MailMessage

log = logging.getLogger(__name__)

DEFAULT_EMPLOYER_NAME = "Government of Rwanda"
SALARY_SUBJECT = "Salary Payment Notification"

SALARY_TEMPLATE = (
    "Dear {first_name},\n"
    "Your salary for {month_year} from {employer} amounting to {amount} "
    "has been credited to your account {employee_code} successfully."
)


def render_salary_message(first_name: str, month_year: str, amount, employee_code: str,
                          employer: str = DEFAULT_EMPLOYER_NAME) -> str:
    return SALARY_TEMPLATE.format(
        first_name=first_name,
        month_year=month_year,
        employer=employer,
        amount=amount,
        employee_code=employee_code,
    )


class NotificationService:
    """Records the salary message for an approved payslip and emails it, best effort."""

    def __init__(self, mailer: Optional[Mailer] = None):
        self.mailer = mailer or Mailer()

    def notify_approval(self, payslip: Payslip) -> Optional[Message]:
        """Never raises; failures are logged and the approval stands."""
        try:
            msg = self._record(payslip)
        except Exception:
            db.session.rollback()
            log.exception("Failed to record approval message for payslip %s", payslip.id)
            return None

        try:
            self._deliver(payslip, msg)
        except Exception:
            log.exception("Failed to send email notification for payslip %s", payslip.id)
        return msg

    def _record(self, payslip: Payslip) -> Message:
        emp = payslip.employee
        employer = current_app.config.get("PAYROLL_EMPLOYER_NAME") or DEFAULT_EMPLOYER_NAME
        text = render_salary_message(
            first_name=emp.first_name,
            month_year=payslip.period,
            amount=payslip.net_salary,
            employee_code=emp.code,
            employer=employer,
        )
        msg = Message(
            employee_id=emp.id,
            payslip_id=payslip.id,
            message=text,
            month_year=payslip.period,
            sent_at=datetime.utcnow(),
        )
        db.session.add(msg)
        db.session.commit()
        return msg

    def _deliver(self, payslip: Payslip, msg: Message) -> None:
        emp = payslip.employee
        if not emp.email:
            log.info("Employee %s has no email; skipping delivery", emp.code)
            return
        self.mailer.send(MailMessage(
            to=emp.email,
            to_name=emp.first_name,
            subject=SALARY_SUBJECT,
            body_text=msg.message,
        ))

    # ---- queries ----
    def get(self, message_id: int) -> Message:
        obj = db.session.get(Message, message_id)
        if not obj:
            raise NotFoundError(f"Message not found with id: {message_id}")
        return obj

    def find_by_employee(self, employee_id: int, month_year: Optional[str] = None) -> List[Message]:
        qry = Message.query.filter(Message.employee_id == employee_id)
        if month_year:
            qry = qry.filter(Message.month_year == month_year)
        return qry.order_by(Message.sent_at.desc(), Message.id.desc()).all()

    def find_all(self) -> List[Message]:
        return Message.query.order_by(Message.sent_at.desc(), Message.id.desc()).all()
