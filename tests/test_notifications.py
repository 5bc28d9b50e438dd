import logging

import pytest

from payroll_api.services.mailer import Mailer, MailMessage, MailProvider
from payroll_api.services.notification_service import NotificationService, render_salary_message
from payroll_api.services.payroll_engine import PayrollEngine
from conftest import add_employee, add_contract, add_default_rules


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host, self.port, self.timeout = host, port, timeout
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def sendmail(self, sender, to, body):
        self.calls.append(("sendmail", sender, tuple(to), body))


class RecordingMailer(Mailer):
    def __init__(self, fail=False):
        super().__init__(config={})
        self.sent = []
        self.fail = fail

    def send(self, message):
        if self.fail:
            raise ConnectionError("smtp unreachable")
        self.sent.append(message)
        return True


def test_render_salary_message():
    assert render_salary_message("Jane", "3/2025", "1500.00", "EMP7", employer="ACME") == (
        "Dear Jane,\nYour salary for 3/2025 from ACME amounting to 1500.00 "
        "has been credited to your account EMP7 successfully."
    )


def test_mock_mode_without_server(caplog):
    m = Mailer(config={})
    assert m.provider() == MailProvider.MOCK
    with caplog.at_level(logging.INFO):
        assert m.send(MailMessage(to="a@b.c", subject="Hi", body_text="body")) is True
    assert "a@b.c" in caplog.text


def test_smtp_delivery(monkeypatch):
    FakeSMTP.instances.clear()
    monkeypatch.setattr("payroll_api.services.mailer.smtplib.SMTP", FakeSMTP)
    m = Mailer(config={
        "MAIL_SERVER": "smtp.test", "MAIL_PORT": 2525, "MAIL_USE_TLS": True,
        "MAIL_USERNAME": "u", "MAIL_PASSWORD": "p", "MAIL_FROM": "pay@test",
    })
    assert m.provider() == MailProvider.SMTP
    m.send(MailMessage(to="x@test", to_name="X", subject="Salary", body_text="paid"))

    smtp = FakeSMTP.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.test", 2525)
    assert smtp.calls[0] == "starttls"
    assert smtp.calls[1] == ("login", "u", "p")
    kind, sender, to, body = smtp.calls[2]
    assert (kind, sender, to) == ("sendmail", "pay@test", ("x@test",))
    assert "Subject: Salary" in body


def test_smtp_without_tls_or_login(monkeypatch):
    FakeSMTP.instances.clear()
    monkeypatch.setattr("payroll_api.services.mailer.smtplib.SMTP", FakeSMTP)
    Mailer(config={"MAIL_SERVER": "smtp.test", "MAIL_USE_TLS": False}).send(
        MailMessage(to="x@test", subject="s", body_text="b"))
    calls = FakeSMTP.instances[0].calls
    assert len(calls) == 1 and calls[0][0] == "sendmail"


def _approved(session, notifier):
    add_default_rules(session)
    e = add_employee(session, "E001", first_name="Grace")
    add_contract(session, e, base_salary="1000.00")
    engine = PayrollEngine(notifier=notifier)
    p = engine.generate(e, 6, 2025)
    return engine.approve(p.id)


def test_approval_emails_the_employee(session):
    mailer = RecordingMailer()
    p = _approved(session, NotificationService(mailer=mailer))
    assert len(mailer.sent) == 1
    mail = mailer.sent[0]
    assert mail.to == "e001@test.local"
    assert mail.body_text.startswith("Dear Grace,\nYour salary for 6/2025")
    assert "820.00" in mail.body_text
    assert p.status == "PAID"


def test_employer_name_from_config(app, session):
    app.config["PAYROLL_EMPLOYER_NAME"] = "City of Kigali"
    svc = NotificationService(mailer=RecordingMailer())
    p = _approved(session, svc)
    assert "from City of Kigali amounting" in svc.find_by_employee(p.employee_id)[0].message


def test_mail_failure_keeps_message_and_approval(session, caplog):
    svc = NotificationService(mailer=RecordingMailer(fail=True))
    with caplog.at_level(logging.ERROR):
        p = _approved(session, svc)
    assert p.status == "PAID"
    assert len(svc.find_by_employee(p.employee_id)) == 1
    assert "Failed to send email notification" in caplog.text


def test_messages_filter_by_period(session):
    svc = NotificationService(mailer=RecordingMailer())
    p = _approved(session, svc)
    assert len(svc.find_by_employee(p.employee_id, "6/2025")) == 1
    assert svc.find_by_employee(p.employee_id, "7/2025") == []
    assert len(svc.find_all()) == 1
