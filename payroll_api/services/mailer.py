"""
Outbound email for payroll notifications.

SMTP when MAIL_SERVER is configured; otherwise messages are only logged.
"""
from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from flask import current_app

log = logging.getLogger(__name__)


class MailProvider:
    SMTP = "smtp"
    MOCK = "mock"


@dataclass
class MailMessage:
    to: str
    subject: str
    body_text: str
    to_name: Optional[str] = None


class Mailer:
    def __init__(self, config: Optional[dict] = None):
        self._config = config

    @property
    def config(self):
        return self._config if self._config is not None else current_app.config

    def provider(self) -> str:
        return MailProvider.SMTP if self.config.get("MAIL_SERVER") else MailProvider.MOCK

    def send(self, message: MailMessage) -> bool:
        """Deliver the message. Raises on SMTP failure; callers decide what to swallow."""
        if self.provider() == MailProvider.MOCK:
            log.info("[mail:mock] to=%s subject=%r\n%s", message.to, message.subject, message.body_text)
            return True
        self._send_smtp(message)
        return True

    def _send_smtp(self, message: MailMessage) -> None:
        cfg = self.config
        sender = cfg.get("MAIL_FROM") or "payroll@localhost"

        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = sender
        msg["To"] = f"{message.to_name} <{message.to}>" if message.to_name else message.to
        msg.attach(MIMEText(message.body_text, "plain", "utf-8"))

        host = cfg["MAIL_SERVER"]
        port = int(cfg.get("MAIL_PORT") or 587)
        timeout = float(cfg.get("MAIL_TIMEOUT") or 10)

        with smtplib.SMTP(host, port, timeout=timeout) as server:
            if cfg.get("MAIL_USE_TLS", True):
                server.starttls(context=ssl.create_default_context())
            if cfg.get("MAIL_USERNAME"):
                server.login(cfg["MAIL_USERNAME"], cfg.get("MAIL_PASSWORD") or "")
            server.sendmail(sender, [message.to], msg.as_string())
        log.info("Email sent to %s: %s", message.to, message.subject)
