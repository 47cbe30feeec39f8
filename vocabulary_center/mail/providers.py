"""Outbound email providers."""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Dict, Optional

from .config import EmailConfig

logger = logging.getLogger(__name__)

SMTPS_PORT = 465


class EmailProvider:
    """Base provider for outbound email delivery."""

    name = "base"

    def __init__(self, *, from_email: str) -> None:
        self.from_email = from_email

    def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        raise NotImplementedError

    def describe(self) -> Dict[str, str]:
        return {"email_provider": self.name, "email_sender": self.from_email}


class DevPrintProvider(EmailProvider):
    """Writes messages to the log so reset links can be followed locally."""

    name = "dev"

    def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        logger.info(
            "Dev email to %s: %s\n%s",
            to,
            subject,
            text_body,
            extra={"email_recipient": to, "email_sender": self.from_email},
        )


class UnconfiguredProvider(EmailProvider):
    """Stands in for SMTP in production when credentials are missing."""

    name = "unconfigured"

    def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        raise RuntimeError("Email service not configured. Set SMTP_USER and SMTP_PASS to enable delivery.")


class SMTPProvider(EmailProvider):
    name = "smtp"

    def __init__(
        self,
        *,
        from_email: str,
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        use_tls: bool,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(from_email=from_email)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, to: str, subject: str, html_body: str, text_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f"Vocabulary Center <{self.from_email}>"
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")
        return message

    def _connect(self) -> smtplib.SMTP:
        # Port 465 speaks TLS from the first byte; anything else upgrades with STARTTLS.
        if self.port == SMTPS_PORT:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if self.use_tls:
            client.starttls()
        return client

    def send_email(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        message = self.build_message(to, subject, html_body, text_body)
        with self._connect() as client:
            if self.username and self.password:
                client.login(self.username, self.password)
            client.send_message(message)


def create_email_provider(config: EmailConfig, *, production: bool = False) -> EmailProvider:
    """Pick SMTP when selected; otherwise log in development and fail loudly in production."""

    if config.provider_name == "smtp":
        return SMTPProvider(
            from_email=config.from_email,
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            timeout=config.smtp_timeout_seconds,
        )
    if production:
        return UnconfiguredProvider(from_email=config.from_email)
    return DevPrintProvider(from_email=config.from_email)


__all__ = [
    "DevPrintProvider",
    "EmailProvider",
    "SMTPProvider",
    "UnconfiguredProvider",
    "create_email_provider",
]
