"""Outbound mail transports for member and admin notifications."""

from __future__ import annotations

import asyncio
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Protocol

from agowash_api.core.settings import Settings

SMTPS_PORT = 465


class EmailBackend(Protocol):
    async def send_email(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> None:
        ...


@dataclass(frozen=True, slots=True)
class SmtpConfig:
    host: str
    port: int
    sender: str
    username: str | None = None
    password: str | None = None
    starttls: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpConfig | None":
        """``None`` when no relay host or sender address is configured."""
        if not settings.smtp_host or not settings.smtp_sender_email:
            return None
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.smtp_sender_email,
            username=settings.smtp_username,
            password=settings.smtp_password,
            starttls=settings.smtp_use_tls,
        )


def compose_email(
    recipient: str,
    subject: str,
    body_text: str,
    body_html: str | None = None,
    *,
    sender: str | None = None,
) -> EmailMessage:
    message = EmailMessage()
    message["To"] = recipient
    message["Subject"] = subject
    message["Date"] = formatdate(localtime=False)
    if sender:
        message["From"] = sender
        message["Message-ID"] = make_msgid(domain=sender.rpartition("@")[2] or None)
    message.set_content(body_text)
    if body_html:
        message.add_alternative(body_html, subtype="html")
    return message


class SMTPEmailBackend:
    """Delivers through an SMTP relay; the blocking session runs in a worker thread."""

    def __init__(self, config: SmtpConfig, *, timeout: float = 10.0) -> None:
        self._config = config
        self._timeout = timeout

    async def send_email(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> None:
        message = compose_email(recipient, subject, body_text, body_html, sender=self._config.sender)
        await asyncio.to_thread(self._deliver, message)

    def _open(self) -> smtplib.SMTP:
        config = self._config
        if config.port == SMTPS_PORT:
            return smtplib.SMTP_SSL(config.host, config.port, timeout=self._timeout)
        client = smtplib.SMTP(config.host, config.port, timeout=self._timeout)
        if config.starttls:
            client.starttls()
        return client

    def _deliver(self, message: EmailMessage) -> None:
        with self._open() as client:
            if self._config.username and self._config.password:
                client.login(self._config.username, self._config.password)
            client.send_message(message)


@dataclass
class InMemoryEmailBackend:
    """Keeps composed messages instead of sending them."""

    sent_messages: list[EmailMessage] = field(default_factory=list)

    async def send_email(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> None:
        self.sent_messages.append(compose_email(recipient, subject, body_text, body_html))

    def recipients(self) -> list[str]:
        return [str(message["To"]) for message in self.sent_messages]


__all__ = ["EmailBackend", "InMemoryEmailBackend", "SMTPEmailBackend", "SmtpConfig", "compose_email"]
