"""High-level notification service for loyalty emails."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from agowash_api.core.settings import get_settings

from .backend import EmailBackend, InMemoryEmailBackend, SMTPEmailBackend, SmtpConfig
from .templates import (
    RenderedTemplate,
    render_free_wash_activated,
    render_free_wash_expired,
    render_package_redeemed,
    render_tier_change,
)


@dataclass
class NotificationEvent:
    """Representation of a notification that was sent."""

    recipient: str
    subject: str
    body_text: str
    body_html: str | None
    event_type: str
    metadata: dict[str, Any]


class NotificationService:
    """Coordinates notification delivery via pluggable backends.

    Delivery failures are logged and swallowed: callers submit these as
    best-effort work and never depend on the outcome.
    """

    def __init__(
        self,
        backend: Optional[EmailBackend] = None,
        *,
        admin_email: str | None = None,
    ) -> None:
        self._settings = get_settings()
        self._backend = backend or self._build_default_backend()
        self._admin_email = admin_email if admin_email is not None else self._settings.admin_email
        self._events: list[NotificationEvent] = []

    @property
    def sent_events(self) -> list[NotificationEvent]:
        """Expose events (useful for tests when using in-memory backend)."""
        return self._events

    @property
    def enabled(self) -> bool:
        return self._backend is not None

    def use_in_memory_backend(self) -> InMemoryEmailBackend:
        backend = InMemoryEmailBackend()
        self._backend = backend
        return backend

    async def notify_tier_change(
        self,
        address: str,
        points: int,
        tier: str,
        *,
        direction: str = "upgraded",
    ) -> None:
        """Alert the admin mailbox that a member's NFT frame needs attention."""
        if not self._admin_email:
            logger.info("Skipping tier change email, no admin mailbox configured", address=address)
            return
        await self._deliver(
            self._admin_email,
            render_tier_change(address, points, tier, direction=direction),
            event_type="tier_change",
            metadata={"address": address, "points": points, "tier": tier, "direction": direction},
        )

    async def notify_free_wash_activated(self, email: str | None, date: str) -> None:
        if not email:
            return
        await self._deliver(
            email,
            render_free_wash_activated(date),
            event_type="free_wash_activated",
            metadata={"date": date},
        )

    async def notify_free_wash_expired(self, email: str | None) -> None:
        if not email:
            return
        await self._deliver(email, render_free_wash_expired(), event_type="free_wash_expired", metadata={})

    async def notify_package_redeemed(self, email: str | None, package_type: int, points: int) -> None:
        if not email:
            return
        await self._deliver(
            email,
            render_package_redeemed(package_type, points),
            event_type="package_redeemed",
            metadata={"package_type": package_type, "points": points},
        )

    async def _deliver(
        self,
        recipient: str,
        template: RenderedTemplate,
        *,
        event_type: str,
        metadata: dict[str, Any],
    ) -> None:
        """Send using active backend and record emitted event."""
        if self._backend is None:
            return

        try:
            await self._backend.send_email(
                recipient,
                template.subject,
                template.text_body,
                body_html=template.html_body,
            )
        except Exception as exc:
            logger.error(
                "Failed to send notification email",
                category="notification",
                event_type=event_type,
                recipient=recipient,
                error=str(exc),
            )
            return

        logger.info("Notification email sent", category="notification", event_type=event_type, recipient=recipient)
        self._events.append(
            NotificationEvent(
                recipient=recipient,
                subject=template.subject,
                body_text=template.text_body,
                body_html=template.html_body,
                event_type=event_type,
                metadata=metadata,
            )
        )

    def _build_default_backend(self) -> Optional[EmailBackend]:
        config = SmtpConfig.from_settings(self._settings)
        return SMTPEmailBackend(config) if config else None


__all__ = ["NotificationEvent", "NotificationService"]
