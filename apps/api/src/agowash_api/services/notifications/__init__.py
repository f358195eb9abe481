from .backend import EmailBackend, InMemoryEmailBackend, SMTPEmailBackend, SmtpConfig
from .service import NotificationEvent, NotificationService
from .templates import RenderedTemplate

__all__ = [
    "EmailBackend",
    "InMemoryEmailBackend",
    "NotificationEvent",
    "NotificationService",
    "RenderedTemplate",
    "SMTPEmailBackend",
    "SmtpConfig",
]
