"""Background workers."""

from .free_wash_expiry import FreeWashExpiryWatcher

__all__ = ["FreeWashExpiryWatcher"]
