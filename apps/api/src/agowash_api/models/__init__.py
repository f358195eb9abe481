"""ORM models registered on the shared metadata."""

from .price import ServicePrice
from .transaction import (
    ServiceTypeEnum,
    VehicleTypeEnum,
    WashTransaction,
    WashTransactionStatus,
)
from .user import User

__all__ = [
    "ServicePrice",
    "ServiceTypeEnum",
    "User",
    "VehicleTypeEnum",
    "WashTransaction",
    "WashTransactionStatus",
]
