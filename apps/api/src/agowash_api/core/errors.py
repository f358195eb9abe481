"""Domain error taxonomy shared by the cache, ledger and orchestration layers."""

from __future__ import annotations


class LoyaltyError(Exception):
    """Base class for errors raised by the loyalty backend."""

    title = "Loyalty Error"


class CacheUnavailable(LoyaltyError):
    """Cache store could not be reached; callers treat it as a miss."""

    title = "Cache Unavailable"


class LedgerUnavailable(LoyaltyError):
    """A chain call failed or timed out."""

    title = "Blockchain Error"

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class DataIntegrityError(LoyaltyError):
    """The chain returned a value that cannot be represented safely."""

    title = "Data Integrity Error"


class UserNotFound(LoyaltyError):
    title = "User Not Found"

    def __init__(self, address: str) -> None:
        super().__init__(f"User with address {address} does not exist")
        self.address = address


class UserAlreadyExists(LoyaltyError):
    title = "User Exists"

    def __init__(self, address: str) -> None:
        super().__init__(f"User with address {address} already exists")
        self.address = address


class NFTNotFound(LoyaltyError):
    title = "NFT Not Found"

    def __init__(self, address: str) -> None:
        super().__init__(f"User {address} does not have an NFT yet")
        self.address = address


class InvalidPackage(LoyaltyError):
    title = "Invalid Package"

    def __init__(self, package_type: int) -> None:
        super().__init__(f"Invalid package type: {package_type}")
        self.package_type = package_type


class InsufficientPoints(LoyaltyError):
    """Redemption attempted against a balance below the package threshold."""

    title = "Insufficient Points"

    def __init__(self, *, required: int, available: int) -> None:
        super().__init__(f"Insufficient points. Required: {required}, Available: {available}")
        self.required = required
        self.available = available


__all__ = [
    "CacheUnavailable",
    "DataIntegrityError",
    "InsufficientPoints",
    "InvalidPackage",
    "LedgerUnavailable",
    "LoyaltyError",
    "NFTNotFound",
    "UserAlreadyExists",
    "UserNotFound",
]
