"""Typed views of ledger payloads with checked integer conversion."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping

from agowash_api.core.errors import DataIntegrityError

MAX_SAFE_INTEGER = 2**53 - 1


def checked_int(value: Any, *, field: str, non_negative: bool = True) -> int:
    """Convert a wide chain integer, failing closed instead of truncating."""

    if isinstance(value, bool):
        raise DataIntegrityError(f"{field}: expected integer, got boolean")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            number = int(text, 16) if text.lower().startswith("0x") else int(text, 10)
        except ValueError as exc:
            raise DataIntegrityError(f"{field}: {value!r} is not an integer") from exc
    elif isinstance(value, float):
        if not value.is_integer():
            raise DataIntegrityError(f"{field}: {value!r} is not integral")
        number = int(value)
    else:
        raise DataIntegrityError(f"{field}: unsupported value {value!r}")

    if number > MAX_SAFE_INTEGER or number < -MAX_SAFE_INTEGER:
        raise DataIntegrityError(f"{field}: {number} exceeds the safe integer range")
    if non_negative and number < 0:
        raise DataIntegrityError(f"{field}: {number} must not be negative")
    return number


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1"}
    return bool(value)


@dataclass(slots=True)
class NFTMetadata:
    token_id: int
    metadata_uri: str
    points: int
    tier: str
    expiry_time: int
    exists: bool

    @classmethod
    def from_chain(cls, payload: Mapping[str, Any]) -> "NFTMetadata":
        return cls(
            token_id=checked_int(payload.get("tokenId", 0), field="tokenId"),
            metadata_uri=str(payload.get("metadataURI") or ""),
            points=checked_int(payload.get("points", 0), field="points"),
            tier=str(payload.get("tier") or ""),
            expiry_time=checked_int(payload.get("expiryTime", 0), field="expiryTime"),
            exists=_as_bool(payload.get("exists", False)),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "tokenId": self.token_id,
            "metadataURI": self.metadata_uri,
            "points": self.points,
            "tier": self.tier,
            "expiryTime": self.expiry_time,
            "exists": self.exists,
        }


@dataclass(slots=True)
class FreeWashCoupon:
    available: bool
    used: bool
    expiry_time: int

    @classmethod
    def from_chain(cls, payload: Mapping[str, Any]) -> "FreeWashCoupon":
        return cls(
            available=_as_bool(payload.get("available", False)),
            used=_as_bool(payload.get("used", False)),
            expiry_time=checked_int(payload.get("expiryTime", 0), field="expiryTime"),
        )

    def to_payload(self) -> dict[str, Any]:
        return {"available": self.available, "used": self.used, "expiryTime": self.expiry_time}


@dataclass(slots=True)
class ActivityEntry:
    event_type: str
    user: str
    timestamp: int
    data: str

    @classmethod
    def from_chain(cls, payload: Mapping[str, Any]) -> "ActivityEntry":
        return cls(
            event_type=str(payload.get("eventType") or ""),
            user=str(payload.get("user") or "").lower(),
            timestamp=checked_int(payload.get("timestamp", 0), field="timestamp"),
            data=str(payload.get("data") or ""),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type,
            "user": self.user,
            "timestamp": self.timestamp,
            "data": self.data,
        }


@dataclass(slots=True)
class ActiveFreeWash:
    address: str
    expiry_time: int

    @classmethod
    def from_chain(cls, payload: Mapping[str, Any]) -> "ActiveFreeWash":
        return cls(
            address=str(payload.get("address") or "").lower(),
            expiry_time=checked_int(payload.get("expiryTime", 0), field="expiryTime"),
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


__all__ = [
    "MAX_SAFE_INTEGER",
    "ActiveFreeWash",
    "ActivityEntry",
    "FreeWashCoupon",
    "NFTMetadata",
    "checked_int",
]
