"""Wash transaction records mirrored from on-chain activity."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Enum as SqlEnum, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID

from agowash_api.db.base import Base


class VehicleTypeEnum(str, Enum):
    MOTOR_SMALL = "Motor Kecil"
    MOTOR_MEDIUM = "Motor Sedang"
    MOTOR_LARGE = "Motor Besar"
    CAR_SMALL = "Mobil Kecil"
    CAR_MEDIUM = "Mobil Sedang"
    CAR_LARGE = "Mobil Besar"


class ServiceTypeEnum(str, Enum):
    REGULAR = "Reguler"
    PREMIUM = "Premium"
    BODY_ONLY = "Body Only"


class WashTransactionStatus(str, Enum):
    """Local lifecycle of a transaction record; pending never outlives a request."""

    PENDING = "pending"
    CONFIRMED = "confirmed"


class WashTransaction(Base):
    __tablename__ = "wash_transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_address = Column(String(42), nullable=False, index=True)
    service_date = Column(String(10), nullable=False, index=True)
    vehicle_type = Column(String, nullable=False)
    service_type = Column(String, nullable=False)
    price = Column(Integer, nullable=False)
    status = Column(
        SqlEnum(WashTransactionStatus, name="wash_transaction_status"),
        nullable=False,
        default=WashTransactionStatus.PENDING,
    )
    recorded_on_chain = Column(Boolean, nullable=False, default=False, server_default="false")
    chain_tx_ref = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
