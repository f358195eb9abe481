from uuid import uuid4

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID

from agowash_api.db.base import Base


class ServicePrice(Base):
    """Price list entry per vehicle class and service type."""

    __tablename__ = "service_prices"
    __table_args__ = (
        UniqueConstraint("vehicle", "service_type", name="uq_service_prices_vehicle_service"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    vehicle = Column(String(16), nullable=False)
    service_type = Column(String(16), nullable=False)
    price_small = Column(Integer, nullable=False)
    price_medium = Column(Integer, nullable=False)
    price_large = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
