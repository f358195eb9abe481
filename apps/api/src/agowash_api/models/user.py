from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from agowash_api.db.base import Base


class User(Base):
    """Registered loyalty member keyed by wallet address."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_address = Column(String(42), nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    motorbike_type = Column(String, nullable=False)
    date_of_birth = Column(String(10), nullable=False)
    email = Column(String, nullable=False)
    photo_url = Column(String, nullable=True)
    metadata_uri = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
