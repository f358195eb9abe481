"""Initial loyalty schema: members, wash transactions, service prices.

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.dialects.postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_address", sa.String(length=42), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("motorbike_type", sa.String(), nullable=False),
        sa.Column("date_of_birth", sa.String(length=10), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("photo_url", sa.String(), nullable=True),
        sa.Column("metadata_uri", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_users_user_address", "users", ["user_address"], unique=True)

    status_enum = sa.Enum("PENDING", "CONFIRMED", name="wash_transaction_status")
    op.create_table(
        "wash_transactions",
        sa.Column("id", sa.dialects.postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_address", sa.String(length=42), nullable=False),
        sa.Column("service_date", sa.String(length=10), nullable=False),
        sa.Column("vehicle_type", sa.String(), nullable=False),
        sa.Column("service_type", sa.String(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("status", status_enum, nullable=False),
        sa.Column("recorded_on_chain", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("chain_tx_ref", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_wash_transactions_user_address", "wash_transactions", ["user_address"])
    op.create_index("ix_wash_transactions_service_date", "wash_transactions", ["service_date"])
    op.create_index("ix_wash_transactions_created_at", "wash_transactions", ["created_at"])

    op.create_table(
        "service_prices",
        sa.Column("id", sa.dialects.postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("vehicle", sa.String(length=16), nullable=False),
        sa.Column("service_type", sa.String(length=16), nullable=False),
        sa.Column("price_small", sa.Integer(), nullable=False),
        sa.Column("price_medium", sa.Integer(), nullable=False),
        sa.Column("price_large", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("vehicle", "service_type", name="uq_service_prices_vehicle_service"),
    )


def downgrade() -> None:
    op.drop_table("service_prices")
    op.drop_index("ix_wash_transactions_created_at", table_name="wash_transactions")
    op.drop_index("ix_wash_transactions_service_date", table_name="wash_transactions")
    op.drop_index("ix_wash_transactions_user_address", table_name="wash_transactions")
    op.drop_table("wash_transactions")
    sa.Enum(name="wash_transaction_status").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_users_user_address", table_name="users")
    op.drop_table("users")
