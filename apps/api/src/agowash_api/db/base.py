from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# Constraint names follow the same scheme as the hand-written migrations.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for the loyalty models; tables are named explicitly."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
