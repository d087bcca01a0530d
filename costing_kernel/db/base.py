"""
Module: costing_kernel.db.base
Responsibility: Declarative base for the production costing tables.
Architecture position: Kernel > DB.  Imported by every model module; MUST NOT
    import from models/, domain/ or outer layers.

Invariants enforced:
    - Every row has a String(64) primary key.  Production records arrive
      with ids assigned by the host ERP; work log ids are derived from
      (item, worker, date).  A uuid4 string is generated only when no id
      is given.
    - Money columns are Numeric(38, 9) through the annotation map; float
      never reaches the database.
    - Constraint names follow one naming convention, so the same schema
      migrates identically on PostgreSQL and SQLite.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import BigInteger, Date, DateTime, MetaData, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

ID_LENGTH = 64

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """Declarative base: string ids and the costing column type map."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        date: Date(),
        str: String(255),
        int: BigInteger,
    }

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=new_id)


class TrackedBase(Base):
    """Adds database-maintained ``created_at`` / ``updated_at`` columns."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False,
    )
