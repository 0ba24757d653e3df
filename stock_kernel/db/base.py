"""
Module: stock_kernel.db.base
Responsibility: Declarative base for the stock ORM models: string-stored UUID
    keys, the column type for each Python annotation, and the ``TrackedBase``
    mixin carrying who wrote a row and when.
Architecture position: Kernel > DB.  Imported by every model module; imports
    nothing from models/, services/, selectors/ or outer layers.

Invariants enforced:
    - Quantities, unit costs and money annotated as ``Decimal`` are stored
      as Numeric(38, 9).  Nothing in the ledger is a float column.
    - Timestamps are timezone-aware, so period bounds compare in UTC on
      both SQLite and PostgreSQL.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

QUANTITY_PRECISION = 38
QUANTITY_SCALE = 9


class UUIDString(TypeDecorator):
    """UUID held in a String(36) column; accepts UUIDs or their string form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value if isinstance(value, PyUUID) else PyUUID(str(value)))

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class Base(DeclarativeBase):
    """Declarative base; every table gets a uuid4 ``id`` primary key."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(QUANTITY_PRECISION, QUANTITY_SCALE),
        datetime: DateTime(timezone=True),
        date: Date,
        PyUUID: UUIDString(),
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base for rows written through the services.

    ``created_at`` falls back to the database clock; the mutation service
    always sets it from its injected Clock so movement timestamps are
    reproducible.  ``created_by`` is free text and stays empty for rows
    loaded from outside the service layer.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False,
    )
    created_by: Mapped[str | None] = mapped_column(String(255))


UUID = PyUUID
