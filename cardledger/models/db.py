"""
SQLAlchemy ORM models for persistent storage.

The ledger is a flat key-value state: one row per key, the value being the
serialized record bytes. No secondary indexes beyond the primary key.
"""

from datetime import datetime

from sqlalchemy import DateTime, LargeBinary, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class LedgerStateDB(Base):
    """
    A single ledger key and its current value.

    Every entity (card, template, shop ledger, user, shop, registry index)
    is stored as one row.
    """

    __tablename__ = "ledger_state"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[bytes] = mapped_column(LargeBinary)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<LedgerStateDB(key={self.key}, size={len(self.value)})>"
