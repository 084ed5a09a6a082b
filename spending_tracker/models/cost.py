from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, UTCDateTime, utcnow


class CostEntry(Base):
    """A single logged expense; ``id`` doubles as the creation sequence."""

    __tablename__ = "costs"

    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    occurred_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False, index=True
    )
    amount_minor: Mapped[int] = mapped_column(
        BigInteger, nullable=False, doc="Amount in minor currency units (cents)."
    )

    category: Mapped["Category"] = relationship(back_populates="costs")


from .category import Category  # noqa: E402  # avoid circular import at runtime
