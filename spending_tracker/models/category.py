from __future__ import annotations

from sqlalchemy import BigInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

ALIAS_MAX_LENGTH = 64
NAME_MAX_LENGTH = 255


class Category(Base):
    """Spending category owned by one chat account."""

    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("account_id", "alias", name="uq_categories_account_alias"),)

    account_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    alias: Mapped[str] = mapped_column(String(ALIAS_MAX_LENGTH), nullable=False)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)

    costs: Mapped[list["CostEntry"]] = relationship(
        back_populates="category", cascade="all, delete-orphan", passive_deletes=True
    )

    def __str__(self) -> str:
        return f"{self.name} ({self.alias})"


from .cost import CostEntry  # noqa: E402  # avoid circular import during definition
