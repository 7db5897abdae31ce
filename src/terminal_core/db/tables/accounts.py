"""SQLAlchemy ORM models for the terminal_accounts schema."""

from sqlalchemy import Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from terminal_core.db.base import Base

SCHEMA = "terminal_accounts"


class AccountRow(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("name"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False, default="trader")
    balance: Mapped[float] = mapped_column(Numeric, nullable=False, default=0)
    last_bonus_percent: Mapped[float] = mapped_column(Numeric, nullable=False, default=0)
    last_seen_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
