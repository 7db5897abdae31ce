"""SQLAlchemy ORM models for the terminal_positions schema."""

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from terminal_core.db.base import Base

SCHEMA = "terminal_positions"


class PositionRow(Base):
    __tablename__ = "positions"
    __table_args__ = {"schema": SCHEMA}

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("terminal_accounts.accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    symbol: Mapped[str] = mapped_column(Text, nullable=False)
    side: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[float] = mapped_column(Numeric, nullable=False)
    entry_price: Mapped[float] = mapped_column(Numeric, nullable=False)
    opened_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="OPEN")
    is_copied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    signal_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("terminal_signals.signals.id", ondelete="SET NULL"),
        nullable=True,
    )
    exit_price: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    closed_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    realised_pnl: Mapped[float | None] = mapped_column(Numeric, nullable=True)
