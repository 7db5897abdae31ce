"""Create terminal_accounts, terminal_signals and terminal_positions schemas.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACCOUNTS = "terminal_accounts"
SIGNALS = "terminal_signals"
POSITIONS = "terminal_positions"


def upgrade() -> None:
    for schema in (ACCOUNTS, SIGNALS, POSITIONS):
        op.execute(f"CREATE SCHEMA IF NOT EXISTS {schema}")

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("role", sa.Text, nullable=False, server_default="trader"),
        sa.Column("balance", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("last_bonus_percent", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("name"),
        sa.CheckConstraint("balance >= 0", name="ck_accounts_balance_non_negative"),
        sa.CheckConstraint("role IN ('broker', 'trader')", name="ck_accounts_role"),
        schema=ACCOUNTS,
    )

    op.create_table(
        "signals",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "broker_id", sa.Integer,
            sa.ForeignKey(f"{ACCOUNTS}.accounts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("symbol", sa.Text, nullable=False),
        sa.Column("side", sa.Text, nullable=False),
        sa.Column("reference_price", sa.Numeric, nullable=False),
        sa.Column("quantity", sa.Numeric, nullable=False),
        sa.Column("rationale", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        schema=SIGNALS,
    )
    op.create_index(
        "ix_signals_created_at", "signals", ["created_at"], schema=SIGNALS,
    )

    op.create_table(
        "positions",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "account_id", sa.Integer,
            sa.ForeignKey(f"{ACCOUNTS}.accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("symbol", sa.Text, nullable=False),
        sa.Column("side", sa.Text, nullable=False),
        sa.Column("quantity", sa.Numeric, nullable=False),
        sa.Column("entry_price", sa.Numeric, nullable=False),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="OPEN"),
        sa.Column("is_copied", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "signal_id", sa.BigInteger,
            sa.ForeignKey(f"{SIGNALS}.signals.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("exit_price", sa.Numeric, nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("realised_pnl", sa.Numeric, nullable=True),
        schema=POSITIONS,
    )
    op.create_index(
        "ix_positions_account_status", "positions", ["account_id", "status"], schema=POSITIONS,
    )


def downgrade() -> None:
    op.drop_index("ix_positions_account_status", table_name="positions", schema=POSITIONS)
    op.drop_table("positions", schema=POSITIONS)
    op.drop_index("ix_signals_created_at", table_name="signals", schema=SIGNALS)
    op.drop_table("signals", schema=SIGNALS)
    op.drop_table("accounts", schema=ACCOUNTS)
    for schema in (POSITIONS, SIGNALS, ACCOUNTS):
        op.execute(f"DROP SCHEMA IF EXISTS {schema}")
