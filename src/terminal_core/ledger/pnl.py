"""Sizing and P&L calculations — pure functions, no DB."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from terminal_core.errors import BalanceTooLow, InvalidInput
from terminal_core.models.position import Position


def to_amount(value: object, field: str = "amount") -> Decimal:
    """Coerce *value* to a finite, strictly positive Decimal or raise InvalidInput."""
    if isinstance(value, bool):
        raise InvalidInput(f"Enter a valid {field}")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"Enter a valid {field}") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidInput(f"Enter a valid {field}")
    return amount


def to_percent(value: object, field: str = "bonus percent") -> Decimal:
    """Coerce a percentage; blank means 0, negatives are rejected."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return Decimal("0")
    if isinstance(value, bool):
        raise InvalidInput(f"Enter a valid {field}")
    try:
        pct = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"Enter a valid {field}") from None
    if not pct.is_finite() or pct < 0:
        raise InvalidInput(f"Enter a valid {field}")
    return pct


def calculate_pnl(
    side: str,
    entry_price: Decimal,
    exit_price: Decimal,
    quantity: Decimal,
) -> Decimal:
    """Calculate P&L of a position at *exit_price*.

    LONG:  (exit - entry) * qty
    SHORT: (entry - exit) * qty
    """
    if side == "LONG":
        return (exit_price - entry_price) * quantity
    else:
        return (entry_price - exit_price) * quantity


def mark_to_market(position: Position, current_price: Decimal) -> Decimal:
    """Unrealised P&L of *position* at *current_price*. Does not mutate."""
    return calculate_pnl(
        position.side, position.entry_price, current_price, position.quantity,
    )


def unrealised_total(
    positions: Iterable[Position],
    prices: Mapping[str, Decimal],
) -> Decimal:
    """Sum mark-to-market over open positions.

    A symbol with no known price is valued at its entry price (zero P&L).
    """
    total = Decimal("0")
    for pos in positions:
        if pos.status != "OPEN":
            continue
        total += mark_to_market(pos, prices.get(pos.symbol, pos.entry_price))
    return total


def close_proceeds(quantity: Decimal, entry_price: Decimal, pnl: Decimal) -> Decimal:
    """Amount returned to the balance on close: original notional plus P&L."""
    return quantity * entry_price + pnl


def bonus_amount(base_amount: Decimal, bonus_percent: Decimal) -> Decimal:
    """bonus = base * pct / 100"""
    return base_amount * bonus_percent / 100


def _floor(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


def size_originated_trade(
    balance: Decimal,
    price: Decimal,
    trade_size_pct: float = 0.10,
) -> Decimal:
    """Quantity for a trader-originated position.

    quantity = floor(balance * trade_size_pct / price)

    Raises BalanceTooLow when that rounds down to zero.
    """
    quantity = _floor(balance * Decimal(str(trade_size_pct)) / price)
    if quantity < 1:
        raise BalanceTooLow("Balance too low to open position.")
    return quantity


def size_copy_trade(
    suggested_quantity: Decimal,
    balance: Decimal,
    price: Decimal,
    headroom_pct: float = 0.90,
) -> tuple[Decimal, bool]:
    """Quantity for a copy trade and whether it was resized.

    The signal's quantity is used as-is when affordable; otherwise
    quantity = floor(balance * headroom_pct / price). Raises BalanceTooLow
    when the resized quantity is zero.
    """
    if suggested_quantity * price <= balance:
        return suggested_quantity, False
    quantity = _floor(balance * Decimal(str(headroom_pct)) / price)
    if quantity <= 0:
        raise BalanceTooLow("Balance too low to execute.")
    return quantity, True
