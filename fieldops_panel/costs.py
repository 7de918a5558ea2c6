"""
Cost engine: per-line and ledger-wide resource cost arithmetic.

A line without a unit cost has no total. That is different from a zero
total and must never render as one.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol

MISSING = "—"


class Costed(Protocol):
    quantity: Decimal
    unit_cost: Decimal | None


def line_total(quantity: Decimal | int, unit_cost: Decimal | int | None) -> Decimal | None:
    if unit_cost is None:
        return None
    return Decimal(quantity) * Decimal(unit_cost)


def ledger_total(lines: Iterable[Costed]) -> Decimal:
    """Sum of line totals; lines without a unit cost contribute 0."""
    total = Decimal(0)
    for line in lines:
        value = line_total(line.quantity, line.unit_cost)
        if value is not None:
            total += value
    return total


def has_missing_costs(lines: Iterable[Costed]) -> bool:
    return any(line.unit_cost is None for line in lines)


def format_money(amount: Decimal | None, currency: str = "₹") -> str:
    if amount is None:
        return MISSING
    return f"{currency}{amount:,.2f}"
