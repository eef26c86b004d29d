"""
core/settlement_presenter.py — classifies a balance for display.

    balance > 0   → owes     (amount = balance)
    balance < 0   → owed     (amount = −balance)
    balance == 0  → settled  (amount = 0.00)

Advisory only: nothing here moves money or pairs members up.
"""

from __future__ import annotations

import enum

from backend.app.core.money import ZERO, round_money


class SettlementState(str, enum.Enum):
    OWES    = "owes"
    OWED    = "owed"
    SETTLED = "settled"


def present(record) -> dict:
    """Returns {"state": SettlementState, "amount": Decimal} for a BalanceRecord."""
    balance = record.balance
    if balance > 0:
        return {"state": SettlementState.OWES, "amount": round_money(balance)}
    if balance < 0:
        return {"state": SettlementState.OWED, "amount": round_money(-balance)}
    return {"state": SettlementState.SETTLED, "amount": ZERO}


def describe(record) -> str:
    """One-line statement, e.g. "Alice owes 12.50"."""
    view = present(record)
    if view["state"] is SettlementState.OWES:
        return f"{record.display_name} owes {view['amount']}"
    if view["state"] is SettlementState.OWED:
        return f"{record.display_name} gets back {view['amount']}"
    return f"{record.display_name} is settled up"
