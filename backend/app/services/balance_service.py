"""
services/balance_service.py — group summary: totals plus one net balance and
settlement status per member.

summarize() is the single entry point that turns a group and its expenses
into balances; it delegates the arithmetic to core.balance_aggregator and the
owes / owed / settled wording to core.settlement_presenter.

Balances are advisory. They are recomputed from the stored expenses on every
request and never persisted; there is no pairwise "who pays whom" plan.

Layer rules:
  - No Flask imports.
  - Read-only: nothing is added, flushed or committed.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from backend.app.core import balance_aggregator, settlement_presenter
from backend.app.core.caller import CallerContext
from backend.app.core.money import ZERO, sum_money
from backend.app.services import store
from backend.app.services.group_service import require_member

logger = logging.getLogger(__name__)


def summarize(group, expenses) -> dict:
    """
    Builds the summary for `group` from `expenses`.

    Returns:
        {
          "total_expenses": Decimal,
          "expense_count":  int,
          "member_count":   int,     # current members
          "balances":       [ {member_key, member_id, user_id, display_name,
                               kind, total_paid, total_owed, balance,
                               status, settle_amount, summary}, ... ],
          "balance_sum":    Decimal, # always 0.00
        }
    """
    expenses = list(expenses)
    records = balance_aggregator.aggregate(
        group.members,
        expenses,
        owner=group.owner,
    )

    balances = []
    for record in records:
        view = settlement_presenter.present(record)
        balances.append({
            **record.to_dict(),
            "status":        view["state"].value,
            "settle_amount": view["amount"],
            "summary":       settlement_presenter.describe(record),
        })

    balance_sum = sum_money(record.balance for record in records)
    if balance_sum != ZERO:
        # Only reachable if stored splits stopped matching their expense amounts.
        logger.error(
            "Balances for group %s do not net to zero (sum=%s)",
            group.id, balance_sum,
        )

    return {
        "total_expenses": sum_money(e.amount for e in expenses),
        "expense_count":  len(expenses),
        "member_count":   len(group.members),
        "balances":       balances,
        "balance_sum":    balance_sum,
    }


def get_group_summary(
        group_id: int,
        caller: CallerContext,
        session: Session,
) -> dict:
    """Loads the group and its expenses, then summarizes them. Members only."""
    group = store.load_group(group_id, session)
    require_member(group, caller.caller_id)
    expenses = store.load_expenses_for_group(group.id, session)

    summary = summarize(group, expenses)
    return {
        "group_id":   group.id,
        "group_name": group.name,
        **summary,
    }
