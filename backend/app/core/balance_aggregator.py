"""
core/balance_aggregator.py — folds a group's expenses into one net balance
per member.

    aggregate(members, expenses, owner=None) -> list[BalanceRecord]

Algorithm:
  1. One zeroed record per distinct member key, in member order, plus the
     group owner when the owner is not already listed.
  2. Each expense credits its full amount to the payer's total_paid.
  3. Each split adds its owed_amount to the participant's total_owed.
  4. balance = total_owed − total_paid (positive: owes the group;
     negative: is owed by the group).

Payers and participants that are no longer members (e.g. removed after the
expense was logged) get a record on demand, named from the payer's user or
the split's display-name snapshot. When no name is available at all the
ConsistencyError is logged and a placeholder name is used; the money is
always counted.

Guarantees, given that every expense's splits add up to its amount:
  - sum(record.balance) == 0 exactly
  - the result does not depend on expense order
  - running it twice on the same input gives the same result
  - the inputs are never mutated

Inputs are read through fixed attributes only:
  member   → id, user_id, display_name, kind
  expense  → amount, paid_by_user_id, payer (→ username, may be None), splits
  split    → member_id, user_id, display_name, owed_amount
  owner    → id, username
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from backend.app.core import identity
from backend.app.core.money import ZERO
from backend.app.errors import ConsistencyError
from backend.app.models.member import MemberKind

logger = logging.getLogger(__name__)

UNKNOWN_MEMBER_NAME = "Unknown member"

REGISTERED = MemberKind.REGISTERED.value
GUEST      = MemberKind.GUEST.value


@dataclass
class BalanceRecord:
    member_key: str
    display_name: str
    kind: str
    user_id: int | None = None
    member_id: int | None = None
    total_paid: Decimal = field(default=ZERO)
    total_owed: Decimal = field(default=ZERO)

    @property
    def balance(self) -> Decimal:
        return self.total_owed - self.total_paid

    def to_dict(self) -> dict:
        return {
            "member_key":   self.member_key,
            "member_id":    self.member_id,
            "user_id":      self.user_id,
            "display_name": self.display_name,
            "kind":         self.kind,
            "total_paid":   self.total_paid,
            "total_owed":   self.total_owed,
            "balance":      self.balance,
        }


def aggregate(members: Iterable, expenses: Iterable, owner=None) -> list[BalanceRecord]:
    records: dict[str, BalanceRecord] = {}

    for member in identity.unique_members(members):
        key = identity.member_key(member)
        records[key] = BalanceRecord(
            member_key=key,
            display_name=member.display_name,
            kind=MemberKind(member.kind).value,
            user_id=member.user_id,
            member_id=member.id,
        )

    if owner is not None:
        key = identity.user_key(owner.id)
        if key not in records:
            records[key] = BalanceRecord(
                member_key=key,
                display_name=owner.username,
                kind=REGISTERED,
                user_id=owner.id,
            )

    for expense in expenses:
        payer = _payer_record(records, expense)
        payer.total_paid += expense.amount

        for split in expense.splits:
            participant = _participant_record(records, split)
            participant.total_owed += split.owed_amount

    return list(records.values())


def _payer_record(records: dict[str, BalanceRecord], expense) -> BalanceRecord:
    key = identity.payer_key(expense)
    if key not in records:
        username = expense.payer.username if expense.payer is not None else None
        records[key] = BalanceRecord(
            member_key=key,
            display_name=_name_or_placeholder(key, username),
            kind=REGISTERED,
            user_id=expense.paid_by_user_id,
        )
    return records[key]


def _participant_record(records: dict[str, BalanceRecord], split) -> BalanceRecord:
    key = identity.split_key(split)
    if key not in records:
        records[key] = BalanceRecord(
            member_key=key,
            display_name=_name_or_placeholder(key, split.display_name),
            kind=REGISTERED if split.user_id is not None else GUEST,
            user_id=split.user_id,
            member_id=split.member_id,
        )
    return records[key]


def _name_or_placeholder(key: str, name: str | None) -> str:
    try:
        return _require_name(key, name)
    except ConsistencyError as exc:
        logger.error("%s; counting it as %r", exc.message, UNKNOWN_MEMBER_NAME)
        return UNKNOWN_MEMBER_NAME


def _require_name(key: str, name: str | None) -> str:
    if not name or not name.strip():
        raise ConsistencyError(f"No member or display name recorded for {key}")
    return name
