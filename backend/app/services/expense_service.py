"""
services/expense_service.py — expense use cases.

Every write runs the split calculator, so the stored splits of an expense
always add up to its amount exactly.

Authorization rules:
  - Create, list, get: caller must be a member of the group (403)
  - Update, delete:    caller must be the payer (403)

Participants:
  - On create, an explicit `splits` list names the participants by member id;
    without it an equal split covers every current member.
  - On update, new explicit splits are resolved against the current members
    and the expense's existing participants, so a member who has left the
    group can still be re-weighted.
    Without them the expense keeps its existing participants, including any
    that have since left the group, and their stored percentages or amounts.

Payer: defaults to the caller and must be a registered member of the group.

Layer rules:
  - No Flask imports. Callers pass a CallerContext and a session.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy.orm import Session

from backend.app.core import identity, split_calculator
from backend.app.core.caller import CallerContext
from backend.app.errors import (
    AuthorizationError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from backend.app.models.expense import Category, Expense, SplitPolicy
from backend.app.models.group import Group
from backend.app.models.member import Member
from backend.app.models.split import Split
from backend.app.services import store
from backend.app.services.group_service import find_registered_member, require_member

logger = logging.getLogger(__name__)


class Participant(NamedTuple):
    """Identity snapshot of one person taking part in an expense."""

    member_id: int
    user_id: int | None
    display_name: str


# ── Private helpers ────────────────────────────────────────────────────────

def _participant_of_member(member: Member) -> Participant:
    return Participant(member.id, member.user_id, member.display_name)


def _participant_of_split(split: Split) -> Participant:
    return Participant(split.member_id, split.user_id, split.display_name)


def _resolve_split_members(
        candidates: dict[int, Participant],
        raw_splits: list[dict],
) -> list[Participant]:
    """Maps each requested member_id onto a known participant, in request order."""
    participants = []
    for raw in raw_splits:
        participant = candidates.get(raw["member_id"])
        if participant is None:
            raise NotFoundError(
                ErrorCode.MEMBER_NOT_FOUND,
                f"Member {raw['member_id']} is not part of this group.",
                field="splits",
            )
        participants.append(participant)
    return participants


def _explicit_values(policy: SplitPolicy, raw_splits: list[dict]) -> dict[int, object]:
    """{member_id: percentage or amount} taken from request splits."""
    field = "percentage" if policy is SplitPolicy.PERCENTAGE else "amount"
    return {raw["member_id"]: raw.get(field) for raw in raw_splits}


def _stored_values(policy: SplitPolicy, splits: list[Split]) -> dict[int, Decimal]:
    """{member_id: percentage or amount} taken from the splits already stored."""
    if policy is SplitPolicy.PERCENTAGE:
        return {s.member_id: s.owed_percentage for s in splits}
    return {s.member_id: s.owed_amount for s in splits}


def _build_splits(
        amount,
        policy: SplitPolicy,
        participants: list[Participant],
        values_by_member: dict[int, object] | None,
) -> list[Split]:
    """Runs the split calculator and turns its result into Split rows."""
    by_key = {identity.split_key(p): p for p in participants}
    keys = [identity.split_key(p) for p in participants]

    explicit = None
    if policy is not SplitPolicy.EQUAL and values_by_member is not None:
        explicit = {
            identity.split_key(p): values_by_member.get(p.member_id)
            for p in participants
        }

    computed = split_calculator.compute(amount, policy, keys, explicit)

    rows = []
    for position, entry in enumerate(computed):
        participant = by_key[entry["member_key"]]
        rows.append(
            Split(
                member_id=participant.member_id,
                user_id=participant.user_id,
                display_name=participant.display_name,
                owed_amount=entry["owed_amount"],
                owed_percentage=entry["owed_percentage"],
                position=position,
            )
        )
    return rows


def _validate_payer(group: Group, paid_by_user_id: int) -> None:
    if find_registered_member(group, paid_by_user_id) is None:
        raise ValidationError(
            ErrorCode.PAYER_NOT_MEMBER,
            f"User {paid_by_user_id} is not a registered member of group {group.id}.",
            field="paid_by_user_id",
        )


def _require_payer(expense: Expense, caller: CallerContext, action: str) -> None:
    if expense.paid_by_user_id != caller.caller_id:
        raise AuthorizationError(f"Only the payer may {action} this expense.")


# ── Public service functions ───────────────────────────────────────────────

def create_expense(
        group_id: int,
        caller: CallerContext,
        data: dict,
        session: Session,
) -> Expense:
    """
    Records a new expense with its computed splits.

    Args:
        data: validated dict from CreateExpenseSchema.

    Raises:
      NotFoundError(GROUP_NOT_FOUND / MEMBER_NOT_FOUND)
      AuthorizationError — caller is not a member
      ValidationError    — payer not a member, or the split is rejected
    """
    group = store.load_group(group_id, session)
    require_member(group, caller.caller_id)

    paid_by_user_id = data.get("paid_by_user_id") or caller.caller_id
    _validate_payer(group, paid_by_user_id)

    policy = SplitPolicy(data.get("split_policy", SplitPolicy.EQUAL))
    raw_splits = data.get("splits") or []

    if raw_splits:
        candidates = {m.id: _participant_of_member(m) for m in group.members}
        participants = _resolve_split_members(candidates, raw_splits)
        values = _explicit_values(policy, raw_splits)
    else:
        participants = [_participant_of_member(m) for m in group.members]
        values = None

    splits = _build_splits(data["amount"], policy, participants, values)

    expense = Expense(
        group_id=group.id,
        paid_by_user_id=paid_by_user_id,
        description=data["description"],
        amount=data["amount"],
        category=data.get("category", Category.OTHER),
        split_policy=policy,
        splits=splits,
    )
    if data.get("expense_date") is not None:
        expense.expense_date = data["expense_date"]

    store.save(expense, session)
    session.refresh(expense)

    logger.info(
        "Expense %s created in group %s: %s split %s ways (%s)",
        expense.id, group.id, expense.amount, len(splits), policy.value,
    )
    return expense


def list_expenses(
        group_id: int,
        caller: CallerContext,
        session: Session,
) -> list[Expense]:
    group = store.load_group(group_id, session)
    require_member(group, caller.caller_id)
    return store.load_expenses_for_group(group.id, session)


def get_expense(
        expense_id: int,
        caller: CallerContext,
        session: Session,
) -> Expense:
    expense = store.load_expense(expense_id, session)
    require_member(expense.group, caller.caller_id)
    return expense


def recompute_splits(
        expense: Expense,
        members,
        new_amount=None,
        new_policy=None,
        new_explicit_splits: list[dict] | None = None,
) -> list[Split]:
    """
    Computes the split rows an expense should have after an edit.

    Pure: reads `expense` and `members` but changes neither, and never touches
    the session. Unchanged inputs fall back to the expense's current values.

    Args:
        members:             the group's current members. New explicit
                             splits may name these or anyone already
                             sharing the expense.
        new_amount:          replacement amount, or None.
        new_policy:          replacement SplitPolicy, or None.
        new_explicit_splits: request-shaped splits
                             ([{"member_id", "percentage"?, "amount"?}]), or
                             None to keep the current participants.

    Returns:
        New, unattached Split rows in participant order.
    """
    amount = new_amount if new_amount is not None else expense.amount
    policy = SplitPolicy(new_policy if new_policy is not None else expense.split_policy)

    if new_explicit_splits:
        # Past participants stay addressable after leaving the group.
        candidates = {m.id: _participant_of_member(m) for m in members}
        for split in expense.splits:
            candidates.setdefault(split.member_id, _participant_of_split(split))
        participants = _resolve_split_members(candidates, new_explicit_splits)
        values = _explicit_values(policy, new_explicit_splits)
    else:
        current = list(expense.splits)
        participants = [_participant_of_split(s) for s in current]
        values = _stored_values(policy, current)

    return _build_splits(amount, policy, participants, values)


def update_expense(
        expense_id: int,
        caller: CallerContext,
        data: dict,
        session: Session,
) -> Expense:
    """
    Partially updates an expense. Splits are recomputed whenever the amount,
    the policy or the explicit splits change.

    Raises:
      NotFoundError(EXPENSE_NOT_FOUND / MEMBER_NOT_FOUND)
      AuthorizationError — caller is not a member, or not the payer
      ValidationError    — new payer not a member, or the split is rejected
    """
    expense = store.load_expense(expense_id, session)
    group = expense.group
    require_member(group, caller.caller_id)
    _require_payer(expense, caller, "edit")

    if "description" in data:
        expense.description = data["description"]
    if "category" in data:
        expense.category = data["category"]
    if "expense_date" in data:
        expense.expense_date = data["expense_date"]
    if "paid_by_user_id" in data:
        _validate_payer(group, data["paid_by_user_id"])
        expense.paid_by_user_id = data["paid_by_user_id"]

    if any(key in data for key in ("amount", "split_policy", "splits")):
        splits = recompute_splits(
            expense,
            group.members,
            new_amount=data.get("amount"),
            new_policy=data.get("split_policy"),
            new_explicit_splits=data.get("splits"),
        )
        if data.get("amount") is not None:
            expense.amount = data["amount"]
        if data.get("split_policy") is not None:
            expense.split_policy = SplitPolicy(data["split_policy"])
        store.replace_splits(expense, splits, session)

    expense.updated_at = datetime.now(timezone.utc)
    session.flush()
    session.refresh(expense)

    logger.info("Expense %s updated by user %s", expense.id, caller.caller_id)
    return expense


def delete_expense(
        expense_id: int,
        caller: CallerContext,
        session: Session,
) -> None:
    """
    Hard-deletes an expense and its splits. Balances simply stop counting it.

    Raises:
      NotFoundError(EXPENSE_NOT_FOUND)
      AuthorizationError — caller is not a member, or not the payer
    """
    expense = store.load_expense(expense_id, session)
    require_member(expense.group, caller.caller_id)
    _require_payer(expense, caller, "delete")

    store.delete_expense(expense, session)
    logger.info("Expense %s deleted by user %s", expense_id, caller.caller_id)
