"""
services/store.py — the persistence collaborator.

Every read and write the services need goes through here, so the use-case
code in the other services stays a sequence of: load, check, compute, save.

Layer rules:
  - No Flask imports. A SQLAlchemy session is passed in.
  - Commits are the route's responsibility — only flush here.
  - Missing rows raise NotFoundError; nothing here returns None for "absent".
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backend.app.errors import ErrorCode, NotFoundError
from backend.app.models.expense import Expense
from backend.app.models.group import Group
from backend.app.models.member import Member
from backend.app.models.split import Split
from backend.app.models.user import User


def load_group(group_id: int, session: Session) -> Group:
    group = session.get(Group, group_id)
    if group is None:
        raise NotFoundError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
        )
    return group


def load_user(user_id: int, session: Session, field: str | None = None) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} does not exist.",
            field=field,
        )
    return user


def load_expense(expense_id: int, session: Session) -> Expense:
    expense = session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError(
            ErrorCode.EXPENSE_NOT_FOUND,
            f"Expense {expense_id} does not exist.",
        )
    return expense


def load_expenses_for_group(group_id: int, session: Session) -> list[Expense]:
    """All expenses of a group, newest first, with splits and payer preloaded."""
    stmt = (
        select(Expense)
        .where(Expense.group_id == group_id)
        .options(selectinload(Expense.splits), selectinload(Expense.payer))
        .order_by(
            Expense.expense_date.desc(),
            Expense.created_at.desc(),
            Expense.id.desc(),
        )
    )
    return list(session.execute(stmt).scalars().all())


def load_groups_for_user(user_id: int, session: Session) -> list[Group]:
    """Groups the user is currently a registered member of, oldest first."""
    stmt = (
        select(Group)
        .join(Member, Member.group_id == Group.id)
        .where(Member.user_id == user_id)
        .order_by(Group.created_at.asc(), Group.id.asc())
    )
    return list(session.execute(stmt).scalars().all())


def save(obj, session: Session):
    """Adds `obj` (group, member or expense) and flushes so ids are populated."""
    session.add(obj)
    session.flush()
    return obj


def replace_splits(expense: Expense, splits: list[Split], session: Session) -> None:
    """
    Swaps an expense's split rows for a new set.

    The old rows are flushed out first: the unit of work inserts before it
    deletes, which would trip UNIQUE(expense_id, member_id).
    """
    expense.splits.clear()
    session.flush()
    expense.splits.extend(splits)
    session.flush()


def delete_expense(expense: Expense, session: Session) -> None:
    """Hard-deletes an expense; its splits go with it."""
    session.delete(expense)
    session.flush()


def delete_group(group: Group, session: Session) -> None:
    """Hard-deletes a group with its members, expenses and splits."""
    session.delete(group)
    session.flush()


def delete_member(member: Member, session: Session) -> None:
    group = member.group
    if group is not None and member in group.members:
        group.members.remove(member)
    session.delete(member)
    session.flush()
