"""
core/identity.py — Member Identity Resolver.

The single place that decides which key a member, a payer or a split
participant aggregates under. Money is summed per key, so two references to
the same person must produce the same key and two different people never may.

Rules:
  - A registered member (user_id set) is keyed by user: "user:<user_id>".
  - Anyone else is keyed by member id: "member:<member_id>".
  - A payer is always a registered user: "user:<paid_by_user_id>".
  - A split is keyed by its user_id snapshot when present, otherwise by its
    member_id.

The "user:" / "member:" namespaces keep user 7 and guest member 7 apart.

Inputs are read through fixed attributes only:
  member   → id, user_id
  expense  → paid_by_user_id
  split    → member_id, user_id

Pure functions. No Flask, no database.
"""

from __future__ import annotations

from collections.abc import Iterable

USER_NAMESPACE   = "user"
MEMBER_NAMESPACE = "member"


def user_key(user_id: int) -> str:
    return f"{USER_NAMESPACE}:{user_id}"


def guest_key(member_id: int) -> str:
    return f"{MEMBER_NAMESPACE}:{member_id}"


def member_key(member) -> str:
    """Key for a group member. Registered members resolve through their user id."""
    if member.user_id is not None:
        return user_key(member.user_id)
    return guest_key(member.id)


def payer_key(expense) -> str:
    return user_key(expense.paid_by_user_id)


def split_key(split) -> str:
    """Key for one split row, using the identity snapshot stored on the split."""
    if split.user_id is not None:
        return user_key(split.user_id)
    return guest_key(split.member_id)


def unique_members(members: Iterable) -> list:
    """
    Drops members whose key was already seen, keeping the first occurrence.

    The same registered user listed twice (e.g. once as creator, once as an
    explicit member) collapses to one entry.
    """
    seen: set[str] = set()
    result = []
    for member in members:
        key = member_key(member)
        if key in seen:
            continue
        seen.add(key)
        result.append(member)
    return result
