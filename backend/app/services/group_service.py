"""
services/group_service.py — groups and their members.

Authorization rules:
  - Reading a group, adding members:  any current member
  - Removing a member:                the owner may remove anyone but
                                      themselves; a member may remove self
  - Deleting a group:                 owner only
  - Non-members receive 403, not 404, for a group that exists.

Membership rules:
  - The creator becomes the first (registered) member.
  - A registered user appears in a group at most once.
  - Guest names are unique per group, ignoring case.
  - The owner cannot be removed while they own the group.

Removing a member does not touch expense history: splits keep the removed
member's id and name snapshot and still count toward balances.

Layer rules:
  - No Flask imports. Callers pass a CallerContext and a session.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from backend.app.core.caller import CallerContext
from backend.app.errors import (
    AppError,
    AuthorizationError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from backend.app.models.group import Group
from backend.app.models.member import Member, MemberKind
from backend.app.services import store

logger = logging.getLogger(__name__)


# ── Shared helpers ─────────────────────────────────────────────────────────

def find_registered_member(group: Group, user_id: int | None) -> Member | None:
    if user_id is None:
        return None
    return next((m for m in group.members if m.user_id == user_id), None)


def require_member(group: Group, user_id: int) -> Member:
    """Returns the caller's Member row or raises FORBIDDEN (403)."""
    member = find_registered_member(group, user_id)
    if member is None:
        raise AuthorizationError(f"You are not a member of group {group.id}.")
    return member


def serialize_member(member: Member) -> dict:
    return {
        "id":           member.id,
        "user_id":      member.user_id,
        "display_name": member.display_name,
        "kind":         member.kind.value,
        "added_at":     member.added_at.isoformat() if member.added_at else None,
    }


def _build_group_dict(group: Group, with_members: bool = True) -> dict:
    result = {
        "id":            group.id,
        "name":          group.name,
        "owner_user_id": group.owner_user_id,
        "created_at":    group.created_at.isoformat() if group.created_at else None,
        "member_count":  len(group.members),
    }
    if with_members:
        result["members"] = [serialize_member(m) for m in group.members]
    return result


# ── Public service functions ───────────────────────────────────────────────

def create_group(name: str, caller: CallerContext, session: Session) -> dict:
    """Creates a group owned by the caller, with the caller as first member."""
    group = Group(name=name, owner_user_id=caller.caller_id)
    group.members.append(
        Member(
            user_id=caller.caller_id,
            display_name=caller.display_name,
            kind=MemberKind.REGISTERED,
        )
    )
    store.save(group, session)
    session.refresh(group)

    logger.info("User %s created group %s", caller.caller_id, group.id)
    return _build_group_dict(group)


def list_groups(caller: CallerContext, session: Session) -> list[dict]:
    """Groups the caller belongs to, without member lists."""
    return [
        _build_group_dict(group, with_members=False)
        for group in store.load_groups_for_user(caller.caller_id, session)
    ]


def get_group(group_id: int, caller: CallerContext, session: Session) -> dict:
    group = store.load_group(group_id, session)
    require_member(group, caller.caller_id)
    return _build_group_dict(group)


def delete_group(group_id: int, caller: CallerContext, session: Session) -> None:
    """
    Deletes a group together with its members, expenses and splits.

    Raises:
      NotFoundError(GROUP_NOT_FOUND)
      AuthorizationError — caller is not the owner
    """
    group = store.load_group(group_id, session)
    if group.owner_user_id != caller.caller_id:
        raise AuthorizationError("Only the group owner may delete the group.")

    store.delete_group(group, session)
    logger.info("User %s deleted group %s", caller.caller_id, group_id)


def add_member(
        group_id: int,
        caller: CallerContext,
        data: dict,
        session: Session,
) -> dict:
    """
    Adds a registered user (data["user_id"]) or a guest (data["display_name"]).

    Raises:
      NotFoundError(GROUP_NOT_FOUND / USER_NOT_FOUND)
      AuthorizationError — caller is not a member
      AppError(ALREADY_MEMBER, 409) — same user, or same guest name ignoring case
    """
    group = store.load_group(group_id, session)
    require_member(group, caller.caller_id)

    user_id = data.get("user_id")
    if user_id is not None:
        user = store.load_user(user_id, session, field="user_id")
        if find_registered_member(group, user.id) is not None:
            raise AppError(
                ErrorCode.ALREADY_MEMBER,
                f"User {user.id} is already a member of group {group_id}.",
                409,
                field="user_id",
            )
        member = Member(
            user_id=user.id,
            display_name=user.username,
            kind=MemberKind.REGISTERED,
        )
    else:
        display_name = data["display_name"].strip()
        folded = display_name.casefold()
        if any(
                m.kind == MemberKind.GUEST and m.display_name.casefold() == folded
                for m in group.members
        ):
            raise AppError(
                ErrorCode.ALREADY_MEMBER,
                f"A guest named '{display_name}' is already in group {group_id}.",
                409,
                field="display_name",
            )
        member = Member(
            user_id=None,
            display_name=display_name,
            kind=MemberKind.GUEST,
        )

    group.members.append(member)
    store.save(member, session)
    session.refresh(member)

    logger.info(
        "User %s added %s member %s to group %s",
        caller.caller_id, member.kind.value, member.id, group_id,
    )
    return serialize_member(member)


def remove_member(
        group_id: int,
        caller: CallerContext,
        member_id: int,
        session: Session,
) -> None:
    """
    Removes a member from a group.

    Raises:
      NotFoundError(GROUP_NOT_FOUND / MEMBER_NOT_FOUND)
      AuthorizationError — caller is not a member, or removes someone else
                           without being the owner
      ValidationError(CANNOT_REMOVE_OWNER) — target is the group owner
    """
    group = store.load_group(group_id, session)
    require_member(group, caller.caller_id)

    target = next((m for m in group.members if m.id == member_id), None)
    if target is None:
        raise NotFoundError(
            ErrorCode.MEMBER_NOT_FOUND,
            f"Member {member_id} is not part of group {group_id}.",
        )

    is_owner = caller.caller_id == group.owner_user_id
    is_self = target.user_id == caller.caller_id
    if not (is_owner or is_self):
        raise AuthorizationError(
            "You may only remove yourself from a group unless you are the owner."
        )

    if target.user_id == group.owner_user_id:
        raise ValidationError(
            ErrorCode.CANNOT_REMOVE_OWNER,
            "The group owner cannot be removed from the group.",
        )

    store.delete_member(target, session)
    logger.info(
        "User %s removed member %s from group %s",
        caller.caller_id, member_id, group_id,
    )
