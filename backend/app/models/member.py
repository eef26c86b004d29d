"""
models/member.py — Member table definition.

A Member is one participant of one group: either a registered user
(user_id set) or a guest known only by display_name.

  - id is stable and never reused; splits keep pointing at it after the
    member is removed.
  - UNIQUE(group_id, user_id) keeps a registered user in a group once. NULLs
    are distinct, so any number of guests may coexist at this level;
    case-insensitive guest-name uniqueness is checked in group_service.py.

No business logic. No imports from services or routes.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class MemberKind(str, enum.Enum):
    REGISTERED = "registered"
    GUEST      = "guest"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Store enum values ('guest'), not names ('GUEST')."""
    return [member.value for member in enum_cls]


class Member(db.Model):
    __tablename__ = "members"

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_members_group_user"),
        CheckConstraint(
            "LENGTH(TRIM(display_name)) > 0",
            name="ck_members_display_name_nonempty",
        ),
        # user_id is present exactly when the member is registered.
        CheckConstraint(
            "(kind = 'registered' AND user_id IS NOT NULL) OR "
            "(kind = 'guest' AND user_id IS NULL)",
            name="ck_members_kind_user",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    kind: Mapped[MemberKind] = mapped_column(
        Enum(
            MemberKind,
            name="member_kind_enum",
            values_callable=_enum_values,
        ),
        nullable=False,
    )

    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="members",
    )

    user: Mapped["User | None"] = relationship(  # noqa: F821
        "User",
        back_populates="memberships",
    )

    @property
    def is_registered(self) -> bool:
        return self.kind == MemberKind.REGISTERED

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Member id={self.id} "
            f"group_id={self.group_id} "
            f"user_id={self.user_id} "
            f"name={self.display_name!r}>"
        )
