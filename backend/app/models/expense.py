"""
models/expense.py — Expense table definition.

No business logic. No imports from services or routes.

Key design points:
  - `amount` uses Numeric(12, 2), never Float.
  - Expenses are hard-deleted together with their splits.
  - paid_by_user_id always names a registered user; guests never pay.
  - SplitPolicy and Category are Python enums so schemas, services and the
    split calculator share one set of values.
"""

from __future__ import annotations

import enum
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


# ── Enum Definitions ───────────────────────────────────────────────────────

class SplitPolicy(str, enum.Enum):
    EQUAL      = "equal"
    PERCENTAGE = "percentage"
    CUSTOM     = "custom"


class Category(str, enum.Enum):
    FOOD          = "food"
    TRANSPORT     = "transport"
    ENTERTAINMENT = "entertainment"
    UTILITIES     = "utilities"
    SHOPPING      = "shopping"
    HEALTHCARE    = "healthcare"
    EDUCATION     = "education"
    OTHER         = "other"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Store enum values ('custom'), not names ('CUSTOM')."""
    return [member.value for member in enum_cls]


# ── Model ──────────────────────────────────────────────────────────────────

class Expense(db.Model):
    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_expenses_description_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    paid_by_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Input with more than 2 decimal places is rejected, not rounded.
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    category: Mapped[Category] = mapped_column(
        Enum(
            Category,
            name="category_enum",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=Category.OTHER,
        server_default=Category.OTHER.value,
    )

    expense_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        default=date.today,
    )

    split_policy: Mapped[SplitPolicy] = mapped_column(
        Enum(
            SplitPolicy,
            name="split_policy_enum",
            values_callable=_enum_values,
        ),
        nullable=False,
        default=SplitPolicy.EQUAL,
        server_default=SplitPolicy.EQUAL.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # Set on every successful update.
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="expenses",
    )

    payer: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="expenses_paid",
        foreign_keys=[paid_by_user_id],
    )

    # Splits are owned by their expense and kept in participant order.
    splits: Mapped[list["Split"]] = relationship(  # noqa: F821
        "Split",
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="Split.position",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Expense id={self.id} "
            f"group_id={self.group_id} "
            f"amount={self.amount} "
            f"policy={self.split_policy}>"
        )
