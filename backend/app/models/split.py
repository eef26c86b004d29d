"""
models/split.py — Split table definition.

One row per participant of an expense.

Key design points:
  - member_id deliberately has no foreign key. A removed member's splits
    stay in place and still count toward balances.
  - user_id and display_name are snapshots of the member taken when the split
    was written, so a removed member can still be named and keyed.
  - owed_amount uses Numeric(12, 2), never Float. A zero share is allowed
    (custom splits may leave a participant at 0.00).
  - sum(owed_amount) == expense.amount is guaranteed by the split calculator,
    not by the database.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class Split(db.Model):
    __tablename__ = "splits"

    __table_args__ = (
        UniqueConstraint("expense_id", "member_id", name="uq_splits_expense_member"),
        CheckConstraint("owed_amount >= 0", name="ck_splits_owed_amount_nonnegative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    expense_id: Mapped[int] = mapped_column(
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    member_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    user_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )

    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    owed_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    owed_percentage: Mapped[Decimal | None] = mapped_column(
        Numeric(8, 4),
        nullable=True,
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    expense: Mapped["Expense"] = relationship(  # noqa: F821
        "Expense",
        back_populates="splits",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Split id={self.id} "
            f"expense_id={self.expense_id} "
            f"member_id={self.member_id} "
            f"owed_amount={self.owed_amount}>"
        )
