"""Initial schema — tables, enums, constraints and indexes.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only: never edit this file after it has been applied to a database;
add a new migration instead.

Creation order:
  1. PostgreSQL enum types
  2. Tables in FK dependency order (users → groups → members → expenses → splits)
  3. Indexes

ON DELETE policies:
  groups.owner_user_id      → RESTRICT
  members.group_id          → CASCADE   (members owned by group)
  members.user_id           → RESTRICT
  expenses.group_id         → CASCADE   (expenses owned by group)
  expenses.paid_by_user_id  → RESTRICT
  splits.expense_id         → CASCADE   (splits owned by expense)
  splits.member_id          → no FK; survives member removal
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    # ── Step 1: enum types ────────────────────────────────────────────────

    op.execute("CREATE TYPE member_kind_enum AS ENUM ('registered', 'guest')")
    op.execute("CREATE TYPE split_policy_enum AS ENUM ('equal', 'percentage', 'custom')")
    op.execute("""
        CREATE TYPE category_enum AS ENUM (
            'food',
            'transport',
            'entertainment',
            'utilities',
            'shopping',
            'healthcare',
            'education',
            'other'
        )
    """)

    # ── Step 2: users ──────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    # ── Step 3: groups ─────────────────────────────────────────────────────

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column(
            "owner_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_groups_owner"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
    )

    # ── Step 4: members ────────────────────────────────────────────────────
    # user_id is set exactly for registered members.

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_members_group"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_members_user"),
            nullable=True,
        ),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column(
            "kind",
            postgresql.ENUM("registered", "guest", name="member_kind_enum", create_type=False),
            nullable=False,
        ),
        sa.Column(
            "added_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_members"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_members_group_user"),
        sa.CheckConstraint(
            "LENGTH(TRIM(display_name)) > 0",
            name="ck_members_display_name_nonempty",
        ),
        sa.CheckConstraint(
            "(kind = 'registered' AND user_id IS NOT NULL) OR "
            "(kind = 'guest' AND user_id IS NULL)",
            name="ck_members_kind_user",
        ),
    )

    # ── Step 5: expenses ───────────────────────────────────────────────────

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_expenses_group"),
            nullable=False,
        ),
        sa.Column(
            "paid_by_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_expenses_payer"),
            nullable=False,
        ),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "category",
            postgresql.ENUM(
                "food", "transport", "entertainment", "utilities",
                "shopping", "healthcare", "education", "other",
                name="category_enum",
                create_type=False,
            ),
            nullable=False,
            server_default="other",
        ),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column(
            "split_policy",
            postgresql.ENUM(
                "equal", "percentage", "custom",
                name="split_policy_enum",
                create_type=False,
            ),
            nullable=False,
            server_default="equal",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_expenses"),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        sa.CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_expenses_description_nonempty",
        ),
    )

    # ── Step 6: splits ─────────────────────────────────────────────────────
    # member_id / user_id / display_name are a snapshot of the participant.

    op.create_table(
        "splits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "expense_id",
            sa.Integer(),
            sa.ForeignKey("expenses.id", ondelete="CASCADE", name="fk_splits_expense"),
            nullable=False,
        ),
        sa.Column("member_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("owed_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("owed_percentage", sa.Numeric(8, 4), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id", name="pk_splits"),
        sa.UniqueConstraint("expense_id", "member_id", name="uq_splits_expense_member"),
        sa.CheckConstraint("owed_amount >= 0", name="ck_splits_owed_amount_nonnegative"),
    )

    # ── Step 7: indexes ────────────────────────────────────────────────────

    op.create_index("ix_members_group_id", "members", ["group_id"])
    op.create_index("ix_members_user_id", "members", ["user_id"])
    op.create_index("ix_expenses_group_id", "expenses", ["group_id"])
    op.create_index("ix_splits_expense_id", "splits", ["expense_id"])


def downgrade() -> None:
    """Local development reset only; production fixes go forward."""
    op.drop_index("ix_splits_expense_id", table_name="splits")
    op.drop_index("ix_expenses_group_id", table_name="expenses")
    op.drop_index("ix_members_user_id", table_name="members")
    op.drop_index("ix_members_group_id", table_name="members")

    op.drop_table("splits")
    op.drop_table("expenses")
    op.drop_table("members")
    op.drop_table("groups")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS category_enum")
    op.execute("DROP TYPE IF EXISTS split_policy_enum")
    op.execute("DROP TYPE IF EXISTS member_kind_enum")
