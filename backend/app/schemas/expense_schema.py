"""
schemas/expense_schema.py — request schemas for expense endpoints.

Validation responsibility:
  - This file: field types, lengths, enum values, amount precision, and the
    shape of the `splits` array (which value each entry must carry for the
    chosen policy, no repeated member_id).
  - core/split_calculator.py: percentage range and totals, custom totals,
    residual reconciliation (422).
  - services/expense_service.py: payer and split members belong to the
    group, payer-only edits (DB lookups).

Wire format of `splits`:
    [{"member_id": 3, "percentage": "40"}, ...]   split_policy = percentage
    [{"member_id": 3, "amount": "12.50"}, ...]    split_policy = custom
    [{"member_id": 3}, ...]                       split_policy = equal,
                                                  restricts participants
Omitting `splits` with the equal policy splits among all current members.

All schemas inherit from marshmallow.Schema directly (see extensions.py).
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    validate,
    validates_schema,
)

from backend.app.errors import ErrorCode
from backend.app.models.expense import Category, SplitPolicy


def _validate_monetary_amount(value: Decimal) -> None:
    """Strictly positive, at most 2 decimal places. Never rounded."""
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    # Decimal("10.123").as_tuple().exponent == -3 → rejected
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


_description_field_validators = [
    validate.Length(
        min=1,
        max=255,
        error="Description must be between 1 and 255 characters.",
    ),
    _validate_non_empty_after_trim,
]


# ── Sub-schema: one entry in the `splits` array ───────────────────────────

class SplitInputSchema(Schema):

    member_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="member_id must be a positive integer."),
    )

    percentage = fields.Decimal(load_default=None)

    amount = fields.Decimal(load_default=None)


def _check_splits_shape(policy: SplitPolicy | None, splits: list[dict] | None) -> None:
    """
    Request-shape rules for `splits` (400).

    `policy` is None on a PATCH that leaves the policy unchanged; only the
    duplicate check applies then.
    """
    if splits is None:
        if policy in (SplitPolicy.PERCENTAGE, SplitPolicy.CUSTOM):
            raise ValidationError(
                {"splits": [f"splits is required when split_policy is '{policy.value}'."]}
            )
        return

    if not splits:
        raise ValidationError({"splits": ["splits must not be empty."]})

    member_ids = [s["member_id"] for s in splits]
    if len(member_ids) != len(set(member_ids)):
        raise ValidationError({"splits": [ErrorCode.DUPLICATE_PARTICIPANT]})

    if policy is SplitPolicy.PERCENTAGE and any(s.get("percentage") is None for s in splits):
        raise ValidationError(
            {"splits": ["Every split needs a percentage when split_policy is 'percentage'."]}
        )
    if policy is SplitPolicy.CUSTOM and any(s.get("amount") is None for s in splits):
        raise ValidationError(
            {"splits": ["Every split needs an amount when split_policy is 'custom'."]}
        )


# ── Create expense ─────────────────────────────────────────────────────────

class CreateExpenseSchema(Schema):
    """POST /groups/:id/expenses"""

    # Defaults to the caller; must be a registered member (checked in service).
    paid_by_user_id = fields.Int(
        load_default=None,
        strict=True,
        validate=validate.Range(min=1, error="paid_by_user_id must be a positive integer."),
    )

    description = fields.Str(
        required=True,
        validate=_description_field_validators,
    )

    amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )

    split_policy = fields.Enum(
        SplitPolicy,
        load_default=SplitPolicy.EQUAL,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_POLICY},
    )

    category = fields.Enum(
        Category,
        load_default=Category.OTHER,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    # Defaults to today (model default).
    expense_date = fields.Date(load_default=None)

    splits = fields.List(
        fields.Nested(SplitInputSchema),
        load_default=None,
    )

    @validates_schema
    def validate_splits_shape(self, data: dict, **kwargs) -> None:
        _check_splits_shape(data.get("split_policy", SplitPolicy.EQUAL), data.get("splits"))


# ── Patch expense ──────────────────────────────────────────────────────────

class PatchExpenseSchema(Schema):
    """
    PATCH /expenses/:id — every field optional.

    Splits are recomputed when amount, split_policy or splits is present.
    Switching to percentage or custom requires new splits; changing only the
    amount keeps the current participants and their stored shares.
    """

    paid_by_user_id = fields.Int(
        strict=True,
        validate=validate.Range(min=1, error="paid_by_user_id must be a positive integer."),
    )

    description = fields.Str(validate=_description_field_validators)

    amount = fields.Decimal(validate=_validate_monetary_amount)

    split_policy = fields.Enum(
        SplitPolicy,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_SPLIT_POLICY},
    )

    category = fields.Enum(
        Category,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
    )

    expense_date = fields.Date()

    splits = fields.List(fields.Nested(SplitInputSchema))

    @validates_schema
    def validate_splits_shape(self, data: dict, **kwargs) -> None:
        _check_splits_shape(data.get("split_policy"), data.get("splits"))
