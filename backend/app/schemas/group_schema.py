"""
schemas/group_schema.py — request schemas for group and member endpoints.

Existence, membership and duplicate checks need the database and live in
group_service.py.

All schemas inherit from marshmallow.Schema directly (see extensions.py).
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema


def _validate_non_empty_after_trim(value: str) -> None:
    """Rejects "" and whitespace-only strings; mirrors CHECK(LENGTH(TRIM(...)) > 0)."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class CreateGroupSchema(Schema):
    """POST /groups — name: non-empty after trim, max 100 chars."""

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Group name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )


class AddMemberSchema(Schema):
    """
    POST /groups/:id/members

    Exactly one of:
      user_id      — add a registered user
      display_name — add a guest
    """

    user_id = fields.Int(
        load_default=None,
        strict=True,  # reject floats like 1.0
        validate=validate.Range(
            min=1,
            error="user_id must be a positive integer.",
        ),
    )

    display_name = fields.Str(
        load_default=None,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="display_name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    @validates_schema
    def validate_one_identity(self, data: dict, **kwargs) -> None:
        has_user = data.get("user_id") is not None
        has_name = data.get("display_name") is not None
        if has_user == has_name:
            raise ValidationError(
                "Provide exactly one of user_id (registered member) "
                "or display_name (guest member)."
            )
