"""
schemas/auth_schema.py — request schemas for the auth endpoints.

Field shape and format are validated here. DUPLICATE_EMAIL and
DUPLICATE_USERNAME need a database lookup and live in auth_service.py.

All schemas inherit from marshmallow.Schema directly (see extensions.py).
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validates, validate


class RegisterSchema(Schema):
    """
    POST /auth/register

      username : 3–50 chars, letters, digits and underscore
      email    : valid email address
      password : min 8 chars, at least one letter and one digit
    """

    username = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=3,
                max=50,
                error="Username must be between 3 and 50 characters.",
            ),
            validate.Regexp(
                r"^[a-zA-Z0-9_]+$",
                error="Username may only contain letters, numbers, and underscores.",
            ),
        ],
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(required=True, load_only=True)

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")
        if not any(c.isalpha() for c in value):
            raise ValidationError("Password must contain at least one letter.")
        if not any(c.isdigit() for c in value):
            raise ValidationError("Password must contain at least one digit.")


class LoginSchema(Schema):
    """POST /auth/login — username and password; checked in auth_service.py."""

    username = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)
