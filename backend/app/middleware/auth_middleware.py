"""
middleware/auth_middleware.py — JWT authentication and caller resolution.

resolve_caller():
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Decodes and verifies the JWT signature (HS256) and expiry
  3. Loads the user named by the `sub` claim
  4. Returns a CallerContext(caller_id, display_name)

@require_auth runs resolve_caller() and stores the result on flask.g.caller.
Routes pass g.caller into services explicitly; services never read flask.g.

Authentication only (401). Group membership, ownership and payer checks are
authorization (403) and live in the service layer.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — malformed header, bad signature, bad payload, or the
                         user no longer exists
  TOKEN_EXPIRED  (401) — valid token whose exp claim is in the past
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from backend.app.core.caller import CallerContext
from backend.app.errors import AppError, ErrorCode


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

    Usage:
        @groups_bp.get("/")
        @require_auth
        def list_groups():
            caller = g.caller  # CallerContext
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.caller = resolve_caller()
        return f(*args, **kwargs)

    return decorated


def resolve_caller() -> CallerContext:
    """
    Authenticates the current request and returns who is calling.

    Raises AppError (401) on any failure; the global error handler renders it.
    """
    user_id = _user_id_from_token(_bearer_token())

    from backend.app.extensions import db
    from backend.app.models.user import User

    user = db.session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token refers to a user that no longer exists.",
            401,
        )
    return CallerContext(caller_id=user.id, display_name=user.username)


def _bearer_token() -> str:
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )
    return parts[1]


def _user_id_from_token(raw_token: str) -> int:
    try:
        payload = jwt.decode(
            raw_token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Log in again to obtain a new one.",
            401,
        ) from None
    except jwt.InvalidTokenError:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
            401,
        ) from None

    sub = payload.get("sub")
    try:
        return int(sub)
    except (TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token does not carry a valid 'sub' claim.",
            401,
        ) from None
