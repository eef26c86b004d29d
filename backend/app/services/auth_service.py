"""
services/auth_service.py — account registration, login and JWT issuing.

Responsibilities:
  - User registration with uniqueness checks
  - Credential validation (bcrypt)
  - JWT access token creation (HS256)

Layer rules:
  - No imports from routes or schemas.
  - No use of flask.request, flask.g, or HTTP knowledge beyond AppError status.
  - current_app.config is read for the JWT secret, token lifetime and bcrypt
    cost only; this service is exercised through the integration tests.

Token design:
  - Access token: JWT, HS256, sub = user id (str), TTL from
    JWT_ACCESS_TOKEN_EXPIRES. There is no refresh flow; clients log in again.

Password storage:
  - bcrypt with cost BCRYPT_LOG_ROUNDS. Raw passwords are never stored or logged.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode, NotFoundError
from backend.app.models.user import User

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _create_access_token(user: User) -> str:
    """Payload: sub (user id as str), name, iat, exp, jti."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub":  str(user.id),
        "name": user.username,
        "iat":  now,
        "exp":  now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        # Two tokens issued in the same second still differ.
        "jti":  secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _build_user_dict(user: User) -> dict:
    return {
        "id":         user.id,
        "username":   user.username,
        "email":      user.email,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


# ── Public service functions ───────────────────────────────────────────────

def register_user(
        username: str,
        email: str,
        password: str,
        session: Session,
) -> dict:
    """
    Creates a new account and issues an access token.

    Raises:
      AppError(DUPLICATE_EMAIL, 409)
      AppError(DUPLICATE_USERNAME, 409)

    Returns: {"user": {...}, "access_token": "..."}
    """
    existing_email = session.execute(
        select(User).where(func.lower(User.email) == email.lower())
    ).scalar_one_or_none()
    if existing_email is not None:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            f"The email address '{email}' is already registered.",
            409,
            field="email",
        )

    existing_username = session.execute(
        select(User).where(User.username == username)
    ).scalar_one_or_none()
    if existing_username is not None:
        raise AppError(
            ErrorCode.DUPLICATE_USERNAME,
            f"The username '{username}' is already taken.",
            409,
            field="username",
        )

    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    password_hash = bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")

    user = User(
        username=username,
        email=email.lower(),
        password_hash=password_hash,
    )
    session.add(user)
    session.flush()  # populate user.id and created_at for the token
    session.refresh(user)

    logger.info("Registered user %s (%s)", user.id, user.username)
    return {
        "user":         _build_user_dict(user),
        "access_token": _create_access_token(user),
    }


def login_user(
        username: str,
        password: str,
        session: Session,
) -> dict:
    """
    Validates credentials and issues a new access token.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — unknown username or wrong password.
      One error for both so usernames cannot be enumerated.
    """
    user = session.execute(
        select(User).where(User.username == username)
    ).scalar_one_or_none()

    if user is None or not bcrypt.checkpw(
            password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        logger.info("Failed login for username %r", username)
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The username or password is incorrect.",
            401,
        )

    return {
        "user":         _build_user_dict(user),
        "access_token": _create_access_token(user),
    }


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the profile of the authenticated user.

    Raises:
      NotFoundError(USER_NOT_FOUND) — the user was deleted after the token
      was issued.
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
        )
    return _build_user_dict(user)


def find_user_by_username(username: str, session: Session) -> dict:
    """
    Public profile lookup, used to find the user_id for adding a member.

    Raises:
      NotFoundError(USER_NOT_FOUND)
    """
    user = session.execute(
        select(User).where(User.username == username)
    ).scalar_one_or_none()
    if user is None:
        raise NotFoundError(
            ErrorCode.USER_NOT_FOUND,
            f"User '{username}' not found.",
        )
    return {"id": user.id, "username": user.username}
