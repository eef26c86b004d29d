"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing"), which
    points at an in-memory SQLite database unless TEST_DATABASE_URL is set.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)    → dict with user + access_token
  - login(client, ...)       → dict with user + access_token
  - auth_headers(token)      → {"Authorization": "Bearer <token>"}
  - make_group(client, ...)  → group dict
  - add_member(...)          → HTTP response (registered member)
  - add_guest(...)           → HTTP response (guest member)
  - member_id_of(...)        → member id of a registered user in a group
  - make_expense(...)        → HTTP response
  - get_summary(...)         → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from backend.app import create_app
from backend.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode once for the session."""
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test, children before parents:
    splits → expenses → members → groups → users.
    """
    yield

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test
        for table in ("splits", "expenses", "members", "groups", "users"):
            _db.session.execute(text(f"DELETE FROM {table}"))
        _db.session.commit()
        _db.session.remove()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    username: str = "alice",
    email: str | None = None,
    password: str = "Password1",
) -> dict:
    """
    Registers a new user and returns the response data dict.
    Returns: {"user": {...}, "access_token": "..."}
    """
    if email is None:
        email = f"{username}@test.com"
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, username: str, password: str = "Password1") -> dict:
    resp = client.post(
        "/api/v1/auth/login",
        json={"username": username, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def make_group(client, token: str, name: str = "Test Group") -> dict:
    """
    Creates a group and returns the group data dict.
    The caller (token owner) becomes the group owner and first member.
    """
    resp = client.post(
        "/api/v1/groups/",
        json={"name": name},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def add_member(client, token: str, group_id: int, user_id: int):
    """Adds a registered user to a group. Returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/members",
        json={"user_id": user_id},
        headers=auth_headers(token),
    )


def add_guest(client, token: str, group_id: int, display_name: str):
    """Adds a guest (no account) to a group. Returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/members",
        json={"display_name": display_name},
        headers=auth_headers(token),
    )


def member_id_of(client, token: str, group_id: int, user_id: int) -> int:
    """Looks up the member id a registered user has inside a group."""
    resp = client.get(f"/api/v1/groups/{group_id}", headers=auth_headers(token))
    assert resp.status_code == 200, f"get group failed: {resp.get_json()}"
    for member in resp.get_json()["data"]["members"]:
        if member["user_id"] == user_id:
            return member["id"]
    raise AssertionError(f"user {user_id} is not a member of group {group_id}")


def make_expense(
    client,
    token: str,
    group_id: int,
    amount: str,
    paid_by_user_id: int | None = None,
    splits: list[dict] | None = None,
    description: str = "Test Expense",
    split_policy: str = "equal",
    category: str = "other",
    expense_date: str | None = None,
):
    """
    Creates an expense and returns the HTTP response.

    splits entries are {"member_id": ...} plus "percentage" or "amount"
    depending on split_policy. Leave splits as None for an equal split among
    all members.
    """
    payload: dict = {
        "description": description,
        "amount": amount,
        "split_policy": split_policy,
        "category": category,
    }
    if paid_by_user_id is not None:
        payload["paid_by_user_id"] = paid_by_user_id
    if splits is not None:
        payload["splits"] = splits
    if expense_date is not None:
        payload["expense_date"] = expense_date

    return client.post(
        f"/api/v1/groups/{group_id}/expenses",
        json=payload,
        headers=auth_headers(token),
    )


def get_summary(client, token: str, group_id: int):
    return client.get(
        f"/api/v1/groups/{group_id}/summary",
        headers=auth_headers(token),
    )


def balance_by_name(summary: dict) -> dict:
    """{display_name: balance item} from a summary payload."""
    return {item["display_name"]: item for item in summary["balances"]}
