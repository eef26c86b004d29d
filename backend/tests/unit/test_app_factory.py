"""
Unit tests for the pieces of the app factory and config that do not need a
database: error-message flattening, Decimal JSON encoding and config helpers.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest
from flask import Flask

from backend.app import DecimalJSONProvider, _code_to_message, _first_schema_error
from backend.config import _normalise_db_url, validate_production_config


@pytest.mark.parametrize("messages,expected", [
    ({"amount": ["Not a valid number."]}, ("amount", "Not a valid number.")),
    ({"splits": {0: {"member_id": ["Missing data for required field."]}}},
     ("splits", "Missing data for required field.")),
    ({"_schema": ["Provide exactly one."]}, (None, "Provide exactly one.")),
    ({}, (None, "Invalid input.")),
    (["bare message"], (None, "bare message")),
])
def test_first_schema_error(messages, expected):
    assert _first_schema_error(messages) == expected


def test_code_to_message_known_and_unknown():
    assert "2 decimal places" in _code_to_message("INVALID_AMOUNT_PRECISION")
    assert _code_to_message("SOMETHING_ELSE") == "Invalid input."


def test_decimal_serialised_as_string():
    provider = DecimalJSONProvider(Flask(__name__))
    assert provider.dumps({"amount": Decimal("10.50")}) == '{"amount": "10.50"}'


def test_normalise_db_url():
    assert _normalise_db_url("postgres://u:p@h/db") == "postgresql://u:p@h/db"
    assert _normalise_db_url("sqlite://") == "sqlite://"


def test_production_config_requires_database():
    app = SimpleNamespace(config={"SQLALCHEMY_DATABASE_URI": "", "SECRET_KEY": "x", "JWT_SECRET_KEY": "y"})
    with pytest.raises(ValueError, match="DATABASE_URL"):
        validate_production_config(app)


def test_production_config_rejects_placeholder_secret():
    app = SimpleNamespace(config={
        "SQLALCHEMY_DATABASE_URI": "postgresql://h/db",
        "SECRET_KEY": "change-me-in-production",
        "JWT_SECRET_KEY": "y",
    })
    with pytest.raises(ValueError, match="SECRET_KEY"):
        validate_production_config(app)
