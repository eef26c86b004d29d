"""
extensions.py — Flask extension singletons.

The extension objects are created here without an app and bound inside the
factory in app/__init__.py via init_app(app), so tests can build as many
isolated app instances as they need.

    from backend.app.extensions import db, ma
"""

from flask_sqlalchemy import SQLAlchemy
from flask_marshmallow import Marshmallow

db = SQLAlchemy()

# Request schemas in app/schemas/ inherit from marshmallow.Schema, not
# ma.Schema: ma.Schema needs an app context and unit tests run without one.
ma = Marshmallow()
