"""Shared Flask extensions used by the reveal and checkpoint packages."""

from flask_sqlalchemy import SQLAlchemy

# SQLAlchemy instance initialized in app.py so blueprints/services can import `db`.
db = SQLAlchemy()
