"""
SiteLedger — SQLAlchemy models.

Every model module imports the shared ``db`` instance from here; the app
factory binds it to the Flask application.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
