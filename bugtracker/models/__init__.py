"""
Bug Tracker
Model package — shared Flask-SQLAlchemy handle.

Usage:
    from bugtracker.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
