"""
WSGI / Flask CLI entry point.

Usage:
    flask --app wsgi db upgrade        # Flask-Migrate
    flask --app wsgi seed-demo         # demo users, bugs and comments
    gunicorn wsgi:app
"""

from bugtracker import create_app

app = create_app()
