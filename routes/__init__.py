"""
Routes package for the timesheet portal
"""
# Export blueprints for registration in app.py
from routes.auth import auth_bp

__all__ = [
    'auth_bp',
]
