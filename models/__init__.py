"""
Models package for the timesheet portal
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Import all models here to ensure they're registered
from models.user import User
from models.login_code import LoginCode

__all__ = [
    'db',
    'User',
    'LoginCode',
]
