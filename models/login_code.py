"""
Login code rows for the database-backed code store (PostgreSQL-compatible).
Lets several worker processes share pending codes.
"""
from models import db
from datetime import datetime


class LoginCode(db.Model):
    """
    Stores the SHA-256 digest of a pending login code.
    One row per normalized email; replaced on each new issue.
    """
    __tablename__ = 'login_codes'

    email = db.Column(db.String(120), primary_key=True)
    code_hash = db.Column(db.String(64), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    attempts_left = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def is_expired(self, now):
        return now > self.expires_at

    def __repr__(self):
        return f'<LoginCode {self.email}>'
