"""
User directory model
"""
from models import db
from datetime import datetime
from flask_login import UserMixin

class User(UserMixin, db.Model):
    """Staff member who may sign in to submit timesheets"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)  # stored normalized
    name = db.Column(db.String(100), nullable=False)
    hourly_rate = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    can_submit_timesheet = db.Column(db.Boolean, default=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def can_sign_in(self):
        return bool(self.is_active and self.can_submit_timesheet)

    def to_dict(self):
        return {'email': self.email, 'name': self.name}

    def __repr__(self):
        return f'<User {self.email}>'
