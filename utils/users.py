"""
User directory lookups. Decides whether an email may request a login code.
"""
from models.user import User
from utils.login_codes import normalize_email


def find_user_by_email(email):
    """User with this email (case/whitespace-insensitive), or None."""
    if not email:
        return None
    return User.query.filter_by(email=normalize_email(email)).first()


def get_authorized_user(email):
    """The user only when the account is active and may submit timesheets."""
    user = find_user_by_email(email)
    if user is None or not user.can_sign_in():
        return None
    return user


def is_authorized(email):
    return get_authorized_user(email) is not None
