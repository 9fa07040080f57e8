"""
Request field validation helpers
"""
import re

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MAX_EMAIL_LENGTH = 120


def validate_email(email):
    """Basic shape check: local@domain.tld, no whitespace, fits the users.email column."""
    if not email or len(email) > MAX_EMAIL_LENGTH:
        return False
    return bool(EMAIL_PATTERN.match(email))


def get_request_field(data, name):
    """Trimmed string field from a JSON dict or form; '' when missing or not a string."""
    value = data.get(name) if data else None
    if not isinstance(value, str):
        return ''
    return value.strip()
