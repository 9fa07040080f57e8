"""
Script to add or update a timesheet user in the directory.
Run: python create_user.py someone@example.com "Full Name" --rate 25
     python create_user.py someone@example.com --deactivate
     python create_user.py someone@example.com --activate --timesheet
"""
import argparse
import sys
from decimal import Decimal, InvalidOperation

from app import create_app
from models import db
from models.user import User
from utils.login_codes import normalize_email
from utils.validators import validate_email


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create or update a timesheet user")
    parser.add_argument("email")
    parser.add_argument("name", nargs="?", help="required when creating a new user")
    parser.add_argument("--rate", help="hourly rate, e.g. 20 or 22.50")
    # Flags left unset keep the stored value on update; new users default to enabled
    parser.add_argument("--timesheet", dest="timesheet", action="store_true", default=None,
                        help="account may submit timesheets")
    parser.add_argument("--no-timesheet", dest="timesheet", action="store_false", default=None,
                        help="account may not submit timesheets")
    parser.add_argument("--activate", dest="active", action="store_true", default=None,
                        help="allow sign-in for this account")
    parser.add_argument("--deactivate", dest="active", action="store_false", default=None,
                        help="disable sign-in for this account")
    return parser.parse_args(argv)


def create_user(args):
    """Create or update a user. Returns a process exit code."""
    email = normalize_email(args.email)
    if not validate_email(email):
        print(f"[ERROR] Not a valid email address: {args.email}")
        return 1

    rate = None
    if args.rate is not None:
        try:
            rate = Decimal(args.rate)
        except InvalidOperation:
            print(f"[ERROR] Not a valid hourly rate: {args.rate}")
            return 1

    app = create_app()
    with app.app_context():
        user = User.query.filter_by(email=email).first()
        if user is None:
            if not args.name:
                print("[ERROR] A name is required when creating a new user.")
                return 1
            user = User(email=email, name=args.name.strip(), hourly_rate=rate or Decimal("0"))
            db.session.add(user)
            action = "created"
        else:
            if args.name:
                user.name = args.name.strip()
            if rate is not None:
                user.hourly_rate = rate
            action = "updated"

        if args.timesheet is not None:
            user.can_submit_timesheet = args.timesheet
        elif action == "created":
            user.can_submit_timesheet = True
        if args.active is not None:
            user.is_active = args.active
        elif action == "created":
            user.is_active = True
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            print(f"[ERROR] Could not save user: {e}")
            return 1

        print(f"[SUCCESS] User {email} {action}.")
        print(f"  name: {user.name}")
        print(f"  hourly rate: {user.hourly_rate}")
        print(f"  can submit timesheet: {user.can_submit_timesheet}")
        print(f"  active: {user.is_active}")
    return 0


if __name__ == '__main__':
    sys.exit(create_user(parse_args()))
