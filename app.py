"""
Main Flask application entry point for the timesheet portal
"""
import logging
import os
from decimal import Decimal, InvalidOperation

from flask import Flask, jsonify, request
from flask_login import LoginManager
from config import Config
from models import db
from models.user import User
from utils.login_codes import build_code_store, normalize_email
from utils.mail import mail

logger = logging.getLogger(__name__)

# Initialize login manager (no DB access at import time)
login_manager = LoginManager()


@login_manager.user_loader
def load_user(user_id):
    """Load user for Flask-Login (runs in request context)."""
    user = db.session.get(User, int(user_id))
    if user is None or not user.can_sign_in():
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"success": False, "message": "Please sign in to continue."}), 401


def create_app(config_class=Config):
    """Application factory pattern. DB init runs inside app_context; non-fatal on failure."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    login_manager.init_app(app)
    mail.init_app(app)
    # One code store per app, shared by all request handlers
    build_code_store(app)

    @app.errorhandler(500)
    def handle_500_error(e):
        if request.path.startswith("/auth/"):
            return jsonify({"success": False, "message": "Internal server error. Please try again later."}), 500
        return e

    # Create tables and seed only inside app context; do not crash if DB temporarily unavailable
    with app.app_context():
        try:
            db.create_all()
            seed_user(app.config)
        except Exception as e:
            logger.warning("Database init/seed skipped (non-fatal): %s", e)

    from routes import auth_bp
    app.register_blueprint(auth_bp)

    return app


def seed_user(config):
    """Ensure the configured directory account exists. Existing accounts are left untouched."""
    email = normalize_email(config.get("SEED_USER_EMAIL") or "")
    if not email:
        return None

    user = User.query.filter_by(email=email).first()
    if user:
        return user

    try:
        hourly_rate = Decimal(str(config.get("SEED_USER_HOURLY_RATE") or "0"))
    except InvalidOperation:
        logger.warning("Invalid SEED_USER_HOURLY_RATE %r; using 0", config.get("SEED_USER_HOURLY_RATE"))
        hourly_rate = Decimal("0")

    user = User(
        email=email,
        name=(config.get("SEED_USER_NAME") or email.split("@")[0]).strip(),
        hourly_rate=hourly_rate,
        can_submit_timesheet=True,
        is_active=True,
    )
    db.session.add(user)
    try:
        db.session.commit()
        logger.info("Seeded timesheet user %s", email)
    except Exception:
        db.session.rollback()
        raise
    return user

# WSGI entry point (Railway/Render): gunicorn -c gunicorn_config.py app:app
app = create_app()
application = app

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "false").lower() in ("true", "1"))
