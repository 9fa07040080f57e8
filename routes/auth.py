"""
Authentication routes: request a one-time login code by email, verify it, sign out
"""
from flask import request, Blueprint, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user

from utils.login_codes import get_code_store, ACCEPTED, EXPIRED
from utils.mail import mail_is_configured, send_login_code_email
from utils.users import get_authorized_user
from utils.validators import validate_email, get_request_field

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')

GENERIC_ERROR = "Something went wrong. Please try again later."
MAIL_CONFIG_ERROR_MSG = "Email configuration error."
INVALID_JSON_MSG = "Invalid JSON payload."
EMAIL_REQUIRED_MSG = "A valid email is required."
CODE_SENT_MSG = "If the address is registered, a login code has been sent."
CODE_SEND_FAIL_MSG = "Failed to send login code email."
FIELDS_REQUIRED_MSG = "Email and code are required."
CODE_EXPIRED_MSG = "This code has expired. Please request a new one."
CODE_INVALID_MSG = "Invalid code. Please try again."
ACCOUNT_BLOCKED_MSG = "This account cannot sign in."
SIGNED_IN_MSG = "Signed in."
SIGNED_OUT_MSG = "You have been logged out successfully."


def _error(message, status):
    return jsonify({"success": False, "message": message}), status


def _request_data():
    """JSON body when the request is JSON, otherwise the form. None on a malformed JSON body."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else None
    return request.form


@auth_bp.route('/request-code', methods=['POST'])
def request_code():
    """
    Issue a login code and email it.
    Input (JSON or form): email.
    Unknown or ineligible addresses get the same response without a code being sent.
    """
    try:
        if not mail_is_configured():
            current_app.logger.error("[request-code] SMTP config incomplete")
            return _error(MAIL_CONFIG_ERROR_MSG, 500)

        data = _request_data()
        if data is None:
            return _error(INVALID_JSON_MSG, 400)

        email = get_request_field(data, "email")
        if not validate_email(email):
            return _error(EMAIL_REQUIRED_MSG, 400)

        user = get_authorized_user(email)
        if user is None:
            current_app.logger.info("[request-code] No eligible account for %s; nothing sent", email)
            return jsonify({"success": True, "message": CODE_SENT_MSG})

        code = get_code_store().issue(user.email)
        try:
            send_login_code_email(user.email, code, current_app.config.get("LOGIN_CODE_TTL_MINUTES", 10))
        except Exception as e:
            # The issued code stays pending; a new request replaces it
            current_app.logger.error("[request-code] Error sending login code to %s: %s", user.email, e, exc_info=True)
            return _error(CODE_SEND_FAIL_MSG, 500)

        return jsonify({"success": True, "message": CODE_SENT_MSG})
    except Exception as e:
        current_app.logger.error("Unexpected error in request_code: %s", e, exc_info=True)
        return _error(GENERIC_ERROR, 500)


@auth_bp.route('/verify-code', methods=['POST'])
def verify_code():
    """Verify a login code and start a session. Input (JSON or form): email, code."""
    try:
        data = _request_data()
        if data is None:
            return _error(INVALID_JSON_MSG, 400)

        email = get_request_field(data, "email")
        code = get_request_field(data, "code")
        if not email or not code:
            return _error(FIELDS_REQUIRED_MSG, 400)

        result = get_code_store().verify(email, code)
        if result == EXPIRED:
            return _error(CODE_EXPIRED_MSG, 400)
        if result != ACCEPTED:
            return _error(CODE_INVALID_MSG, 400)

        # Account may have been disabled after the code was sent
        user = get_authorized_user(email)
        if user is None:
            current_app.logger.warning("[verify-code] Code accepted for ineligible account %s", email)
            return _error(ACCOUNT_BLOCKED_MSG, 403)

        login_user(user)
        return jsonify({"success": True, "message": SIGNED_IN_MSG, "user": user.to_dict()})
    except Exception as e:
        current_app.logger.error("Error verifying login code: %s", e, exc_info=True)
        return _error(GENERIC_ERROR, 500)


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """User logout"""
    logout_user()
    return jsonify({"success": True, "message": SIGNED_OUT_MSG})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    """Currently signed-in user"""
    return jsonify({"success": True, "user": current_user.to_dict()})
