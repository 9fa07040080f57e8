"""
Email utility functions
"""
from flask_mail import Mail, Message
from flask import current_app

mail = Mail()


def mail_is_configured():
    """True when an SMTP server and account are set, or sending is suppressed (testing)."""
    config = current_app.config
    if config.get('MAIL_SUPPRESS_SEND'):
        return True
    return bool(config.get('MAIL_SERVER') and config.get('MAIL_USERNAME'))


def send_login_code_email(email: str, code: str, ttl_minutes: int) -> None:
    """
    Deliver a one-time login code.

    Args:
        email: Recipient address
        code: Plaintext 6-digit code
        ttl_minutes: Minutes until the code expires (shown to the user)

    Raises RuntimeError when mail is not configured; SMTP errors are logged and re-raised.
    """
    # Check if mail is properly initialized
    if 'mail' not in current_app.extensions:
        raise RuntimeError("Mail extension not initialized. Check app configuration.")

    if not mail_is_configured():
        raise RuntimeError("MAIL_SERVER/MAIL_USERNAME not configured. Please set the MAIL_* environment variables.")

    subject = "Your login code"
    body = f"Your login code is: {code}\n\nIt will expire in {ttl_minutes} minutes."
    msg = Message(
        subject=subject,
        recipients=[email],
        body=body,
        html=_login_code_email_html(code, ttl_minutes),
    )
    try:
        mail.send(msg)
    except Exception as e:
        current_app.logger.error("SMTP error sending login code to %s: %s", email, e, exc_info=True)
        raise


def _login_code_email_html(code: str, ttl_minutes: int) -> str:
    """Clean HTML template for the login code email."""
    return f"""
    <!DOCTYPE html>
    <html>
    <head><meta charset="utf-8"><title>Your Login Code</title></head>
    <body style="font-family: system-ui, sans-serif; max-width: 480px; margin: 0 auto; padding: 24px;">
        <h2 style="color: #1a1a2e;">Sign in to submit your timesheet</h2>
        <p>Use the code below to sign in:</p>
        <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px; color: #16213e;">{code}</p>
        <p style="color: #666;">This code expires in {ttl_minutes} minutes and can be used once.</p>
        <hr style="border: none; border-top: 1px solid #eee; margin: 24px 0;">
        <p style="font-size: 12px; color: #999;">If you did not request this code, you can ignore this email.</p>
    </body>
    </html>
    """
