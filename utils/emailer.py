import smtplib
from email.message import EmailMessage

from flask import current_app

from utils.logger import get_logger

logger = get_logger(__name__)


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        logger.warning("email to %s not sent: SMTP is not configured", to_email)
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("email to %s failed: %s", to_email, exc)
        return False, str(exc)


def _frontend_url(path: str) -> str:
    return f"{current_app.config.get('FRONTEND_URL', '').rstrip('/')}{path}"


def send_verification_code(email: str, code: str, code_id: str):
    url = _frontend_url(f"/verify-email/{code_id}")
    ttl = current_app.config.get("VERIFICATION_CODE_TTL_MINUTES", 15)
    body = (
        "Dear Customer,\n\n"
        "Please verify your email by opening the link below:\n"
        f"{url}\n\n"
        f"Verification Code: {code}\n\n"
        f"This code is valid for {ttl} minutes."
    )
    return send_email(email, f"{code} : Email Verification", body)


def send_password_reset(email: str, name: str, code: str, code_id: str):
    url = _frontend_url(f"/forgot-password/{code_id}")
    body = (
        f"Hello {name},\n\n"
        "We have received a request to change the password for your account.\n"
        "If you did not request this, you can ignore this email.\n\n"
        f"Reset link: {url}\n"
        f"Reset code: {code}\n"
    )
    return send_email(email, f"{code} : Password Reset", body)
