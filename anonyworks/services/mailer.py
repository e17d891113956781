import logging
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional
from anonyworks.core.config import settings

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, html: str, from_name: Optional[str] = None):
    msg = MIMEText(html, "html", "utf-8")
    msg["Subject"] = subject
    msg["From"] = formataddr((from_name or settings.mail_from_name, settings.mail_from))
    msg["To"] = to_email

    # Add timeout to prevent indefinite hangs
    with smtplib.SMTP(settings.smtp_server, settings.smtp_port, timeout=30) as server:
        server.starttls()
        server.login(settings.smtp_user, settings.smtp_password)
        server.sendmail(settings.mail_from, [to_email], msg.as_string())


def _otp_html(code: str, minutes: int) -> str:
    return f'''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8" />
    <title>Your {settings.app_name} code</title>
</head>
<body style="font-family: Arial, sans-serif; padding: 20px; background-color: #0a0a0a; color: #ffffff;">
    <div style="max-width: 600px; margin: 0 auto; background-color: #1a1a1a; padding: 30px; border-radius: 10px; border: 1px solid #7c3aed;">
        <h1 style="color: #7c3aed; text-align: center;">{settings.app_name}</h1>
        <h2 style="text-align: center;">Your OTP Code</h2>
        <div style="background-color: #0a0a0a; padding: 20px; border-radius: 8px; text-align: center; margin: 20px 0;">
            <h1 style="color: #7c3aed; font-size: 48px; letter-spacing: 10px; margin: 0;">{code}</h1>
        </div>
        <p style="text-align: center; color: #a1a1aa;">This code will expire in {minutes} minutes.</p>
        <p style="text-align: center; color: #a1a1aa; font-size: 12px; margin-top: 30px;">If you didn't request this code, please ignore this email.</p>
    </div>
</body>
</html>
'''


def send_otp_email(to_email: str, code: str, minutes: int = 5) -> bool:
    """Deliver a one-time code. Never raises.

    Returns True when the email went out. When SMTP is not configured, or the
    send fails, the code is written to the server log instead (outside
    production only) so local signups keep working.
    """
    if settings.smtp_server and settings.mail_from:
        try:
            send_email(to_email, f"Your {settings.app_name} OTP Code", _otp_html(code, minutes))
            logger.info("OTP email sent to %s", to_email)
            return True
        except Exception:
            logger.exception("Failed to send OTP email to %s", to_email)
    if not settings.is_production:
        logger.warning("OTP for %s: %s", to_email, code)
    return False
