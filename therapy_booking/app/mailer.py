"""
Outbound email over SMTP.

Delivery is a best-effort side effect. Sends block on the network, so request
handlers run them in the threadpool or as background tasks.
When no SMTP host is configured messages are skipped with a log line.
"""
import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from . import config

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, html: str, text: str) -> bool:
    if not config.SMTP_HOST:
        logger.info(f"SMTP not configured, skipping email '{subject}' to {to}")
        return False

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = config.SMTP_FROM
    message["To"] = to
    message.attach(MIMEText(text, "plain"))
    message.attach(MIMEText(html, "html"))

    context = ssl.create_default_context()
    if config.SMTP_SECURE:
        server = smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT, context=context, timeout=30)
    else:
        server = smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=30)
    with server:
        if not config.SMTP_SECURE:
            server.starttls(context=context)
        if config.SMTP_USER and config.SMTP_PASS:
            server.login(config.SMTP_USER, config.SMTP_PASS)
        server.sendmail(config.SMTP_FROM, [to], message.as_string())
    logger.info(f"Email '{subject}' sent to {to}")
    return True


def deliver_logged(send, to: str, *args):
    """Run ``send(to, *args)`` as a background task; failures are logged, not raised."""
    try:
        send(to, *args)
    except Exception as e:
        logger.error(f"Failed to deliver {send.__name__} to {to}: {e}")


def _layout(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
      <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h1 style="background: #667eea; color: white; padding: 30px; text-align: center;">{title}</h1>
        <div style="background: #f9f9f9; padding: 30px;">{body}</div>
        <p style="text-align: center; color: #666; font-size: 12px;">
          &copy; {datetime.now().year} Therapy Platform. All rights reserved.
        </p>
      </div>
    </body>
    </html>
    """


def send_verification_email(to: str, token: str, first_name: str) -> bool:
    url = f"{config.FRONTEND_URL}/verify-email?token={token}"
    html = _layout(
        "Welcome to Therapy Platform!",
        f"<p>Hello {first_name},</p>"
        f"<p>Please verify your email address by opening the link below:</p>"
        f'<p><a href="{url}">{url}</a></p>'
        f"<p>If you didn't create an account, please ignore this email.</p>",
    )
    text = f"Hello {first_name},\n\nPlease verify your email address: {url}\n"
    return send_email(to, "Verify Your Email Address", html, text)


def send_password_reset_email(to: str, reset_url: str, first_name: str) -> bool:
    html = _layout(
        "Password Reset Request",
        f"<p>Hello {first_name},</p>"
        f"<p>Open the link below to choose a new password. It expires in 1 hour.</p>"
        f'<p><a href="{reset_url}">{reset_url}</a></p>'
        f"<p>If you didn't request a password reset, you can ignore this email.</p>",
    )
    text = f"Hello {first_name},\n\nReset your password (valid for 1 hour): {reset_url}\n"
    return send_email(to, "Reset Your Password", html, text)
