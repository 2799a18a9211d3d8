import smtplib
import logging
from datetime import datetime, timezone
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from html import escape
from typing import Mapping, Optional, Protocol

from app.core.config import Settings

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    """Outbound mail collaborator. ``send`` returns a delivery receipt or raises."""

    def send(self, to: str, subject: str, template_fields: Mapping[str, str]) -> str:
        ...


def render_action_email(app_name: str, fields: Mapping[str, str]) -> str:
    """Render the one-button action email used for verification and resets."""
    name = escape(fields.get("name") or "there")
    instructions = escape(fields.get("instructions", ""))
    button = escape(fields.get("button_content", "Open"))
    link = escape(fields.get("link", ""), quote=True)
    title = escape(app_name)
    year = datetime.now(timezone.utc).year
    return f'''<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>{title}</title>
    <style>
        body {{ font-family: 'Segoe UI', Roboto, Helvetica, Arial, sans-serif; background-color: #f6f8fb; margin: 0; padding: 0; color: #333; }}
        .container {{ max-width: 600px; margin: 40px auto; background-color: #fff; border-radius: 12px; box-shadow: 0 4px 8px rgba(0,0,0,0.05); overflow: hidden; }}
        .header {{ background-color: #1d9bf0; color: #fff; text-align: center; padding: 24px; }}
        .content {{ padding: 32px; line-height: 1.6; }}
        .btn {{ display:inline-block; background:#1d9bf0; color:#ffffff !important; padding:12px 20px; border-radius:8px; text-decoration:none }}
        .footer {{ text-align: center; color: #999; font-size: 12px; padding: 16px 0; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h2>{title}</h2>
        </div>
        <div class="content">
            <h3>Hello {name},</h3>
            <p>{instructions}</p>
            <p><a class="btn" href="{link}" style="color:#ffffff !important; text-decoration:none;">{button}</a></p>
            <p>If the button doesn't work, copy and paste this URL into your browser:<br><a href="{link}">{link}</a></p>
            <p>If you didn't request this, simply ignore this message.</p>
        </div>
        <div class="footer">
            &copy; {year} {title}. All rights reserved.
        </div>
    </div>
</body>
</html>
'''


class SmtpMailer:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def send(self, to: str, subject: str, template_fields: Mapping[str, str]) -> str:
        html = render_action_email(self.settings.app_name, template_fields)
        return send_email(self.settings, to, subject, html)


def send_email(settings: Settings, to_email: str, subject: str, html: str,
               from_name: Optional[str] = None) -> str:
    if not settings.smtp_server:
        raise RuntimeError("SMTP_SERVER is not configured")
    msg = MIMEText(html, "html", "utf-8")
    msg["Subject"] = subject
    msg["From"] = formataddr((from_name or settings.mail_from_name, settings.mail_from))
    msg["To"] = to_email
    msg["Message-ID"] = make_msgid()

    # Add timeout to prevent indefinite hangs
    with smtplib.SMTP(settings.smtp_server, settings.smtp_port, timeout=30) as server:
        server.starttls()
        if settings.smtp_user:
            server.login(settings.smtp_user, settings.smtp_password)
        server.sendmail(settings.mail_from, [to_email], msg.as_string())
    logger.info("Sent %r to %s", subject, to_email)
    return msg["Message-ID"]


def send_best_effort(mailer: Mailer, to: str, subject: str,
                     template_fields: Mapping[str, str]) -> Optional[str]:
    """Send mail without letting a delivery failure fail the caller."""
    try:
        return mailer.send(to, subject, template_fields)
    except Exception:
        logger.exception("Failed to send %r to %s", subject, to)
        return None
