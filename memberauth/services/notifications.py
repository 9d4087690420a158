"""Outbound email for verification codes, login codes and welcome messages (Mailgun)."""
import logging

import httpx

from memberauth.config import Settings, get_settings
from memberauth.exceptions import NotificationError

logger = logging.getLogger(__name__)

MAILGUN_US_BASE = "https://api.mailgun.net"
MAILGUN_EU_BASE = "https://api.eu.mailgun.net"


def _mailgun_configured(settings: Settings) -> bool:
    return bool(settings.mailgun_api_key and settings.mailgun_domain)


def send_email(to_email: str, subject: str, text_content: str, html_content: str | None = None, settings: Settings | None = None) -> bool:
    """Send email via Mailgun. Returns True if sent (or logged when the console fallback is on)."""
    settings = settings or get_settings()
    if _mailgun_configured(settings):
        return _send_email_mailgun(to_email, subject, text_content, html_content, settings=settings)
    if settings.email_console_fallback:
        logger.warning("Mailgun not configured; email to=%s subject=%r body=%r", to_email, subject, text_content)
        return True
    logger.error("Email NOT SENT: to=%s subject=%r. Set MAILGUN_API_KEY and MAILGUN_DOMAIN.", to_email, subject)
    return False


def _send_email_mailgun(to_email: str, subject: str, text_content: str, html_content: str | None, settings: Settings) -> bool:
    base = (settings.mailgun_base_url or MAILGUN_US_BASE).strip().rstrip("/")
    domain = settings.mailgun_domain.strip().lower()
    from_addr = settings.mailgun_from_email
    from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
    if domain and from_domain != domain:
        from_addr = f"noreply@{domain}"
        logger.info("Mailgun: using from=%s (must match domain %s for delivery)", from_addr, domain)
    data = {
        "from": f"{settings.mailgun_from_name} <{from_addr}>",
        "to": to_email,
        "subject": subject,
        "text": text_content,
    }
    if html_content:
        data["html"] = html_content
    try:
        with httpx.Client(timeout=10.0) as client:
            r = client.post(f"{base}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data)
            if 200 <= r.status_code < 300:
                logger.info("Mailgun: sent to=%s status=%s", to_email, r.status_code)
                return True
            if r.status_code == 401 and base == MAILGUN_US_BASE:
                logger.info("Mailgun: 401 with US endpoint, retrying with EU endpoint")
                r2 = client.post(f"{MAILGUN_EU_BASE}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data)
                if 200 <= r2.status_code < 300:
                    logger.info("Mailgun: sent (EU) to=%s", to_email)
                    return True
                logger.error("Mailgun: EU request failed status=%s body=%s", r2.status_code, r2.text[:500])
                return False
            logger.error("Mailgun: request failed status=%s to=%s body=%s", r.status_code, to_email, r.text[:500])
            return False
    except httpx.HTTPError as e:
        logger.error("Mailgun: %s sending to=%s: %s", type(e).__name__, to_email, e)
        return False


class Notifier:
    """Member-facing emails. Each send raises :class:`NotificationError` when delivery fails."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def _send(self, to_email: str, subject: str, text: str, html: str | None = None) -> None:
        if not send_email(to_email, subject, text, html, settings=self.settings):
            raise NotificationError(f"Could not deliver {subject!r} to {to_email}")

    def send_verification_code(self, to_email: str, otp: str) -> None:
        minutes = self.settings.registration_otp_ttl_minutes
        text = f"Your email verification OTP is: {otp}. This OTP will expire in {minutes} minutes."
        html = f"""
    <p>Hello,</p>
    <p>Your email verification code is: <strong style="font-size:1.2em;letter-spacing:0.2em;">{otp}</strong></p>
    <p>This code expires in {minutes} minutes. If you did not request this, you can ignore this email.</p>
    """
        self._send(to_email, "Verify Your Email", text, html)

    def send_login_code(self, to_email: str, otp: str) -> None:
        minutes = self.settings.login_otp_ttl_minutes
        unit = "minute" if minutes == 1 else "minutes"
        text = f"Your OTP is: {otp}. This OTP will expire in {minutes} {unit}."
        self._send(to_email, "Your OTP for Authentication", text)

    def send_welcome(self, to_email: str, full_name: str | None = None) -> None:
        name = (full_name or "").strip() or "there"
        text = f"Dear {name},\n\nWelcome to our application! We're glad to have you on board."
        html = f"""
    <p>Dear {name},</p>
    <p>Welcome to our application! We're glad to have you on board.</p>
    """
        self._send(to_email, "Welcome to Our Application!", text, html)


def get_notifier() -> Notifier:
    return Notifier()
