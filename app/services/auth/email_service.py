"""
Transactional email for institution onboarding.

Delivery is best-effort: failures are logged and reported as False so the
calling workflow carries on.
"""
import asyncio
import html
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import structlog

from app.core.config import get_settings
from app.core.exceptions import EmailDeliveryError

logger = structlog.get_logger(__name__)
settings = get_settings()


class EmailService:
    """SMTP-backed notification emails."""

    async def send_institution_magic_link(
        self,
        email: str,
        institution_name: str,
        magic_link: str,
    ) -> bool:
        """
        Send the verification link for a new institution application.

        Args:
            email: Applicant email
            institution_name: Name from the application
            magic_link: Verification URL

        Returns:
            Success status
        """
        # Applicant-supplied text: collapse newlines for the header, escape for HTML
        display_name = " ".join(institution_name.split())
        subject = f"Verify your XENTRO application for {display_name}"
        safe_name = html.escape(display_name)
        safe_link = html.escape(magic_link, quote=True)

        html_body = f"""
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h1 style="color: #111827;">XENTRO</h1>
        <h2>Confirm your institution application</h2>
        <p>We received an application to list <strong>{safe_name}</strong> on XENTRO.
        Confirm this email address to continue onboarding.</p>
        <div style="text-align: center; margin: 30px 0;">
            <a href="{safe_link}"
               style="background-color: #111827; color: white; padding: 12px 30px; text-decoration: none; border-radius: 5px; display: inline-block; font-weight: bold;">
                Verify email
            </a>
        </div>
        <p>If the button doesn't work, paste this link into your browser:</p>
        <p style="word-break: break-all; background-color: #f8f9fa; padding: 10px; border-radius: 5px;">{safe_link}</p>
        <p style="margin-top: 30px; font-size: 14px; color: #666;">
            If you did not apply, you can ignore this email.
        </p>
    </div>
</body>
</html>
        """

        text_body = f"""
Confirm your institution application

We received an application to list {display_name} on XENTRO.
Confirm this email address to continue onboarding:

{magic_link}

If you did not apply, you can ignore this email.
        """

        return await self._deliver(email, subject, html_body, text_body, kind="institution_magic_link")

    async def send_institution_otp(self, email: str, otp: str, expires_minutes: int) -> bool:
        """Send a one-time login code to an institution applicant."""
        subject = "Your XENTRO login code"

        html_body = f"""
<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
        <h1 style="color: #111827;">XENTRO</h1>
        <p>Use this code to sign in to your institution dashboard:</p>
        <p style="font-size: 32px; letter-spacing: 8px; font-weight: bold; text-align: center;">{otp}</p>
        <p style="font-size: 14px; color: #666;">The code expires in {expires_minutes} minutes.</p>
    </div>
</body>
</html>
        """

        text_body = f"""
Your XENTRO login code is {otp}

The code expires in {expires_minutes} minutes.
        """

        return await self._deliver(email, subject, html_body, text_body, kind="institution_otp")

    async def _deliver(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
        kind: str,
    ) -> bool:
        try:
            await self._send_email(to_email, subject, html_body, text_body)
        except EmailDeliveryError as e:
            logger.error("email_delivery_failed", kind=kind, email=to_email, error=str(e))
            return False

        logger.info("email_sent", kind=kind, email=to_email)
        return True

    async def _send_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> None:
        """
        Send email using SMTP.

        Raises:
            EmailDeliveryError: If the message cannot be built or sent
        """
        if not settings.SMTP_HOST:
            logger.warning("smtp_not_configured", email=to_email, subject=subject)
            return

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{settings.SMTP_FROM_NAME} <{settings.SMTP_FROM_EMAIL}>"
            msg["To"] = to_email
            msg.attach(MIMEText(text_body, "plain"))
            msg.attach(MIMEText(html_body, "html"))

            await asyncio.to_thread(self._smtp_send, msg)
        except Exception as e:
            raise EmailDeliveryError(f"Failed to send email: {e}") from e

    @staticmethod
    def _smtp_send(msg: MIMEMultipart) -> None:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as server:
            if settings.SMTP_TLS:
                server.starttls()
            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
