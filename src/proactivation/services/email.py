"""Email service for sending activation links."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import urlencode

import aiosmtplib
import httpx

from proactivation.config import settings

logger = logging.getLogger(__name__)


class EmailBackend(ABC):
    """Abstract base class for email backends."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        """Send an email.

        Args:
            to: Recipient email address
            subject: Email subject
            html: HTML content
            text: Plain text content (optional)

        Returns:
            True if the provider accepted the message
        """
        pass


class ConsoleEmailBackend(EmailBackend):
    """Email backend that logs to console (for development)."""

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        """Log email to console instead of sending."""
        logger.info(
            f"\n{'='*60}\n"
            f"EMAIL (console backend - not sent)\n"
            f"{'='*60}\n"
            f"To: {to}\n"
            f"Subject: {subject}\n"
            f"{'='*60}\n"
            f"{text or html}\n"
            f"{'='*60}\n"
        )
        return True


class SMTPEmailBackend(EmailBackend):
    """Email backend using SMTP."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        use_tls: bool = True,
        from_address: str = "",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        """Send email via SMTP."""
        message = MIMEMultipart("alternative")
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject

        if text:
            message.attach(MIMEText(text, "plain"))
        message.attach(MIMEText(html, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
            )
            logger.info(f"Email sent via SMTP to {to}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email via SMTP to {to}: {e}")
            return False


class ResendEmailBackend(EmailBackend):
    """Email backend using Resend API."""

    def __init__(self, api_key: str, from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        """Send email via Resend API."""
        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    "https://api.resend.com/emails",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": self.from_address,
                        "to": [to],
                        "subject": subject,
                        "html": html,
                        "text": text,
                    },
                    timeout=30.0,
                )
                response.raise_for_status()
                logger.info(f"Email sent via Resend to {to}")
                return True
            except httpx.HTTPStatusError as e:
                logger.error(f"Resend API error: {e.response.status_code} - {e.response.text}")
                return False
            except Exception as e:
                logger.error(f"Failed to send email via Resend to {to}: {e}")
                return False


class ZeptoMailEmailBackend(EmailBackend):
    """Email backend using the ZeptoMail API."""

    API_URL = "https://api.zeptomail.com/v1.1/email"

    def __init__(self, token: str, from_address: str, from_name: str):
        self.token = token
        self.from_address = from_address
        self.from_name = from_name

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
    ) -> bool:
        """Send email via ZeptoMail API."""
        payload: dict = {
            "from": {"address": self.from_address, "name": self.from_name},
            "to": [{"email_address": {"address": to, "name": to}}],
            "subject": subject,
            "htmlbody": html,
        }
        if text:
            payload["textbody"] = text

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.API_URL,
                    headers={
                        # ZeptoMail expects the full "Zoho-enczapikey ..." value
                        "Authorization": self.token,
                        "Content-Type": "application/json",
                        "Accept": "application/json",
                    },
                    json=payload,
                    timeout=30.0,
                )
                response.raise_for_status()
                logger.info(f"Email sent via ZeptoMail to {to}")
                return True
            except httpx.HTTPStatusError as e:
                logger.error(f"ZeptoMail API error: {e.response.status_code} - {e.response.text}")
                return False
            except Exception as e:
                logger.error(f"Failed to send email via ZeptoMail to {to}: {e}")
                return False


def get_email_backend() -> EmailBackend:
    """Get the configured email backend."""
    if settings.email_backend == "console":
        return ConsoleEmailBackend()
    elif settings.email_backend == "smtp":
        return SMTPEmailBackend(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_address=f"{settings.email_from_name} <{settings.email_from}>",
        )
    elif settings.email_backend == "resend":
        return ResendEmailBackend(
            api_key=settings.resend_api_key,
            from_address=f"{settings.email_from_name} <{settings.email_from}>",
        )
    elif settings.email_backend == "zeptomail":
        return ZeptoMailEmailBackend(
            token=settings.zeptomail_token,
            from_address=settings.email_from,
            from_name=settings.email_from_name,
        )
    else:
        raise ValueError(f"Unknown email backend: {settings.email_backend}")


@dataclass(frozen=True)
class ActivationTemplate:
    """Copy for one kind of activation email."""

    subject: str
    heading: str
    message: str
    footer: str | None = None


TEMPLATES: dict[str, ActivationTemplate] = {
    "webhook": ActivationTemplate(
        subject="Activate Your Pro Subscription",
        heading="Thank You for Subscribing!",
        message=(
            "Your payment was successful. Please click the button below to activate "
            "your Pro account and unlock all features."
        ),
    ),
    "activation": ActivationTemplate(
        subject="Activate Your Pro Subscription",
        heading="Activate Your Pro Subscription",
        message=(
            "We found your active subscription! Click the button below to activate "
            "your Pro account on this device."
        ),
        footer=(
            "This email was sent because you requested to activate your subscription "
            "on a new device or browser."
        ),
    ),
}


class EmailService:
    """Notification sender for activation links."""

    def __init__(self, backend: EmailBackend | None = None, app_url: str | None = None):
        self._backend = backend
        self.app_url = (app_url or settings.app_url).rstrip("/")

    @property
    def backend(self) -> EmailBackend:
        """Lazy-load the backend."""
        if self._backend is None:
            self._backend = get_email_backend()
        return self._backend

    def activation_link(self, token: str) -> str:
        """Build the client URL that redeems a token."""
        return f"{self.app_url}/?{urlencode({'token': token})}"

    async def send(self, to: str, token: str, template_kind: str = "activation") -> bool:
        """Send an activation link email.

        Args:
            to: Recipient email address
            token: Activation token to embed in the link
            template_kind: "webhook" after a purchase, "activation" for resends

        Returns:
            True if sent successfully
        """
        template = TEMPLATES.get(template_kind, TEMPLATES["activation"])
        link = self.activation_link(token)

        footer_html = ""
        if template.footer:
            footer_html = f"""
        <hr style="margin: 30px 0; border: none; border-top: 1px solid #eee;">
        <p style="font-size: 0.9rem; color: #666;">{template.footer}</p>"""

        html = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body>
    <div style="font-family: sans-serif; padding: 20px; line-height: 1.6;">
        <h2>{template.heading}</h2>
        <p>{template.message}</p>
        <a href="{link}"
           style="background-color: #2563eb; color: white; padding: 12px 20px; text-decoration: none; border-radius: 5px; display: inline-block;">
            Activate My Account
        </a>
        <p>If you have any trouble, you can copy and paste this link into your browser:</p>
        <p><a href="{link}" style="color: #2563eb; word-break: break-all;">{link}</a></p>
        <p>If you have any questions, please contact support.</p>{footer_html}
    </div>
</body>
</html>
"""

        text = f"""
{template.heading}
{'=' * len(template.heading)}

{template.message}

{link}

If you have any questions, please contact support.
"""
        if template.footer:
            text += f"\n{template.footer}\n"

        return await self.backend.send(to=to, subject=template.subject, html=html, text=text)
