"""SMTP delivery of contact form messages."""

from __future__ import annotations

import html
import logging
import smtplib
import ssl
from email.message import EmailMessage

from prometheus_client import Counter

from .config import Settings

logger = logging.getLogger(__name__)

EMAIL_SENT_COUNTER = Counter("contact_emails_sent_total", "Contact form emails delivered")
EMAIL_FAILURE_COUNTER = Counter(
    "contact_email_failures_total", "Contact form emails that could not be delivered"
)


class EmailDeliveryError(Exception):
    """Raised when a contact email cannot be handed to the SMTP relay."""




def build_contact_message(
    name: str, email: str, message: str, sender: str, recipient: str
) -> EmailMessage:
    """Format a contact form submission as a text + HTML email."""
    # header values must stay on one line
    subject_name = " ".join(name.split())

    msg = EmailMessage()
    msg["Subject"] = f"Nová zpráva z kontaktního formuláře od {subject_name}"
    msg["From"] = sender
    msg["To"] = recipient
    msg["Reply-To"] = email
    msg.set_content(f"Jméno: {name}\nEmail: {email}\n\nZpráva:\n{message}")

    body = html.escape(message).replace("\n", "<br>")
    msg.add_alternative(
        "<h2>Nová zpráva z kontaktního formuláře</h2>\n"
        f"<p><strong>Jméno:</strong> {html.escape(name)}</p>\n"
        f"<p><strong>Email:</strong> {html.escape(email)}</p>\n"
        "<h3>Zpráva:</h3>\n"
        f"<p>{body}</p>\n",
        subtype="html",
    )
    return msg


class ContactMailer:
    """Sends contact messages through the configured SMTP relay.

    Port 465 uses implicit TLS, any other port upgrades with STARTTLS. Both
    verify the server certificate against the system trust store.
    """

    smtp_class = smtplib.SMTP
    smtp_ssl_class = smtplib.SMTP_SSL

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.sender = settings.smtp_from or settings.smtp_user
        self.recipient = settings.contact_email or self.sender
        self.timeout = settings.smtp_timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.sender and self.recipient)

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.port == 465:
            return self.smtp_ssl_class(
                self.host, self.port, timeout=self.timeout, context=context
            )
        client = self.smtp_class(self.host, self.port, timeout=self.timeout)
        try:
            client.starttls(context=context)
        except Exception:
            client.close()
            raise
        return client

    def verify(self) -> bool:
        """Open a connection, authenticate and NOOP; report whether the relay answered."""
        if not self.is_configured:
            logger.warning("SMTP is not configured, contact form emails cannot be sent")
            return False
        try:
            with self._connect() as client:
                if self.user and self.password:
                    client.login(self.user, self.password)
                client.noop()
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP connection check against %s:%s failed: %s", self.host, self.port, exc)
            return False
        logger.info("SMTP connection to %s:%s verified", self.host, self.port)
        return True

    def send_contact_message(self, name: str, email: str, message: str) -> None:
        if not self.is_configured:
            EMAIL_FAILURE_COUNTER.inc()
            raise EmailDeliveryError("SMTP is not configured")

        try:
            msg = build_contact_message(name, email, message, self.sender, self.recipient)
            with self._connect() as client:
                if self.user and self.password:
                    client.login(self.user, self.password)
                client.send_message(msg)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            EMAIL_FAILURE_COUNTER.inc()
            logger.error("failed to send contact email via %s:%s: %s", self.host, self.port, exc)
            raise EmailDeliveryError(str(exc)) from exc

        EMAIL_SENT_COUNTER.inc()
        logger.info("contact email from %s sent to %s", email, self.recipient)
