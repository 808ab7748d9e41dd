"""Send rendered digests by e-mail over SMTP."""

import os
import smtplib
from collections.abc import Mapping
from dataclasses import dataclass
from email.message import EmailMessage

from .config import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_SMTP_PORT = 587
SMTPS_PORT = 465


@dataclass
class SMTPSettings:
    """SMTP connection and sender settings."""

    host: str
    from_email: str
    port: int = DEFAULT_SMTP_PORT
    user: str | None = None
    password: str | None = None
    timeout: float = 30.0

    @property
    def use_ssl(self) -> bool:
        """Implicit TLS is used on the SMTPS port, STARTTLS elsewhere."""
        return self.port == SMTPS_PORT

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "SMTPSettings":
        """
        Build settings from SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASS and
        FROM_EMAIL.

        Raises:
            ConfigurationError: If the host or sender is missing, or the
                port is not a number
        """
        env = os.environ if env is None else env
        host = env.get("SMTP_HOST")
        from_email = env.get("FROM_EMAIL")
        if not host or not from_email:
            raise ConfigurationError("SMTP configuration is incomplete")

        try:
            port = int(env.get("SMTP_PORT") or DEFAULT_SMTP_PORT)
        except ValueError as e:
            raise ConfigurationError(f"Invalid SMTP_PORT: {env.get('SMTP_PORT')}") from e

        return cls(
            host=host,
            from_email=from_email,
            port=port,
            user=env.get("SMTP_USER") or None,
            password=env.get("SMTP_PASS") or None,
        )


def build_message(html: str, subject: str, to: str, from_email: str) -> EmailMessage:
    """Assemble an HTML message with a short plain-text alternative."""
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = from_email
    message["To"] = to
    message.set_content("This digest is best viewed in an HTML capable mail client.")
    message.add_alternative(html, subtype="html")
    return message


def send_digest(html: str, subject: str, to: str, settings: SMTPSettings) -> None:
    """
    Send a rendered digest to one recipient.

    Args:
        html: Rendered HTML document
        subject: Subject line
        to: Recipient address
        settings: SMTP settings

    Raises:
        ConfigurationError: If no recipient is given
        smtplib.SMTPException: If the server rejects the message
    """
    if not to:
        raise ConfigurationError("SMTP configuration is incomplete")

    message = build_message(html, subject, to, settings.from_email)

    if settings.use_ssl:
        smtp = smtplib.SMTP_SSL(settings.host, settings.port, timeout=settings.timeout)
    else:
        smtp = smtplib.SMTP(settings.host, settings.port, timeout=settings.timeout)

    with smtp:
        if not settings.use_ssl and settings.user:
            smtp.starttls()
        if settings.user:
            smtp.login(settings.user, settings.password or "")
        smtp.send_message(message)

    logger.info(f"Sent digest '{subject}' to {to} via {settings.host}:{settings.port}")
