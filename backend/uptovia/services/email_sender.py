"""Email sender service - sends transition alerts via SMTP."""
import asyncio
import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from typing import List
from dataclasses import dataclass

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


@dataclass
class EmailConfig:
    """SMTP configuration for sending emails."""
    host: str = ""
    port: int = 587
    username: str = ""
    password: str = ""
    use_tls: bool = True
    from_address: str = ""
    to_address: str = ""  # Comma-separated list of email addresses


def parse_recipients(to_address: str) -> List[str]:
    """Parse comma-separated email addresses into a list."""
    if not to_address:
        return []
    return [addr.strip() for addr in to_address.split(",") if addr.strip()]


class EmailSenderService:
    """Service for sending email alerts via SMTP."""

    def __init__(self, config: EmailConfig):
        self.config = config

    @property
    def is_configured(self) -> bool:
        return bool(self.config.host and parse_recipients(self.config.to_address))

    async def send_email(self, subject: str, body: str) -> bool:
        """Send a plain-text email without blocking the event loop.

        Returns True on success, False on failure.
        """
        if not self.is_configured:
            logger.debug("Email not configured - missing host or to_address")
            return False
        return await asyncio.to_thread(self._send_blocking, subject, body)

    def _send_blocking(self, subject: str, body: str) -> bool:
        config = self.config
        recipients = parse_recipients(config.to_address)
        from_addr = config.from_address or config.username

        msg = MIMEText(body, "plain")
        msg["Subject"] = subject
        msg["From"] = from_addr
        msg["To"] = ", ".join(recipients)

        try:
            with smtplib.SMTP(config.host, config.port, timeout=SMTP_TIMEOUT_SECONDS) as server:
                if config.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if config.username and config.password:
                    server.login(config.username, config.password)
                server.sendmail(from_addr, recipients, msg.as_string())

            logger.info(f"Email sent successfully to {len(recipients)} recipient(s): {subject}")
            return True

        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed for user '{config.username}': {e}")
            return False
        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"Recipients refused by server: {e}")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {type(e).__name__}: {e}")
            return False
        except OSError as e:
            logger.error(f"Failed to connect to SMTP server {config.host}:{config.port}: {e}")
            return False
