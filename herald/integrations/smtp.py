"""SMTP email transport for registration alerts.

Opens one connection per message.
"""

import logging
import smtplib
from collections.abc import Sequence
from email.message import EmailMessage
from email.utils import formataddr

from herald.errors import TransportError

logger = logging.getLogger(__name__)


class SmtpEmailTransport:
    """Send plain-text email through an SMTP relay.

    Usage::

        transport = SmtpEmailTransport("mail.example.com", 587, starttls=True)
        transport.send(None, "ops@example.com", "Herald", "no_reply@example.com",
                       "User Registration", "A new user ...")
    """

    def __init__(
        self,
        host: str,
        port: int = 25,
        *,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = False,
        default_sender: str = "",
        timeout: float = 30.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._starttls = starttls
        self._default_sender = default_sender
        self._timeout = timeout

    def build_message(
        self,
        from_address: str | None,
        to: str,
        from_name: str,
        reply_address: str,
        subject: str,
        body: str,
    ) -> EmailMessage:
        sender = from_address or self._default_sender or reply_address
        msg = EmailMessage()
        msg["From"] = formataddr((from_name, sender)) if from_name else sender
        msg["To"] = to
        msg["Reply-To"] = reply_address
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send(
        self,
        from_address: str | None,
        to: str,
        from_name: str,
        reply_address: str,
        subject: str,
        body: str,
        attachments: Sequence[tuple[str, bytes]] | None = None,
    ) -> None:
        """Send one message.

        Raises:
            TransportError: If connecting, authenticating or sending fails.
        """
        msg = self.build_message(from_address, to, from_name, reply_address, subject, body)
        for filename, data in attachments or ():
            msg.add_attachment(
                data, maintype="application", subtype="octet-stream", filename=filename
            )

        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                if self._starttls:
                    smtp.starttls()
                if self._username and self._password:
                    smtp.login(self._username, self._password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise TransportError(f"Failed to send email to {to}: {exc}") from exc

        logger.info("Sent email to %s: %s", to, subject)
