"""
Built-in mail transports.

Every transport is constructed from a single settings mapping and exposes
``deliver_now(message)``. The Gatekeeper owns one transport instance and
reuses it across deliveries.
"""

import logging
import os
import smtplib
from typing import Any, List, Mapping, Optional

from ..domain.models import Message
from ..exceptions import TransportError
from . import mime

logger = logging.getLogger(__name__)


class TestTransport:
    """
    In-memory transport for tests and dry runs.

    Delivered messages are kept in ``deliveries`` in call order.
    """

    # Not a pytest test class
    __test__ = False

    def __init__(self, settings: Optional[Mapping[str, Any]] = None):
        self.settings = dict(settings or {})
        self.deliveries: List[Message] = []

    def deliver_now(self, message: Message) -> Message:
        self.deliveries.append(message)
        return message


class LoggerTransport:
    """Logs recipients and subject instead of sending."""

    def __init__(self, settings: Optional[Mapping[str, Any]] = None):
        self.settings = dict(settings or {})
        level = self.settings.get('level', logging.INFO)
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
        self.level = level

    def deliver_now(self, message: Message) -> None:
        logger.log(
            self.level,
            f"Delivering mail: to={message.to}, cc={message.cc}, "
            f"bcc={message.bcc}, subject={message.subject}"
        )


class FileTransport:
    """
    Writes each message to one file per recipient.

    Settings:
        location: Directory for the mailbox files (default: ./mails)
    """

    def __init__(self, settings: Optional[Mapping[str, Any]] = None):
        self.settings = dict(settings or {})
        self.location = self.settings.get('location') or os.path.join(os.getcwd(), 'mails')

    def deliver_now(self, message: Message) -> List[str]:
        """
        Append the rendered message to ``<location>/<address>``.

        Returns:
            List of file paths written

        Raises:
            TransportError: If the message cannot be rendered or the
                directory or a file cannot be written
        """
        paths = []
        try:
            raw = mime.to_bytes(message)
            os.makedirs(self.location, exist_ok=True)
            for address in mime.envelope_recipients(message):
                path = os.path.join(self.location, os.path.basename(address))
                with open(path, 'ab') as f:
                    f.write(raw)
                    f.write(b'\r\n')
                paths.append(path)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to write mail to {self.location}: {e}")
            raise TransportError(f"Failed to write mail to {self.location}: {e}")

        logger.info(f"Wrote mail for {len(paths)} recipient(s) to {self.location}")
        return paths


class SmtpTransport:
    """
    Sends messages through an SMTP relay.

    Settings:
        address: SMTP host (default: localhost)
        port: SMTP port (default: 25)
        user_name / password: Optional login credentials
        enable_starttls: Upgrade the connection with STARTTLS (default: False)
        timeout: Socket timeout in seconds (default: 30)
    """

    def __init__(self, settings: Optional[Mapping[str, Any]] = None):
        self.settings = dict(settings or {})
        self.address = self.settings.get('address', 'localhost')
        self.port = int(self.settings.get('port', 25))
        self.user_name = self.settings.get('user_name')
        self.password = self.settings.get('password')
        self.enable_starttls = bool(self.settings.get('enable_starttls', False))
        self.timeout = float(self.settings.get('timeout', 30))

    def deliver_now(self, message: Message) -> None:
        """
        Send a message to every to/cc/bcc recipient.

        Raises:
            TransportError: If the message cannot be rendered or the SMTP
                conversation fails
        """
        recipients = mime.envelope_recipients(message)

        logger.info(
            f"Sending via SMTP: host={self.address}:{self.port}, "
            f"recipients={len(recipients)}"
        )

        try:
            # Header values with CR/LF raise ValueError here
            mime_message = mime.to_mime(message)
            with smtplib.SMTP(self.address, self.port, timeout=self.timeout) as smtp:
                if self.enable_starttls:
                    smtp.starttls()
                if self.user_name:
                    smtp.login(self.user_name, self.password or '')
                smtp.send_message(
                    mime_message,
                    from_addr=message.from_address,
                    to_addrs=recipients
                )
        except (smtplib.SMTPException, OSError, ValueError) as e:
            logger.error(f"SMTP delivery failed: host={self.address}:{self.port}, error={e}")
            raise TransportError(f"SMTP delivery failed: {e}")
