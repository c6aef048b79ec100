"""
MIME rendering utilities for transports.

This module converts the gatekeeper's Message to and from RFC 5322 form so
file, SMTP and SES transports can hand off a standard email.
"""

import logging
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import getaddresses
from typing import List

from ..domain.models import Message, Recipients, RecipientValue

logger = logging.getLogger(__name__)


def envelope_recipients(message: Message) -> List[str]:
    """
    Collect the distinct envelope recipients across to, cc and bcc.

    Args:
        message: Message to inspect

    Returns:
        List of addresses in first-seen order
    """
    recipients: List[str] = []
    for value in (message.to, message.cc, message.bcc):
        for address in Recipients.normalize(value):
            address = str(address)
            if address not in recipients:
                recipients.append(address)
    return recipients


def _header_value(value: RecipientValue) -> str:
    return ', '.join(str(address) for address in Recipients.normalize(value))


def to_mime(message: Message) -> EmailMessage:
    """
    Render a Message as a stdlib EmailMessage.

    Bcc recipients are never written to the headers; transports pass them on
    the envelope only.

    Args:
        message: Message to render

    Returns:
        EmailMessage with From/To/Cc/Subject, extra headers and a text body
    """
    mime = EmailMessage()

    if message.from_address:
        mime['From'] = message.from_address
    if message.to:
        mime['To'] = _header_value(message.to)
    if message.cc:
        mime['Cc'] = _header_value(message.cc)
    mime['Subject'] = message.subject or ''

    for name, value in message.headers.items():
        if name.lower() in ('from', 'to', 'cc', 'bcc', 'subject'):
            logger.warning(f"Ignoring extra header that shadows a message field: {name}")
            continue
        mime[name] = value

    mime.set_content(message.body or '')
    return mime


def to_bytes(message: Message) -> bytes:
    """
    Render a Message as RFC 5322 bytes with CRLF line endings.

    Example:
        >>> raw = to_bytes(Message(to='a@site.com', subject='Hi', body='Hello'))
        >>> b'Subject: Hi' in raw
        True
    """
    return to_mime(message).as_bytes(policy=policy.SMTP)


def _addresses_from_header(header: str) -> RecipientValue:
    addresses = [address for _, address in getaddresses([header]) if address]
    return Recipients.collapse(addresses).value


def from_bytes(email_content: bytes) -> Message:
    """
    Parse raw email bytes into a Message.

    Single-address headers become a string, multi-address headers a list and
    missing headers None. Only the plain text body is kept.

    Args:
        email_content: Raw email bytes (RFC 5322)

    Returns:
        Message

    Raises:
        ValueError: If email content is empty
    """
    if not email_content:
        raise ValueError("Email content cannot be empty")

    msg = BytesParser(policy=policy.default).parsebytes(email_content)

    body_part = msg.get_body(preferencelist=('plain',))
    body = body_part.get_content() if body_part is not None else ''

    known = {'from', 'to', 'cc', 'bcc', 'subject'}
    headers = {
        name: str(value)
        for name, value in msg.items()
        if name.lower() not in known
        and name.lower() not in ('mime-version', 'content-type', 'content-transfer-encoding')
    }

    return Message(
        to=_addresses_from_header(str(msg.get('To', ''))),
        cc=_addresses_from_header(str(msg.get('Cc', ''))),
        bcc=_addresses_from_header(str(msg.get('Bcc', ''))),
        subject=str(msg.get('Subject', '')),
        body=body,
        from_address=str(msg['From']) if msg['From'] else None,
        headers=headers,
    )
