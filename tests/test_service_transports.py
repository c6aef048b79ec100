"""
Tests for the built-in transports.
"""

import logging
import os
import smtplib
import pytest
from unittest.mock import MagicMock, patch

from mail_gate.domain.models import Message
from mail_gate.exceptions import TransportError
from mail_gate.services.transports import (
    FileTransport,
    LoggerTransport,
    SmtpTransport,
    TestTransport,
)


@pytest.fixture
def message():
    return Message(
        to=['garrett@site.com', 'matt@site.com'],
        bcc='audit@site.com',
        subject='Quarterly report',
        body='See attached.',
        from_address='noreply@site.com'
    )


class TestTestTransport:
    """Test in-memory delivery."""

    def test_records_deliveries(self, message):
        transport = TestTransport({})

        result = transport.deliver_now(message)

        assert result is message
        assert transport.deliveries == [message]

    def test_deliveries_are_per_instance(self, message):
        first = TestTransport()
        second = TestTransport()

        first.deliver_now(message)

        assert second.deliveries == []


class TestLoggerTransport:
    """Test log-only delivery."""

    def test_logs_message(self, message, caplog):
        transport = LoggerTransport({})

        with caplog.at_level(logging.INFO, logger='mail_gate'):
            transport.deliver_now(message)

        assert 'Quarterly report' in caplog.text
        assert 'garrett@site.com' in caplog.text

    def test_level_from_name(self):
        assert LoggerTransport({'level': 'warning'}).level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        assert LoggerTransport({'level': 'chatty'}).level == logging.INFO


class TestFileTransport:
    """Test mailbox file delivery."""

    def test_writes_one_file_per_recipient(self, message, tmp_path):
        transport = FileTransport({'location': str(tmp_path / 'mails')})

        paths = transport.deliver_now(message)

        assert sorted(os.path.basename(p) for p in paths) == [
            'audit@site.com', 'garrett@site.com', 'matt@site.com'
        ]
        content = (tmp_path / 'mails' / 'garrett@site.com').read_bytes()
        assert b'Subject: Quarterly report' in content
        assert b'See attached.' in content

    def test_appends_to_existing_mailbox(self, message, tmp_path):
        transport = FileTransport({'location': str(tmp_path)})

        transport.deliver_now(message)
        transport.deliver_now(message)

        content = (tmp_path / 'matt@site.com').read_bytes()
        assert content.count(b'Subject: Quarterly report') == 2

    def test_write_failure_raises_transport_error(self, message, tmp_path):
        blocker = tmp_path / 'not-a-dir'
        blocker.write_text('occupied')
        transport = FileTransport({'location': str(blocker)})

        with pytest.raises(TransportError, match="Failed to write mail"):
            transport.deliver_now(message)

    def test_header_injection_raises_transport_error(self, tmp_path):
        transport = FileTransport({'location': str(tmp_path)})
        injected = Message(to='a@site.com\r\nBcc: x@evil.com', body='Hello')

        with pytest.raises(TransportError, match="Failed to write mail"):
            transport.deliver_now(injected)

        assert list(tmp_path.iterdir()) == []

    def test_default_location(self):
        transport = FileTransport()
        assert transport.location == os.path.join(os.getcwd(), 'mails')


class TestSmtpTransport:
    """Test SMTP delivery."""

    def test_settings(self):
        transport = SmtpTransport({
            'address': 'smtp.internal',
            'port': '587',
            'user_name': 'mailer',
            'password': 'secret',
            'enable_starttls': True
        })

        assert transport.address == 'smtp.internal'
        assert transport.port == 587
        assert transport.enable_starttls is True

    def test_defaults(self):
        transport = SmtpTransport()

        assert transport.address == 'localhost'
        assert transport.port == 25
        assert transport.user_name is None

    @patch('mail_gate.services.transports.smtplib.SMTP')
    def test_sends_to_all_envelope_recipients(self, mock_smtp_class, message):
        smtp = MagicMock()
        mock_smtp_class.return_value.__enter__.return_value = smtp
        transport = SmtpTransport({'address': 'smtp.internal', 'port': 2525})

        transport.deliver_now(message)

        mock_smtp_class.assert_called_once_with('smtp.internal', 2525, timeout=30.0)
        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()
        _, kwargs = smtp.send_message.call_args
        assert kwargs['from_addr'] == 'noreply@site.com'
        assert kwargs['to_addrs'] == ['garrett@site.com', 'matt@site.com', 'audit@site.com']

    @patch('mail_gate.services.transports.smtplib.SMTP')
    def test_starttls_and_login(self, mock_smtp_class, message):
        smtp = MagicMock()
        mock_smtp_class.return_value.__enter__.return_value = smtp
        transport = SmtpTransport({
            'user_name': 'mailer',
            'password': 'secret',
            'enable_starttls': True
        })

        transport.deliver_now(message)

        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with('mailer', 'secret')

    @patch('mail_gate.services.transports.smtplib.SMTP')
    def test_smtp_error_raises_transport_error(self, mock_smtp_class, message):
        smtp = MagicMock()
        smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
        mock_smtp_class.return_value.__enter__.return_value = smtp

        with pytest.raises(TransportError, match="SMTP delivery failed"):
            SmtpTransport().deliver_now(message)

    @patch('mail_gate.services.transports.smtplib.SMTP')
    def test_connection_error_raises_transport_error(self, mock_smtp_class, message):
        mock_smtp_class.side_effect = ConnectionRefusedError("refused")

        with pytest.raises(TransportError, match="refused"):
            SmtpTransport().deliver_now(message)

    @patch('mail_gate.services.transports.smtplib.SMTP')
    def test_header_injection_raises_transport_error(self, mock_smtp_class):
        injected = Message(to='a@site.com\nBcc: x@evil.com', subject='Hi', body='Hello')

        with pytest.raises(TransportError, match="SMTP delivery failed"):
            SmtpTransport().deliver_now(injected)

        mock_smtp_class.assert_not_called()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
