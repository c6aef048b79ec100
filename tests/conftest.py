"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('MAIL_GATE_DELIVERY_METHOD', 'test')
os.environ.setdefault('MAIL_GATE_WHITELIST', r'@site\.com')
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-west-2')

from mail_gate.domain.models import Message  # noqa: E402


@pytest.fixture
def staff_message():
    """Message addressed to two staff members and one outsider."""
    return Message(
        to=['garrett@site.com', 'matt@site.com', 'non-staff@user.com'],
        subject='Welcome to the site!',
        body='Hello there',
        from_address='noreply@site.com'
    )
