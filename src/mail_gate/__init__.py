"""
MailGate - outbound email gatekeeper.

Strips recipients that do not match an allow-list pattern before handing a
message to the real mail transport, so staging and test environments never
email real-world addresses.
"""

import logging

from .domain.gatekeeper import Gatekeeper
from .domain.models import GatekeeperConfig, Message
from .exceptions import ConfigurationError, TransportError
from .services.registry import lookup_delivery_method, register_delivery_method

# Library logging stays silent unless the host configures a handler
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'Gatekeeper',
    'GatekeeperConfig',
    'Message',
    'ConfigurationError',
    'TransportError',
    'lookup_delivery_method',
    'register_delivery_method',
]
