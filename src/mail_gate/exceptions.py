"""
Exception types raised by MailGate.
"""


class ConfigurationError(Exception):
    """Raised when gatekeeper configuration is invalid or a transport cannot be resolved."""
    pass


class TransportError(Exception):
    """Raised when a built-in transport fails to hand off a message."""
    pass
