"""
Delivery services used by the Gatekeeper.

This package contains the transport registry, the built-in transports and
the MIME rendering helpers they share.
"""

__all__ = ['mime', 'registry', 'transports']
