"""
Transport registry.

Maps delivery method names to transport factories. A factory is any
callable taking a settings mapping and returning an object with
``deliver_now(message)``.
"""

import logging
from typing import Any, Callable, Dict, Mapping

from ..exceptions import ConfigurationError
from ..integrations.ses import SesTransport
from .transports import FileTransport, LoggerTransport, SmtpTransport, TestTransport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[Mapping[str, Any]], Any]

BUILTIN_DELIVERY_METHODS: Dict[str, TransportFactory] = {
    'test': TestTransport,
    'logger': LoggerTransport,
    'file': FileTransport,
    'smtp': SmtpTransport,
    'ses': SesTransport,
}

_delivery_methods: Dict[str, TransportFactory] = dict(BUILTIN_DELIVERY_METHODS)


def _normalize_name(name: Any) -> str:
    return str(name).strip().lower()


def register_delivery_method(name: str, factory: TransportFactory) -> None:
    """
    Register (or replace) a transport factory under ``name``.

    Raises:
        ValueError: If name is empty or factory is not callable
    """
    key = _normalize_name(name)
    if not key:
        raise ValueError("Delivery method name cannot be empty")
    if not callable(factory):
        raise ValueError(f"Transport factory for {key!r} must be callable")

    if key in _delivery_methods:
        logger.info(f"Replacing delivery method: {key}")
    _delivery_methods[key] = factory


def unregister_delivery_method(name: str) -> None:
    """Remove a custom registration; built-ins revert to their default."""
    key = _normalize_name(name)
    if key in BUILTIN_DELIVERY_METHODS:
        _delivery_methods[key] = BUILTIN_DELIVERY_METHODS[key]
    else:
        _delivery_methods.pop(key, None)


def lookup_delivery_method(name: str) -> TransportFactory:
    """
    Resolve a delivery method name to its transport factory.

    Raises:
        ConfigurationError: If no transport is registered under ``name``
    """
    key = _normalize_name(name)
    try:
        return _delivery_methods[key]
    except KeyError:
        known = ', '.join(sorted(_delivery_methods))
        raise ConfigurationError(f"Invalid delivery method {name!r}. Known methods: {known}")
