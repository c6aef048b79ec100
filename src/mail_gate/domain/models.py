"""
Data models for the gatekeeper domain.

These type-safe data structures define clear contracts between the
Gatekeeper, the transports and the entry point.
"""

import json
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..exceptions import ConfigurationError

# A recipient field as stored on a Message: absent, one address, or several
RecipientValue = Optional[Union[str, List[str]]]

MATCH_ALL = re.compile(r'.*')

_FALSE_STRINGS = {'false', '0', 'no', 'off'}


@dataclass
class Message:
    """
    Outbound email message.

    Attributes:
        to: Primary recipients (None, a single address, or a list)
        cc: Carbon-copy recipients (same shape as ``to``)
        bcc: Blind carbon-copy recipients (same shape as ``to``)
        subject: Subject line
        body: Plain text body
        from_address: Sender address (used by transports only)
        headers: Extra headers rendered by MIME-based transports
    """
    to: RecipientValue = None
    cc: RecipientValue = None
    bcc: RecipientValue = None
    subject: Optional[str] = ''
    body: Optional[str] = ''
    from_address: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Message':
        """
        Build a Message from a JSON-style dict.

        Accepts ``from`` or ``from_address`` for the sender.
        """
        return cls(
            to=data.get('to'),
            cc=data.get('cc'),
            bcc=data.get('bcc'),
            subject=data.get('subject', ''),
            body=data.get('body', ''),
            from_address=data.get('from', data.get('from_address')),
            headers=dict(data.get('headers') or {}),
        )


class Recipients(ABC):
    """
    Tagged union for a filtered recipient field: Absent, Single or Many.

    Use ``Recipients.collapse`` to build one; it picks the variant from the
    number of addresses so a one-element result is always a bare address.
    """

    kind = ''

    @property
    @abstractmethod
    def value(self) -> RecipientValue:
        """Value to write back onto a Message field."""

    @staticmethod
    def normalize(value: Any) -> List[str]:
        """Turn a raw field value into a list of addresses."""
        if not value:
            return []
        if isinstance(value, (list, tuple, set, frozenset)):
            return [item for item in value if item is not None]
        return [value]

    @staticmethod
    def collapse(addresses: Iterable[str]) -> 'Recipients':
        """Absent for no addresses, Single for one, Many for two or more."""
        addresses = list(addresses)
        if not addresses:
            return Absent()
        if len(addresses) == 1:
            return Single(addresses[0])
        return Many(tuple(addresses))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Recipients):
            return NotImplemented
        return self.kind == other.kind and self.value == other.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class Absent(Recipients):
    kind = 'absent'

    @property
    def value(self) -> RecipientValue:
        return None


class Single(Recipients):
    kind = 'single'

    def __init__(self, address: str):
        self.address = address

    @property
    def value(self) -> RecipientValue:
        return self.address


class Many(Recipients):
    kind = 'many'

    def __init__(self, addresses: Iterable[str]):
        self.addresses = tuple(addresses)
        if len(self.addresses) < 2:
            raise ValueError("Many requires at least two addresses")

    @property
    def value(self) -> RecipientValue:
        return list(self.addresses)


def _compile_whitelist(whitelist: Any) -> re.Pattern:
    if whitelist is None:
        return MATCH_ALL
    if isinstance(whitelist, re.Pattern):
        return whitelist
    try:
        return re.compile(str(whitelist))
    except re.error as e:
        raise ConfigurationError(f"Invalid whitelist pattern {whitelist!r}: {e}")


def _parse_env_flag(value: str) -> bool:
    """Environment strings such as "false" or "0" disable a flag."""
    return value.strip().lower() not in _FALSE_STRINGS


@dataclass(frozen=True)
class GatekeeperConfig:
    """
    Immutable gatekeeper configuration, read once at construction.

    Attributes:
        whitelist: Allow-list pattern (substring match); strings are compiled
        delivery_method: Registry name of the wrapped transport
        delivery_settings: Settings passed to the transport constructor
        append_emails: Append the rejected-recipient summary to the body
        subject_prefix: String prepended verbatim to the subject
    """
    whitelist: Union[re.Pattern, str, None] = MATCH_ALL
    delivery_method: str = 'test'
    delivery_settings: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    append_emails: bool = True
    subject_prefix: Optional[str] = None

    def __post_init__(self):
        # Frozen: normalize through object.__setattr__
        object.__setattr__(self, 'whitelist', _compile_whitelist(self.whitelist))
        if not isinstance(self.delivery_settings, MappingProxyType):
            object.__setattr__(
                self, 'delivery_settings', MappingProxyType(dict(self.delivery_settings or {}))
            )

    @classmethod
    def from_settings(cls, settings: Optional[Mapping[str, Any]] = None) -> 'GatekeeperConfig':
        """
        Build a config from a settings mapping.

        Args:
            settings: Mapping with any of ``whitelist``, ``delivery_method``,
                ``delivery_settings``, ``append_emails``, ``subject_prefix``

        Raises:
            ConfigurationError: If the whitelist pattern does not compile
        """
        settings = settings or {}
        # whitelist and delivery_settings are normalized in __post_init__
        delivery_method = settings.get('delivery_method') or 'test'
        return cls(
            whitelist=settings.get('whitelist'),
            delivery_method=str(delivery_method),
            delivery_settings=settings.get('delivery_settings') or {},
            # Only an explicit False disables the body note
            append_emails=settings.get('append_emails', True) is not False,
            subject_prefix=settings.get('subject_prefix'),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'GatekeeperConfig':
        """
        Build a config from ``MAIL_GATE_*`` environment variables.

        Raises:
            ConfigurationError: If MAIL_GATE_DELIVERY_SETTINGS is not a JSON object
        """
        environ = os.environ if environ is None else environ

        raw_settings = environ.get('MAIL_GATE_DELIVERY_SETTINGS', '')
        delivery_settings: Dict[str, Any] = {}
        if raw_settings:
            try:
                delivery_settings = json.loads(raw_settings)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"MAIL_GATE_DELIVERY_SETTINGS is not valid JSON: {e}")
            if not isinstance(delivery_settings, dict):
                raise ConfigurationError("MAIL_GATE_DELIVERY_SETTINGS must be a JSON object")

        return cls.from_settings({
            'whitelist': environ.get('MAIL_GATE_WHITELIST') or None,
            'delivery_method': environ.get('MAIL_GATE_DELIVERY_METHOD'),
            'delivery_settings': delivery_settings,
            'append_emails': _parse_env_flag(environ.get('MAIL_GATE_APPEND_EMAILS', 'true')),
            'subject_prefix': environ.get('MAIL_GATE_SUBJECT_PREFIX') or None,
        })
