"""
Gatekeeper - recipient allow-list filtering in front of a real transport.

For each outbound message:
1. Filter to, cc and bcc against the whitelist pattern
2. Optionally note the removed recipients in the body
3. Optionally prefix the subject
4. Hand the message to the wrapped transport unless no "to" remains

Configure it with a settings mapping:

    gatekeeper = Gatekeeper({
        'whitelist': r'@site\\.com|allowed@partner\\.com',
        'delivery_method': 'smtp',
        'delivery_settings': {'address': 'smtp.internal', 'port': 587},
        'subject_prefix': '[staging] ',
    })
    gatekeeper.deliver(message)
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from .models import GatekeeperConfig, Message, Recipients, RecipientValue
from ..services.registry import lookup_delivery_method

RECIPIENT_FIELDS = ('to', 'cc', 'bcc')


class Gatekeeper:
    """
    Restricts delivery to whitelisted recipients.

    The whitelist is a regular expression matched anywhere in the address
    (``re.search``), so ``@site.com`` allows every site.com mailbox. The
    default whitelist matches everything.
    """

    def __init__(
        self,
        config: Union[GatekeeperConfig, Mapping[str, Any], None] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Build the whitelist and the wrapped transport.

        Args:
            config: GatekeeperConfig or a plain settings mapping
            logger: Sink for suppression notices (default: package logger)

        Raises:
            ConfigurationError: If the delivery method cannot be resolved
        """
        if not isinstance(config, GatekeeperConfig):
            config = GatekeeperConfig.from_settings(config)

        self.config = config
        self.whitelist = config.whitelist
        self.logger = logger or logging.getLogger(__name__)

        factory = lookup_delivery_method(config.delivery_method)
        self.delivery_method = factory(dict(config.delivery_settings))

    def deliver(self, message: Message) -> Message:
        """
        Filter out non-whitelisted recipients and deliver what remains.

        If no "to" recipient survives, the transport is not called.

        Args:
            message: Message to filter; mutated in place

        Returns:
            Message: The same message, after filtering
        """
        original_emails = self._email_list(message)

        for name in RECIPIENT_FIELDS:
            setattr(message, name, self._filter_emails(getattr(message, name)))

        surviving = self._email_list(message)
        rejected_emails = [email for email in original_emails if email not in surviving]

        if self.config.append_emails and rejected_emails:
            message.body = (
                f"{message.body or ''}\n\nExtracted Recipients: {', '.join(rejected_emails)}"
            )

        if self.config.subject_prefix:
            message.subject = self.config.subject_prefix + (message.subject or '')

        if rejected_emails:
            self.logger.info(f"MailGate: suppressing mail to {', '.join(rejected_emails)}")

        if message.to:
            self.delivery_method.deliver_now(message)
        else:
            self.logger.debug("MailGate: no whitelisted 'to' recipients, skipping delivery")

        return message

    def _filter_emails(self, emails: RecipientValue) -> RecipientValue:
        """
        Keep only the emails that match the whitelist.

        Examples:
            With a whitelist of r'@site\\.com':

            _filter_emails('guest@user.com')
            # => None

            _filter_emails(['guest@user.com', 'ops@site.com'])
            # => 'ops@site.com'

            _filter_emails(['ops@site.com', 'qa@site.com'])
            # => ['ops@site.com', 'qa@site.com']

        Returns:
            A list if more than one email survives, the bare email if one
            does, None if none do.
        """
        kept = [
            recipient for recipient in Recipients.normalize(emails)
            if self.whitelist.search(str(recipient))
        ]
        return Recipients.collapse(kept).value

    @staticmethod
    def _email_list(message: Message) -> List[str]:
        """Distinct addresses across to, bcc and cc, in first-seen order."""
        emails: List[str] = []
        for value in (message.to, message.bcc, message.cc):
            for email in Recipients.normalize(value):
                if email not in emails:
                    emails.append(email)
        return emails
