"""
Amazon SES transport.

Renders the message as raw MIME and sends it with SES ``send_raw_email``.

Usage:
    gatekeeper = Gatekeeper({
        'whitelist': r'@example\\.com',
        'delivery_method': 'ses',
        'delivery_settings': {'region_name': 'us-west-2'},
    })
"""

import logging
import os
from typing import Any, Mapping, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..domain.models import Message
from ..exceptions import TransportError
from ..services import mime

logger = logging.getLogger(__name__)

DEFAULT_REGION = 'us-west-2'


def _initialize_ses_client(region: str):
    """
    Initialize boto3 SES client with timeout configuration.

    Returns:
        boto3.client: Configured SES client
    """
    # No retries: a retried send could deliver twice
    client_config = Config(
        retries={
            'max_attempts': 0,
            'mode': 'standard'
        },
        connect_timeout=10,
        read_timeout=30
    )

    client = boto3.client('ses', region_name=region, config=client_config)

    logger.info(
        f"SES client initialized: region={region}, "
        f"connect_timeout=10s, read_timeout=30s, max_attempts=0 (no retries)"
    )
    return client


class SesTransport:
    """
    Sends messages through Amazon SES.

    Settings:
        region_name: AWS region (default: AWS_REGION, AWS_DEFAULT_REGION, us-west-2)
        configuration_set: Optional SES configuration set name
    """

    def __init__(self, settings: Optional[Mapping[str, Any]] = None):
        self.settings = dict(settings or {})
        self.region = self.settings.get('region_name') or os.environ.get(
            'AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', DEFAULT_REGION)
        )
        self.configuration_set = self.settings.get('configuration_set')
        self.client = _initialize_ses_client(self.region)

    def deliver_now(self, message: Message) -> str:
        """
        Send a message to every to/cc/bcc recipient.

        Returns:
            str: SES message ID

        Raises:
            TransportError: If the message cannot be rendered or SES
                rejects the request
        """
        destinations = mime.envelope_recipients(message)

        try:
            request = {
                'Destinations': destinations,
                'RawMessage': {'Data': mime.to_bytes(message)},
            }
            if message.from_address:
                request['Source'] = message.from_address
            if self.configuration_set:
                request['ConfigurationSetName'] = self.configuration_set

            response = self.client.send_raw_email(**request)
        except ValueError as e:
            logger.error(f"SES delivery failed: cannot render message: {e}")
            raise TransportError(f"SES delivery failed: cannot render message: {e}")
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            error_message = e.response.get('Error', {}).get('Message', str(e))
            logger.error(
                f"SES delivery failed: error_code={error_code}, "
                f"error_message={error_message}, region={self.region}"
            )
            raise TransportError(f"SES delivery failed ({error_code}): {error_message}")

        message_id = response.get('MessageId', '')
        logger.info(f"SES accepted message {message_id} for {len(destinations)} recipient(s)")
        return message_id
