"""
AWS Lambda handler for gatekeeping outbound email queued on SQS.

Each SQS record body is a JSON message:
    {"to": [...], "cc": ..., "bcc": ..., "subject": "...", "body": "...", "from": "..."}

Thin orchestration layer that delegates to Gatekeeper.
Policy: only records whose delivery failed are returned for retry.
"""

import json
import logging
from typing import Any, Dict, List

from .domain.gatekeeper import Gatekeeper
from .domain.models import GatekeeperConfig, Message
from .exceptions import TransportError

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Add console handler for local testing (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter('%(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

# Initialize gatekeeper once at module level (reused across invocations)
gatekeeper = Gatekeeper(GatekeeperConfig.from_env())


def _parse_record(record: Dict[str, Any]) -> Message:
    """
    Parse an SQS record body into a Message.

    Raises:
        ValueError: If the body is not a JSON object
    """
    try:
        data = json.loads(record.get('body') or '')
    except json.JSONDecodeError as e:
        raise ValueError(f"Record body is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ValueError("Record body must be a JSON object")

    return Message.from_dict(data)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Filter and deliver outbound messages from SQS.

    Args:
        event: Lambda event with SQS records
        context: Lambda context

    Returns:
        Dict with batchItemFailures for records that should be retried
    """
    records = event.get('Records', [])
    logger.info(f"Processing batch of {len(records)} outbound message(s)")

    failures: List[Dict[str, str]] = []
    delivered_count = 0
    for record in records:
        message_id = record.get('messageId', 'UNKNOWN')

        try:
            message = _parse_record(record)
            result = gatekeeper.deliver(message)
        except ValueError as e:
            logger.error(f"Invalid message {message_id}: {e}")
            failures.append({'itemIdentifier': message_id})
            continue
        except TransportError as e:
            logger.error(f"Delivery failed for {message_id}: {e}")
            failures.append({'itemIdentifier': message_id})
            continue
        except Exception as e:
            logger.error(f"Unexpected error for {message_id}: {e}", exc_info=True)
            failures.append({'itemIdentifier': message_id})
            continue

        if result.to:
            delivered_count += 1
            logger.info(f"Delivered message {message_id}")
        else:
            logger.info(f"Skipped message {message_id}: no whitelisted recipients")

    logger.info(
        f"Batch complete: {len(records)} message(s), "
        f"delivered={delivered_count}, failed={len(failures)}"
    )

    return {"batchItemFailures": failures}
