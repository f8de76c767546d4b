"""
Webhook Payload Parser

Turns the verified raw body into a JSON value. No schema is applied here;
individual notification builders read the fields they need defensively.
"""

import json
from typing import Any

from gitbot.logging_config import get_logger

logger = get_logger(__name__)


class PayloadParseError(Exception):
    """Raised when a webhook body is not valid UTF-8 JSON."""
    pass


def parse_payload(raw_body: bytes) -> Any:
    """
    Decode a webhook body as UTF-8 and parse it as JSON.

    Args:
        raw_body: Raw request body bytes

    Returns:
        The decoded JSON value

    Raises:
        PayloadParseError: On any decoding or syntax error
    """
    try:
        text = raw_body.decode("utf-8")
        return json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug("Webhook body is not valid JSON", error=str(e), size=len(raw_body))
        raise PayloadParseError(f"Invalid JSON payload: {e}") from e
