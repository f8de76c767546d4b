"""
Webhook Security Module

This module handles verification of GitHub webhook payloads.
It implements HMAC-SHA256 signature verification to ensure requests
are genuinely from GitHub.

Design Decisions:
- Use constant-time comparison to prevent timing attacks
- Verify against the raw body bytes, never a re-serialized payload
- An unset secret never accepts a request
- Report failure as a plain boolean so callers cannot leak the cause
"""

import hashlib
import hmac
from typing import Optional, Union

from fastapi import Request

from gitbot.logging_config import get_logger

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"
SIGNATURE_PREFIX = "sha256="


def _as_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def sign_payload(secret: Union[str, bytes], body: Union[str, bytes]) -> str:
    """
    Compute the X-Hub-Signature-256 value GitHub would send for a body.

    Args:
        secret: Shared webhook secret
        body: Exact request body

    Returns:
        Header value of the form "sha256=<hex digest>"
    """
    digest = hmac.new(_as_bytes(secret), _as_bytes(body), hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(
    secret: Optional[str],
    signature_header: Optional[str],
    raw_body: bytes
) -> bool:
    """
    Verify a GitHub webhook signature.

    Args:
        secret: Configured webhook secret (None or empty disables acceptance)
        signature_header: Value of the X-Hub-Signature-256 header
        raw_body: Raw request body bytes, exactly as received

    Returns:
        True only if the header matches the HMAC-SHA256 of the body
    """
    if not secret or not signature_header:
        return False

    expected = sign_payload(secret, raw_body).encode("ascii")

    try:
        received = signature_header.encode("ascii")
    except UnicodeEncodeError:
        return False

    # unequal lengths fail before the constant-time compare
    if len(received) != len(expected) or not hmac.compare_digest(expected, received):
        logger.debug("Webhook signature mismatch", body_size=len(raw_body))
        return False

    return True


def extract_delivery_id(request: Request) -> Optional[str]:
    """
    Extract the webhook delivery ID from headers.

    This is useful for correlating log entries for one delivery.
    """
    return request.headers.get(DELIVERY_HEADER)


def extract_event_type(request: Request) -> Optional[str]:
    """Extract the GitHub event type from headers."""
    return request.headers.get(EVENT_HEADER)


def extract_signature(request: Request) -> Optional[str]:
    """Extract the SHA-256 signature header."""
    return request.headers.get(SIGNATURE_HEADER)
