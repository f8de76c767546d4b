"""
Data Models Module

This module defines the Pydantic models passed between the webhook
components: the notification extracted from a payload, the routing
decision, and the outcome of a delivery attempt.

Design Decisions:
- Webhook payloads are NOT validated against a schema; fields are read
  defensively and a placeholder is substituted for anything missing
- Routing and delivery results are explicit typed values, not exceptions
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

PLACEHOLDER = "unknown"


# =============================================================================
# Enums
# =============================================================================

class RouteAction(str, Enum):
    """What the router decided to do with a delivery."""
    NOTIFY = "notify"
    IGNORE = "ignore"


class DeliveryStatus(str, Enum):
    """Result of a notification delivery attempt."""
    DELIVERED = "delivered"
    FAILED = "failed"


# =============================================================================
# Payload helpers
# =============================================================================

def dig(payload: Any, *path: str) -> Optional[str]:
    """
    Read a nested scalar from an untyped JSON payload.

    Returns None when any step of the path is missing, is not an object,
    or when the final value is not a scalar.
    """
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    if current is None or isinstance(current, (dict, list)):
        return None
    if isinstance(current, bool):
        return str(current).lower()
    return str(current)


# =============================================================================
# Notification Models
# =============================================================================

class PullRequestNotification(BaseModel):
    """
    The fields of a pull_request event that are announced in chat.

    Every field is optional; missing values render as a placeholder.
    """
    repository: Optional[str] = None
    title: Optional[str] = None
    author: Optional[str] = None
    head_ref: Optional[str] = None
    base_ref: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "PullRequestNotification":
        """Build a notification from a raw pull_request payload."""
        return cls(
            repository=dig(payload, "repository", "full_name"),
            title=dig(payload, "pull_request", "title"),
            author=dig(payload, "pull_request", "user", "login"),
            head_ref=dig(payload, "pull_request", "head", "ref"),
            base_ref=dig(payload, "pull_request", "base", "ref"),
            url=dig(payload, "pull_request", "html_url"),
        )

    def render(self) -> str:
        """Format the chat message announcing the pull request."""
        def show(value: Optional[str]) -> str:
            return value if value else PLACEHOLDER

        return (
            f"New pull request in **{show(self.repository)}**\n"
            f"Title: {show(self.title)}\n"
            f"Author: {show(self.author)}\n"
            f"Branches: {show(self.head_ref)} → {show(self.base_ref)}\n"
            f"{show(self.url)}"
        )


# =============================================================================
# Routing & Delivery Models
# =============================================================================

class RouteDecision(BaseModel):
    """Outcome of routing a webhook delivery."""
    action: RouteAction
    event_type: Optional[str] = None
    event_action: Optional[str] = None
    notification: Optional[PullRequestNotification] = None
    reason: Optional[str] = None

    @property
    def should_notify(self) -> bool:
        return self.action == RouteAction.NOTIFY

    @classmethod
    def notify(
        cls,
        notification: PullRequestNotification,
        event_type: Optional[str] = None,
        event_action: Optional[str] = None
    ) -> "RouteDecision":
        return cls(
            action=RouteAction.NOTIFY,
            event_type=event_type,
            event_action=event_action,
            notification=notification
        )

    @classmethod
    def ignore(
        cls,
        reason: str,
        event_type: Optional[str] = None,
        event_action: Optional[str] = None
    ) -> "RouteDecision":
        return cls(
            action=RouteAction.IGNORE,
            event_type=event_type,
            event_action=event_action,
            reason=reason
        )


class DeliveryOutcome(BaseModel):
    """
    Result of sending a notification to the chat backend.

    A failed outcome is logged but never changes the HTTP status returned
    to GitHub.
    """
    status: DeliveryStatus
    reason: Optional[str] = Field(default=None, description="Why delivery failed")
    message_id: Optional[str] = Field(default=None, description="ID of the posted message")

    @property
    def delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED

    @classmethod
    def success(cls, message_id: Optional[str] = None) -> "DeliveryOutcome":
        return cls(status=DeliveryStatus.DELIVERED, message_id=message_id)

    @classmethod
    def failure(cls, reason: str) -> "DeliveryOutcome":
        return cls(status=DeliveryStatus.FAILED, reason=reason)
