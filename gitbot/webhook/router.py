"""
Webhook Event Router

Decides whether a verified delivery should produce a chat notification.

The routing table maps (event type, payload action) pairs to a builder
that extracts the notification from the payload. Only newly opened pull
requests are announced; every other delivery is acknowledged and ignored.
"""

from typing import Any, Callable, Dict, Optional, Tuple

from gitbot.logging_config import get_logger
from gitbot.models import PullRequestNotification, RouteDecision

logger = get_logger(__name__)

NotificationBuilder = Callable[[Any], PullRequestNotification]

ROUTES: Dict[Tuple[str, str], NotificationBuilder] = {
    ("pull_request", "opened"): PullRequestNotification.from_payload,
}


def route_event(event_type: Optional[str], payload: Any) -> RouteDecision:
    """
    Route a webhook delivery.

    Args:
        event_type: Value of the X-GitHub-Event header
        payload: Parsed JSON body

    Returns:
        RouteDecision telling the handler to notify or ignore
    """
    action = payload.get("action") if isinstance(payload, dict) else None
    if not isinstance(action, str):
        action = None

    if not event_type:
        return RouteDecision.ignore("missing event type", event_action=action)

    builder = ROUTES.get((event_type, action)) if action else None
    if builder is None:
        logger.debug("No route for event", event_type=event_type, action=action)
        return RouteDecision.ignore(
            f"Event type '{event_type}' with action '{action}' not processed",
            event_type=event_type,
            event_action=action
        )

    return RouteDecision.notify(
        builder(payload),
        event_type=event_type,
        event_action=action
    )
