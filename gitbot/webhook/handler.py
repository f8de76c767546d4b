"""
Webhook Handler Module

This module defines the FastAPI endpoints for handling GitHub webhooks.
It verifies the signature over the raw body, parses the payload, routes
the event and hands notifications to the Discord notifier.

Design Decisions:
- Plain-text status bodies (invalid signature / invalid json / OK)
- Delivery failures are logged and answered with 200 "Received" so GitHub
  does not redeliver because of a chat outage
- Optional quick-ack mode answers 202 and delivers in a background task
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from gitbot.config import Settings
from gitbot.logging_config import get_logger
from gitbot.models import DeliveryOutcome, PullRequestNotification
from gitbot.webhook.parser import PayloadParseError, parse_payload
from gitbot.webhook.router import route_event
from gitbot.webhook.security import (
    extract_delivery_id,
    extract_event_type,
    extract_signature,
    verify_signature,
)

logger = get_logger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_notifier(request: Request) -> Any:
    """The process-wide notifier owned by the application."""
    return request.app.state.notifier


async def deliver_notification(
    notifier: Any,
    notification: PullRequestNotification,
    delivery_id: Optional[str]
) -> DeliveryOutcome:
    """
    Deliver a notification, containing every failure.

    This wrapper ensures that errors in delivery are logged and
    never reach the HTTP layer or crash a background task.
    """
    try:
        outcome = await notifier.notify(notification)
    except Exception as e:
        logger.error(
            "Webhook handler error",
            delivery_id=delivery_id,
            repository=notification.repository,
            error=str(e),
            error_type=type(e).__name__
        )
        return DeliveryOutcome.failure(f"{type(e).__name__}: {e}")

    if outcome.delivered:
        logger.info(
            "Notification delivered",
            delivery_id=delivery_id,
            repository=notification.repository,
            message_id=outcome.message_id
        )
    else:
        logger.warning(
            "Notification not delivered",
            delivery_id=delivery_id,
            repository=notification.repository,
            reason=outcome.reason
        )
    return outcome


def create_webhook_router(path: str) -> APIRouter:
    """
    Build the router serving the webhook endpoint at path.

    Args:
        path: Route that receives GitHub deliveries

    Returns:
        APIRouter with GET, POST and method-not-allowed handlers
    """
    router = APIRouter(tags=["webhook"])

    @router.get(path)
    async def webhook_info() -> Dict[str, Any]:
        """Health reply for the webhook route itself."""
        return {"ok": True, "route": path}

    @router.api_route(path, methods=["PUT", "PATCH", "DELETE"], include_in_schema=False)
    async def webhook_method_not_allowed() -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            content={"error": "Method Not Allowed"},
            headers={"Allow": "GET, POST"}
        )

    @router.post(path)
    async def github_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        settings: Settings = Depends(get_app_settings),
        notifier: Any = Depends(get_notifier)
    ) -> PlainTextResponse:
        """
        GitHub webhook endpoint.

        Verifies the signature, parses the JSON body and relays
        newly opened pull requests to Discord.
        """
        delivery_id = extract_delivery_id(request)
        event_type = extract_event_type(request)
        log = logger.bind(delivery_id=delivery_id, event_type=event_type)

        log.info(
            "Received GitHub webhook",
            remote_addr=request.client.host if request.client else "unknown"
        )

        # Signature is computed over the exact bytes GitHub sent
        raw_body = await request.body()

        if not verify_signature(settings.github_webhook_secret, extract_signature(request), raw_body):
            log.warning(
                "Webhook signature rejected",
                verification_enabled=bool(settings.github_webhook_secret)
            )
            return PlainTextResponse("invalid signature", status_code=status.HTTP_401_UNAUTHORIZED)

        try:
            payload = parse_payload(raw_body)
        except PayloadParseError as e:
            log.warning("Failed to parse webhook payload", error=str(e))
            return PlainTextResponse("invalid json", status_code=status.HTTP_400_BAD_REQUEST)

        decision = route_event(event_type, payload)
        if not decision.should_notify:
            log.debug(
                "Ignoring webhook event",
                action=decision.event_action,
                reason=decision.reason
            )
            return PlainTextResponse("OK")

        log.info(
            "Relaying pull request",
            action=decision.event_action,
            repository=decision.notification.repository
        )

        if settings.quick_ack:
            background_tasks.add_task(
                deliver_notification,
                notifier,
                decision.notification,
                delivery_id
            )
            return PlainTextResponse("received", status_code=status.HTTP_202_ACCEPTED)

        outcome = await deliver_notification(notifier, decision.notification, delivery_id)
        if outcome.delivered:
            return PlainTextResponse("OK")
        return PlainTextResponse("Received")

    return router
