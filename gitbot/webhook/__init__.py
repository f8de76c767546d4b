"""
Webhook Package

This package contains webhook handling components:
- handler: FastAPI route handlers
- security: Webhook signature verification
- parser: Raw body to JSON
- router: Event routing table
"""

from gitbot.webhook.handler import create_webhook_router

__all__ = ["create_webhook_router"]
