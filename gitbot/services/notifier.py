"""
Discord Notifier Module

Formats routed webhook events and delivers them to the configured Discord
channel.

Design Decisions:
- Delivery is attempted once; failures become a DeliveryOutcome, never an
  exception, so the webhook response is unaffected
- A missing token or channel is reported per delivery, not at import time
"""

from typing import Optional

import httpx

from gitbot.config import ConfigurationError, Settings
from gitbot.logging_config import get_logger
from gitbot.models import DeliveryOutcome, PullRequestNotification
from gitbot.services.discord_client import DiscordAPIError, DiscordClient

logger = get_logger(__name__)


class DiscordNotifier:
    """
    Sends pull request announcements to one Discord channel.

    Usage:
        notifier = DiscordNotifier.from_settings(get_settings())
        outcome = await notifier.notify(notification)
    """

    def __init__(self, client: DiscordClient, channel_id: Optional[str]):
        self.client = client
        self.channel_id = channel_id

    @classmethod
    def from_settings(cls, settings: Settings) -> "DiscordNotifier":
        return cls(DiscordClient.from_settings(settings), settings.discord_channel_id)

    @property
    def is_configured(self) -> bool:
        return bool(self.client.has_token and self.channel_id)

    @property
    def is_ready(self) -> bool:
        return self.client.is_ready

    async def notify(self, notification: PullRequestNotification) -> DeliveryOutcome:
        """
        Deliver a pull request announcement.

        Args:
            notification: Fields extracted from the webhook payload

        Returns:
            DeliveryOutcome describing whether the message was posted
        """
        message = notification.render()

        try:
            if not self.is_configured:
                raise ConfigurationError(
                    "Discord notifier not configured (DISCORD_TOKEN and CHANNEL_ID are required)"
                )

            channel = await self.client.fetch_channel(self.channel_id)
            posted = await self.client.send_message(channel.get("id", self.channel_id), message)

        except (ConfigurationError, DiscordAPIError, httpx.HTTPError) as e:
            logger.error(
                "Failed to deliver Discord notification",
                repository=notification.repository,
                channel_id=self.channel_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return DeliveryOutcome.failure(f"{type(e).__name__}: {e}")

        logger.info(
            "PR notified",
            repository=notification.repository,
            title=notification.title,
            message_id=posted.get("id")
        )
        return DeliveryOutcome.success(posted.get("id"))

    async def close(self) -> None:
        await self.client.close()
