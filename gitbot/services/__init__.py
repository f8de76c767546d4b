"""
Services Package

This package contains the outbound integrations:
- discord_client: Discord REST client with a memoized bot login
- notifier: Formats and delivers pull request announcements
- keepalive: Optional periodic self-ping
"""

from gitbot.services.discord_client import (
    DiscordAPIError,
    DiscordAuthError,
    DiscordClient,
    DiscordRateLimitError,
)
from gitbot.services.notifier import DiscordNotifier

__all__ = [
    "DiscordAPIError",
    "DiscordAuthError",
    "DiscordClient",
    "DiscordRateLimitError",
    "DiscordNotifier",
]
