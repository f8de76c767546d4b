"""
Discord API Client Module

This module provides a small async client for the Discord REST API,
authenticated as a bot.

Design Decisions:
- Use httpx for async HTTP requests with one long-lived connection pool
- Log in lazily on first use and share that single login between all
  concurrent callers
- A failed login is discarded so the next caller logs in again; a cached
  failure would silence every later notification
- Rate-limit outgoing messages locally and never retry a message send
"""

import asyncio
from typing import Any, Dict, Optional

import httpx
from aiolimiter import AsyncLimiter
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gitbot.config import Settings
from gitbot.logging_config import get_logger

logger = get_logger(__name__)


class DiscordAPIError(Exception):
    """Custom exception for Discord API errors."""
    def __init__(self, message: str, status_code: int = None, response_body: str = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class DiscordAuthError(DiscordAPIError):
    """Raised when the bot token is missing or rejected."""
    pass


class DiscordRateLimitError(DiscordAPIError):
    """Raised when Discord answers 429."""
    def __init__(self, message: str, retry_after: float = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class DiscordClient:
    """
    Async Discord REST client with a memoized bot login.

    Usage:
        client = DiscordClient(token="...")
        channel = await client.fetch_channel("1234")
        await client.send_message(channel["id"], "hello")
        await client.close()
    """

    DISCORD_API_BASE = "https://discord.com/api/v10"

    def __init__(
        self,
        token: Optional[str],
        api_base: str = DISCORD_API_BASE,
        timeout: float = 30.0,
        rate_limit: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client. No network traffic happens until first use.

        Args:
            token: Discord bot token
            api_base: REST API base URL
            timeout: Per-request timeout in seconds
            rate_limit: Messages allowed per 5 seconds
            transport: Optional httpx transport (used by tests)
        """
        self._token = token
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport

        self._http: Optional[httpx.AsyncClient] = None
        self._login_task: Optional[asyncio.Task] = None
        self._limiter = AsyncLimiter(max_rate=rate_limit, time_period=5)

        self.user: Optional[Dict[str, Any]] = None
        self.login_attempts = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "DiscordClient":
        """Create a client from application settings."""
        return cls(
            token=settings.discord_token,
            api_base=settings.discord_api_base,
            timeout=settings.discord_timeout,
            rate_limit=settings.discord_rate_limit
        )

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    @property
    def is_ready(self) -> bool:
        """Whether a login has completed and is still considered valid."""
        return self.user is not None

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._api_base,
                headers={
                    "Authorization": f"Bot {self._token}",
                    "User-Agent": "gitbot (https://github.com, 1.0)",
                },
                timeout=self._timeout,
                transport=self._transport
            )
        return self._http

    async def connect(self) -> "DiscordClient":
        """
        Log in if needed and return the ready client.

        Concurrent callers share one in-flight login. If that login fails,
        every waiting caller sees the error and the next call starts over.

        Raises:
            DiscordAPIError: If the login fails
        """
        if self._login_task is None:
            self._login_task = asyncio.create_task(self._login())

        task = self._login_task
        try:
            # shield: a cancelled caller must not cancel the shared login
            await asyncio.shield(task)
        except BaseException:
            if task.done() and (task.cancelled() or task.exception() is not None):
                if self._login_task is task:
                    self._login_task = None
            raise

        return self

    async def _login(self) -> Dict[str, Any]:
        """Validate the bot token by fetching the bot's own user."""
        self.login_attempts += 1

        if not self._token:
            raise DiscordAuthError("Discord bot token not configured")

        logger.debug("Logging in to Discord", attempt=self.login_attempts)

        user = await self._fetch_current_user()
        self.user = user

        logger.info(
            "Logged in to Discord",
            bot_user=user.get("username"),
            bot_id=user.get("id")
        )
        return user

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True
    )
    async def _fetch_current_user(self) -> Dict[str, Any]:
        return await self._request("GET", "/users/@me")

    def invalidate(self) -> None:
        """Forget the current login so the next call logs in again."""
        self.user = None
        if self._login_task is not None and self._login_task.done():
            self._login_task = None

    async def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """
        Make an authenticated request to the Discord API.

        Args:
            method: HTTP method
            endpoint: API endpoint (without base URL)
            **kwargs: Additional arguments to pass to httpx

        Returns:
            Decoded JSON body (empty dict for 204 responses)

        Raises:
            DiscordAuthError: On 401
            DiscordRateLimitError: On 429
            DiscordAPIError: On any other 4xx/5xx
        """
        response = await self._get_http().request(method, endpoint, **kwargs)

        if response.status_code == 401:
            self.invalidate()
            raise DiscordAuthError(
                "Discord rejected the bot token",
                status_code=401,
                response_body=response.text
            )

        if response.status_code == 429:
            retry_after = None
            try:
                retry_after = float(response.json().get("retry_after"))
            except (ValueError, TypeError, AttributeError):
                pass
            logger.warning(
                "Discord rate limit hit",
                endpoint=endpoint,
                retry_after=retry_after
            )
            raise DiscordRateLimitError(
                "Discord rate limit exceeded",
                retry_after=retry_after,
                status_code=429,
                response_body=response.text
            )

        if response.status_code >= 400:
            error_body = response.text
            logger.error(
                "Discord API error",
                status_code=response.status_code,
                endpoint=endpoint,
                error=error_body[:500]
            )
            raise DiscordAPIError(
                f"Discord API error: {response.status_code}",
                status_code=response.status_code,
                response_body=error_body
            )

        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    async def fetch_channel(self, channel_id: str) -> Dict[str, Any]:
        """
        Fetch a channel the bot can see.

        Args:
            channel_id: Discord channel snowflake

        Returns:
            Channel object as returned by Discord
        """
        await self.connect()
        return await self._request("GET", f"/channels/{channel_id}")

    async def send_message(self, channel_id: str, content: str) -> Dict[str, Any]:
        """
        Post a plain-text message to a channel.

        Mentions in the content are not resolved, so text copied from a
        pull request cannot ping the channel.

        Args:
            channel_id: Discord channel snowflake
            content: Message text

        Returns:
            The created message object
        """
        await self.connect()
        async with self._limiter:
            return await self._request(
                "POST",
                f"/channels/{channel_id}/messages",
                json={"content": content, "allowed_mentions": {"parse": []}}
            )

    async def close(self) -> None:
        """Cancel a pending login and close the HTTP connection pool."""
        if self._login_task is not None and not self._login_task.done():
            self._login_task.cancel()
        self._login_task = None
        self.user = None

        if self._http is not None:
            await self._http.aclose()
            self._http = None
