"""
Test Configuration

Pytest configuration and fixtures for the test suite.
"""

import json
from typing import Any, Callable, Dict, Generator, List, Optional, Union

import pytest
from fastapi.testclient import TestClient

from gitbot.config import Settings
from gitbot.main import create_app
from gitbot.models import DeliveryOutcome, PullRequestNotification
from gitbot.webhook.security import sign_payload

TEST_SECRET = "test-secret"
WEBHOOK_PATH = "/api/github-webhook"


class FakeNotifier:
    """Records notifications instead of talking to Discord."""

    def __init__(self, error: Optional[Exception] = None, outcome: Optional[DeliveryOutcome] = None):
        self.error = error
        self.outcome = outcome or DeliveryOutcome.success("message-1")
        self.notifications: List[PullRequestNotification] = []
        self.closed = False
        self.is_configured = True
        self.is_ready = False

    async def notify(self, notification: PullRequestNotification) -> DeliveryOutcome:
        self.notifications.append(notification)
        if self.error is not None:
            raise self.error
        return self.outcome

    async def close(self) -> None:
        self.closed = True


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the developer's .env file."""
    values: Dict[str, Any] = {
        "github_webhook_secret": TEST_SECRET,
        "discord_token": "test-token",
        "discord_channel_id": "test-channel-id",
        "log_json_format": False,
        "quick_ack": False,
        "keepalive_url": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def client(settings: Settings, notifier: FakeNotifier) -> Generator[TestClient, None, None]:
    """Create a test client for synchronous tests."""
    with TestClient(create_app(settings=settings, notifier=notifier)) as test_client:
        yield test_client


@pytest.fixture
def make_client() -> Generator[Callable[..., TestClient], None, None]:
    """Factory for clients with custom settings or notifiers."""
    opened: List[TestClient] = []

    def factory(notifier: Any = None, **overrides: Any) -> TestClient:
        app = create_app(settings=make_settings(**overrides), notifier=notifier or FakeNotifier())
        test_client = TestClient(app)
        test_client.__enter__()
        opened.append(test_client)
        return test_client

    yield factory

    for test_client in opened:
        test_client.__exit__(None, None, None)


@pytest.fixture
def post_webhook() -> Callable[..., Any]:
    """Send a delivery signed with the test secret (or an explicit signature)."""

    def send(
        test_client: TestClient,
        body: Union[Dict[str, Any], str, bytes],
        event: Optional[str] = "pull_request",
        secret: str = TEST_SECRET,
        signature: Optional[str] = None,
        path: str = WEBHOOK_PATH,
    ):
        if isinstance(body, dict):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")

        headers = {
            "Content-Type": "application/json",
            "X-GitHub-Delivery": "72d3162e-cc78-11e3-81ab-4c9367dc0958",
            "X-Hub-Signature-256": signature if signature is not None else sign_payload(secret, body),
        }
        if event is not None:
            headers["X-GitHub-Event"] = event

        return test_client.post(path, content=body, headers=headers)

    return send


@pytest.fixture
def sample_pr_payload() -> dict:
    """Minimal pull_request/opened payload."""
    return {
        "action": "opened",
        "pull_request": {
            "title": "T",
            "html_url": "u",
            "user": {"login": "a"},
            "base": {"ref": "main"},
            "head": {"ref": "feat"},
        },
        "repository": {"full_name": "o/r"},
    }


@pytest.fixture
def full_pr_payload() -> dict:
    """Pull request webhook payload shaped like a real GitHub delivery."""
    return {
        "action": "opened",
        "number": 42,
        "pull_request": {
            "id": 123456789,
            "number": 42,
            "state": "open",
            "title": "Add new feature",
            "body": "This PR adds a new feature to the application.",
            "user": {
                "login": "testuser",
                "id": 12345,
                "type": "User"
            },
            "html_url": "https://github.com/owner/repo/pull/42",
            "head": {
                "ref": "feature-branch",
                "sha": "abc123def456"
            },
            "base": {
                "ref": "main",
                "sha": "xyz789abc012"
            },
            "draft": False
        },
        "repository": {
            "id": 111,
            "name": "repo",
            "full_name": "owner/repo",
            "private": False
        },
        "sender": {
            "login": "testuser",
            "id": 12345,
            "type": "User"
        }
    }
