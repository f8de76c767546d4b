"""
Tests for Webhook Handler

Tests the webhook endpoint, its response contract and the
error containment around Discord delivery.
"""

import json

import httpx
from fastapi.testclient import TestClient

from gitbot.services.discord_client import DiscordAPIError, DiscordClient
from gitbot.services.notifier import DiscordNotifier
from tests.conftest import WEBHOOK_PATH, FakeNotifier


class TestInfoEndpoints:
    """Test suite for GET endpoints."""

    def test_webhook_route_health(self, client: TestClient):
        """GET on the webhook route returns the route info."""
        response = client.get(WEBHOOK_PATH)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "route": WEBHOOK_PATH}

    def test_root_endpoint(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "gitbot"
        assert data["webhook"] == WEBHOOK_PATH

    def test_health_check(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["signature_verification"] is True
        assert data["notifier_configured"] is True

    def test_health_without_secret(self, make_client):
        test_client = make_client(github_webhook_secret=None)

        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["signature_verification"] is False

    def test_custom_webhook_path(self, make_client):
        test_client = make_client(webhook_path="/hooks/github/")

        response = test_client.get("/hooks/github")

        assert response.status_code == 200
        assert response.json()["route"] == "/hooks/github"

    def test_unknown_path(self, client: TestClient):
        response = client.get("/nope")

        assert response.status_code == 404


class TestMethodNotAllowed:
    """Non GET/POST methods on the webhook route."""

    def test_put(self, client: TestClient):
        response = client.put(WEBHOOK_PATH, content=b"{}")

        assert response.status_code == 405
        assert response.json() == {"error": "Method Not Allowed"}

    def test_delete(self, client: TestClient):
        response = client.delete(WEBHOOK_PATH)

        assert response.status_code == 405
        assert response.json() == {"error": "Method Not Allowed"}


class TestSignatureVerification:
    """Signature failures are answered with 401 before anything else."""

    def test_invalid_signature(self, client, post_webhook, notifier):
        response = post_webhook(client, {"test": "data"}, signature="sha256=invalid")

        assert response.status_code == 401
        assert response.text == "invalid signature"
        assert notifier.notifications == []

    def test_missing_signature(self, client, post_webhook):
        response = post_webhook(client, {"test": "data"}, signature="")

        assert response.status_code == 401
        assert response.text == "invalid signature"

    def test_wrong_secret(self, client, post_webhook):
        response = post_webhook(client, {"test": "data"}, secret="other-secret")

        assert response.status_code == 401

    def test_secret_not_configured(self, make_client, post_webhook, sample_pr_payload):
        """An unset secret must never accept a request, even a signed one."""
        notifier = FakeNotifier()
        test_client = make_client(notifier=notifier, github_webhook_secret=None)

        response = post_webhook(test_client, sample_pr_payload)

        assert response.status_code == 401
        assert response.text == "invalid signature"
        assert notifier.notifications == []

    def test_invalid_json_is_checked_after_signature(self, client, post_webhook):
        response = post_webhook(client, "not valid json{", signature="sha256=invalid")

        assert response.status_code == 401

    def test_sender_formatting_is_verified(self, client, post_webhook, notifier):
        """The signature covers the bytes as sent, not a re-encoding."""
        body = (
            '{\n  "repository" : {"full_name": "o/r"},\n'
            '  "action": "opened",  "pull_request": {"title": "Caf\\u00e9"}\n}\n'
        )

        response = post_webhook(client, body)

        assert response.status_code == 200
        assert response.text == "OK"
        assert notifier.notifications[0].title == "Café"


class TestPayloadParsing:
    """Test suite for webhook body parsing."""

    def test_invalid_json(self, client, post_webhook, notifier):
        response = post_webhook(client, "not valid json{")

        assert response.status_code == 400
        assert response.text == "invalid json"
        assert notifier.notifications == []

    def test_empty_body(self, client, post_webhook):
        response = post_webhook(client, b"")

        assert response.status_code == 400
        assert response.text == "invalid json"

    def test_invalid_utf8(self, client, post_webhook):
        response = post_webhook(client, b'{"action": "\xff\xfe"}')

        assert response.status_code == 400
        assert response.text == "invalid json"


class TestRouting:
    """Only pull_request/opened produces a notification."""

    def test_pull_request_opened(self, client, post_webhook, notifier, sample_pr_payload):
        response = post_webhook(client, sample_pr_payload)

        assert response.status_code == 200
        assert response.text == "OK"
        assert len(notifier.notifications) == 1

        message = notifier.notifications[0].render()
        assert "o/r" in message
        assert "T" in message
        assert "a" in message
        assert "feat → main" in message
        assert "u" in message

    def test_pull_request_opened_full_payload(self, client, post_webhook, notifier, full_pr_payload):
        response = post_webhook(client, full_pr_payload)

        assert response.status_code == 200
        notification = notifier.notifications[0]
        assert notification.repository == "owner/repo"
        assert notification.author == "testuser"
        assert notification.head_ref == "feature-branch"
        assert notification.url == "https://github.com/owner/repo/pull/42"

    def test_pull_request_closed_ignored(self, client, post_webhook, notifier):
        response = post_webhook(client, {"action": "closed", "pull_request": {"title": "Test PR"}})

        assert response.status_code == 200
        assert response.text == "OK"
        assert notifier.notifications == []

    def test_ping_ignored(self, client, post_webhook, notifier):
        response = post_webhook(client, {"zen": "Test zen message", "hook_id": 12345}, event="ping")

        assert response.status_code == 200
        assert response.text == "OK"
        assert notifier.notifications == []

    def test_push_ignored(self, client, post_webhook, notifier):
        response = post_webhook(client, {"ref": "refs/heads/main", "commits": []}, event="push")

        assert response.status_code == 200
        assert response.text == "OK"
        assert notifier.notifications == []

    def test_opened_action_on_other_event_ignored(self, client, post_webhook, notifier):
        response = post_webhook(client, {"action": "opened"}, event="issues")

        assert response.status_code == 200
        assert notifier.notifications == []

    def test_missing_event_header_ignored(self, client, post_webhook, notifier, sample_pr_payload):
        response = post_webhook(client, sample_pr_payload, event=None)

        assert response.status_code == 200
        assert response.text == "OK"
        assert notifier.notifications == []

    def test_non_object_payload_ignored(self, client, post_webhook, notifier):
        response = post_webhook(client, "[1, 2, 3]")

        assert response.status_code == 200
        assert response.text == "OK"
        assert notifier.notifications == []

    def test_sparse_payload_still_notifies(self, client, post_webhook, notifier):
        response = post_webhook(client, {"action": "opened"})

        assert response.status_code == 200
        assert notifier.notifications[0].render().startswith("New pull request in **unknown**")


class TestDeliveryErrors:
    """Delivery failures are logged and never surface as errors."""

    def test_notifier_exception_swallowed(self, make_client, post_webhook, sample_pr_payload):
        notifier = FakeNotifier(error=RuntimeError("Channel fetch failed"))
        test_client = make_client(notifier=notifier)

        response = post_webhook(test_client, sample_pr_payload)

        assert response.status_code == 200
        assert response.text == "Received"
        assert len(notifier.notifications) == 1

    def test_failed_outcome(self, make_client, post_webhook, sample_pr_payload):
        from gitbot.models import DeliveryOutcome

        notifier = FakeNotifier(outcome=DeliveryOutcome.failure("DiscordAPIError: 404"))
        test_client = make_client(notifier=notifier)

        response = post_webhook(test_client, sample_pr_payload)

        assert response.status_code == 200
        assert response.text == "Received"

    def test_discord_error_swallowed(self, make_client, post_webhook, sample_pr_payload):
        notifier = FakeNotifier(error=DiscordAPIError("Discord API error: 500", status_code=500))
        test_client = make_client(notifier=notifier)

        response = post_webhook(test_client, sample_pr_payload)

        assert response.status_code == 200
        assert response.text == "Received"


class TestQuickAck:
    """QUICK_ACK answers 202 and delivers afterwards."""

    def test_quick_ack_delivers_in_background(self, make_client, post_webhook, sample_pr_payload):
        notifier = FakeNotifier()
        test_client = make_client(notifier=notifier, quick_ack=True)

        response = post_webhook(test_client, sample_pr_payload)

        assert response.status_code == 202
        assert response.text == "received"
        # TestClient runs background tasks before returning
        assert len(notifier.notifications) == 1

    def test_quick_ack_failure_does_not_change_status(self, make_client, post_webhook, sample_pr_payload):
        notifier = FakeNotifier(error=RuntimeError("boom"))
        test_client = make_client(notifier=notifier, quick_ack=True)

        response = post_webhook(test_client, sample_pr_payload)

        assert response.status_code == 202
        assert len(notifier.notifications) == 1

    def test_quick_ack_ignored_event_is_ok(self, make_client, post_webhook):
        test_client = make_client(quick_ack=True)

        response = post_webhook(test_client, {"zen": "hi"}, event="ping")

        assert response.status_code == 200
        assert response.text == "OK"


class TestDiscordEndToEnd:
    """The real notifier against a mocked Discord API."""

    @staticmethod
    def _discord_client(channel_status: int = 200):
        sent = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/users/@me"):
                return httpx.Response(200, json={"id": "1", "username": "gitbot"})
            if request.method == "GET" and request.url.path.endswith("/channels/test-channel-id"):
                if channel_status != 200:
                    return httpx.Response(channel_status, json={"message": "Unknown Channel"})
                return httpx.Response(200, json={"id": "test-channel-id", "type": 0})
            if request.method == "POST" and request.url.path.endswith("/channels/test-channel-id/messages"):
                sent.append(json.loads(request.content))
                return httpx.Response(200, json={"id": "999"})
            return httpx.Response(404)

        client = DiscordClient(token="test-token", transport=httpx.MockTransport(handler))
        return client, sent

    def test_message_posted(self, make_client, post_webhook, sample_pr_payload):
        discord, sent = self._discord_client()
        test_client = make_client(notifier=DiscordNotifier(discord, "test-channel-id"))

        response = post_webhook(test_client, sample_pr_payload)

        assert response.status_code == 200
        assert response.text == "OK"
        assert sent[0]["content"] == (
            "New pull request in **o/r**\n"
            "Title: T\n"
            "Author: a\n"
            "Branches: feat → main\n"
            "u"
        )

    def test_channel_fetch_failure(self, make_client, post_webhook, sample_pr_payload):
        discord, sent = self._discord_client(channel_status=404)
        test_client = make_client(notifier=DiscordNotifier(discord, "test-channel-id"))

        response = post_webhook(test_client, sample_pr_payload)

        assert response.status_code == 200
        assert response.text == "Received"
        assert sent == []

    def test_notifier_not_configured(self, make_client, post_webhook, sample_pr_payload):
        test_client = make_client(
            notifier=DiscordNotifier(DiscordClient(token=None), None),
        )

        response = post_webhook(test_client, sample_pr_payload)

        assert response.status_code == 200
        assert response.text == "Received"
