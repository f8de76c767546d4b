"""
Manual Webhook Tester

Sends simulated GitHub deliveries to a running gitbot instance.

Usage:
    python send_test_webhook.py <url> [secret]

Examples:
    # Health check and signature rejection only
    python send_test_webhook.py http://localhost:3000/api/github-webhook

    # Also send a signed pull_request/opened delivery
    python send_test_webhook.py https://your-app.example.com/api/github-webhook your-secret
"""

import argparse
import json
import sys
import uuid
from pathlib import Path
from typing import Callable, List, Optional

project_root = Path(__file__).parent.absolute()
sys.path.insert(0, str(project_root))

import httpx

from gitbot.webhook.security import sign_payload

SAMPLE_PULL_REQUEST = {
    "action": "opened",
    "pull_request": {
        "title": "Test PR from webhook tester",
        "html_url": "https://github.com/test/repo/pull/1",
        "user": {"login": "test-user"},
        "base": {"ref": "main"},
        "head": {"ref": "test-branch"},
    },
    "repository": {"full_name": "test/repo"},
}


def _headers(event: str, signature: str) -> dict:
    return {
        "Content-Type": "application/json",
        "X-GitHub-Event": event,
        "X-GitHub-Delivery": str(uuid.uuid4()),
        "X-Hub-Signature-256": signature,
    }


def check_health(client: httpx.Client, url: str) -> bool:
    """GET the webhook route and expect 200."""
    print("\nTest 1: Health Check (GET)")
    print(f"URL: {url}")
    try:
        response = client.get(url)
    except httpx.HTTPError as e:
        print(f"FAIL  Request failed: {e}")
        return False

    print(f"Status: {response.status_code}")
    print(f"Response: {response.text}")
    if response.status_code == 200:
        print("PASS  Health check passed")
        return True
    print("FAIL  Health check failed")
    return False


def check_invalid_signature(client: httpx.Client, url: str) -> bool:
    """POST with a bogus signature and expect 401."""
    print("\nTest 2: Invalid Signature (POST)")
    body = json.dumps({"test": "data"})
    try:
        response = client.post(url, content=body, headers=_headers("ping", "sha256=invalid"))
    except httpx.HTTPError as e:
        print(f"FAIL  Request failed: {e}")
        return False

    print(f"Status: {response.status_code}")
    print(f"Response: {response.text}")
    if response.status_code == 401:
        print("PASS  Invalid signature correctly rejected")
        return True
    print("FAIL  Should have rejected invalid signature")
    return False


def check_valid_webhook(client: httpx.Client, url: str, secret: Optional[str]) -> bool:
    """POST a signed pull_request/opened delivery and expect success."""
    if not secret:
        print("\nTest 3: Valid Webhook (POST) - Skipped (no secret provided)")
        return True

    print("\nTest 3: Valid Webhook (POST)")
    body = json.dumps(SAMPLE_PULL_REQUEST)
    headers = _headers("pull_request", sign_payload(secret, body))
    try:
        response = client.post(url, content=body, headers=headers)
    except httpx.HTTPError as e:
        print(f"FAIL  Request failed: {e}")
        return False

    print(f"Status: {response.status_code}")
    print(f"Response: {response.text}")
    if response.status_code in (200, 202):
        print("PASS  Valid webhook accepted")
        print("Check your Discord channel for the notification!")
        return True
    print("FAIL  Valid webhook was rejected")
    return False


def run_checks(client: httpx.Client, url: str, secret: Optional[str]) -> List[bool]:
    checks: List[Callable[[], bool]] = [
        lambda: check_health(client, url),
        lambda: check_invalid_signature(client, url),
        lambda: check_valid_webhook(client, url, secret),
    ]
    return [check() for check in checks]


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Send simulated GitHub webhook deliveries to gitbot"
    )
    parser.add_argument("url", help="Full URL of the webhook route")
    parser.add_argument("secret", nargs="?", help="Webhook secret for the signed delivery")
    parser.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds")
    args = parser.parse_args(argv)

    print("Starting webhook tests...")
    with httpx.Client(timeout=args.timeout) as client:
        results = run_checks(client, args.url, args.secret)

    passed = sum(1 for result in results if result)
    print("\n" + "=" * 50)
    print(f"Test Results: {passed}/{len(results)} passed")

    if passed == len(results):
        print("All tests passed!")
        return 0
    print("Some tests failed")
    return 1


if __name__ == "__main__":
    sys.exit(main())
