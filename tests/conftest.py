"""Shared fixtures: signed GitHub payloads and a fake Telegram API."""

import hashlib
import hmac
import json

import httpx
import pytest

from gh_forwarder.app import create_app
from gh_forwarder.config import settings_from_mapping
from gh_forwarder.services.telegram import ExponentialBackoff, TelegramClient

SECRET = "gh-secret"
BOT_TOKEN = "123456:ABC-test"


def sign(body: bytes, secret: str = SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def encode(payload) -> bytes:
    return json.dumps(payload).encode()


def pull_request_payload(action="opened", repo="acme/widgets", **pr):
    pull_request = {
        "number": 42,
        "title": "Add sprockets",
        "html_url": f"https://github.com/{repo}/pull/42",
        "user": {"login": "octocat"},
        "merged": False,
        "head": {"ref": "feature/sprockets"},
        "base": {"ref": "main"},
    }
    pull_request.update(pr)
    return {
        "action": action,
        "number": 42,
        "pull_request": pull_request,
        "repository": {"full_name": repo, "html_url": f"https://github.com/{repo}"},
        "sender": {"login": "octocat", "html_url": "https://github.com/octocat"},
    }


def issue_payload(action="opened", repo="acme/widgets"):
    return {
        "action": action,
        "issue": {
            "number": 7,
            "title": "Widgets wobble",
            "html_url": f"https://github.com/{repo}/issues/7",
            "user": {"login": "hubot"},
        },
        "repository": {"full_name": repo},
        "sender": {"login": "hubot"},
    }


def push_payload(repo="acme/widgets", commits=2, ref="refs/heads/main"):
    return {
        "ref": ref,
        "compare": f"https://github.com/{repo}/compare/a...b",
        "pusher": {"name": "alice", "email": "alice@example.com"},
        "commits": [
            {
                "id": f"{i:040x}",
                "message": f"commit number {i}\n\nlong body",
                "url": f"https://github.com/{repo}/commit/{i:040x}",
            }
            for i in range(commits)
        ],
        "repository": {"full_name": repo},
        "sender": {"login": "alice"},
    }


def workflow_run_payload(repo="acme/widgets", conclusion="failure"):
    return {
        "action": "completed",
        "workflow_run": {
            "name": "CI",
            "status": "completed",
            "conclusion": conclusion,
            "html_url": f"https://github.com/{repo}/actions/runs/99",
            "head_branch": "main",
            "run_number": 99,
        },
        "repository": {"full_name": repo},
        "sender": {"login": "octocat"},
    }


def release_payload(repo="acme/widgets", **release):
    data = {
        "tag_name": "v1.2.0",
        "name": "Sprocket release",
        "html_url": f"https://github.com/{repo}/releases/tag/v1.2.0",
        "draft": False,
        "prerelease": False,
    }
    data.update(release)
    return {
        "action": "published",
        "release": data,
        "repository": {"full_name": repo},
        "sender": {"login": "octocat"},
    }


class FakeTelegram:
    """Records sendMessage calls and answers with scripted status codes."""

    def __init__(self, statuses=None, default=200):
        self.statuses = dict(statuses or {})
        self.default = default
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.calls.append(payload)
        script = self.statuses.get(payload["chat_id"])
        status = script.pop(0) if script else self.default
        if status == "boom":
            raise httpx.ConnectError("connection refused", request=request)
        if 200 <= status < 300:
            return httpx.Response(status, json={"ok": True, "result": {"message_id": len(self.calls)}})
        body = {"ok": False, "error_code": status, "description": f"status {status}"}
        if status == 429:
            body["parameters"] = {"retry_after": 2}
        return httpx.Response(status, json=body)

    def chats(self):
        return [c["chat_id"] for c in self.calls]


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def fake_telegram():
    return FakeTelegram()


@pytest.fixture
def sleeper():
    return RecordingSleep()


def make_client(fake, sleep, max_attempts=3):
    transport = httpx.MockTransport(fake.handler)
    return TelegramClient(
        BOT_TOKEN,
        http_client=httpx.AsyncClient(transport=transport),
        max_attempts=max_attempts,
        backoff=ExponentialBackoff(base=1.0, factor=2.0, ceiling=8.0),
        sleep=sleep,
    )


@pytest.fixture
def telegram_client(fake_telegram, sleeper):
    return make_client(fake_telegram, sleeper)


def make_settings(routing, secret=SECRET, **extra):
    data = {
        "telegram": {"bot_token": BOT_TOKEN},
        "github": {"webhook_secret": secret},
        "routing": routing,
    }
    data.update(extra)
    return settings_from_mapping(data)


@pytest.fixture
def make_app(telegram_client):
    def _make(routing, **kwargs):
        return create_app(make_settings(routing, **kwargs), telegram=telegram_client)

    return _make
