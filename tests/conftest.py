"""Pytest configuration - loads .env and provides an in-memory connector."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

from forge_client.core.connector import ConnectorResponse
from forge_client.core.handlers import AbuseLimitHandler, RateLimitHandler
from forge_client.sdk import Forge

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

API_URL = "https://api.example"


# =============================================================================
# Scripted connector
# =============================================================================


@dataclass
class RecordedRequest:
    """One exchange seen by the FakeConnector."""

    url: str
    method: str
    headers: dict[str, str]
    body: bytes | None = None
    timeout: float | None = None

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8")) if self.body else None


@dataclass
class FakeConnector:
    """
    Replays queued responses in order and records every request.

    Queue either a ConnectorResponse or an exception (raised from send()).
    """

    responses: list[Any] = field(default_factory=list)
    requests: list[RecordedRequest] = field(default_factory=list)

    def add(
        self,
        status: int = 200,
        body: bytes | str | None = None,
        headers: Mapping[str, str] | None = None,
        reason: str = "",
    ) -> "FakeConnector":
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.responses.append(ConnectorResponse(status, reason, headers, body))
        return self

    def add_json(self, data: Any, status: int = 200, headers: Mapping[str, str] | None = None) -> "FakeConnector":
        return self.add(status, json.dumps(data), headers)

    def add_error(self, error: BaseException) -> "FakeConnector":
        self.responses.append(error)
        return self

    def send(
        self,
        url: str,
        method: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> ConnectorResponse:
        self.requests.append(RecordedRequest(url, method, dict(headers), body, timeout))
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        response.url = url
        return response

    @property
    def last(self) -> RecordedRequest:
        return self.requests[-1]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def forge(connector: FakeConnector) -> Forge:
    """Authenticated session that fails fast on rate limits."""
    return Forge(
        endpoint=API_URL,
        oauth_token="secret",
        connector=connector,
        rate_limit_handler=RateLimitHandler.FAIL,
        abuse_limit_handler=AbuseLimitHandler.FAIL,
    )


@pytest.fixture
def offline_forge() -> Forge:
    return Forge.offline()


def repo_json(owner: str = "octo", name: str = "hello", **extra: Any) -> dict[str, Any]:
    """Minimal repository payload."""
    data = {
        "id": 1,
        "name": name,
        "full_name": f"{owner}/{name}",
        "owner": {"login": owner, "type": "User"},
        "url": f"{API_URL}/repos/{owner}/{name}",
        "default_branch": "main",
    }
    data.update(extra)
    return data


def pr_json(number: int, owner: str = "octo", name: str = "hello", **extra: Any) -> dict[str, Any]:
    """Minimal pull request payload, as returned by listing endpoints."""
    data = {
        "id": 100 + number,
        "number": number,
        "title": f"PR {number}",
        "state": "open",
        "url": f"{API_URL}/repos/{owner}/{name}/pulls/{number}",
        "user": {"login": "contributor"},
        "head": {"ref": f"feature-{number}", "sha": "abc", "repo": repo_json(owner, name)},
        "base": {"ref": "main", "sha": "def", "repo": repo_json(owner, name)},
    }
    data.update(extra)
    return data
