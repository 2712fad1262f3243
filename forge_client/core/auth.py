"""
Credential and endpoint resolution.

Builds the ``Authorization`` header value for a session and turns request
paths into absolute URLs.
"""

import base64
from collections.abc import Callable

GITHUB_URL = "https://api.github.com"
# Endpoint alias that maps to the public API origin
PUBLIC_HOST = "github.com"

AuthorizationProvider = Callable[[], str | None]


class TokenAuthorization:
    """OAuth access token credential."""

    def __init__(self, token: str):
        self.token = token

    def __call__(self) -> str:
        return f"token {self.token}"


class JwtAuthorization:
    """JSON Web Token credential (app authentication)."""

    def __init__(self, jwt: str):
        self.jwt = jwt

    def __call__(self) -> str:
        return f"Bearer {self.jwt}"


class BasicAuthorization:
    """Login/password credential."""

    def __init__(self, login: str, password: str):
        self.login = login
        self.password = password

    def __call__(self) -> str:
        raw = f"{self.login}:{self.password}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")


def anonymous() -> None:
    """No credential: requests carry no Authorization header."""
    return None


def resolve_authorization(
    login: str | None = None,
    password: str | None = None,
    oauth_token: str | None = None,
    jwt: str | None = None,
) -> AuthorizationProvider:
    """
    Pick the credential to use.

    JWT wins over an OAuth token, which wins over login/password. Without
    any of them the session is anonymous.
    """
    if jwt is not None:
        return JwtAuthorization(jwt)
    if oauth_token is not None:
        return TokenAuthorization(oauth_token)
    if password is not None:
        return BasicAuthorization(login or "", password)
    return anonymous


def normalize_endpoint(endpoint: str) -> str:
    """Strip a single trailing slash from the endpoint."""
    if endpoint.endswith("/"):
        return endpoint[:-1]
    return endpoint


def api_url_for(endpoint: str, tail: str) -> str:
    """Build the absolute URL for a request path."""
    if not tail.startswith("/"):
        return tail
    if endpoint == PUBLIC_HOST:
        return f"{GITHUB_URL}{tail}"
    return f"{endpoint}{tail}"
