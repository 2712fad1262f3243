"""
Configuration for Forge sessions.

Credentials and the endpoint come from explicit calls, a ``key=value``
property file (``~/.github`` by default) or ``GITHUB_*`` environment
variables. Recognised keys: ``login``, ``password``, ``oauth``, ``jwt`` and
``endpoint``.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import dotenv_values

from forge_client.core.auth import GITHUB_URL
from forge_client.core.connector import DEFAULT_TIMEOUT, HttpConnector, UrllibConnector
from forge_client.core.errors import ForgeError
from forge_client.core.handlers import AbuseLimitHandler, LimitHandler, RateLimitHandler
from forge_client.sdk import Forge

logger = logging.getLogger(__name__)

DEFAULT_PROPERTY_FILE = Path.home() / ".github"
ENV_PREFIX = "github_"


class ForgeBuilder:
    """
    Builds a configured ``Forge`` session.

    Example:
        forge = (
            ForgeBuilder.from_environment()
            .with_rate_limit_handler(RateLimitHandler.FAIL)
            .with_timeout(30)
            .build()
        )

    """

    def __init__(self) -> None:
        self.endpoint = GITHUB_URL
        self.login: str | None = None
        self.password: str | None = None
        self.oauth_token: str | None = None
        self.jwt: str | None = None
        self.connector: HttpConnector | None = None
        self.proxy: str | None = None
        self.timeout: float = DEFAULT_TIMEOUT
        self.rate_limit_handler: LimitHandler = RateLimitHandler.WAIT
        self.abuse_limit_handler: LimitHandler = AbuseLimitHandler.WAIT

    # =========================================================================
    # Sources
    # =========================================================================

    @classmethod
    def from_properties(cls, props: Mapping[str, str | None]) -> "ForgeBuilder":
        """Configure from a mapping with the recognised keys."""
        builder = cls()
        builder.with_oauth_token(props.get("oauth"), props.get("login"))
        if props.get("password") is not None:
            builder.with_password(props.get("login"), props.get("password"))
        if props.get("jwt") is not None:
            builder.with_jwt(props["jwt"])
        builder.with_endpoint(props.get("endpoint") or GITHUB_URL)
        return builder

    @classmethod
    def from_property_file(cls, path: str | Path = DEFAULT_PROPERTY_FILE) -> "ForgeBuilder":
        """
        Configure from a ``key=value`` property file.

        Raises:
            FileNotFoundError: If the file does not exist

        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(str(path))
        return cls.from_properties(dotenv_values(path))

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> "ForgeBuilder":
        """Configure from ``GITHUB_LOGIN``, ``GITHUB_OAUTH``, ``GITHUB_ENDPOINT``... variables."""
        if environ is None:
            environ = os.environ
        props = {}
        for key, value in environ.items():
            name = key.lower()
            if name.startswith(ENV_PREFIX):
                name = name[len(ENV_PREFIX) :]
            props[name] = value
        return cls.from_properties(props)

    @classmethod
    def from_credentials(cls, path: str | Path = DEFAULT_PROPERTY_FILE) -> "ForgeBuilder":
        """
        Configure from the property file, falling back to the environment.

        Raises:
            ForgeError: If neither source provides a credential

        """
        try:
            builder = cls.from_property_file(path)
            if builder.has_credentials():
                return builder
        except FileNotFoundError:
            logger.debug("No property file at %s", path)
        builder = cls.from_environment()
        if builder.has_credentials():
            return builder
        raise ForgeError(f"Failed to resolve credentials from {path} or the environment")

    # =========================================================================
    # Settings
    # =========================================================================

    def has_credentials(self) -> bool:
        return any(v is not None for v in (self.login, self.oauth_token, self.jwt))

    def with_endpoint(self, endpoint: str) -> "ForgeBuilder":
        self.endpoint = endpoint
        return self

    def with_oauth_token(self, oauth_token: str | None, login: str | None = None) -> "ForgeBuilder":
        self.oauth_token = oauth_token
        self.login = login
        return self

    def with_password(self, login: str | None, password: str | None) -> "ForgeBuilder":
        self.login = login
        self.password = password
        return self

    def with_jwt(self, jwt: str) -> "ForgeBuilder":
        self.jwt = jwt
        return self

    def with_connector(self, connector: HttpConnector) -> "ForgeBuilder":
        self.connector = connector
        return self

    def with_proxy(self, proxy: str) -> "ForgeBuilder":
        """Route requests through an HTTP(S) proxy URL."""
        self.proxy = proxy
        return self

    def with_timeout(self, timeout: float) -> "ForgeBuilder":
        self.timeout = timeout
        return self

    def with_rate_limit_handler(self, handler: LimitHandler) -> "ForgeBuilder":
        self.rate_limit_handler = handler
        return self

    def with_abuse_limit_handler(self, handler: LimitHandler) -> "ForgeBuilder":
        self.abuse_limit_handler = handler
        return self

    def build(self) -> Forge:
        connector = self.connector
        if connector is None and self.proxy is not None:
            connector = UrllibConnector(proxy=self.proxy, timeout=self.timeout)
        return Forge(
            endpoint=self.endpoint,
            login=self.login,
            password=self.password,
            oauth_token=self.oauth_token,
            jwt=self.jwt,
            connector=connector,
            rate_limit_handler=self.rate_limit_handler,
            abuse_limit_handler=self.abuse_limit_handler,
            timeout=self.timeout,
        )
