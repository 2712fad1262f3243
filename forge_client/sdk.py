"""
Forge SDK - the client session.

A ``Forge`` owns the credential, the endpoint, the HTTP connector, the
rate-limit accounting and policy handlers, and the identity caches for users
and organizations. Every entity method issues its requests through
``Forge.create_request()``.
"""

import logging
import threading
from typing import BinaryIO, TypeVar

from forge_client.core.auth import (
    GITHUB_URL,
    AuthorizationProvider,
    anonymous,
    api_url_for,
    normalize_endpoint,
    resolve_authorization,
)
from forge_client.core.connector import DEFAULT_TIMEOUT, OFFLINE, HttpConnector, UrllibConnector
from forge_client.core.errors import ForgeError, HttpError, NotFoundError, ValidationError
from forge_client.core.handlers import AbuseLimitHandler, LimitHandler, RateLimitHandler
from forge_client.core.mapper import JsonMapper
from forge_client.core.paging import PagedIterable
from forge_client.core.rate_limit import RATE_LIMIT_PATH, RateLimitTracker
from forge_client.core.requester import Requester
from forge_client.core.types import RateLimit
from forge_client.models.base import ForgeObject
from forge_client.models.notification import NotificationStream
from forge_client.models.repository import LICENSES_PREVIEW, License, Repository, RepositoryBuilder
from forge_client.models.search import IssueSearchBuilder, RepositorySearchBuilder, UserSearchBuilder
from forge_client.models.user import Myself, Organization, Team, User

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Endpoint of sessions that never touch the network
OFFLINE_ENDPOINT = "https://api.github.invalid"


class Forge:
    """
    A session against one Forge API endpoint.

    Example:
        forge = Forge.connect_using_oauth(token)

        repo = forge.get_repository("octo/hello")
        for pr in repo.list_pull_requests():
            print(pr.number, pr.title)

        print(forge.rate_limit().remaining)

    """

    def __init__(
        self,
        endpoint: str = GITHUB_URL,
        login: str | None = None,
        password: str | None = None,
        oauth_token: str | None = None,
        jwt: str | None = None,
        connector: HttpConnector | None = None,
        rate_limit_handler: LimitHandler = RateLimitHandler.WAIT,
        abuse_limit_handler: LimitHandler = AbuseLimitHandler.WAIT,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Create a session. Prefer ``ForgeBuilder`` or the ``connect*`` factories.

        Args:
            endpoint: API base URL; a trailing slash is dropped
            login: Account login (resolved through /user when omitted)
            password: Password for basic authentication
            oauth_token: OAuth access token
            jwt: JSON Web Token, used for app authentication
            connector: HTTP connector (defaults to urllib)
            rate_limit_handler: Policy when the quota is exhausted
            abuse_limit_handler: Policy when the server asks to back off
            timeout: Per-request timeout in seconds

        """
        self.api_url = normalize_endpoint(endpoint)
        self.authorization: AuthorizationProvider = resolve_authorization(login, password, oauth_token, jwt)
        self.connector: HttpConnector = connector if connector is not None else UrllibConnector(timeout=timeout)
        self.timeout = timeout
        self.rate_limit_handler = rate_limit_handler
        self.abuse_limit_handler = abuse_limit_handler
        self.rate_limits = RateLimitTracker()
        self.mapper = JsonMapper(fail_on_unknown_properties=False, case_insensitive_enums=True)

        self._login = login
        self._uses_jwt = jwt is not None
        self._cache_lock = threading.Lock()
        self._users: dict[str, User] = {}
        self._orgs: dict[str, Organization] = {}
        self._myself_lock = threading.Lock()
        self._myself: Myself | None = None

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def connect(cls) -> "Forge":
        """Connect with credentials from ``~/.github`` or the environment."""
        from forge_client.builder import ForgeBuilder

        return ForgeBuilder.from_credentials().build()

    @classmethod
    def connect_using_oauth(cls, oauth_token: str, endpoint: str | None = None) -> "Forge":
        from forge_client.builder import ForgeBuilder

        builder = ForgeBuilder().with_oauth_token(oauth_token)
        if endpoint is not None:
            builder.with_endpoint(endpoint)
        return builder.build()

    @classmethod
    def connect_using_password(cls, login: str, password: str, endpoint: str | None = None) -> "Forge":
        from forge_client.builder import ForgeBuilder

        builder = ForgeBuilder().with_password(login, password)
        if endpoint is not None:
            builder.with_endpoint(endpoint)
        return builder.build()

    @classmethod
    def connect_anonymously(cls, endpoint: str | None = None) -> "Forge":
        from forge_client.builder import ForgeBuilder

        builder = ForgeBuilder()
        if endpoint is not None:
            builder.with_endpoint(endpoint)
        return builder.build()

    @classmethod
    def offline(cls) -> "Forge":
        """A session that decodes entities but never performs I/O."""
        return cls(endpoint=OFFLINE_ENDPOINT, connector=OFFLINE)

    # =========================================================================
    # Session state
    # =========================================================================

    def create_request(self) -> Requester:
        """Start building a request bound to this session."""
        return Requester(self)

    def get_api_url(self, tail: str) -> str:
        return api_url_for(self.api_url, tail)

    def is_offline(self) -> bool:
        return self.connector is OFFLINE

    def is_anonymous(self) -> bool:
        return self.authorization is anonymous

    @property
    def login(self) -> str | None:
        """The account login, resolved through /user on first use when not given."""
        if self._login is None and not self.is_anonymous() and not self._uses_jwt and not self.is_offline():
            myself = self.get_myself()
            self._login = myself.login if myself is not None else None
        return self._login

    def is_credential_valid(self) -> bool:
        """Check the credential by fetching /user."""
        try:
            self.create_request().with_url_path("/user").send()
            return True
        except HttpError as e:
            logger.debug("Credential check failed: %s", e)
            return False

    def check_api_url_validity(self) -> None:
        """Raise ForgeError unless the endpoint looks like a Forge API root."""
        data = self.create_request().with_url_path("/").fetch(dict)
        if not isinstance(data, dict) or "rate_limit_url" not in data:
            raise ForgeError(f"{self.api_url} does not appear to be a valid Forge API URL", details={"url": self.api_url})

    # =========================================================================
    # Rate limits
    # =========================================================================

    def get_rate_limit(self) -> RateLimit:
        """Probe /rate_limit. Servers without rate limiting get a synthetic unlimited snapshot."""
        try:
            data = self.create_request().with_url_path(RATE_LIMIT_PATH).fetch(dict) or {}
            rate = data.get("resources", {}).get("core") or data.get("rate") or {}
            limit = RateLimit.from_dict(rate)
        except NotFoundError:
            limit = RateLimit.unknown()
        self.rate_limits.probed = limit
        return limit

    def last_rate_limit(self) -> RateLimit | None:
        """The snapshot last seen in response headers, if any."""
        return self.rate_limits.last()

    def rate_limit(self) -> RateLimit:
        """The current quota, probing the server only when no fresh snapshot is known."""
        current = self.rate_limits.current()
        if current is not None:
            return current
        if self.is_offline():
            return RateLimit.unknown()
        return self.get_rate_limit()

    # =========================================================================
    # Identity caches
    # =========================================================================

    def get_myself(self) -> Myself | None:
        """The authenticated user; fetched once per session."""
        if self.is_offline():
            return self._myself
        if self.is_anonymous():
            raise ForgeError("Anonymous sessions have no authenticated user")
        with self._myself_lock:
            if self._myself is None:
                myself = self.create_request().with_url_path("/user").fetch(Myself)
                myself.wrap_up(self)
                with self._cache_lock:
                    self._users.setdefault(myself.login, myself)
                self._myself = myself
            return self._myself

    def get_user(self, login: str) -> User | None:
        """A user by login; cached for the lifetime of the session."""
        user = self._users.get(login)
        if user is None and not self.is_offline():
            fetched = self.create_request().with_url_path("/users", login).fetch(User).wrap_up(self)
            with self._cache_lock:
                user = self._users.setdefault(fetched.login or login, fetched)
        return user

    def intern(self, user: User | None) -> User | None:
        """Return the cached user with the same login, caching ``user`` if there is none."""
        if user is None:
            return None
        with self._cache_lock:
            return self._users.setdefault(user.login, user)

    def get_organization(self, login: str) -> Organization | None:
        """An organization by login; cached for the lifetime of the session."""
        org = self._orgs.get(login)
        if org is None and not self.is_offline():
            fetched = self.create_request().with_url_path("/orgs", login).fetch(Organization).wrap_up(self)
            with self._cache_lock:
                org = self._orgs.setdefault(fetched.login or login, fetched)
        return org

    def refresh_cache(self) -> None:
        """Forget every cached user and organization."""
        with self._cache_lock:
            self._users.clear()
            self._orgs.clear()

    # =========================================================================
    # Decoding
    # =========================================================================

    def parse(self, data: str | bytes, type_: type[T]) -> T:
        """Decode a JSON document into an entity bound to this session, without I/O."""
        value = self.mapper.read_value(data, type_, {"root": self})
        if isinstance(value, ForgeObject):
            value.wrap(self)
        return value

    # =========================================================================
    # Repositories
    # =========================================================================

    def get_repository(self, name: str) -> Repository:
        """
        Get a repository by its full name.

        Args:
            name: ``owner/name``

        Returns:
            The fully loaded repository

        Raises:
            ValidationError: If name is not of the form owner/name
            NotFoundError: If the repository does not exist

        """
        parts = name.split("/")
        if len(parts) != 2 or not all(parts):
            raise ValidationError(f"Repository name must be in format owner/repo: {name}", details={"name": name})
        repo = self.create_request().with_url_path("/repos", *parts).fetch(Repository).wrap(self)
        repo._populated = True
        return repo

    def get_repository_by_id(self, repository_id: int) -> Repository:
        repo = self.create_request().with_url_path("/repositories", str(repository_id)).fetch(Repository).wrap(self)
        repo._populated = True
        return repo

    def list_all_public_repositories(self, since: int | None = None) -> PagedIterable[Repository]:
        return (
            self.create_request()
            .with_("since", since)
            .with_url_path("/repositories")
            .to_iterable(Repository, lambda item: item.wrap(self))
        )

    def create_repository(self, name: str) -> RepositoryBuilder:
        """Start creating a repository owned by the authenticated user."""
        return RepositoryBuilder(self, "/user/repos", name)

    # =========================================================================
    # Users, organizations & teams
    # =========================================================================

    def list_users(self) -> PagedIterable[User]:
        return self.create_request().with_url_path("/users").to_iterable(User, lambda item: item.wrap_up(self))

    def list_organizations(self, since: str | None = None) -> PagedIterable[Organization]:
        return (
            self.create_request()
            .with_("since", since)
            .with_url_path("/organizations")
            .to_iterable(Organization, lambda item: item.wrap_up(self))
        )

    def get_my_organizations(self) -> dict[str, Organization]:
        """Organizations the authenticated user belongs to, keyed by login."""
        orgs = self.create_request().with_url_path("/user/orgs").fetch_array(Organization)
        return {org.login: org.wrap_up(self) for org in orgs}

    def get_my_teams(self) -> dict[str, set[Team]]:
        """Teams of the authenticated user, grouped by organization login."""
        teams: dict[str, set[Team]] = {}
        for team in self.create_request().with_url_path("/user/teams").to_iterable(Team, lambda item: item.wrap_up(self)):
            org_login = team.organization.login if team.organization else ""
            teams.setdefault(org_login, set()).add(team)
        return teams

    def get_team(self, team_id: int) -> Team:
        return self.create_request().with_url_path("/teams", str(team_id)).fetch(Team).wrap_up(self)

    # =========================================================================
    # Miscellaneous
    # =========================================================================

    def get_license(self, key: str) -> License:
        return self.create_request().with_preview(LICENSES_PREVIEW).with_url_path("/licenses", key).fetch(License)

    def list_licenses(self) -> PagedIterable[License]:
        return self.create_request().with_preview(LICENSES_PREVIEW).with_url_path("/licenses").to_iterable(License)

    def render_markdown(self, text: str) -> str:
        """Render Markdown to HTML."""
        return (
            self.create_request()
            .method("POST")
            .with_body(text.encode("utf-8"))
            .content_type("text/plain;charset=UTF-8")
            .with_url_path("/markdown/raw")
            .fetch_stream(_read_text)
        )

    def search_repositories(self) -> RepositorySearchBuilder:
        return RepositorySearchBuilder(self)

    def search_issues(self) -> IssueSearchBuilder:
        return IssueSearchBuilder(self)

    def search_users(self) -> UserSearchBuilder:
        return UserSearchBuilder(self)

    def list_notifications(self) -> NotificationStream:
        """Notification threads of the authenticated user."""
        return NotificationStream(self, "/notifications")

    def __repr__(self) -> str:
        return f"Forge(api_url={self.api_url!r}, login={self._login!r})"


def _read_text(stream: BinaryIO) -> str:
    return stream.read().decode("utf-8")
