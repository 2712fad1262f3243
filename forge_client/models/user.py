"""
Users, organizations and teams.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from forge_client.core.errors import NotFoundError
from forge_client.core.paging import PagedIterable
from forge_client.models.base import ForgeResource, offline_noop

if TYPE_CHECKING:
    from forge_client.models.repository import Repository, RepositoryBuilder
    from forge_client.sdk import Forge


# =============================================================================
# People
# =============================================================================


@dataclass(eq=False)
class Person(ForgeResource):
    """Fields shared by users and organizations."""

    login: str | None = None
    name: str | None = None
    avatar_url: str | None = None
    company: str | None = None
    location: str | None = None
    blog: str | None = None
    email: str | None = None
    type: str | None = None
    public_repos: int = 0
    followers: int = 0
    following: int = 0

    def wrap_up(self, root: "Forge") -> "Person":
        self.root = root
        return self

    def populate(self) -> None:
        """Fill in the profile fields that listing endpoints leave out."""
        if self.created_at is not None or self._is_offline() or not self.url:
            return
        self.root.create_request().set_raw_url_path(self.url).fetch_into(self)

    def get_repository(self, name: str) -> "Repository | None":
        """Get one of this account's repositories, or None if it does not exist."""
        from forge_client.models.repository import Repository

        try:
            return (
                self._require_root()
                .create_request()
                .with_url_path("/repos", self.login, name)
                .fetch(Repository)
                .wrap(self.root)
            )
        except NotFoundError:
            return None

    def _repositories_path(self) -> str:
        return f"/users/{self.login}/repos"

    def list_repositories(self, page_size: int | None = None) -> PagedIterable["Repository"]:
        """List the public repositories of this account."""
        from forge_client.models.repository import Repository

        iterable = (
            self._require_root()
            .create_request()
            .with_url_path(self._repositories_path())
            .to_iterable(Repository, lambda item: item.wrap(self.root))
        )
        if page_size is not None:
            iterable.with_page_size(page_size)
        return iterable

    def get_repositories(self) -> dict[str, "Repository"]:
        """All repositories of this account, keyed by name."""
        return {repo.name: repo for repo in self.list_repositories(page_size=100)}

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.login == other.login

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.login))


@dataclass(eq=False)
class User(Person):
    """A Forge user account."""

    bio: str | None = None
    site_admin: bool = False

    def list_followers(self) -> PagedIterable["User"]:
        return self._list_users("followers")

    def list_follows(self) -> PagedIterable["User"]:
        return self._list_users("following")

    def _list_users(self, suffix: str) -> PagedIterable["User"]:
        return (
            self._require_root()
            .create_request()
            .with_url_path("/users", self.login, suffix)
            .to_iterable(User, lambda item: item.wrap_up(self.root))
        )

    def get_organizations(self) -> dict[str, "Organization"]:
        """Public organization memberships, keyed by login."""
        orgs = self._require_root().create_request().with_url_path("/users", self.login, "orgs").fetch_array(Organization)
        return {org.login: org.wrap_up(self.root) for org in orgs}


@dataclass(eq=False)
class Email:
    """An e-mail address of the authenticated user."""

    email: str | None = None
    primary: bool = False
    verified: bool = False
    visibility: str | None = None


@dataclass(eq=False)
class Myself(User):
    """The authenticated user."""

    total_private_repos: int = 0
    owned_private_repos: int = 0

    def _repositories_path(self) -> str:
        return "/user/repos"

    def list_emails(self) -> list[str]:
        """E-mail addresses registered to this account, primary first."""
        emails = self._require_root().create_request().with_url_path("/user/emails").fetch_array(Email)
        emails.sort(key=lambda e: not e.primary)
        return [e.email for e in emails]

    def create_repository(self, name: str) -> "RepositoryBuilder":
        from forge_client.models.repository import RepositoryBuilder

        return RepositoryBuilder(self._require_root(), "/user/repos", name)


# =============================================================================
# Organizations
# =============================================================================


@dataclass(eq=False)
class Organization(Person):
    """A Forge organization."""

    description: str | None = None

    def _repositories_path(self) -> str:
        return f"/orgs/{self.login}/repos"

    def create_repository(self, name: str) -> "RepositoryBuilder":
        from forge_client.models.repository import RepositoryBuilder

        return RepositoryBuilder(self._require_root(), f"/orgs/{self.login}/repos", name)

    def list_teams(self) -> PagedIterable["Team"]:
        return (
            self._require_root()
            .create_request()
            .with_url_path("/orgs", self.login, "teams")
            .to_iterable(Team, lambda item: item.wrap_up(self))
        )

    def get_teams(self) -> dict[str, "Team"]:
        """All teams of this organization, keyed by name."""
        return {team.name: team for team in self.list_teams()}

    def get_team_by_name(self, name: str) -> "Team | None":
        for team in self.list_teams():
            if team.name == name:
                return team
        return None

    def get_team_by_slug(self, slug: str) -> "Team | None":
        try:
            return (
                self._require_root()
                .create_request()
                .with_url_path("/orgs", self.login, "teams", slug)
                .fetch(Team)
                .wrap_up(self)
            )
        except NotFoundError:
            return None

    def list_members(self) -> PagedIterable[User]:
        return (
            self._require_root()
            .create_request()
            .with_url_path("/orgs", self.login, "members")
            .to_iterable(User, lambda item: item.wrap_up(self.root))
        )

    def has_member(self, user: User) -> bool:
        status = (
            self._require_root()
            .create_request()
            .with_url_path("/orgs", self.login, "members", user.login)
            .fetch_http_status_code()
        )
        return status // 100 == 2


# =============================================================================
# Teams
# =============================================================================


@dataclass(eq=False)
class Team(ForgeResource):
    """A team inside an organization."""

    name: str | None = None
    slug: str | None = None
    description: str | None = None
    permission: str | None = None
    privacy: str | None = None
    organization: Organization | None = None
    members_count: int = 0
    repos_count: int = 0

    def wrap_up(self, parent: Any) -> "Team":
        """Attach the session, given either the owning Organization or the session."""
        if isinstance(parent, Organization):
            self.organization = parent
            self.root = parent.root
        else:
            self.root = parent
            if self.organization is not None:
                self.organization.wrap_up(parent)
        return self

    def list_members(self) -> PagedIterable[User]:
        return (
            self._require_root()
            .create_request()
            .with_url_path("/teams", str(self.id), "members")
            .to_iterable(User, lambda item: item.wrap_up(self.root))
        )

    def has_member(self, user: User) -> bool:
        try:
            self._require_root().create_request().with_url_path("/teams", str(self.id), "members", user.login).send()
            return True
        except NotFoundError:
            return False

    @offline_noop
    def add_member(self, user: User) -> None:
        (
            self._require_root()
            .create_request()
            .method("PUT")
            .with_url_path("/teams", str(self.id), "memberships", user.login)
            .send()
        )

    @offline_noop
    def remove_member(self, user: User) -> None:
        (
            self._require_root()
            .create_request()
            .method("DELETE")
            .with_url_path("/teams", str(self.id), "memberships", user.login)
            .send()
        )

    def list_repositories(self) -> PagedIterable["Repository"]:
        from forge_client.models.repository import Repository

        return (
            self._require_root()
            .create_request()
            .with_url_path("/teams", str(self.id), "repos")
            .to_iterable(Repository, lambda item: item.wrap(self.root))
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Team):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(("Team", self.id))
