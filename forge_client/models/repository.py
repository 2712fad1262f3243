"""
Repositories and the resources hanging off them.

A ``Repository`` decoded from a listing is partial; ``populate()`` loads the
full record once. All sub-resource routes are built from
``get_api_tail_url()``, i.e. ``/repos/<owner>/<name>/<tail>``.
"""

import logging
import time
from collections.abc import Iterable, Iterator, MutableSet
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, BinaryIO

from forge_client.core.errors import ForgeError, HttpError, JsonMappingError, NotFoundError
from forge_client.core.paging import PagedIterable
from forge_client.core.requester import Requester
from forge_client.core.types import parse_date
from forge_client.models.base import ForgeObject, ForgeResource, offline_noop
from forge_client.models.deployment import DEPLOYMENTS_PREVIEW, Deployment, DeploymentBuilder
from forge_client.models.git import Blob, Branch, Commit, Ref, Tree
from forge_client.models.issue import Issue, IssueBuilder, IssueState, Label, Milestone
from forge_client.models.pull_request import PullRequest
from forge_client.models.release import Release, ReleaseBuilder
from forge_client.models.user import Organization, User

if TYPE_CHECKING:
    from forge_client.models.notification import NotificationStream
    from forge_client.sdk import Forge

logger = logging.getLogger(__name__)

RAW_MEDIA_TYPE = "application/vnd.github.v3.raw"
LICENSES_PREVIEW = "application/vnd.github.drax-preview+json"
TOPICS_PREVIEW = "application/vnd.github.mercy-preview+json"

FORK_POLL_ATTEMPTS = 10
FORK_POLL_INTERVAL = 3


class ForkSort(Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    STARGAZERS = "stargazers"


class CollaboratorAffiliation(Enum):
    ALL = "all"
    DIRECT = "direct"
    OUTSIDE = "outside"


class Permission(Enum):
    PULL = "pull"
    PUSH = "push"
    ADMIN = "admin"


# =============================================================================
# Supporting types
# =============================================================================


@dataclass(eq=False)
class RepositoryPermissions:
    admin: bool = False
    push: bool = False
    pull: bool = False


@dataclass(eq=False)
class License(ForgeObject):
    """A license known to the forge, or the one detected in a repository."""

    key: str | None = None
    name: str | None = None
    spdx_id: str | None = None
    url: str | None = None
    html_url: str | None = None
    description: str | None = None
    implementation: str | None = None
    body: str | None = None
    featured: bool = False
    permissions: list[str] = field(default_factory=list)
    conditions: list[str] = field(default_factory=list)
    limitations: list[str] = field(default_factory=list)

    def populate(self) -> None:
        """Load the full license text when only the summary was fetched."""
        if self.body is not None or self._is_offline() or not self.url:
            return
        self.root.create_request().with_preview(LICENSES_PREVIEW).set_raw_url_path(self.url).fetch_into(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, License):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(("License", self.key))


@dataclass(eq=False)
class LicenseContent:
    """Envelope returned by ``/repos/<owner>/<name>/license``."""

    name: str | None = None
    path: str | None = None
    sha: str | None = None
    size: int = 0
    encoding: str | None = None
    content: str | None = None
    license: License | None = None


@dataclass(eq=False)
class Subscription(ForgeObject):
    subscribed: bool = False
    ignored: bool = False
    reason: str | None = None
    created_at: str | None = None
    url: str | None = None
    repository_url: str | None = None
    repository: "Repository | None" = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, repository: "Repository") -> "Subscription":
        self.repository = repository
        self.root = repository.root
        return self

    @offline_noop
    def delete(self) -> None:
        (
            self._require_root()
            .create_request()
            .method("DELETE")
            .with_url_path(self.repository.get_api_tail_url("subscription"))
            .send()
        )


@dataclass(eq=False)
class Hook(ForgeResource):
    name: str | None = None
    active: bool = False
    events: list[str] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)
    repository: "Repository | None" = field(default=None, repr=False, metadata={"transient": True})

    def wrap(self, repository: Any) -> "Hook":
        if isinstance(repository, Repository):
            self.repository = repository
            self.root = repository.root
        else:
            self.root = repository
        return self

    @offline_noop
    def ping(self) -> None:
        (
            self._require_root()
            .create_request()
            .method("POST")
            .with_url_path(self.repository.get_api_tail_url(f"hooks/{self.id}/pings"))
            .send()
        )

    @offline_noop
    def delete(self) -> None:
        (
            self._require_root()
            .create_request()
            .method("DELETE")
            .with_url_path(self.repository.get_api_tail_url(f"hooks/{self.id}"))
            .send()
        )


class PostCommitHooks(MutableSet):
    """
    Live set of the URLs of a repository's ``web`` hooks.

    Every operation talks to the forge: iterating lists the hooks, ``add``
    creates a web hook and ``discard`` deletes the matching one.
    """

    def __init__(self, repository: "Repository"):
        self._repository = repository
        self.root = repository.root

    def _urls(self) -> list[str]:
        try:
            return [h.config.get("url") for h in self._repository.get_hooks() if h.name == "web"]
        except HttpError as e:
            raise ForgeError("Failed to retrieve post-commit hooks") from e

    def __contains__(self, url: object) -> bool:
        return url in self._urls()

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls())

    def __len__(self) -> int:
        return len(self._urls())

    @offline_noop
    def add(self, url: str) -> None:
        try:
            self._repository.create_web_hook(url)
        except HttpError as e:
            raise ForgeError("Failed to update post-commit hooks") from e

    @offline_noop
    def discard(self, url: str) -> None:
        try:
            for hook in self._repository.get_hooks():
                if hook.name == "web" and hook.config.get("url") == url:
                    hook.delete()
                    return
        except HttpError as e:
            raise ForgeError("Failed to update post-commit hooks") from e


# =============================================================================
# Repository
# =============================================================================


@dataclass(eq=False)
class Repository(ForgeResource):
    """A repository hosted on the forge."""

    name: str | None = None
    full_name: str | None = None
    description: str | None = None
    homepage: str | None = None
    owner: User | None = None
    private: bool = False
    is_fork: bool = field(default=False, metadata={"json": "fork"})
    archived: bool = False
    disabled: bool = False
    default_branch: str | None = None
    language: str | None = None
    size: int = 0
    forks_count: int = 0
    stargazers_count: int = 0
    watchers_count: int = 0
    subscribers_count: int = 0
    open_issues_count: int = 0
    has_issues: bool = False
    has_wiki: bool = False
    has_pages: bool = False
    has_projects: bool = False
    has_downloads: bool = False
    allow_squash_merge: bool = False
    allow_merge_commit: bool = False
    allow_rebase_merge: bool = False
    delete_branch_on_merge: bool = False
    pushed_at: str | None = None
    git_url: str | None = None
    ssh_url: str | None = None
    clone_url: str | None = None
    svn_url: str | None = None
    mirror_url: str | None = None
    permissions: RepositoryPermissions | None = None
    license: License | None = None
    topics: list[str] = field(default_factory=list)
    source: "Repository | None" = None
    parent: "Repository | None" = None
    _populated: bool = field(default=False, repr=False, metadata={"transient": True})

    def wrap(self, root: "Forge") -> "Repository":
        self.root = root
        if root.is_offline() and self.owner is not None:
            self.owner.wrap_up(root)
        if self.source is not None:
            self.source.wrap(root)
        if self.parent is not None:
            self.parent.wrap(root)
        return self

    def populate(self) -> None:
        """Load the full record once; no-op when offline."""
        if self._populated or self._is_offline():
            return
        try:
            self.root.create_request().set_raw_url_path(self.url or self.get_api_tail_url("")).fetch_into(self)
        except JsonMappingError:
            self.root.create_request().with_url_path("/repos", self.full_name).fetch_into(self)
        self._populated = True
        self.wrap(self.root)

    @property
    def owner_name(self) -> str:
        if self.owner is not None and self.owner.login:
            return self.owner.login
        return self.full_name.split("/", 1)[0]

    def get_owner(self) -> User | None:
        """The owning account; offline sessions return the embedded summary."""
        if self._is_offline():
            return self.owner
        return self.root.get_user(self.owner_name)

    def get_api_tail_url(self, tail: str) -> str:
        if tail and not tail.startswith("/"):
            tail = "/" + tail
        return f"/repos/{self.owner_name}/{self.name}{tail}"

    def _request(self, tail: str = "") -> Requester:
        return self._require_root().create_request().with_url_path(self.get_api_tail_url(tail))

    def get_pushed_at(self) -> datetime | None:
        return parse_date(self.pushed_at)

    def has_pull_access(self) -> bool:
        return self.permissions is not None and self.permissions.pull

    def has_push_access(self) -> bool:
        return self.permissions is not None and self.permissions.push

    def has_admin_access(self) -> bool:
        return self.permissions is not None and self.permissions.admin

    def get_subscribers_count(self) -> int:
        self.populate()
        return self.subscribers_count

    def is_allow_squash_merge(self) -> bool:
        self.populate()
        return self.allow_squash_merge

    def is_allow_merge_commit(self) -> bool:
        self.populate()
        return self.allow_merge_commit

    def is_allow_rebase_merge(self) -> bool:
        self.populate()
        return self.allow_rebase_merge

    def is_delete_branch_on_merge(self) -> bool:
        self.populate()
        return self.delete_branch_on_merge

    # =========================================================================
    # Issues
    # =========================================================================

    def get_issue(self, number: int) -> Issue:
        return self._request(f"issues/{number}").fetch(Issue).wrap(self)

    def list_issues(self, state: IssueState = IssueState.OPEN) -> PagedIterable[Issue]:
        return self._request("issues").with_("state", state).to_iterable(Issue, lambda item: item.wrap(self))

    def get_issues(self, state: IssueState = IssueState.OPEN, milestone: Milestone | None = None) -> list[Issue]:
        requester = self._request("issues").with_("state", state)
        if milestone is not None:
            requester.with_("milestone", milestone.number)
        return requester.to_iterable(Issue, lambda item: item.wrap(self)).to_list()

    def create_issue(self, title: str) -> IssueBuilder:
        return IssueBuilder(self, title)

    # =========================================================================
    # Pull requests
    # =========================================================================

    def get_pull_request(self, number: int) -> PullRequest:
        return self._request(f"pulls/{number}").fetch(PullRequest).wrap_up(self)

    def list_pull_requests(
        self,
        state: IssueState = IssueState.OPEN,
        head: str | None = None,
        base: str | None = None,
        sort: str | None = None,
        direction: str | None = None,
    ) -> PagedIterable[PullRequest]:
        """
        List pull requests.

        Args:
            state: Open, closed or all
            head: Filter by head ``user:ref``
            base: Filter by base branch name
            sort: created, updated, popularity or long-running
            direction: asc or desc

        Returns:
            Lazy sequence of (partially loaded) pull requests

        """
        return (
            self._request("pulls")
            .with_("state", state)
            .with_("head", head)
            .with_("base", base)
            .with_("sort", sort)
            .with_("direction", direction)
            .to_iterable(PullRequest, lambda item: item.wrap_up(self))
        )

    def get_pull_requests(self, state: IssueState = IssueState.OPEN) -> list[PullRequest]:
        return self.list_pull_requests(state).to_list()

    @offline_noop
    def create_pull_request(
        self,
        title: str,
        head: str,
        base: str,
        body: str | None = None,
        maintainer_can_modify: bool = True,
        draft: bool = False,
    ) -> PullRequest:
        return (
            self._request("pulls")
            .method("POST")
            .with_("title", title)
            .with_("head", head)
            .with_("base", base)
            .with_("body", body)
            .with_("maintainer_can_modify", maintainer_can_modify)
            .with_("draft", draft)
            .fetch(PullRequest)
            .wrap_up(self)
        )

    # =========================================================================
    # Releases
    # =========================================================================

    def list_releases(self) -> PagedIterable[Release]:
        return self._request("releases").to_iterable(Release, lambda item: item.wrap(self))

    def get_releases(self) -> list[Release]:
        return self.list_releases().to_list()

    def _find_release(self, tail: str) -> Release | None:
        try:
            return self._request(tail).fetch(Release).wrap(self)
        except NotFoundError:
            return None

    def get_release(self, release_id: int) -> Release | None:
        return self._find_release(f"releases/{release_id}")

    def get_release_by_tag_name(self, tag: str) -> Release | None:
        return self._find_release(f"releases/tags/{tag}")

    def get_latest_release(self) -> Release | None:
        return self._find_release("releases/latest")

    def create_release(self, tag: str) -> ReleaseBuilder:
        return ReleaseBuilder(self, tag)

    # =========================================================================
    # Labels & milestones
    # =========================================================================

    def list_labels(self) -> PagedIterable[Label]:
        return self._request("labels").to_iterable(Label, lambda item: item.wrap_up(self))

    def get_label(self, name: str) -> Label:
        return self._request("labels").with_url_path(name).fetch(Label).wrap_up(self)

    @offline_noop
    def create_label(self, name: str, color: str, description: str | None = None) -> Label:
        return (
            self._request("labels")
            .method("POST")
            .with_("name", name)
            .with_("color", color)
            .with_("description", description)
            .fetch(Label)
            .wrap_up(self)
        )

    def list_milestones(self, state: IssueState = IssueState.OPEN) -> PagedIterable[Milestone]:
        return self._request("milestones").with_("state", state).to_iterable(Milestone, lambda item: item.wrap_up(self))

    def get_milestone(self, number: int) -> Milestone:
        return self._request(f"milestones/{number}").fetch(Milestone).wrap_up(self)

    @offline_noop
    def create_milestone(self, title: str, description: str | None = None) -> Milestone:
        return (
            self._request("milestones")
            .method("POST")
            .with_("title", title)
            .with_("description", description)
            .fetch(Milestone)
            .wrap_up(self)
        )

    # =========================================================================
    # Git data
    # =========================================================================

    def list_refs(self, ref_type: str | None = None) -> PagedIterable[Ref]:
        """List refs, optionally only those under ``refs/<ref_type>``."""
        tail = "git/refs" if ref_type is None else f"git/refs/{ref_type.removeprefix('refs/')}"
        return self._request(tail).to_iterable(Ref, lambda item: item.wrap(self.root))

    def get_refs(self, ref_type: str | None = None) -> tuple[Ref, ...]:
        return self.list_refs(ref_type).to_array()

    def get_ref(self, name: str) -> Ref:
        return self._request(f"git/refs/{name.removeprefix('refs/')}").fetch(Ref).wrap(self.root)

    @offline_noop
    def create_ref(self, name: str, sha: str) -> Ref:
        return self._request("git/refs").method("POST").with_("ref", name).with_("sha", sha).fetch(Ref).wrap(self.root)

    def get_tree(self, sha: str) -> Tree:
        return self._request(f"git/trees/{sha}").fetch(Tree).wrap_up(self)

    def get_tree_recursive(self, sha: str, recursive: int = 1) -> Tree:
        return self._request(f"git/trees/{sha}").with_("recursive", recursive).fetch(Tree).wrap_up(self)

    def get_blob(self, sha: str) -> Blob:
        return self._request(f"git/blobs/{sha}").fetch(Blob).wrap(self.root)

    def read_blob(self, sha: str) -> bytes:
        """Raw bytes of a blob, streamed without the base64 envelope."""
        return self._request(f"git/blobs/{sha}").with_header("Accept", RAW_MEDIA_TYPE).fetch_stream(_read_all)

    def get_commit(self, sha: str) -> Commit:
        return self._request(f"commits/{sha}").fetch(Commit).wrap_up(self)

    def list_commits(self) -> PagedIterable[Commit]:
        return self._request("commits").to_iterable(Commit, lambda item: item.wrap_up(self))

    def get_branches(self) -> dict[str, Branch]:
        """All branches, keyed and sorted by name."""
        branches = self._request("branches").to_iterable(Branch, lambda item: item.wrap_up(self)).to_array()
        return {b.name: b for b in sorted(branches, key=lambda b: b.name)}

    def get_branch(self, name: str) -> Branch:
        return self._request("branches").with_url_path(name).fetch(Branch).wrap_up(self)

    # =========================================================================
    # Hooks
    # =========================================================================

    def get_hooks(self) -> list[Hook]:
        return [hook.wrap(self) for hook in self._request("hooks").fetch_array(Hook)]

    def get_hook(self, hook_id: int) -> Hook:
        return self._request(f"hooks/{hook_id}").fetch(Hook).wrap(self)

    @offline_noop
    def create_hook(
        self,
        name: str,
        config: dict[str, str],
        events: Iterable[str] | None = None,
        active: bool = True,
    ) -> Hook:
        requester = self._request("hooks").method("POST").with_("name", name).with_("config", config)
        if events is not None:
            requester.with_("events", [str(e).lower() for e in events])
        return requester.with_("active", active).fetch(Hook).wrap(self)

    def create_web_hook(self, url: str, events: Iterable[str] | None = None) -> Hook:
        return self.create_hook("web", {"url": url}, events, True)

    @property
    def post_commit_hooks(self) -> PostCommitHooks:
        return PostCommitHooks(self)

    # =========================================================================
    # Deployments
    # =========================================================================

    def create_deployment(self, ref: str) -> DeploymentBuilder:
        return DeploymentBuilder(self, ref)

    def list_deployments(
        self,
        sha: str | None = None,
        ref: str | None = None,
        task: str | None = None,
        environment: str | None = None,
    ) -> PagedIterable[Deployment]:
        return (
            self._request("deployments")
            .with_("sha", sha)
            .with_("ref", ref)
            .with_("task", task)
            .with_("environment", environment)
            .with_preview(DEPLOYMENTS_PREVIEW)
            .to_iterable(Deployment, lambda item: item.wrap(self))
        )

    def get_deployment(self, deployment_id: int) -> Deployment:
        return (
            self._request(f"deployments/{deployment_id}")
            .with_preview(DEPLOYMENTS_PREVIEW)
            .fetch(Deployment)
            .wrap(self)
        )

    # =========================================================================
    # License & subscription
    # =========================================================================

    def get_license(self) -> License | None:
        """The detected license, or None when the repository has none."""
        try:
            content = self._request("license").with_preview(LICENSES_PREVIEW).fetch(LicenseContent)
        except NotFoundError:
            return None
        return content.license if content is not None else None

    def get_subscription(self) -> Subscription | None:
        """The authenticated user's subscription, or None when not subscribed."""
        try:
            return self._request("subscription").fetch(Subscription).wrap_up(self)
        except NotFoundError:
            return None

    @offline_noop
    def subscribe(self, subscribed: bool, ignored: bool) -> Subscription:
        return (
            self._request("subscription")
            .method("PUT")
            .with_("subscribed", subscribed)
            .with_("ignored", ignored)
            .fetch(Subscription)
            .wrap_up(self)
        )

    # =========================================================================
    # People
    # =========================================================================

    def list_collaborators(self, affiliation: CollaboratorAffiliation | None = None) -> PagedIterable[User]:
        return (
            self._request("collaborators")
            .with_("affiliation", affiliation)
            .to_iterable(User, lambda item: item.wrap_up(self.root))
        )

    def get_collaborator_names(self) -> set[str]:
        return {user.login for user in self.list_collaborators()}

    def list_assignees(self) -> PagedIterable[User]:
        return self._request("assignees").to_iterable(User, lambda item: item.wrap_up(self.root))

    def has_assignee(self, user: User) -> bool:
        return self._request(f"assignees/{user.login}").fetch_http_status_code() // 100 == 2

    def list_stargazers(self) -> PagedIterable[User]:
        return self._request("stargazers").to_iterable(User, lambda item: item.wrap_up(self.root))

    def list_subscribers(self) -> PagedIterable[User]:
        return self._request("subscribers").to_iterable(User, lambda item: item.wrap_up(self.root))

    @offline_noop
    def add_collaborators(self, *users: User, permission: Permission | None = None) -> None:
        self._modify_collaborators(users, "PUT", permission)

    @offline_noop
    def remove_collaborators(self, *users: User) -> None:
        self._modify_collaborators(users, "DELETE", None)

    def _modify_collaborators(self, users: Iterable[User], method: str, permission: Permission | None) -> None:
        for user in dict.fromkeys(users):
            requester = self._require_root().create_request().method(method)
            if permission is not None:
                requester.with_("permission", permission).in_body()
            requester.with_url_path(self.get_api_tail_url(f"collaborators/{user.login}")).send()

    def get_teams(self) -> set[Any]:
        """Teams with access to this repository."""
        from forge_client.models.user import Team

        org = self.root.get_organization(self.owner_name)
        return self._request("teams").to_iterable(Team, lambda item: item.wrap_up(org)).to_set()

    # =========================================================================
    # Metadata
    # =========================================================================

    def list_languages(self) -> dict[str, int]:
        return self._request("languages").fetch(dict[str, int]) or {}

    def list_topics(self) -> list[str]:
        data = self._request("topics").with_preview(TOPICS_PREVIEW).fetch(dict[str, list[str]]) or {}
        return data.get("names", [])

    @offline_noop
    def set_topics(self, topics: list[str]) -> None:
        self._request("topics").method("PUT").with_("names", topics).with_preview(TOPICS_PREVIEW).send()
        self.topics = list(topics)

    def list_notifications(self) -> "NotificationStream":
        from forge_client.models.notification import NotificationStream

        return NotificationStream(self._require_root(), self.get_api_tail_url("notifications"))

    # =========================================================================
    # Settings
    # =========================================================================

    def _edit(self, key: str, value: Any) -> None:
        self._request().method("PATCH").with_("name", self.name).with_(key, value).send()
        setattr(self, key, value)

    @offline_noop
    def set_description(self, value: str) -> None:
        self._edit("description", value)

    @offline_noop
    def set_homepage(self, value: str) -> None:
        self._edit("homepage", value)

    @offline_noop
    def set_default_branch(self, value: str) -> None:
        self._edit("default_branch", value)

    @offline_noop
    def set_private(self, value: bool) -> None:
        self._edit("private", value)

    @offline_noop
    def enable_issue_tracker(self, value: bool) -> None:
        self._edit("has_issues", value)

    @offline_noop
    def enable_wiki(self, value: bool) -> None:
        self._edit("has_wiki", value)

    @offline_noop
    def enable_projects(self, value: bool) -> None:
        self._edit("has_projects", value)

    @offline_noop
    def enable_downloads(self, value: bool) -> None:
        self._edit("has_downloads", value)

    @offline_noop
    def set_allow_squash_merge(self, value: bool) -> None:
        self._edit("allow_squash_merge", value)

    @offline_noop
    def set_allow_merge_commit(self, value: bool) -> None:
        self._edit("allow_merge_commit", value)

    @offline_noop
    def set_allow_rebase_merge(self, value: bool) -> None:
        self._edit("allow_rebase_merge", value)

    @offline_noop
    def set_delete_branch_on_merge(self, value: bool) -> None:
        self._edit("delete_branch_on_merge", value)

    @offline_noop
    def archive(self) -> None:
        self._edit("archived", True)

    @offline_noop
    def rename_to(self, name: str) -> None:
        self._request().method("PATCH").with_("name", name).send()
        self.name = name
        self.full_name = f"{self.owner_name}/{name}"

    @offline_noop
    def delete(self) -> None:
        try:
            self._request().method("DELETE").send()
        except NotFoundError as e:
            raise NotFoundError(
                f"Failed to delete {self.owner_name}/{self.name}; it might not exist, "
                "or the token might lack the delete_repo scope",
                status=e.status,
                url=e.url,
                body=e.body,
                response_message=e.response_message,
                details=e.details,
            ) from e

    # =========================================================================
    # Forks
    # =========================================================================

    def list_forks(self, sort: ForkSort | None = None) -> PagedIterable["Repository"]:
        return self._request("forks").with_("sort", sort).to_iterable(Repository, lambda item: item.wrap(self.root))

    @offline_noop
    def fork(self) -> "Repository":
        """Fork into the authenticated user's account and wait for the fork to appear."""
        self._request("forks").method("POST").send()
        return self._await_fork(self.root.get_myself(), f"{self} was forked but the new repository cannot be found")

    @offline_noop
    def fork_to(self, org: Organization) -> "Repository":
        self._request("forks").method("POST").with_("organization", org.login).send()
        return self._await_fork(org, f"{self} was forked into {org.login} but the new repository cannot be found")

    def _await_fork(self, account: Any, failure: str) -> "Repository":
        for _ in range(FORK_POLL_ATTEMPTS):
            repo = account.get_repository(self.name)
            if repo is not None:
                return repo
            logger.info("Waiting for fork of %s/%s to appear", self.owner_name, self.name)
            time.sleep(FORK_POLL_INTERVAL)
        raise ForgeError(failure)

    def __str__(self) -> str:
        return f"Repository:{self.full_name or self.name}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Repository):
            return NotImplemented
        return (self.owner_name, self.name) == (other.owner_name, other.name)

    def __hash__(self) -> int:
        return hash((self.owner_name, self.name))


def _read_all(stream: BinaryIO) -> bytes:
    return stream.read()


# =============================================================================
# Builder
# =============================================================================


class RepositoryBuilder:
    """
    Collects the settings of a new repository.

    Example:
        repo = forge.create_repository("demo").description("Demo").private(True).create()

    """

    def __init__(self, root: "Forge", path: str, name: str):
        self.root = root
        self._requester = root.create_request().method("POST").with_("name", name).with_url_path(path)

    def _with(self, key: str, value: Any) -> "RepositoryBuilder":
        self._requester.with_(key, value)
        return self

    def description(self, description: str) -> "RepositoryBuilder":
        return self._with("description", description)

    def homepage(self, homepage: str) -> "RepositoryBuilder":
        return self._with("homepage", homepage)

    def private(self, private: bool) -> "RepositoryBuilder":
        return self._with("private", private)

    def issues(self, enabled: bool) -> "RepositoryBuilder":
        return self._with("has_issues", enabled)

    def wiki(self, enabled: bool) -> "RepositoryBuilder":
        return self._with("has_wiki", enabled)

    def downloads(self, enabled: bool) -> "RepositoryBuilder":
        return self._with("has_downloads", enabled)

    def auto_init(self, enabled: bool) -> "RepositoryBuilder":
        return self._with("auto_init", enabled)

    def gitignore_template(self, language: str) -> "RepositoryBuilder":
        return self._with("gitignore_template", language)

    def license_template(self, license_key: str) -> "RepositoryBuilder":
        return self._with("license_template", license_key)

    def team(self, team_id: int) -> "RepositoryBuilder":
        return self._with("team_id", team_id)

    @offline_noop
    def create(self) -> Repository:
        return self._requester.fetch(Repository).wrap(self.root)
