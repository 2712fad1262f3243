"""
Issues, issue comments, labels and milestones.

Issues and pull requests share their data fields through ``IssueFields``.
Operations that only exist on the issue route (comments, labels, locking)
are reached from a pull request through its ``get_issue()`` view.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from forge_client.core.paging import PagedIterable
from forge_client.core.requester import Requester
from forge_client.core.types import parse_date
from forge_client.models.base import ForgeResource, offline_noop
from forge_client.models.reaction import Reactable
from forge_client.models.user import User

if TYPE_CHECKING:
    from forge_client.models.repository import Repository


class IssueState(Enum):
    OPEN = "open"
    CLOSED = "closed"
    ALL = "all"


# =============================================================================
# Labels & milestones
# =============================================================================


@dataclass(eq=False)
class Label(ForgeResource):
    name: str | None = None
    color: str | None = None
    description: str | None = None
    default: bool = False
    repository: "Repository | None" = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, repository: "Repository") -> "Label":
        self.repository = repository
        self.root = repository.root
        return self

    def _request(self) -> Requester:
        return self._require_root().create_request().with_url_path(self.repository.get_api_tail_url("labels"), self.name)

    @offline_noop
    def set_color(self, color: str) -> None:
        self._request().method("PATCH").with_("name", self.name).with_("color", color).send()
        self.color = color

    @offline_noop
    def set_description(self, description: str) -> None:
        self._request().method("PATCH").with_("name", self.name).with_("description", description).send()
        self.description = description

    @offline_noop
    def delete(self) -> None:
        self._request().method("DELETE").send()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Label):
            return NotImplemented
        return (self.url, self.name, self.color) == (other.url, other.name, other.color)

    def __hash__(self) -> int:
        return hash((self.url, self.name, self.color))


@dataclass(eq=False)
class Milestone(ForgeResource):
    number: int = 0
    title: str | None = None
    description: str | None = None
    state: IssueState | None = None
    open_issues: int = 0
    closed_issues: int = 0
    due_on: str | None = None
    closed_at: str | None = None
    creator: User | None = None
    repository: "Repository | None" = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, repository: "Repository") -> "Milestone":
        self.repository = repository
        self.root = repository.root
        return self

    def _edit(self, key: str, value: Any) -> None:
        (
            self._require_root()
            .create_request()
            .method("PATCH")
            .with_(key, value)
            .with_url_path(self.repository.get_api_tail_url("milestones"), str(self.number))
            .send()
        )

    @offline_noop
    def close(self) -> None:
        self._edit("state", "closed")
        self.state = IssueState.CLOSED

    @offline_noop
    def reopen(self) -> None:
        self._edit("state", "open")
        self.state = IssueState.OPEN

    @offline_noop
    def delete(self) -> None:
        (
            self._require_root()
            .create_request()
            .method("DELETE")
            .with_url_path(self.repository.get_api_tail_url("milestones"), str(self.number))
            .send()
        )


# =============================================================================
# Issues
# =============================================================================


@dataclass(eq=False)
class PullRequestLinks:
    """Present on issues that are pull requests."""

    url: str | None = None
    html_url: str | None = None
    diff_url: str | None = None
    patch_url: str | None = None


@dataclass(eq=False)
class IssueFields(ForgeResource):
    """Data fields common to issues and pull requests."""

    number: int = 0
    title: str | None = None
    body: str | None = None
    state: IssueState | None = None
    locked: bool = False
    user: User | None = None
    assignee: User | None = None
    assignees: list[User] = field(default_factory=list)
    labels: list[Label] = field(default_factory=list)
    milestone: Milestone | None = None
    comments: int = 0
    closed_at: str | None = None
    closed_by: User | None = None
    repository: "Repository | None" = field(default=None, repr=False, metadata={"transient": True})

    def get_closed_at(self) -> datetime | None:
        return parse_date(self.closed_at)

    def get_label_names(self) -> list[str]:
        return [label.name for label in self.labels]


class IssueLike(Protocol):
    """What callers may rely on for both issues and pull requests."""

    number: int

    def get_comments(self) -> list["IssueComment"]: ...

    def get_labels(self) -> list[Label]: ...

    def close(self) -> None: ...

    def lock(self) -> None: ...


@dataclass(eq=False)
class Issue(IssueFields, Reactable):
    """An issue, or the issue side of a pull request."""

    pull_request: PullRequestLinks | None = None

    def wrap(self, repository: Any) -> "Issue":
        """Attach the owning repository (or just the session when given one)."""
        from forge_client.models.repository import Repository

        if isinstance(repository, Repository):
            self.repository = repository
            self.root = repository.root
        else:
            self.root = repository
        if self.repository is not None:
            for label in self.labels:
                label.wrap_up(self.repository)
        return self

    def get_api_route(self) -> str:
        return self.repository.get_api_tail_url(f"issues/{self.number}")

    def _reactions_route(self) -> str:
        return self.get_api_route() + "/reactions"

    def _request(self, *segments: str) -> Requester:
        return self._require_root().create_request().with_url_path(self.get_api_route(), *segments)

    def is_pull_request(self) -> bool:
        return self.pull_request is not None

    def _edit(self, key: str, value: Any) -> None:
        self._request().method("PATCH").with_(key, value).send()

    @offline_noop
    def close(self) -> None:
        self._edit("state", IssueState.CLOSED)
        self.state = IssueState.CLOSED

    @offline_noop
    def reopen(self) -> None:
        self._edit("state", IssueState.OPEN)
        self.state = IssueState.OPEN

    @offline_noop
    def set_title(self, title: str) -> None:
        self._edit("title", title)
        self.title = title

    @offline_noop
    def set_body(self, body: str) -> None:
        self._edit("body", body)
        self.body = body

    @offline_noop
    def set_milestone(self, milestone: Milestone | None) -> None:
        self._request().method("PATCH").with_nullable("milestone", milestone.number if milestone else None).send()
        self.milestone = milestone

    @offline_noop
    def assign_to(self, *users: User) -> None:
        self._edit("assignees", [u.login for u in users])

    @offline_noop
    def lock(self) -> None:
        self._request("lock").method("PUT").send()
        self.locked = True

    @offline_noop
    def unlock(self) -> None:
        self._request("lock").method("DELETE").send()
        self.locked = False

    # Labels

    def get_labels(self) -> list[Label]:
        return list(self.labels)

    @offline_noop
    def set_labels(self, *names: str) -> None:
        self._edit("labels", list(names))

    @offline_noop
    def add_labels(self, *names: str) -> list[Label]:
        labels = self._request("labels").method("POST").with_("labels", list(names)).fetch_array(Label)
        self.labels = [label.wrap_up(self.repository) for label in labels]
        return self.labels

    @offline_noop
    def remove_label(self, name: str) -> None:
        self._request("labels", name).method("DELETE").send()
        self.labels = [label for label in self.labels if label.name != name]

    # Comments

    @offline_noop
    def comment(self, body: str) -> "IssueComment":
        return self._request("comments").method("POST").with_("body", body).fetch(IssueComment).wrap_up(self)

    def list_comments(self) -> PagedIterable["IssueComment"]:
        return self._request("comments").to_iterable(IssueComment, lambda item: item.wrap_up(self))

    def get_comments(self) -> list["IssueComment"]:
        return self.list_comments().to_list()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Issue):
            return NotImplemented
        return self.url == other.url

    def __hash__(self) -> int:
        return hash(self.url)


@dataclass(eq=False)
class IssueComment(ForgeResource, Reactable):
    body: str | None = None
    user: User | None = None
    author_association: str | None = None
    issue: Issue | None = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, issue: Issue) -> "IssueComment":
        self.issue = issue
        self.root = issue.root
        return self

    def _api_route(self) -> str:
        return self.issue.repository.get_api_tail_url(f"issues/comments/{self.id}")

    def _reactions_route(self) -> str:
        return self._api_route() + "/reactions"

    @offline_noop
    def update(self, body: str) -> None:
        self._require_root().create_request().method("PATCH").with_("body", body).with_url_path(self._api_route()).send()
        self.body = body

    @offline_noop
    def delete(self) -> None:
        self._require_root().create_request().method("DELETE").with_url_path(self._api_route()).send()


class IssueBuilder:
    """
    Collects the fields of a new issue.

    Example:
        issue = repo.create_issue("Crash on start").body("...").label("bug").create()

    """

    def __init__(self, repository: "Repository", title: str):
        self._repository = repository
        self.root = repository.root
        self._labels: list[str] = []
        self._assignees: list[str] = []
        self._requester = repository._require_root().create_request().method("POST").with_("title", title)

    def body(self, body: str) -> "IssueBuilder":
        self._requester.with_("body", body)
        return self

    def assignee(self, user: User | str) -> "IssueBuilder":
        self._assignees.append(user if isinstance(user, str) else user.login)
        return self

    def label(self, name: str) -> "IssueBuilder":
        self._labels.append(name)
        return self

    def milestone(self, milestone: Milestone) -> "IssueBuilder":
        self._requester.with_("milestone", milestone.number)
        return self

    @offline_noop
    def create(self) -> Issue:
        return (
            self._requester.with_("labels", self._labels)
            .with_("assignees", self._assignees)
            .with_url_path(self._repository.get_api_tail_url("issues"))
            .fetch(Issue)
            .wrap(self._repository)
        )
