"""
Pull requests and their reviews, review comments and changed files.

Listing endpoints return pull requests without their merge details. The
getters for those details call ``populate()``, which fetches the full
record once; ``mergeable_state`` being set marks a fully loaded request.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from forge_client.core.paging import PagedIterable
from forge_client.core.requester import Requester
from forge_client.core.types import parse_date
from forge_client.models.base import ForgeObject, ForgeResource, offline_noop
from forge_client.models.git import Commit
from forge_client.models.issue import Issue, IssueComment, IssueFields, IssueState, Label
from forge_client.models.reaction import Reactable
from forge_client.models.user import User

if TYPE_CHECKING:
    from forge_client.models.repository import Repository


class MergeMethod(Enum):
    MERGE = "merge"
    SQUASH = "squash"
    REBASE = "rebase"


class ReviewEvent(Enum):
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


@dataclass(eq=False)
class CommitPointer(ForgeObject):
    """The base or head of a pull request: a ref in some repository."""

    ref: str | None = None
    sha: str | None = None
    label: str | None = None
    user: User | None = None
    repo: "Repository | None" = None

    def wrap_up(self, root: Any) -> "CommitPointer":
        self.root = root
        if self.repo is not None:
            self.repo.wrap(root)
        return self

    def get_commit(self) -> Commit:
        return self.repo.get_commit(self.sha)


@dataclass(eq=False)
class FileDetail:
    """A file changed by a pull request."""

    sha: str | None = None
    filename: str | None = None
    status: str | None = None
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    blob_url: str | None = None
    raw_url: str | None = None
    contents_url: str | None = None
    patch: str | None = None
    previous_filename: str | None = None


@dataclass(eq=False)
class PullRequest(IssueFields, Reactable):
    """A pull request of a repository."""

    patch_url: str | None = None
    diff_url: str | None = None
    issue_url: str | None = None
    base: CommitPointer | None = None
    head: CommitPointer | None = None
    merged_at: str | None = None
    merged_by: User | None = None
    merged: bool = False
    mergeable: bool | None = None
    mergeable_state: str | None = None
    merge_commit_sha: str | None = None
    review_comments: int = 0
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    draft: bool = False
    maintainer_can_modify: bool = False
    issue: Issue | None = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, owner: Any) -> "PullRequest":
        """Attach the repository the request was fetched from (or just the session)."""
        from forge_client.models.repository import Repository

        if isinstance(owner, Repository):
            self.repository = owner
            self.root = owner.root
        else:
            self.root = owner
        for pointer in (self.base, self.head):
            if pointer is not None:
                pointer.wrap_up(self.root)
        if self.merged_by is not None:
            self.merged_by.wrap_up(self.root)
        return self

    def get_api_route(self) -> str:
        return self.repository.get_api_tail_url(f"pulls/{self.number}")

    def _issues_api_route(self) -> str:
        return self.repository.get_api_tail_url(f"issues/{self.number}")

    def _reactions_route(self) -> str:
        return self._issues_api_route() + "/reactions"

    def _request(self, *segments: str) -> Requester:
        return self._require_root().create_request().with_url_path(self.get_api_route(), *segments)

    def get_base(self) -> CommitPointer | None:
        return self.base

    def get_head(self) -> CommitPointer | None:
        return self.head

    def get_merged_at(self) -> datetime | None:
        return parse_date(self.merged_at)

    # =========================================================================
    # Lazily populated details
    # =========================================================================

    def populate(self) -> None:
        """Fetch the full record unless it is already loaded or the session is offline."""
        if self.mergeable_state is not None or self._is_offline():
            return
        self.root.create_request().set_raw_url_path(self.url or self.get_api_route()).fetch_into(self)
        self.wrap_up(self.repository or self.root)

    def is_merged(self) -> bool:
        self.populate()
        return self.merged

    def get_mergeable(self) -> bool | None:
        """Whether the request can be merged; None while the forge is still computing it."""
        self.populate()
        return self.mergeable

    def get_mergeable_state(self) -> str | None:
        self.populate()
        return self.mergeable_state

    def get_merged_by(self) -> User | None:
        self.populate()
        return self.merged_by

    def get_merge_commit_sha(self) -> str | None:
        self.populate()
        return self.merge_commit_sha

    def get_additions(self) -> int:
        self.populate()
        return self.additions

    def get_deletions(self) -> int:
        self.populate()
        return self.deletions

    def get_changed_files(self) -> int:
        self.populate()
        return self.changed_files

    def get_review_comments(self) -> int:
        self.populate()
        return self.review_comments

    # =========================================================================
    # Issue side
    # =========================================================================

    def get_issue(self) -> Issue:
        """The issue view of this pull request, fetched on first use."""
        if self.issue is None:
            if self._is_offline():
                return Issue(number=self.number, labels=list(self.labels), repository=self.repository, root=self.root)
            self.issue = (
                self._require_root()
                .create_request()
                .with_url_path(self._issues_api_route())
                .fetch(Issue)
                .wrap(self.repository)
            )
            self.labels = self.issue.labels
        return self.issue

    def get_labels(self) -> list[Label]:
        return self.get_issue().get_labels()

    def get_comments(self) -> list[IssueComment]:
        return self.get_issue().get_comments()

    def list_comments(self) -> PagedIterable[IssueComment]:
        return self.get_issue().list_comments()

    @offline_noop
    def comment(self, body: str) -> IssueComment:
        return self.get_issue().comment(body)

    @offline_noop
    def lock(self) -> None:
        self.get_issue().lock()
        self.locked = True

    @offline_noop
    def unlock(self) -> None:
        self.get_issue().unlock()
        self.locked = False

    @offline_noop
    def add_labels(self, *names: str) -> list[Label]:
        self.labels = self.get_issue().add_labels(*names)
        return self.labels

    # =========================================================================
    # Mutators
    # =========================================================================

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
    def merge(self, message: str | None = None, sha: str | None = None, method: MergeMethod | None = None) -> None:
        """
        Merge the pull request.

        Args:
            message: Commit message for the merge commit
            sha: Head SHA the request must still point at
            method: Merge, squash or rebase (server default when omitted)

        """
        (
            self._request("merge")
            .method("PUT")
            .with_("commit_message", message)
            .with_("sha", sha)
            .with_("merge_method", method)
            .send()
        )

    @offline_noop
    def request_reviewers(self, *reviewers: User) -> None:
        self._request("requested_reviewers").method("POST").with_("reviewers", [u.login for u in reviewers]).send()

    # =========================================================================
    # Listings
    # =========================================================================

    def list_files(self) -> PagedIterable[FileDetail]:
        return self._request("files").to_iterable(FileDetail)

    def list_commits(self) -> PagedIterable[Commit]:
        return self._request("commits").to_iterable(Commit, lambda item: item.wrap_up(self.repository))

    def list_reviews(self) -> PagedIterable["PullRequestReview"]:
        return self._request("reviews").to_iterable(PullRequestReview, lambda item: item.wrap_up(self))

    def list_review_comments(self) -> PagedIterable["ReviewComment"]:
        return self._request("comments").to_iterable(ReviewComment, lambda item: item.wrap_up(self))

    @offline_noop
    def create_review(self, body: str, event: ReviewEvent | None = None) -> "PullRequestReview":
        requester = self._request("reviews").method("POST").with_("body", body)
        if event is not None:
            requester.with_("event", event.value)
        return requester.fetch(PullRequestReview).wrap_up(self)

    @offline_noop
    def create_review_comment(self, body: str, sha: str, path: str, position: int) -> "ReviewComment":
        return (
            self._request("comments")
            .method("POST")
            .with_("body", body)
            .with_("commit_id", sha)
            .with_("path", path)
            .with_("position", position)
            .fetch(ReviewComment)
            .wrap_up(self)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PullRequest):
            return NotImplemented
        return self.url == other.url

    def __hash__(self) -> int:
        return hash(self.url)


# =============================================================================
# Reviews
# =============================================================================


@dataclass(eq=False)
class PullRequestReview(ForgeResource):
    body: str | None = None
    state: str | None = None
    user: User | None = None
    commit_id: str | None = None
    submitted_at: str | None = None
    pull_request: PullRequest | None = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, pull_request: PullRequest) -> "PullRequestReview":
        self.pull_request = pull_request
        self.root = pull_request.root
        return self

    def _api_route(self) -> str:
        return self.pull_request.get_api_route() + f"/reviews/{self.id}"

    @offline_noop
    def submit(self, body: str, event: ReviewEvent) -> None:
        (
            self._require_root()
            .create_request()
            .method("POST")
            .with_("body", body)
            .with_("event", event.value)
            .with_url_path(self._api_route(), "events")
            .fetch_into(self)
        )

    @offline_noop
    def dismiss(self, message: str) -> None:
        (
            self._require_root()
            .create_request()
            .method("PUT")
            .with_("message", message)
            .with_url_path(self._api_route(), "dismissals")
            .send()
        )
        self.state = "DISMISSED"


@dataclass(eq=False)
class ReviewComment(ForgeResource, Reactable):
    """A comment attached to a line of a pull request's diff."""

    body: str | None = None
    path: str | None = None
    position: int | None = None
    original_position: int | None = None
    commit_id: str | None = None
    diff_hunk: str | None = None
    in_reply_to_id: int | None = None
    user: User | None = None
    pull_request: PullRequest | None = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, pull_request: PullRequest) -> "ReviewComment":
        self.pull_request = pull_request
        self.root = pull_request.root
        return self

    def _api_route(self) -> str:
        return self.pull_request.repository.get_api_tail_url(f"pulls/comments/{self.id}")

    def _reactions_route(self) -> str:
        return self._api_route() + "/reactions"

    @offline_noop
    def update(self, body: str) -> None:
        self._require_root().create_request().method("PATCH").with_("body", body).with_url_path(self._api_route()).fetch_into(self)

    @offline_noop
    def delete(self) -> None:
        self._require_root().create_request().method("DELETE").with_url_path(self._api_route()).send()

    @offline_noop
    def reply(self, body: str) -> "ReviewComment":
        return (
            self._require_root()
            .create_request()
            .method("POST")
            .with_("body", body)
            .with_("in_reply_to", self.id)
            .with_url_path(self.pull_request.get_api_route(), "comments")
            .fetch(ReviewComment)
            .wrap_up(self.pull_request)
        )
