"""
Deployments and deployment statuses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from forge_client.core.paging import PagedIterable
from forge_client.models.base import ForgeResource, offline_noop
from forge_client.models.user import User

if TYPE_CHECKING:
    from forge_client.models.repository import Repository

DEPLOYMENTS_PREVIEW = "application/vnd.github.flash-preview+json"


class DeploymentState(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    FAILURE = "failure"
    IN_PROGRESS = "in_progress"
    QUEUED = "queued"
    INACTIVE = "inactive"


@dataclass(eq=False)
class DeploymentStatus(ForgeResource):
    state: DeploymentState | None = None
    description: str | None = None
    environment: str | None = None
    log_url: str | None = None
    environment_url: str | None = None
    creator: User | None = None


@dataclass(eq=False)
class Deployment(ForgeResource):
    sha: str | None = None
    ref: str | None = None
    task: str | None = None
    environment: str | None = None
    description: str | None = None
    payload: Any = None
    creator: User | None = None
    statuses_url: str | None = None
    repository: "Repository | None" = field(default=None, repr=False, metadata={"transient": True})

    def wrap(self, repository: Any) -> "Deployment":
        from forge_client.models.repository import Repository

        if isinstance(repository, Repository):
            self.repository = repository
            self.root = repository.root
        else:
            self.root = repository
        return self

    def _statuses_request(self):
        return (
            self._require_root()
            .create_request()
            .with_preview(DEPLOYMENTS_PREVIEW)
            .with_url_path(self.repository.get_api_tail_url(f"deployments/{self.id}/statuses"))
        )

    @offline_noop
    def create_status(
        self,
        state: DeploymentState,
        description: str | None = None,
        log_url: str | None = None,
        environment_url: str | None = None,
    ) -> DeploymentStatus:
        return (
            self._statuses_request()
            .method("POST")
            .with_("state", state.value)
            .with_("description", description)
            .with_("log_url", log_url)
            .with_("environment_url", environment_url)
            .fetch(DeploymentStatus)
        )

    def list_statuses(self) -> PagedIterable[DeploymentStatus]:
        return self._statuses_request().to_iterable(DeploymentStatus)


class DeploymentBuilder:
    """Collects the fields of a new deployment of ``ref``."""

    def __init__(self, repository: "Repository", ref: str):
        self._repository = repository
        self.root = repository.root
        self._requester = (
            repository._require_root()
            .create_request()
            .method("POST")
            .with_preview(DEPLOYMENTS_PREVIEW)
            .with_("ref", ref)
        )

    def task(self, task: str) -> "DeploymentBuilder":
        self._requester.with_("task", task)
        return self

    def auto_merge(self, auto_merge: bool) -> "DeploymentBuilder":
        self._requester.with_("auto_merge", auto_merge)
        return self

    def required_contexts(self, contexts: list[str]) -> "DeploymentBuilder":
        self._requester.with_("required_contexts", contexts)
        return self

    def payload(self, payload: str) -> "DeploymentBuilder":
        self._requester.with_("payload", payload)
        return self

    def environment(self, environment: str) -> "DeploymentBuilder":
        self._requester.with_("environment", environment)
        return self

    def description(self, description: str) -> "DeploymentBuilder":
        self._requester.with_("description", description)
        return self

    @offline_noop
    def create(self) -> Deployment:
        return (
            self._requester.with_url_path(self._repository.get_api_tail_url("deployments"))
            .fetch(Deployment)
            .wrap(self._repository)
        )
