"""Typed Forge entities."""

from forge_client.models.base import ForgeObject, ForgeResource
from forge_client.models.deployment import Deployment, DeploymentBuilder, DeploymentState, DeploymentStatus
from forge_client.models.git import Blob, Branch, Commit, Ref, Tree, TreeEntry
from forge_client.models.issue import Issue, IssueBuilder, IssueComment, IssueLike, IssueState, Label, Milestone
from forge_client.models.notification import NotificationStream, Thread
from forge_client.models.pull_request import (
    CommitPointer,
    FileDetail,
    MergeMethod,
    PullRequest,
    PullRequestReview,
    ReviewComment,
    ReviewEvent,
)
from forge_client.models.reaction import Reaction, ReactionContent
from forge_client.models.release import Release, ReleaseAsset, ReleaseBuilder
from forge_client.models.repository import (
    CollaboratorAffiliation,
    ForkSort,
    Hook,
    License,
    Permission,
    PostCommitHooks,
    Repository,
    RepositoryBuilder,
    Subscription,
)
from forge_client.models.search import (
    IssueSearchBuilder,
    RepositorySearchBuilder,
    SearchIterable,
    SearchOrder,
    UserSearchBuilder,
)
from forge_client.models.user import Myself, Organization, Team, User

__all__ = [
    "Blob",
    "Branch",
    "CollaboratorAffiliation",
    "Commit",
    "CommitPointer",
    "Deployment",
    "DeploymentBuilder",
    "DeploymentState",
    "DeploymentStatus",
    "FileDetail",
    "ForgeObject",
    "ForgeResource",
    "ForkSort",
    "Hook",
    "Issue",
    "IssueBuilder",
    "IssueComment",
    "IssueLike",
    "IssueSearchBuilder",
    "IssueState",
    "Label",
    "License",
    "MergeMethod",
    "Milestone",
    "Myself",
    "NotificationStream",
    "Organization",
    "Permission",
    "PostCommitHooks",
    "PullRequest",
    "PullRequestReview",
    "Reaction",
    "ReactionContent",
    "Ref",
    "Release",
    "ReleaseAsset",
    "ReleaseBuilder",
    "Repository",
    "RepositoryBuilder",
    "RepositorySearchBuilder",
    "ReviewComment",
    "ReviewEvent",
    "SearchIterable",
    "SearchOrder",
    "Subscription",
    "Team",
    "Thread",
    "Tree",
    "TreeEntry",
    "User",
    "UserSearchBuilder",
]
