"""
Git data: refs, trees, blobs, commits and branches.
"""

import base64
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from forge_client.models.base import ForgeObject, offline_noop
from forge_client.models.user import User

if TYPE_CHECKING:
    from forge_client.models.repository import Repository


@dataclass(eq=False)
class GitObject(ForgeObject):
    """The object a ref points at."""

    type: str | None = None
    sha: str | None = None
    url: str | None = None


@dataclass(eq=False)
class Ref(ForgeObject):
    """A git reference such as ``refs/heads/main``."""

    ref: str | None = None
    url: str | None = None
    object: GitObject | None = None

    @offline_noop
    def update_to(self, sha: str, force: bool = False) -> "Ref":
        """Point this ref at another commit."""
        return (
            self._require_root()
            .create_request()
            .method("PATCH")
            .with_("sha", sha)
            .with_("force", force)
            .set_raw_url_path(self.url)
            .fetch(Ref)
            .wrap(self.root)
        )

    @offline_noop
    def delete(self) -> None:
        self._require_root().create_request().method("DELETE").set_raw_url_path(self.url).send()


# =============================================================================
# Trees & blobs
# =============================================================================


@dataclass(eq=False)
class TreeEntry(ForgeObject):
    path: str | None = None
    mode: str | None = None
    type: str | None = None
    size: int = 0
    sha: str | None = None
    url: str | None = None
    tree: "Tree | None" = field(default=None, repr=False, metadata={"transient": True})

    def read_blob(self) -> bytes:
        """Raw content of this entry, which must be a blob."""
        if self.type != "blob":
            raise ValueError(f"{self.path} is a {self.type}, not a blob")
        return self.tree.repository.read_blob(self.sha)

    def as_tree(self) -> "Tree | None":
        """The subtree this entry points at, or None for blobs."""
        if self.type != "tree":
            return None
        return self.tree.repository.get_tree(self.sha)


@dataclass(eq=False)
class Tree(ForgeObject):
    sha: str | None = None
    url: str | None = None
    truncated: bool = False
    tree: list[TreeEntry] = field(default_factory=list)
    repository: "Repository | None" = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, repository: "Repository") -> "Tree":
        self.repository = repository
        self.root = repository.root
        for entry in self.tree:
            entry.tree = self
        return self

    def get_entry(self, path: str) -> TreeEntry | None:
        for entry in self.tree:
            if entry.path == path:
                return entry
        return None


@dataclass(eq=False)
class Blob(ForgeObject):
    sha: str | None = None
    url: str | None = None
    size: int = 0
    encoding: str | None = None
    content: str | None = None

    def read(self) -> bytes:
        """Decoded content of the blob."""
        if self.encoding == "base64":
            return base64.b64decode(self.content or "")
        return (self.content or "").encode("utf-8")


# =============================================================================
# Commits
# =============================================================================


@dataclass(eq=False)
class GitUser:
    """Author or committer identity recorded in a commit."""

    name: str | None = None
    email: str | None = None
    date: str | None = None


@dataclass(eq=False)
class CommitInfo:
    message: str | None = None
    author: GitUser | None = None
    committer: GitUser | None = None
    comment_count: int = 0
    url: str | None = None


@dataclass(eq=False)
class CommitStats:
    additions: int = 0
    deletions: int = 0
    total: int = 0


@dataclass(eq=False)
class CommitFile:
    filename: str | None = None
    status: str | None = None
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None
    blob_url: str | None = None
    raw_url: str | None = None
    previous_filename: str | None = None


@dataclass(eq=False)
class ShortCommit:
    sha: str | None = None
    url: str | None = None


@dataclass(eq=False)
class Commit(ForgeObject):
    """A commit; listing endpoints omit ``stats`` and ``files``."""

    sha: str | None = None
    url: str | None = None
    html_url: str | None = None
    commit: CommitInfo | None = None
    author: User | None = None
    committer: User | None = None
    parents: list[ShortCommit] = field(default_factory=list)
    stats: CommitStats | None = None
    files: list[CommitFile] = field(default_factory=list)
    repository: "Repository | None" = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, repository: "Repository") -> "Commit":
        self.repository = repository
        self.root = repository.root
        return self

    def populate(self) -> None:
        """Load stats and file details when only the summary was fetched."""
        if self.stats is not None or self._is_offline() or not self.url:
            return
        self.root.create_request().set_raw_url_path(self.url).fetch_into(self)

    def get_message(self) -> str | None:
        return self.commit.message if self.commit else None

    def get_parent_shas(self) -> list[str]:
        return [p.sha for p in self.parents]

    def get_files(self) -> list[CommitFile]:
        self.populate()
        return self.files

    def get_lines_added(self) -> int:
        self.populate()
        return self.stats.additions if self.stats else 0

    def get_lines_deleted(self) -> int:
        self.populate()
        return self.stats.deletions if self.stats else 0


# =============================================================================
# Branches
# =============================================================================


@dataclass(eq=False)
class Branch(ForgeObject):
    name: str | None = None
    protected: bool = False
    commit: ShortCommit | None = None
    protection_url: str | None = None
    repository: "Repository | None" = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, repository: "Repository") -> "Branch":
        self.repository = repository
        self.root = repository.root
        return self

    def get_sha(self) -> str | None:
        return self.commit.sha if self.commit else None

    @offline_noop
    def merge(self, head: str, commit_message: str | None = None) -> Commit | None:
        """Merge ``head`` into this branch. Returns None when there was nothing to merge."""
        return (
            self._require_root()
            .create_request()
            .method("POST")
            .with_("base", self.name)
            .with_("head", head)
            .with_("commit_message", commit_message)
            .with_url_path(self.repository.get_api_tail_url("merges"))
            .fetch(Commit)
        )
