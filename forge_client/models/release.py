"""
Releases and release assets.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from forge_client.core.paging import PagedIterable
from forge_client.core.types import parse_date
from forge_client.models.base import ForgeResource, offline_noop
from forge_client.models.user import User

if TYPE_CHECKING:
    from forge_client.models.repository import Repository


@dataclass(eq=False)
class ReleaseAsset(ForgeResource):
    name: str | None = None
    label: str | None = None
    state: str | None = None
    content_type: str | None = None
    size: int = 0
    download_count: int = 0
    browser_download_url: str | None = None
    uploader: User | None = None
    release: "Release | None" = field(default=None, repr=False, metadata={"transient": True})

    def wrap_up(self, release: "Release") -> "ReleaseAsset":
        self.release = release
        self.root = release.root
        return self

    @offline_noop
    def delete(self) -> None:
        (
            self._require_root()
            .create_request()
            .method("DELETE")
            .with_url_path(self.release.repository.get_api_tail_url("releases/assets"), str(self.id))
            .send()
        )


@dataclass(eq=False)
class Release(ForgeResource):
    tag_name: str | None = None
    name: str | None = None
    body: str | None = None
    draft: bool = False
    prerelease: bool = False
    target_commitish: str | None = None
    published_at: str | None = None
    upload_url: str | None = None
    assets_url: str | None = None
    tarball_url: str | None = None
    zipball_url: str | None = None
    author: User | None = None
    assets: list[ReleaseAsset] = field(default_factory=list)
    repository: "Repository | None" = field(default=None, repr=False, metadata={"transient": True})

    def wrap(self, repository: Any) -> "Release":
        """Attach the owning repository (or just the session when given one)."""
        from forge_client.models.repository import Repository

        if isinstance(repository, Repository):
            self.repository = repository
            self.root = repository.root
        else:
            self.root = repository
        for asset in self.assets:
            asset.wrap_up(self)
        return self

    def get_published_at(self) -> datetime | None:
        return parse_date(self.published_at)

    def _api_route(self) -> str:
        return self.repository.get_api_tail_url(f"releases/{self.id}")

    def list_assets(self) -> PagedIterable[ReleaseAsset]:
        return (
            self._require_root()
            .create_request()
            .with_url_path(self._api_route(), "assets")
            .to_iterable(ReleaseAsset, lambda item: item.wrap_up(self))
        )

    @offline_noop
    def update(self, **changes: object) -> "Release":
        """Edit release fields (``name``, ``body``, ``draft``, ``prerelease``...)."""
        requester = self._require_root().create_request().method("PATCH").with_url_path(self._api_route())
        for key, value in changes.items():
            requester.with_(key, value)
        return requester.fetch_into(self).wrap(self.repository)

    @offline_noop
    def delete(self) -> None:
        self._require_root().create_request().method("DELETE").with_url_path(self._api_route()).send()


class ReleaseBuilder:
    """
    Collects the fields of a new release.

    Example:
        release = repo.create_release("v1.0").name("1.0").prerelease(True).create()

    """

    def __init__(self, repository: "Repository", tag: str):
        self._repository = repository
        self.root = repository.root
        self._requester = repository._require_root().create_request().method("POST").with_("tag_name", tag)

    def body(self, body: str) -> "ReleaseBuilder":
        self._requester.with_("body", body)
        return self

    def commitish(self, commitish: str) -> "ReleaseBuilder":
        self._requester.with_("target_commitish", commitish)
        return self

    def draft(self, draft: bool) -> "ReleaseBuilder":
        self._requester.with_("draft", draft)
        return self

    def name(self, name: str) -> "ReleaseBuilder":
        self._requester.with_("name", name)
        return self

    def prerelease(self, prerelease: bool) -> "ReleaseBuilder":
        self._requester.with_("prerelease", prerelease)
        return self

    @offline_noop
    def create(self) -> Release:
        return (
            self._requester.with_url_path(self._repository.get_api_tail_url("releases"))
            .fetch(Release)
            .wrap(self._repository)
        )
