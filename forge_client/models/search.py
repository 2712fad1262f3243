"""
Search builders.

Search endpoints wrap each page in ``{"total_count", "incomplete_results",
"items"}``; ``SearchIterable`` unwraps the items and records the totals as
pages arrive. Search calls do not update the session's rate-limit snapshot,
they are accounted separately by the forge.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from forge_client.core.paging import PagedIterable, PagedIterator
from forge_client.core.requester import Requester
from forge_client.models.issue import Issue
from forge_client.models.repository import Repository
from forge_client.models.user import User

if TYPE_CHECKING:
    from forge_client.core.requester import PreparedRequest
    from forge_client.sdk import Forge

T = TypeVar("T")


class SearchOrder(Enum):
    ASC = "asc"
    DESC = "desc"


class SearchIterator(PagedIterator[T]):
    def __init__(self, iterable: "SearchIterable[T]", request: "PreparedRequest"):
        super().__init__(iterable._requester, request, iterable._item_type, iterable._item_initializer)
        self._iterable = iterable

    def _page_type(self) -> Any:
        return dict

    def _items(self, page: Any) -> list[T]:
        if not page:
            return []
        self._iterable.total_count = page.get("total_count", 0)
        self._iterable.incomplete_results = page.get("incomplete_results", False)
        return self._requester.convert(page.get("items", []), list[self._item_type])


class SearchIterable(PagedIterable[T]):
    """Paged search results; ``total_count`` is known once the first page is fetched."""

    def __init__(self, requester: Requester, item_type: type[T], item_initializer: Any = None):
        super().__init__(requester, item_type, item_initializer)
        self.total_count: int | None = None
        self.incomplete_results = False

    def _new_iterator(self, request: "PreparedRequest") -> PagedIterator[T]:
        return SearchIterator(self, request)

    def get_total_count(self) -> int:
        """Number of matches reported by the forge (fetches the first page if needed)."""
        if self.total_count is None:
            self.iterator(page_size=1).has_next()
        return self.total_count or 0


class SearchBuilder(Generic[T]):
    """
    Accumulates search terms and qualifiers.

    Example:
        for repo in forge.search_repositories().q("forge").language("python").list():
            print(repo.full_name)

    """

    path = ""
    item_type: type = object

    def __init__(self, root: "Forge"):
        self.root = root
        self._terms: list[str] = []
        self._requester = root.create_request().with_url_path(self.path)

    def q(self, term: str) -> "SearchBuilder[T]":
        """Add a free-text term."""
        self._terms.append(term)
        return self

    def qualifier(self, name: str, value: str | None) -> "SearchBuilder[T]":
        """Add a ``name:value`` qualifier; None is ignored."""
        if value is not None:
            self._terms.append(f"{name}:{value}")
        return self

    def order(self, order: SearchOrder) -> "SearchBuilder[T]":
        self._requester.with_("order", order)
        return self

    def sort(self, sort: Enum | str) -> "SearchBuilder[T]":
        self._requester.with_("sort", sort)
        return self

    def _wrap(self, item: Any) -> Any:
        return item.wrap(self.root)

    def list(self) -> SearchIterable[T]:
        return SearchIterable(
            self._requester.set("q", " ".join(self._terms)),
            self.item_type,
            self._wrap,
        )


class RepositorySearchSort(Enum):
    STARS = "stars"
    FORKS = "forks"
    UPDATED = "updated"


class RepositorySearchBuilder(SearchBuilder[Repository]):
    path = "/search/repositories"
    item_type = Repository

    def language(self, language: str) -> "RepositorySearchBuilder":
        return self.qualifier("language", language)

    def user(self, login: str) -> "RepositorySearchBuilder":
        return self.qualifier("user", login)

    def org(self, login: str) -> "RepositorySearchBuilder":
        return self.qualifier("org", login)

    def stars(self, expression: str) -> "RepositorySearchBuilder":
        return self.qualifier("stars", expression)

    def forks(self, expression: str) -> "RepositorySearchBuilder":
        return self.qualifier("forks", expression)

    def topic(self, topic: str) -> "RepositorySearchBuilder":
        return self.qualifier("topic", topic)

    def created(self, expression: str) -> "RepositorySearchBuilder":
        return self.qualifier("created", expression)

    def pushed(self, expression: str) -> "RepositorySearchBuilder":
        return self.qualifier("pushed", expression)


class IssueSearchSort(Enum):
    COMMENTS = "comments"
    CREATED = "created"
    UPDATED = "updated"


class IssueSearchBuilder(SearchBuilder[Issue]):
    path = "/search/issues"
    item_type = Issue

    def mentions(self, login: str) -> "IssueSearchBuilder":
        return self.qualifier("mentions", login)

    def repo(self, full_name: str) -> "IssueSearchBuilder":
        return self.qualifier("repo", full_name)

    def is_open(self) -> "IssueSearchBuilder":
        return self.q("is:open")

    def is_closed(self) -> "IssueSearchBuilder":
        return self.q("is:closed")

    def is_merged(self) -> "IssueSearchBuilder":
        return self.q("is:merged")


class UserSearchSort(Enum):
    FOLLOWERS = "followers"
    REPOSITORIES = "repositories"
    JOINED = "joined"


class UserSearchBuilder(SearchBuilder[User]):
    path = "/search/users"
    item_type = User

    def _wrap(self, item: User) -> User:
        return item.wrap_up(self.root)

    def type(self, account_type: str) -> "UserSearchBuilder":
        return self.qualifier("type", account_type)

    def location(self, location: str) -> "UserSearchBuilder":
        return self.qualifier("location", location)

    def followers(self, expression: str) -> "UserSearchBuilder":
        return self.qualifier("followers", expression)

    def repos(self, expression: str) -> "UserSearchBuilder":
        return self.qualifier("repos", expression)
