"""
Lazy iteration over paged listing endpoints.

Pages are chained through the ``Link: <url>; rel="next"`` response header and
fetched only when the consumer asks for more items.
"""

from collections.abc import Callable, Iterator
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from forge_client.core.requester import PreparedRequest, Requester

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 30


class PagedIterator(Iterator[T]):
    """
    Single-pass iterator over the items of a paged listing.

    Not safe to share between threads; create one iterator per consumer.
    """

    def __init__(
        self,
        requester: "Requester",
        request: "PreparedRequest | None",
        item_type: type[T],
        item_initializer: Callable[[T], Any] | None = None,
    ):
        self._requester = requester
        self._request = request
        self._item_type = item_type
        self._item_initializer = item_initializer
        self._buffer: list[T] = []

    def wrap_up(self, page: list[T]) -> None:
        """Post-process a freshly decoded page before any item is handed out."""
        if self._item_initializer is not None:
            for item in page:
                self._item_initializer(item)

    def _page_type(self) -> Any:
        return list[self._item_type]

    def _items(self, page: Any) -> list[T]:
        """The items carried by one decoded page."""
        return list(page or [])

    def _fetch(self) -> None:
        # Skip over empty pages until one has items or the chain ends
        while not self._buffer and self._request is not None:
            page, next_url = self._requester.fetch_page(self._request, self._page_type())
            items = self._items(page)
            self.wrap_up(items)
            self._buffer = items
            self._request = None if next_url is None else self._with_url(next_url)

    def _with_url(self, url: str) -> "PreparedRequest":
        return replace(self._request, url=url)

    def has_next(self) -> bool:
        """Check if another item is available, fetching the next page if needed."""
        self._fetch()
        return bool(self._buffer)

    def __next__(self) -> T:
        if not self.has_next():
            raise StopIteration
        return self._buffer.pop(0)

    def next_page(self) -> list[T]:
        """Return the rest of the current page (fetching one if the buffer is empty)."""
        self._fetch()
        page, self._buffer = self._buffer, []
        return page


class PagedIterable(Generic[T]):
    """
    Restartable, lazy sequence over a paged listing endpoint.

    Each call to ``iter()`` starts again from the first page.
    """

    def __init__(
        self,
        requester: "Requester",
        item_type: type[T],
        item_initializer: Callable[[T], Any] | None = None,
    ):
        self._requester = requester
        self._item_type = item_type
        self._item_initializer = item_initializer
        self._page_size = DEFAULT_PAGE_SIZE

    def with_page_size(self, page_size: int) -> "PagedIterable[T]":
        """Set the number of items requested per page (0 leaves it to the server)."""
        self._page_size = page_size
        return self

    def iterator(self, page_size: int | None = None) -> PagedIterator[T]:
        """Start a new pass over the listing."""
        size = self._page_size if page_size is None else page_size
        return self._new_iterator(self._requester._paging_request(size))

    def _new_iterator(self, request: "PreparedRequest") -> PagedIterator[T]:
        return PagedIterator(self._requester, request, self._item_type, self._item_initializer)

    def __iter__(self) -> PagedIterator[T]:
        return self.iterator()

    def to_list(self) -> list[T]:
        """Fetch every page into a list."""
        return list(self)

    def to_array(self) -> tuple[T, ...]:
        """Fetch every page into a tuple."""
        return tuple(self)

    def to_set(self) -> set[T]:
        """Fetch every page into a set."""
        return set(self)
