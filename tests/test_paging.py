"""Tests for lazy paged iteration."""

import pytest

from tests.conftest import API_URL


def link_next(url: str) -> dict[str, str]:
    return {"Link": f'<{url}>; rel="next", <{url}&last=1>; rel="last"'}


class TestPagedIterable:
    def test_default_page_size_is_sent(self, forge, connector):
        connector.add_json([{"n": 1}])
        list(forge.create_request().with_url_path("/items").to_iterable(dict))
        assert connector.last.url == f"{API_URL}/items?per_page=30"

    def test_page_size_can_be_changed_or_dropped(self, forge, connector):
        connector.add_json([]).add_json([])
        iterable = forge.create_request().with_("state", "open").with_url_path("/items").to_iterable(dict)
        list(iterable.iterator(page_size=5))
        assert connector.last.url == f"{API_URL}/items?state=open&per_page=5"
        list(iterable.with_page_size(0))
        assert connector.last.url == f"{API_URL}/items?state=open"

    def test_follows_link_header_and_concatenates_pages(self, forge, connector):
        page2 = f"{API_URL}/items?per_page=30&page=2"
        connector.add_json([{"n": 1}, {"n": 2}], headers=link_next(page2))
        connector.add_json([{"n": 3}])
        items = forge.create_request().with_url_path("/items").to_iterable(dict).to_list()
        assert [i["n"] for i in items] == [1, 2, 3]
        assert [r.url for r in connector.requests] == [f"{API_URL}/items?per_page=30", page2]

    def test_pages_are_fetched_lazily(self, forge, connector):
        connector.add_json([{"n": 1}], headers=link_next(f"{API_URL}/items?page=2"))
        connector.add_json([{"n": 2}])
        iterator = iter(forge.create_request().with_url_path("/items").to_iterable(dict))
        assert connector.requests == []
        assert next(iterator) == {"n": 1}
        assert len(connector.requests) == 1
        assert next(iterator) == {"n": 2}
        assert len(connector.requests) == 2

    def test_no_content_yields_nothing(self, forge, connector):
        connector.add(204)
        iterator = forge.create_request().with_url_path("/items").to_iterable(dict).iterator()
        assert not iterator.has_next()
        with pytest.raises(StopIteration):
            next(iterator)

    def test_empty_pages_are_skipped(self, forge, connector):
        connector.add_json([], headers=link_next(f"{API_URL}/items?page=2"))
        connector.add_json([{"n": 1}])
        assert forge.create_request().with_url_path("/items").to_iterable(dict).to_list() == [{"n": 1}]

    def test_item_initializer_runs_before_items_are_returned(self, forge, connector):
        seen = []
        connector.add_json([{"n": 1}, {"n": 2}])
        iterator = forge.create_request().with_url_path("/items").to_iterable(dict, seen.append).iterator()
        first = next(iterator)
        assert first == {"n": 1}
        assert seen == [{"n": 1}, {"n": 2}]

    def test_next_page_returns_a_whole_page(self, forge, connector):
        connector.add_json([{"n": 1}, {"n": 2}], headers=link_next(f"{API_URL}/items?page=2"))
        connector.add_json([{"n": 3}])
        iterator = forge.create_request().with_url_path("/items").to_iterable(dict).iterator()
        assert iterator.next_page() == [{"n": 1}, {"n": 2}]
        assert iterator.next_page() == [{"n": 3}]
        assert iterator.next_page() == []

    def test_each_pass_starts_from_the_first_page(self, forge, connector):
        connector.add_json([{"n": 1}]).add_json([{"n": 1}])
        iterable = forge.create_request().with_url_path("/items").to_iterable(dict)
        assert iterable.to_list() == iterable.to_list()
        assert connector.requests[0].url == connector.requests[1].url

    def test_listing_is_always_a_get(self, forge, connector):
        connector.add_json([])
        forge.create_request().method("POST").with_("q", "x").with_url_path("/items").to_iterable(dict).to_list()
        assert connector.last.method == "GET"
        assert connector.last.url == f"{API_URL}/items?q=x&per_page=30"
        assert connector.last.body is None

    def test_to_array_returns_a_tuple(self, forge, connector):
        connector.add_json([{"n": 1}])
        assert forge.create_request().with_url_path("/items").to_iterable(dict).to_array() == ({"n": 1},)
