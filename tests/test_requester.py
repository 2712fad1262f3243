"""Tests for request building and execution."""

import gzip
import io
import json
from enum import Enum

import pytest

from forge_client.core.errors import (
    ForgeConnectionError,
    ForgeError,
    HttpError,
    JsonMappingError,
    NotFoundError,
    OfflineError,
)
from forge_client.core.requester import find_next_url
from forge_client.core.types import RateLimit
from forge_client.sdk import Forge
from tests.conftest import API_URL, FakeConnector

RATE_HEADERS = {"X-RateLimit-Limit": "5000", "X-RateLimit-Remaining": "4999", "X-RateLimit-Reset": "4102444800"}


class Sort(Enum):
    LONG_RUNNING = 1
    CREATED = 2


# =============================================================================
# Placement
# =============================================================================


class TestPlacement:
    def test_get_parameters_go_to_the_query_string(self, forge):
        request = (
            forge.create_request()
            .with_("a", 1)
            .with_("flag", True)
            .with_("off", False)
            .with_("tags", ["x", "y"])
            .with_("skip", None)
            .with_url_path("/things")
            .build()
        )
        assert request.url == f"{API_URL}/things?a=1&flag=true&off=false&tags=x%2Cy"
        assert request.body is None
        assert "Content-Type" not in request.headers

    def test_post_parameters_go_to_a_json_body(self, forge):
        request = forge.create_request().method("POST").with_("title", "t").with_("draft", False).with_url_path("/x").build()
        assert request.url == f"{API_URL}/x"
        assert json.loads(request.body) == {"title": "t", "draft": False}
        assert request.headers["Content-Type"] == "application/json"

    def test_in_body_forces_json_for_delete(self, forge):
        request = forge.create_request().method("DELETE").with_("permission", "push").in_body().with_url_path("/x").build()
        assert json.loads(request.body) == {"permission": "push"}
        assert request.url == f"{API_URL}/x"

    def test_enum_values_use_lowercase_dashed_names(self, forge):
        request = forge.create_request().with_("sort", Sort.LONG_RUNNING).with_url_path("/pulls").build()
        assert request.url.endswith("?sort=long-running")

    def test_nullable_sends_json_null(self, forge):
        request = forge.create_request().method("PATCH").with_nullable("milestone", None).with_url_path("/i").build()
        assert json.loads(request.body) == {"milestone": None}

    def test_set_replaces_existing_parameter(self, forge):
        request = forge.create_request().with_("q", "a").with_("page", 2).set("q", "b").with_url_path("/s").build()
        assert request.url.endswith("?q=b&page=2")

    def test_raw_body_and_content_type(self, forge):
        request = forge.create_request().method("POST").with_body(b"raw").with_url_path("/x").build()
        assert request.body == b"raw"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"

        request = (
            forge.create_request().method("POST").with_body(b"raw").content_type("text/plain").with_url_path("/x").build()
        )
        assert request.headers["Content-Type"] == "text/plain"

    def test_url_path_segments_are_joined(self, forge):
        request = forge.create_request().with_url_path("repos", "octo", "hello").with_url_path("pulls").build()
        assert request.url == f"{API_URL}/repos/octo/hello/pulls"

    def test_raw_url_path_is_kept_absolute(self, forge):
        request = forge.create_request().set_raw_url_path("https://elsewhere/x").build()
        assert request.url == "https://elsewhere/x"


class TestHeaders:
    def test_default_headers(self, forge):
        request = forge.create_request().with_url_path("/user").build()
        assert request.headers["Authorization"] == "token secret"
        assert request.headers["Accept-Encoding"] == "gzip"

    def test_preview_overrides_previous_accept(self, forge):
        request = forge.create_request().with_preview("a/one").with_preview("a/two").with_url_path("/x").build()
        assert request.headers["Accept"] == "a/two"

    def test_anonymous_session_sends_no_authorization(self, connector):
        anonymous = Forge(endpoint=API_URL, connector=connector)
        assert "Authorization" not in anonymous.create_request().with_url_path("/x").build().headers


# =============================================================================
# Decoding
# =============================================================================


class TestDecoding:
    def test_fetch_decodes_json(self, forge, connector):
        connector.add_json({"a": 1})
        assert forge.create_request().with_url_path("/x").fetch(dict) == {"a": 1}

    def test_not_modified_is_none(self, forge, connector):
        connector.add(304)
        assert forge.create_request().with_url_path("/x").fetch(dict) is None

    def test_no_content_on_array_is_empty(self, forge, connector):
        connector.add(204)
        assert forge.create_request().with_url_path("/x").fetch_array(dict) == []

    def test_empty_body_is_none(self, forge, connector):
        connector.add(200, b"")
        assert forge.create_request().with_url_path("/x").fetch(dict) is None

    def test_gzip_body_is_decompressed(self, forge, connector):
        connector.add(200, gzip.compress(b'{"zipped": true}'), {"Content-Encoding": "gzip"})
        assert forge.create_request().with_url_path("/x").fetch(dict) == {"zipped": True}

    def test_unknown_encoding_is_an_error(self, forge, connector):
        connector.add(200, b"???", {"Content-Encoding": "br"})
        with pytest.raises(ForgeError, match="Content-Encoding"):
            forge.create_request().with_url_path("/x").fetch(dict)

    def test_bad_json_raises_mapping_error(self, forge, connector):
        connector.add(200, b"<html>")
        with pytest.raises(JsonMappingError) as exc:
            forge.create_request().with_url_path("/x").fetch(dict)
        assert exc.value.body == "<html>"

    def test_fetch_stream_hands_over_the_body(self, forge, connector):
        connector.add(200, b"raw bytes")
        assert forge.create_request().with_url_path("/x").fetch_stream(lambda s: s.read()) == b"raw bytes"

    def test_raw_stream_body_is_read_once_and_closed(self, forge, connector):
        connector.add(204)
        stream = io.BytesIO(b"# Title")
        forge.create_request().method("POST").with_body(stream).with_url_path("/markdown/raw").send()
        assert stream.closed
        assert connector.last.body == b"# Title"

    def test_raw_stream_on_a_get_is_closed_unsent(self, forge, connector):
        connector.add_json({})
        stream = io.BytesIO(b"ignored")
        forge.create_request().with_body(stream).with_url_path("/x").fetch(dict)
        assert stream.closed
        assert connector.last.body is None


# =============================================================================
# Errors & retries
# =============================================================================


class TestErrors:
    def test_not_found(self, forge, connector):
        connector.add_json({"message": "Not Found"}, status=404)
        with pytest.raises(NotFoundError) as exc:
            forge.create_request().with_url_path("/repos/o/missing").fetch(dict)
        assert exc.value.status == 404
        assert exc.value.message == "Not Found"
        assert exc.value.url == f"{API_URL}/repos/o/missing"

    def test_server_error_carries_body(self, forge, connector):
        connector.add(500, b"boom", reason="Internal Server Error")
        with pytest.raises(HttpError) as exc:
            forge.create_request().with_url_path("/x").send()
        assert exc.value.status == 500
        assert exc.value.body == "boom"
        assert exc.value.to_dict()["status"] == 500

    def test_status_code_is_reported_without_raising(self, forge, connector):
        connector.add(404).add(204)
        assert forge.create_request().with_url_path("/x").fetch_http_status_code() == 404
        assert forge.create_request().with_url_path("/x").fetch_http_status_code() == 204

    def test_offline_session_refuses_requests(self, offline_forge):
        with pytest.raises(OfflineError):
            offline_forge.create_request().with_url_path("/user").send()


class TestLimitDispatch:
    def make_forge(self, connector: FakeConnector, calls: list) -> Forge:
        return Forge(
            endpoint=API_URL,
            oauth_token="secret",
            connector=connector,
            rate_limit_handler=lambda error, response: calls.append(("quota", error.status)),
            abuse_limit_handler=lambda error, response: calls.append(("abuse", error.status)),
        )

    def test_quota_exhaustion_retries_through_handler(self, connector):
        calls = []
        forge = self.make_forge(connector, calls)
        connector.add(403, b'{"message": "rate limited"}', {"X-RateLimit-Remaining": "0"})
        connector.add_json({"ok": True})
        assert forge.create_request().with_url_path("/x").fetch(dict) == {"ok": True}
        assert calls == [("quota", 403)]
        assert len(connector.requests) == 2

    def test_too_many_requests_is_treated_like_forbidden(self, connector):
        calls = []
        forge = self.make_forge(connector, calls)
        connector.add(429, b"", {"X-RateLimit-Remaining": "0"}).add_json({})
        forge.create_request().with_url_path("/x").fetch(dict)
        assert calls == [("quota", 429)]

    def test_retry_after_goes_to_abuse_handler(self, connector):
        calls = []
        forge = self.make_forge(connector, calls)
        connector.add(403, b"", {"Retry-After": "5", "X-RateLimit-Remaining": "10"}).add_json({})
        forge.create_request().with_url_path("/x").fetch(dict)
        assert calls == [("abuse", 403)]

    def test_plain_forbidden_is_raised(self, connector):
        calls = []
        forge = self.make_forge(connector, calls)
        connector.add(403, b'{"message": "Must have admin rights"}')
        with pytest.raises(HttpError, match="admin rights"):
            forge.create_request().with_url_path("/x").send()
        assert calls == []

    def test_unauthorized_is_never_retried(self, connector):
        calls = []
        forge = self.make_forge(connector, calls)
        connector.add(401, b'{"message": "Bad credentials"}', {"X-RateLimit-Remaining": "0"})
        with pytest.raises(HttpError) as exc:
            forge.create_request().with_url_path("/x").send()
        assert exc.value.status == 401
        assert calls == []
        assert len(connector.requests) == 1


class TestTimeouts:
    def test_timeout_is_retried(self, forge, connector):
        connector.add_error(TimeoutError("timed out")).add_json({"ok": True})
        assert forge.create_request().with_url_path("/x").fetch(dict) == {"ok": True}
        assert len(connector.requests) == 2

    def test_gives_up_after_two_retries(self, forge, connector):
        for _ in range(3):
            connector.add_error(TimeoutError("timed out"))
        with pytest.raises(ForgeConnectionError):
            forge.create_request().with_url_path("/x").send()
        assert len(connector.requests) == 3


# =============================================================================
# Rate-limit accounting
# =============================================================================


class TestRateLimitAccounting:
    def test_response_headers_update_the_snapshot(self, forge, connector):
        connector.add_json({}, headers=RATE_HEADERS)
        forge.create_request().with_url_path("/repos/o/r").fetch(dict)
        assert forge.last_rate_limit() == RateLimit(5000, 4999, 4102444800)

    def test_search_and_probe_responses_are_skipped(self, forge, connector):
        connector.add_json({"items": []}, headers=RATE_HEADERS)
        forge.create_request().with_url_path("/search/repositories").fetch(dict)
        assert forge.last_rate_limit() is None

    def test_absolute_urls_are_classified_by_path(self, forge, connector):
        connector.add_json([], headers=RATE_HEADERS)
        forge.create_request().set_raw_url_path(f"{API_URL}/search/issues?page=2").fetch(list)
        assert forge.last_rate_limit() is None


class TestFindNextUrl:
    def test_next_link(self):
        link = '<https://api.example/x?page=2>; rel="next", <https://api.example/x?page=5>; rel="last"'
        assert find_next_url(link) == "https://api.example/x?page=2"

    def test_no_next(self):
        assert find_next_url('<https://api.example/x?page=1>; rel="prev"') is None
        assert find_next_url(None) is None
