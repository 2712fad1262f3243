"""
Request builder and executor for the Forge API.

Handles parameter placement, headers, body encoding, response decoding,
timeout retries, rate-limit accounting and error translation. Every typed
entity issues its HTTP calls through a Requester obtained from
``Forge.create_request()``.
"""

import enum
import gzip
import json
import logging
import urllib.parse
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, BinaryIO, TypeVar

from forge_client.core.connector import ConnectorResponse
from forge_client.core.errors import (
    ForgeConnectionError,
    ForgeError,
    HttpError,
    NotFoundError,
    OfflineError,
)
from forge_client.core.handlers import RETRY_AFTER_HEADER
from forge_client.core.rate_limit import REMAINING_HEADER, is_accounted_path, parse_rate_limit_headers
from forge_client.core.types import print_date

if TYPE_CHECKING:
    from forge_client.core.paging import PagedIterable
    from forge_client.sdk import Forge

logger = logging.getLogger(__name__)

T = TypeVar("T")

METHODS_WITHOUT_BODY = ("GET", "DELETE")
TIMEOUT_RETRIES = 2


def _param_value(value: Any) -> Any:
    """Normalise a parameter value before it is stored."""
    if isinstance(value, enum.Enum):
        return value.name.lower().replace("_", "-")
    return value


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(_query_value(item) for item in value)
    if isinstance(value, datetime):
        return print_date(value)
    return str(value)


def find_next_url(link: str | None) -> str | None:
    """Extract the rel="next" URL from a Link header."""
    if not link:
        return None
    for token in link.split(", "):
        if token.endswith('rel="next"'):
            start = token.find("<")
            end = token.find(">")
            if start != -1 and end > start:
                return token[start + 1 : end]
    return None


@dataclass
class PreparedRequest:
    """A fully built request, ready to hand to a connector."""

    method: str
    url: str
    tail: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None


class Requester:
    """
    Fluent request builder bound to a session.

    Example:
        repo = (
            forge.create_request()
            .with_url_path("/repos", owner, name)
            .fetch(Repository)
            .wrap(forge)
        )

    """

    def __init__(self, root: "Forge"):
        self.root = root
        self._method = "GET"
        self._args: list[tuple[str, Any]] = []
        self._headers: dict[str, str] = {}
        self._content_type: str | None = None
        self._body: BinaryIO | bytes | None = None
        self._force_body = False
        self._url_path = ""
        self._context: dict[str, Any] = {"root": root}

    # =========================================================================
    # Builder
    # =========================================================================

    def method(self, method: str) -> "Requester":
        self._method = method.upper()
        return self

    def with_(self, key: str, value: Any) -> "Requester":
        """Append a parameter; None values are dropped."""
        if value is not None:
            self._args.append((key, _param_value(value)))
        return self

    def with_nullable(self, key: str, value: Any) -> "Requester":
        """Append a parameter, sending JSON null when value is None."""
        self._args.append((key, _param_value(value)))
        return self

    def set(self, key: str, value: Any) -> "Requester":
        """Replace the value of an existing parameter, or append it."""
        for i, (existing, _) in enumerate(self._args):
            if existing == key:
                self._args[i] = (key, _param_value(value))
                return self
        return self.with_(key, value)

    def with_body(self, body: BinaryIO | bytes) -> "Requester":
        """Send a raw body instead of the parameter list. Streams are closed after use."""
        self._body = body
        return self

    def in_body(self) -> "Requester":
        """Send parameters as a JSON body even for GET and DELETE."""
        self._force_body = True
        return self

    def content_type(self, content_type: str) -> "Requester":
        self._content_type = content_type
        return self

    def with_header(self, name: str, value: str | None) -> "Requester":
        if value is None:
            self._headers.pop(name, None)
        else:
            self._headers[name] = value
        return self

    def with_preview(self, media_type: str) -> "Requester":
        return self.with_header("Accept", media_type)

    def with_url_path(self, url_path: str, *segments: str) -> "Requester":
        """Append to the request path, ensuring it starts with '/'."""
        tail = url_path
        if segments:
            tail = tail.rstrip("/") + "/" + "/".join(str(s).strip("/") for s in segments)
        if self._url_path:
            tail = self._url_path.rstrip("/") + "/" + tail.lstrip("/")
        if not tail.startswith(("/", "http://", "https://")):
            tail = "/" + tail
        self._url_path = tail
        return self

    def set_raw_url_path(self, url: str) -> "Requester":
        """Use an absolute URL as-is (e.g. an entity's own ``url``)."""
        self._url_path = url
        return self

    def inject(self, key: str, value: Any) -> "Requester":
        """Make a value available to decoded entities through the mapping context."""
        self._context[key] = value
        return self

    def _has_body(self) -> bool:
        return self._force_body or self._method not in METHODS_WITHOUT_BODY

    def _raw_body(self) -> bytes:
        body = self._body
        if isinstance(body, bytes):
            return body
        try:
            data = body.read()
        finally:
            body.close()
        # Keep the bytes so a retried request can resend them
        self._body = data
        return data

    def build(self) -> PreparedRequest:
        """Materialise the URL, headers and body for this request."""
        tail = self._url_path
        url_tail = tail
        body = None
        content_type = None

        if self._has_body():
            if self._body is not None:
                body = self._raw_body()
                content_type = self._content_type or "application/x-www-form-urlencoded"
            else:
                payload = {key: value for key, value in self._args}
                body = self.root.mapper.write_value(payload).encode("utf-8")
                content_type = self._content_type or "application/json"
        else:
            # Body-less verb; a raw stream is never sent but still gets closed
            if self._body is not None and not isinstance(self._body, bytes):
                self._body.close()
            if self._args:
                query = urllib.parse.urlencode(
                    [(key, _query_value(value)) for key, value in self._args if value is not None]
                )
                if query:
                    separator = "&" if "?" in url_tail else "?"
                    url_tail = f"{url_tail}{separator}{query}"

        headers: dict[str, str] = {}
        authorization = self.root.authorization()
        if authorization is not None:
            headers["Authorization"] = authorization
        headers["Accept-Encoding"] = "gzip"
        if content_type is not None:
            headers["Content-Type"] = content_type
        headers.update(self._headers)

        return PreparedRequest(
            method=self._method,
            url=self.root.get_api_url(url_tail),
            tail=tail,
            headers=headers,
            body=body,
        )

    def _paging_request(self, page_size: int | None) -> PreparedRequest:
        """The first-page request of a paged listing (always GET)."""
        method, force_body = self._method, self._force_body
        self._method, self._force_body = "GET", False
        try:
            request = self.build()
        finally:
            self._method, self._force_body = method, force_body
        if page_size:
            separator = "&" if "?" in request.url else "?"
            request = replace(request, url=f"{request.url}{separator}per_page={page_size}")
        return request

    # =========================================================================
    # Terminal operations
    # =========================================================================

    def send(self) -> None:
        """Send the request, discarding any response body."""
        self._send(self.build(), self._discard)

    def fetch(self, type_: type[T] | Any) -> T:
        """Send the request and decode the body into a new ``type_`` instance."""
        return self._send(self.build(), lambda r: self._decode(r, type_))

    def fetch_array(self, item_type: type[T]) -> list[T]:
        """Send the request and decode a JSON array; HTTP 204 yields []."""
        return self._send(self.build(), lambda r: self._decode(r, list[item_type], array=True))

    def fetch_into(self, instance: T) -> T:
        """Send the request and merge the body into ``instance`` in place."""
        return self._send(self.build(), lambda r: self._decode_into(r, instance))

    def fetch_http_status_code(self) -> int:
        """Send a GET and report the status code instead of raising for it."""
        self._method = "GET"
        return self._send(self.build(), lambda r: self._discard(r) or r.status, any_status=True)

    def fetch_stream(self, consumer: Callable[[BinaryIO], T]) -> T:
        """Hand the (decompressed) response body to ``consumer``; closed afterwards."""
        return self._send(self.build(), lambda r: consumer(self._wrap_stream(r)))

    def to_iterable(
        self,
        item_type: type[T],
        item_initializer: Callable[[T], Any] | None = None,
    ) -> "PagedIterable[T]":
        """Lazy sequence over a paged listing endpoint."""
        from forge_client.core.paging import PagedIterable

        return PagedIterable(self, item_type, item_initializer)

    def fetch_page(self, request: PreparedRequest, page_type: Any) -> tuple[Any, str | None]:
        """Fetch one page of a listing. Returns the decoded page and the next page URL."""

        def handle(response: ConnectorResponse) -> tuple[Any, str | None]:
            page = self._decode(response, page_type, array=True)
            return page, find_next_url(response.header("Link"))

        return self._send(request, handle)

    def convert(self, value: Any, type_: Any) -> Any:
        """Convert already-parsed JSON with this request's mapping context."""
        return self.root.mapper.convert(value, type_, self._context)

    # =========================================================================
    # Execution
    # =========================================================================

    def _send(
        self,
        request: PreparedRequest,
        handle: Callable[[ConnectorResponse], T],
        any_status: bool = False,
    ) -> T:
        if self.root.is_offline():
            raise OfflineError(f"Offline session cannot {request.method} {request.url}")

        timeouts_left = TIMEOUT_RETRIES
        while True:
            logger.debug("%s %s", request.method, request.url)
            try:
                response = self.root.connector.send(
                    request.url,
                    request.method,
                    request.headers,
                    request.body,
                    self.root.timeout,
                )
            except TimeoutError as e:
                timeouts_left = self._on_timeout(request, e, timeouts_left)
                continue

            try:
                if any_status or self._is_success(response):
                    return handle(response)
                error = self._translate_error(request, response)
            except TimeoutError as e:
                timeouts_left = self._on_timeout(request, e, timeouts_left)
                continue
            finally:
                self._note_rate_limit(request, response)
                response.close()

            self._handle_api_error(error, response)

    @staticmethod
    def _is_success(response: ConnectorResponse) -> bool:
        return 200 <= response.status < 300 or response.status == 304

    def _on_timeout(self, request: PreparedRequest, error: TimeoutError, timeouts_left: int) -> int:
        if timeouts_left <= 0:
            raise ForgeConnectionError(f"Timed out accessing {request.url}", details={"url": request.url}) from error
        logger.info("timed out accessing %s; will try %d more time(s)", request.url, timeouts_left)
        return timeouts_left - 1

    def _handle_api_error(self, error: HttpError, response: ConnectorResponse) -> None:
        """Dispatch to the quota/abuse handlers; returning means retry."""
        if error.status == 401:
            raise error
        if error.status in (403, 429):
            if response.header(REMAINING_HEADER) == "0":
                self.root.rate_limit_handler(error, response)
                return
            if response.header(RETRY_AFTER_HEADER) is not None:
                self.root.abuse_limit_handler(error, response)
                return
        raise error

    def _translate_error(self, request: PreparedRequest, response: ConnectorResponse) -> HttpError:
        try:
            body = self._read_body(response).decode("utf-8", errors="replace")
        except (OSError, ForgeError):
            body = None

        message = body or response.reason or f"HTTP {response.status}"
        details: dict = {}
        if body:
            try:
                data = json.loads(body)
            except json.JSONDecodeError:
                data = None
            if isinstance(data, dict):
                details = data
                message = data.get("message") or message

        error_cls = NotFoundError if response.status == 404 else HttpError
        return error_cls(
            message,
            status=response.status,
            url=request.url,
            body=body,
            response_message=response.reason,
            details=details,
        )

    def _note_rate_limit(self, request: PreparedRequest, response: ConnectorResponse) -> None:
        path = request.tail
        if not path.startswith("/"):
            path = urllib.parse.urlparse(path).path
            prefix = urllib.parse.urlparse(self.root.api_url).path
            if prefix and path.startswith(prefix):
                path = path[len(prefix) :]
        if not is_accounted_path(path):
            return
        observed = parse_rate_limit_headers(response.header)
        if observed is not None:
            self.root.rate_limits.update(observed)

    # =========================================================================
    # Decoding
    # =========================================================================

    @staticmethod
    def _content_encoding(response: ConnectorResponse) -> str | None:
        encoding = response.header("Content-Encoding")
        if encoding is None or encoding.strip() in ("", "identity"):
            return None
        if encoding.strip() == "gzip":
            return "gzip"
        raise ForgeError(f"Unexpected Content-Encoding: {encoding}")

    def _read_body(self, response: ConnectorResponse) -> bytes:
        data = response.read()
        if data and self._content_encoding(response) == "gzip":
            return gzip.decompress(data)
        return data

    def _wrap_stream(self, response: ConnectorResponse) -> BinaryIO:
        if self._content_encoding(response) == "gzip":
            return gzip.GzipFile(fileobj=response.body)
        return response.body

    def _discard(self, response: ConnectorResponse) -> None:
        response.read()

    def _decode(self, response: ConnectorResponse, type_: Any, array: bool = False) -> Any:
        if response.status == 304:
            return None
        if response.status == 204 and array:
            return []
        data = self._read_body(response)
        if not data.strip():
            return [] if array else None
        return self.root.mapper.read_value(data, type_, self._context)

    def _decode_into(self, response: ConnectorResponse, instance: T) -> T | None:
        if response.status == 304:
            return None
        data = self._read_body(response)
        if not data.strip():
            return instance
        return self.root.mapper.read_for_updating(instance, data, self._context)
