"""
HTTP connectors.

A connector sends one request and hands back the raw response. HTTP error
statuses come back as ordinary responses; only transport failures raise.
"""

import io
import socket
import urllib.error
import urllib.request
from collections.abc import Iterable, Mapping
from typing import BinaryIO, Protocol

from forge_client.core.errors import ForgeConnectionError, OfflineError

DEFAULT_TIMEOUT = 60


def _fold_headers(items: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Lower-case header names, joining repeated headers with ', '."""
    folded: dict[str, str] = {}
    for name, value in items:
        key = name.lower()
        folded[key] = f"{folded[key]}, {value}" if key in folded else value
    return folded


class ConnectorResponse:
    """Status, headers and body stream of one HTTP exchange."""

    def __init__(
        self,
        status: int,
        reason: str = "",
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
        body: BinaryIO | bytes | None = None,
        url: str = "",
    ):
        self.status = status
        self.reason = reason or ""
        if isinstance(headers, Mapping):
            headers = headers.items()
        self.headers = _fold_headers(headers or [])
        if body is None or isinstance(body, bytes):
            body = io.BytesIO(body or b"")
        self.body = body
        self.url = url

    def header(self, name: str) -> str | None:
        """Get a response header (case-insensitive)."""
        return self.headers.get(name.lower())

    def read(self) -> bytes:
        """Read the remaining body."""
        return self.body.read()

    def close(self) -> None:
        self.body.close()

    def __enter__(self) -> "ConnectorResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class HttpConnector(Protocol):
    """Opens a connection for a URL and performs a single exchange."""

    def send(
        self,
        url: str,
        method: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> ConnectorResponse: ...


class UrllibConnector:
    """
    Default network connector built on urllib.

    Handles:
    - Optional HTTP(S) proxy tunnelling
    - Arbitrary request verbs (PATCH and friends)
    - Timeouts surfaced as TimeoutError so callers can retry them
    """

    def __init__(self, proxy: str | None = None, timeout: float = DEFAULT_TIMEOUT):
        self.proxy = proxy
        self.timeout = timeout
        handlers = []
        if proxy:
            handlers.append(urllib.request.ProxyHandler({"http": proxy, "https": proxy}))
        self._opener = urllib.request.build_opener(*handlers)

    def send(
        self,
        url: str,
        method: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> ConnectorResponse:
        req = urllib.request.Request(url, data=body, headers=dict(headers), method=method)
        try:
            raw = self._opener.open(req, timeout=timeout or self.timeout)
        except urllib.error.HTTPError as e:
            error_headers = e.headers.items() if e.headers is not None else []
            error_body = e if e.fp is not None else None
            return ConnectorResponse(e.code, str(e.reason), error_headers, error_body, url)
        except urllib.error.URLError as e:
            if isinstance(e.reason, (TimeoutError, socket.timeout)):
                raise TimeoutError(f"timed out connecting to {url}") from e
            raise ForgeConnectionError(f"Connection error: {e.reason}", details={"url": url}) from e
        return ConnectorResponse(raw.status, raw.reason, raw.headers.items(), raw, raw.geturl())


class _OfflineConnector:
    """Connector for sessions that must never touch the network."""

    def send(
        self,
        url: str,
        method: str,
        headers: Mapping[str, str],
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> ConnectorResponse:
        raise OfflineError(f"Offline session refused {method} {url}")

    def __repr__(self) -> str:
        return "OFFLINE"


OFFLINE = _OfflineConnector()
