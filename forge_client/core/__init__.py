"""
Core layer - Raw HTTP engine.

This layer provides:
- Credential resolution and endpoint URLs
- Connectors (urllib by default, or offline)
- Request building, execution and pagination
- Rate-limit accounting and policy handlers
- JSON mapping onto typed dataclasses
"""

from forge_client.core.connector import OFFLINE, ConnectorResponse, HttpConnector, UrllibConnector
from forge_client.core.errors import (
    ForgeConnectionError,
    ForgeError,
    HttpError,
    JsonMappingError,
    NotFoundError,
    OfflineError,
    ValidationError,
    WaitInterrupted,
)
from forge_client.core.handlers import AbuseLimitHandler, RateLimitHandler
from forge_client.core.mapper import JsonMapper
from forge_client.core.paging import PagedIterable, PagedIterator
from forge_client.core.rate_limit import RateLimitTracker
from forge_client.core.requester import Requester
from forge_client.core.types import RateLimit

__all__ = [
    "OFFLINE",
    "AbuseLimitHandler",
    "ConnectorResponse",
    "ForgeConnectionError",
    "ForgeError",
    "HttpConnector",
    "HttpError",
    "JsonMapper",
    "JsonMappingError",
    "NotFoundError",
    "OfflineError",
    "PagedIterable",
    "PagedIterator",
    "RateLimit",
    "RateLimitHandler",
    "RateLimitTracker",
    "Requester",
    "UrllibConnector",
    "ValidationError",
    "WaitInterrupted",
]
