"""
Forge client - Three-layer architecture for the Forge v3 API.

Layers:
- core: Credentials, connector, request engine, pagination, rate limits
- sdk: High-level Forge session, builder and typed entities
- cli: Opinionated command-line interface
"""

from forge_client.builder import ForgeBuilder
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
from forge_client.core.types import RateLimit
from forge_client.sdk import Forge

__version__ = "0.1.0"
__all__ = [
    "AbuseLimitHandler",
    "Forge",
    "ForgeBuilder",
    "ForgeConnectionError",
    "ForgeError",
    "HttpError",
    "JsonMappingError",
    "NotFoundError",
    "OfflineError",
    "RateLimit",
    "RateLimitHandler",
    "ValidationError",
    "WaitInterrupted",
]
