"""
Base classes for typed Forge entities.

Entities are dataclasses decoded by the session's JsonMapper. After decoding,
every entity goes through the wrap-up protocol before it reaches the caller:
``wrap(root)`` (or an entity-specific ``wrap_up(parent)``) attaches the
owning session and parent entities so the object can build its own endpoint
URLs and issue follow-up requests. Wrapping is idempotent.
"""

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from forge_client.core.errors import ForgeError
from forge_client.core.types import parse_date

if TYPE_CHECKING:
    from forge_client.sdk import Forge

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Every entity class, by name; used to resolve string annotations across modules
_TYPE_REGISTRY: dict[str, type] = {}


def offline_noop(method: F) -> F:
    """Turn a mutating method into a no-op (returning None) on offline sessions.

    Works on anything exposing the owning session as ``root``: entities,
    creation builders and the post-commit hook view.
    """

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        if self.root is not None and self.root.is_offline():
            logger.debug("Offline session; skipping %s.%s", type(self).__name__, method.__name__)
            return None
        return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


@dataclass(eq=False)
class ForgeObject:
    """An entity bound to the session it was fetched through."""

    _type_registry: ClassVar[dict[str, type]] = _TYPE_REGISTRY

    root: Any = field(default=None, repr=False, metadata={"inject": "root"})

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        _TYPE_REGISTRY[cls.__name__] = cls

    def wrap(self, root: "Forge") -> "ForgeObject":
        """Attach the owning session."""
        self.root = root
        return self

    def _require_root(self) -> "Forge":
        if self.root is None:
            raise ForgeError(f"{type(self).__name__} is not bound to a session")
        return self.root

    def _is_offline(self) -> bool:
        return self.root is None or self.root.is_offline()


@dataclass(eq=False)
class ForgeResource(ForgeObject):
    """An entity with its own identity and canonical API URL."""

    id: int | None = None
    node_id: str | None = None
    url: str | None = None
    html_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def get_created_at(self) -> datetime | None:
        return parse_date(self.created_at)

    def get_updated_at(self) -> datetime | None:
        return parse_date(self.updated_at)
