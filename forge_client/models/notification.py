"""
Notification threads of the authenticated user.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from forge_client.core.types import parse_date
from forge_client.models.base import ForgeObject, offline_noop
from forge_client.models.repository import Repository, Subscription

if TYPE_CHECKING:
    from forge_client.sdk import Forge


@dataclass(eq=False)
class ThreadSubject:
    title: str | None = None
    url: str | None = None
    latest_comment_url: str | None = None
    type: str | None = None


@dataclass(eq=False)
class Thread(ForgeObject):
    """One notification thread."""

    id: str | None = None
    url: str | None = None
    unread: bool = False
    reason: str | None = None
    updated_at: str | None = None
    last_read_at: str | None = None
    subject: ThreadSubject | None = None
    repository: Repository | None = None

    def wrap(self, root: "Forge") -> "Thread":
        self.root = root
        if self.repository is not None:
            self.repository.wrap(root)
        return self

    def get_updated_at(self) -> datetime | None:
        return parse_date(self.updated_at)

    def get_title(self) -> str | None:
        return self.subject.title if self.subject else None

    def get_type(self) -> str | None:
        return self.subject.type if self.subject else None

    @offline_noop
    def mark_as_read(self) -> None:
        self._require_root().create_request().method("PATCH").with_url_path("/notifications/threads", self.id).send()
        self.unread = False

    def get_subscription(self) -> Subscription:
        return (
            self._require_root()
            .create_request()
            .with_url_path("/notifications/threads", self.id, "subscription")
            .fetch(Subscription)
        )

    @offline_noop
    def subscribe(self, subscribed: bool, ignored: bool) -> Subscription:
        return (
            self._require_root()
            .create_request()
            .method("PUT")
            .with_("subscribed", subscribed)
            .with_("ignored", ignored)
            .with_url_path("/notifications/threads", self.id, "subscription")
            .fetch(Subscription)
        )


class NotificationStream:
    """
    Filtered view of the notification threads under ``api_tail``.

    Example:
        for thread in forge.list_notifications().read(True).since(last_run):
            print(thread.get_title())

    """

    def __init__(self, root: "Forge", api_tail: str):
        self.root = root
        self.api_tail = api_tail
        self._all = False
        self._participating = False
        self._since: datetime | None = None

    def read(self, include_read: bool) -> "NotificationStream":
        """Include threads already marked as read."""
        self._all = include_read
        return self

    def participating(self, participating: bool) -> "NotificationStream":
        """Only threads the user takes part in or is mentioned in."""
        self._participating = participating
        return self

    def since(self, since: datetime) -> "NotificationStream":
        self._since = since
        return self

    def __iter__(self) -> Iterator[Thread]:
        requester = (
            self.root.create_request()
            .with_("all", self._all)
            .with_("participating", self._participating)
            .with_("since", self._since)
            .with_url_path(self.api_tail)
        )
        return iter(requester.to_iterable(Thread, lambda item: item.wrap(self.root)))

    def mark_as_read(self, last_read_at: datetime | None = None) -> None:
        """Mark every thread in this stream as read, up to ``last_read_at``."""
        if self.root.is_offline():
            return
        self.root.create_request().method("PUT").with_("last_read_at", last_read_at).with_url_path(self.api_tail).send()
