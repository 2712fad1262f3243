"""
Emoji reactions on issues, pull requests and comments.
"""

from dataclasses import dataclass
from enum import Enum

from forge_client.core.paging import PagedIterable
from forge_client.core.requester import Requester
from forge_client.models.base import ForgeResource, offline_noop
from forge_client.models.user import User

REACTIONS_PREVIEW = "application/vnd.github.squirrel-girl-preview+json"


class ReactionContent(Enum):
    """Reaction kinds, valued by their wire representation."""

    PLUS_ONE = "+1"
    MINUS_ONE = "-1"
    LAUGH = "laugh"
    CONFUSED = "confused"
    HEART = "heart"
    HOORAY = "hooray"
    ROCKET = "rocket"
    EYES = "eyes"

    @classmethod
    def for_content(cls, content: str) -> "ReactionContent | None":
        for member in cls:
            if member.value == content:
                return member
        return None


@dataclass(eq=False)
class Reaction(ForgeResource):
    content: ReactionContent | None = None
    user: User | None = None

    @offline_noop
    def delete(self) -> None:
        (
            self._require_root()
            .create_request()
            .method("DELETE")
            .with_preview(REACTIONS_PREVIEW)
            .with_url_path("/reactions", str(self.id))
            .send()
        )


class Reactable:
    """Mixin for entities that accept reactions under ``<api route>/reactions``."""

    def _reactions_route(self) -> str:
        raise NotImplementedError

    def _reactions_request(self) -> Requester:
        return self._require_root().create_request().with_preview(REACTIONS_PREVIEW).with_url_path(self._reactions_route())

    @offline_noop
    def create_reaction(self, content: ReactionContent) -> Reaction:
        return (
            self._reactions_request()
            .method("POST")
            .with_("content", content.value)
            .fetch(Reaction)
            .wrap(self.root)
        )

    def list_reactions(self) -> PagedIterable[Reaction]:
        return self._reactions_request().to_iterable(Reaction, lambda item: item.wrap(self.root))
