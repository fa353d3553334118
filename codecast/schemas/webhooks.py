"""Pydantic models for GitHub push webhook payloads.

Only the fields the relay reads are modelled; everything else GitHub sends is
ignored. Fields are optional so that a sparse payload can still be routed to a
400 instead of failing validation.
"""

from pydantic import BaseModel, Field


class Pusher(BaseModel):
    """The user who pushed."""

    name: str | None = None
    email: str | None = None
    username: str | None = None


class Commit(BaseModel):
    """A single commit within a GitHub push event."""

    id: str | None = None
    message: str = ""


class Repository(BaseModel):
    """Repository metadata from the webhook payload."""

    name: str | None = None
    full_name: str | None = None


class PushEventPayload(BaseModel):
    """GitHub push webhook event payload.

    Reference: https://docs.github.com/en/webhooks/webhook-events-and-payloads#push
    """

    ref: str = ""
    repository: Repository | None = None
    pusher: Pusher | None = None
    commits: list[Commit] = Field(default_factory=list)

    @property
    def repository_name(self) -> str | None:
        return self.repository.name if self.repository else None

    @property
    def branch(self) -> str:
        """Last path segment of ``ref`` (``refs/heads/main`` -> ``main``)."""
        return self.ref.rsplit("/", maxsplit=1)[-1]
