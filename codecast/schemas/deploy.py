"""Pydantic models for the deployment configuration file (``config.json``).

The file is validated eagerly when loaded so that a malformed listener rule is
rejected before any webhook can reference it. JSON keys are camelCase; the
Python attributes are snake_case.
"""

from pathlib import Path, PurePosixPath
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _ConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PusherFilters(_ConfigModel):
    """Identity constraints on the pusher; every field that is set must match."""

    username: str | None = None
    email: str | None = None
    name: str | None = None


class Dist(_ConfigModel):
    """Where build output is produced and where it is published.

    ``source`` is relative to the working copy, ``target`` is relative to the
    serve directory.
    """

    source: str = Field(alias="in", min_length=1)
    target: str = Field(alias="out", min_length=1)

    @field_validator("source", "target")
    @classmethod
    def _must_stay_inside(cls, value: str) -> str:
        path = PurePosixPath(value)
        if path.is_absolute() or ".." in path.parts:
            raise ValueError(f"dist path must be relative without '..': {value!r}")
        return value


class Strategy(_ConfigModel):
    """Deployment strategy of a listener.

    ``custom`` is accepted in the file but not executed; ``script`` is kept for
    when it is.
    """

    type: Literal["default", "custom"]
    script: str | None = None


class ListenerRule(_ConfigModel):
    """Binds a repository name to filter predicates and a deployment strategy."""

    repository: str = Field(min_length=1)
    filters: PusherFilters | None = None
    branch: str | None = None
    commit_flag: str | None = Field(default=None, alias="commitFlag")
    dist: Dist
    strategy: Strategy


class DeployConfig(_ConfigModel):
    """Top-level deployment configuration."""

    repos_directory: Path = Field(alias="reposDirectory")
    serve_directory: Path = Field(alias="serveDirectory")
    listeners: list[ListenerRule] = Field(default_factory=list)

    def find_listener(self, repository: str) -> ListenerRule | None:
        """Return the first listener registered for *repository*, if any."""
        for listener in self.listeners:
            if listener.repository == repository:
                return listener
        return None

    def working_copy(self, repository: str) -> Path:
        """Path of the checked-out repository the default strategy builds in."""
        return self.repos_directory / repository
