"""Tests for listener resolution."""

from pathlib import Path

import pytest

from codecast.schemas.deploy import DeployConfig
from codecast.schemas.webhooks import PushEventPayload
from codecast.services.listener import ListenerResolutionError, resolve_listener


def _config(*repositories: str) -> DeployConfig:
    return DeployConfig.model_validate(
        {
            "reposDirectory": "/srv/repos",
            "serveDirectory": "/srv/www",
            "listeners": [
                {
                    "repository": repository,
                    "branch": f"branch-{i}",
                    "dist": {"in": "dist", "out": repository},
                    "strategy": {"type": "default"},
                }
                for i, repository in enumerate(repositories)
            ],
        }
    )


def _payload(repository: dict | None) -> PushEventPayload:
    return PushEventPayload.model_validate({"ref": "refs/heads/main", "repository": repository})


def test_resolves_by_repository_name() -> None:
    listener = resolve_listener(_config("site", "blog"), _payload({"name": "blog"}))

    assert listener.repository == "blog"
    assert listener.branch == "branch-1"


def test_first_match_wins() -> None:
    listener = resolve_listener(_config("site", "site"), _payload({"name": "site"}))

    assert listener.branch == "branch-0"


@pytest.mark.parametrize("repository", [None, {}, {"name": ""}])
def test_missing_repository_name(repository: dict | None) -> None:
    with pytest.raises(ListenerResolutionError, match="missing"):
        resolve_listener(_config("site"), _payload(repository))


def test_unknown_repository() -> None:
    with pytest.raises(ListenerResolutionError, match="not configured"):
        resolve_listener(_config("site"), _payload({"name": "other"}))


def test_no_listeners() -> None:
    with pytest.raises(ListenerResolutionError):
        resolve_listener(_config(), _payload({"name": "site"}))


def test_working_copy_path() -> None:
    assert _config("site").working_copy("site") == Path("/srv/repos/site")
