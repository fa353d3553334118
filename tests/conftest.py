"""Shared fixtures: deployment config on tmp_path and a FastAPI test client."""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from codecast.dependencies import (
    get_authenticator,
    get_command_runner,
    get_config_provider,
    get_rate_limiter,
    get_repository_locks,
)
from codecast.main import app
from codecast.schemas.deploy import DeployConfig
from codecast.services.auth import RequestAuthenticator
from codecast.services.commands import InMemoryCommandRunner
from codecast.services.config_provider import InMemoryConfigProvider
from codecast.services.locks import RepositoryLocks
from codecast.services.rate_limit import RateLimiter

REPOSITORY = "my-repo"
BRANCH = "main"


@pytest.fixture
def anyio_backend() -> str:
    """Run async tests on asyncio only; the service is built on asyncio primitives."""
    return "asyncio"


@pytest.fixture
def repos_dir(tmp_path: Path) -> Path:
    """A repos directory holding one working copy with built output in ``dist/``."""
    repos = tmp_path / "repos"
    dist = repos / REPOSITORY / "dist"
    dist.mkdir(parents=True)
    (dist / "index.html").write_text("<html></html>")
    (dist / "app.js").write_text("console.log('hi')")
    return repos


@pytest.fixture
def serve_dir(tmp_path: Path) -> Path:
    serve = tmp_path / "serve"
    (serve / REPOSITORY).mkdir(parents=True)
    return serve


def _make_config(repos_dir: Path, serve_dir: Path, **listener_overrides: object) -> DeployConfig:
    listener: dict[str, object] = {
        "repository": REPOSITORY,
        "branch": BRANCH,
        "dist": {"in": "dist", "out": REPOSITORY},
        "strategy": {"type": "default"},
    }
    listener.update(listener_overrides)
    return DeployConfig.model_validate(
        {
            "reposDirectory": str(repos_dir),
            "serveDirectory": str(serve_dir),
            "listeners": [listener],
        }
    )


@pytest.fixture
def config_factory(repos_dir: Path, serve_dir: Path) -> Callable[..., DeployConfig]:
    """Build a config with a single default-strategy listener for ``my-repo``.

    Keyword arguments override fields of the listener (JSON key names).
    """
    return lambda **overrides: _make_config(repos_dir, serve_dir, **overrides)


@pytest.fixture
def deploy_config(config_factory: Callable[..., DeployConfig]) -> DeployConfig:
    return config_factory()


@pytest.fixture
def config_provider(deploy_config: DeployConfig) -> InMemoryConfigProvider:
    """In-memory provider; tests may replace ``.config`` before posting."""
    return InMemoryConfigProvider(deploy_config)


@pytest.fixture
def command_runner() -> InMemoryCommandRunner:
    """A runner whose working copy reports being on ``main``; every other step succeeds."""
    runner = InMemoryCommandRunner()
    runner.script("verify_branch", stdout=f"{BRANCH}\n")
    return runner


@pytest.fixture
async def client(
    config_provider: InMemoryConfigProvider,
    command_runner: InMemoryCommandRunner,
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient with dependencies overridden.

    Uses the default authenticator settings, an in-memory config provider and
    command runner, fresh locks, and no rate limiting.
    """
    authenticator = RequestAuthenticator("GitHub-Hookshot/", "x-github-event")
    locks = RepositoryLocks()
    limiter = RateLimiter(max_requests=0, window_seconds=60)

    app.dependency_overrides[get_authenticator] = lambda: authenticator
    app.dependency_overrides[get_config_provider] = lambda: config_provider
    app.dependency_overrides[get_command_runner] = lambda: command_runner
    app.dependency_overrides[get_repository_locks] = lambda: locks
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
