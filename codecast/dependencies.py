"""Centralized FastAPI dependencies for use with Depends().

Each getter returns a process-wide instance built from ``settings``. Tests swap
them through ``app.dependency_overrides``.
"""

from codecast.config import settings
from codecast.services.auth import RequestAuthenticator
from codecast.services.commands import CommandRunner, SubprocessCommandRunner
from codecast.services.config_provider import ConfigProvider, FileConfigProvider
from codecast.services.locks import RepositoryLocks
from codecast.services.rate_limit import RateLimiter

_authenticator = RequestAuthenticator(
    required_agent=settings.agent,
    event_header=settings.event_header,
)
_config_provider: ConfigProvider = FileConfigProvider(settings.config_dir)
_command_runner: CommandRunner = SubprocessCommandRunner()
_repository_locks = RepositoryLocks()
_rate_limiter = RateLimiter(
    max_requests=settings.rate_limit_max,
    window_seconds=settings.rate_limit_window_seconds,
)


def get_authenticator() -> RequestAuthenticator:
    """Return the request authenticator configured from ``CC_AGENT``/``CC_EVENT_HEADER``."""
    return _authenticator


def get_config_provider() -> ConfigProvider:
    """Return the provider that reads ``config.json`` from ``CC_CONFIG_DIR``."""
    return _config_provider


def get_command_runner() -> CommandRunner:
    """Return the runner used for pipeline commands."""
    return _command_runner


def get_repository_locks() -> RepositoryLocks:
    """Return the shared per-repository deployment locks."""
    return _repository_locks


def get_rate_limiter() -> RateLimiter:
    """Return the inbound webhook throttle."""
    return _rate_limiter


__all__ = [
    "get_authenticator",
    "get_command_runner",
    "get_config_provider",
    "get_rate_limiter",
    "get_repository_locks",
]
