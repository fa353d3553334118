"""Tests for the global exception handler, logging setup and settings defaults."""

from __future__ import annotations

import json
import logging
from unittest.mock import MagicMock

import pytest
import structlog

from codecast.config import Settings
from codecast.logging_config import configure_logging, deployment_context, step_context
from codecast.main import unhandled_exception_handler
from codecast.services.commands import Command, CommandResult
from codecast.services.strategy import BuildError


@pytest.mark.anyio
async def test_global_exception_handler_returns_json() -> None:
    """The unhandled_exception_handler returns JSON with status 500."""
    mock_request = MagicMock()
    mock_request.url.path = "/test"
    mock_request.method = "POST"

    response = await unhandled_exception_handler(mock_request, Exception("boom"))

    assert response.status_code == 500
    assert json.loads(response.body) == {"detail": "Internal server error"}


@pytest.mark.anyio
async def test_pipeline_failure_details_stay_server_side() -> None:
    mock_request = MagicMock()
    mock_request.url.path = "/"
    result = CommandResult(Command("build", ("npm", "run", "build")), 1, "", "secret stack trace")

    response = await unhandled_exception_handler(mock_request, BuildError(result))

    assert response.status_code == 500
    assert b"secret" not in response.body


def test_structlog_is_configured() -> None:
    """configure_logging installs a single stdout handler on the root logger."""
    configure_logging(json_logs=True, log_level="debug")
    try:
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert structlog.get_logger() is not None
    finally:
        structlog.reset_defaults()


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CC_CONFIG_DIR", "CC_AGENT", "CC_EVENT_HEADER", "CC_RATE_LIMIT_MAX"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.config_dir == "/etc/code-cast"
    assert settings.agent == "GitHub-Hookshot/"
    assert settings.event_header == "x-github-event"
    assert settings.rate_limit_max == 2
    assert settings.rate_limit_window_seconds == 60


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CC_CONFIG_DIR", "/opt/deploy")
    monkeypatch.setenv("CC_AGENT", "Gitea/")
    monkeypatch.setenv("CC_EVENT_HEADER", "x-gitea-event")

    settings = Settings(_env_file=None)

    assert settings.config_dir == "/opt/deploy"
    assert settings.agent == "Gitea/"
    assert settings.event_header == "x-gitea-event"


def test_deployment_context_binds_and_unbinds() -> None:
    with deployment_context("my-repo", "main"):
        with step_context("build"):
            assert structlog.contextvars.get_contextvars() == {
                "repository": "my-repo",
                "branch": "main",
                "step": "build",
            }
        assert "step" not in structlog.contextvars.get_contextvars()

    assert "repository" not in structlog.contextvars.get_contextvars()
