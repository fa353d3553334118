"""Deployment strategies.

The default strategy is a linear, fail-fast pipeline run inside the listener's
working copy::

    verify branch -> git pull -> install deps -> build -> publish dist

The first failing step raises its ``PipelineExecutionError`` subclass and no
later step runs. Nothing is rolled back: a working copy left at a freshly pulled
commit after a failed build has to be recovered by an operator.
"""

from __future__ import annotations

import asyncio
import shlex
from pathlib import Path
from typing import NoReturn

import structlog

from codecast.logging_config import deployment_context, step_context
from codecast.schemas.deploy import DeployConfig, Dist, ListenerRule
from codecast.services.commands import Command, CommandResult, CommandRunner
from codecast.services.locks import RepositoryLocks

logger = structlog.get_logger()


class UnsupportedStrategyError(Exception):
    """The listener asks for a strategy this server does not implement."""


class PipelineExecutionError(Exception):
    """A default-strategy step failed; ``result`` holds its captured output."""

    step = "pipeline"
    reason = "Deployment failed"

    def __init__(self, result: CommandResult | None = None, detail: str | None = None) -> None:
        self.result = result
        self.detail = detail
        super().__init__(f"{self.reason}, server may be misconfigured")


class BranchMismatchError(PipelineExecutionError):
    step = "verify_branch"
    reason = "Branch mismatch"


class PullError(PipelineExecutionError):
    step = "pull"
    reason = "Error pulling from remote"


class InstallError(PipelineExecutionError):
    step = "install"
    reason = "Error installing deps"


class BuildError(PipelineExecutionError):
    step = "build"
    reason = "Error building application"


class PublishError(PipelineExecutionError):
    step = "publish"
    reason = "Error moving files"


class DefaultStrategy:
    """Branch check, pull, install, build and publish for one listener.

    Args:
        runner: Executes the external commands.
        repository: Listener repository name; also the working copy directory name.
        branch: Branch the working copy must be on.
        dist: Build output location and publish target.
        repos_directory: Parent directory of the working copies.
        serve_directory: Parent directory of the published output.
        install_command: Dependency install command line.
        build_command: Build command line.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        repository: str,
        branch: str,
        dist: Dist,
        repos_directory: Path,
        serve_directory: Path,
        install_command: str,
        build_command: str,
    ) -> None:
        self.runner = runner
        self.repository = repository
        self.branch = branch
        self.dist = dist
        self.working_copy = Path(repos_directory) / repository
        self.publish_target = Path(serve_directory) / dist.target
        self.install_args = tuple(shlex.split(install_command))
        self.build_args = tuple(shlex.split(build_command))

    def _command(self, name: str, *args: str) -> Command:
        return Command(name=name, args=args, cwd=self.working_copy)

    async def _run(self, command: Command) -> CommandResult:
        logger.info("step_started", command=command.display())
        result = await self.runner.run(command)
        if result.stdout:
            logger.info("step_output", stdout=result.stdout)
        return result

    def _fail(self, error_cls: type[PipelineExecutionError], result: CommandResult) -> NoReturn:
        logger.error("step_failed", returncode=result.returncode, stderr=result.stderr)
        raise error_cls(result)

    async def verify_branch(self) -> None:
        command = self._command("verify_branch", "git", "rev-parse", "--abbrev-ref", "HEAD")
        result = await self._run(command)
        current = result.stdout.strip()
        if current.lower() != self.branch.strip().lower():
            logger.error(
                "branch_mismatch",
                received=current,
                expected=self.branch,
                stderr=result.stderr or None,
            )
            raise BranchMismatchError(result, detail=f"received {current!r}")
        logger.info("branch_matched", current=current)

    async def pull(self) -> None:
        # --quiet keeps fetch progress off stderr so only real errors land there
        result = await self._run(self._command("pull", "git", "pull", "--quiet"))
        if result.failed_strict:
            self._fail(PullError, result)

    async def install(self) -> None:
        result = await self._run(self._command("install", *self.install_args))
        if result.failed_tolerant:
            self._fail(InstallError, result)

    async def build(self) -> None:
        result = await self._run(self._command("build", *self.build_args))
        if result.failed_tolerant:
            self._fail(BuildError, result)

    async def publish(self) -> None:
        source = self.working_copy / self.dist.source
        entries = await asyncio.to_thread(_list_entries, source)
        if not entries:
            logger.error("publish_source_empty", source=str(source))
            raise PublishError(detail=f"nothing to move in {source}")

        # mv with a single source and a missing target would rename the entry
        if not await asyncio.to_thread(self.publish_target.is_dir):
            logger.error("publish_target_missing", target=str(self.publish_target))
            raise PublishError(detail=f"{self.publish_target} is not a directory")

        command = Command(name="publish", args=("mv", *entries, str(self.publish_target)))
        result = await self._run(command)
        if result.failed_strict:
            self._fail(PublishError, result)
        logger.info("files_published", count=len(entries), target=str(self.publish_target))

    async def execute(self) -> None:
        with deployment_context(self.repository, self.branch):
            logger.info("default_strategy_started")
            for step in (self.verify_branch, self.pull, self.install, self.build, self.publish):
                with step_context(step.__name__):
                    await step()
            logger.info("default_strategy_succeeded")


def _list_entries(directory: Path) -> list[str]:
    """Sorted paths of the entries in *directory*, or nothing if it is not a directory."""
    if not directory.is_dir():
        return []
    return sorted(str(path) for path in directory.iterdir())


async def execute_strategy(
    listener: ListenerRule,
    config: DeployConfig,
    *,
    runner: CommandRunner,
    locks: RepositoryLocks,
    install_command: str,
    build_command: str,
) -> None:
    """Run the listener's deployment strategy.

    Raises:
        UnsupportedStrategyError: For any strategy type other than ``default``.
        PipelineExecutionError: When a default-strategy step fails.
    """
    if listener.strategy.type != "default":
        logger.warning(
            "strategy_not_implemented",
            repository=listener.repository,
            strategy=listener.strategy.type,
        )
        raise UnsupportedStrategyError(f"Strategy {listener.strategy.type!r} is not implemented")

    strategy = DefaultStrategy(
        runner,
        repository=listener.repository,
        # Filters only pass listeners that pin a branch
        branch=listener.branch or "",
        dist=listener.dist,
        repos_directory=config.repos_directory,
        serve_directory=config.serve_directory,
        install_command=install_command,
        build_command=build_command,
    )
    async with locks.hold(listener.repository):
        await strategy.execute()
