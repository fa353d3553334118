"""External command execution with protocol-based swappable implementations.

Production code uses ``SubprocessCommandRunner`` which runs each command with
``asyncio.subprocess`` so a long build never blocks the event loop. Tests use
``InMemoryCommandRunner`` which records commands and replays scripted results.

Runners never raise on a non-zero exit: whether a result counts as a failure
depends on the pipeline step, see ``CommandResult.failed_strict`` and
``CommandResult.failed_tolerant``.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from shlex import join
from typing import Protocol

import structlog

logger = structlog.get_logger()

# Exit status a shell reports for a command it could not start
NOT_STARTED_RETURNCODE = 127


@dataclass(frozen=True)
class Command:
    """A non-interactive external command.

    Attributes:
        name: Short label used in logs and to script test results.
        args: Executable followed by its arguments; never run through a shell.
        cwd: Working directory, or ``None`` to inherit the process one.
        env: Variables layered over the inherited environment.
    """

    name: str
    args: tuple[str, ...]
    cwd: Path | None = None
    env: dict[str, str] | None = None

    def display(self) -> str:
        return join(self.args)


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of a finished command."""

    command: Command
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def failed_strict(self) -> bool:
        """Any diagnostic output or a non-zero exit counts as failure."""
        return bool(self.stderr.strip()) or self.returncode != 0

    @property
    def failed_tolerant(self) -> bool:
        """Failure only when diagnostics were emitted AND the exit code is non-zero.

        Tools that print warnings but exit 0 pass.
        """
        return bool(self.stderr.strip()) and self.returncode != 0


class CommandRunner(Protocol):
    """Protocol for running external commands."""

    async def run(self, command: Command) -> CommandResult:
        """Run *command* to completion and return its captured result."""
        ...


class SubprocessCommandRunner:
    """Runs commands as child processes of the server."""

    async def run(self, command: Command) -> CommandResult:
        env = {**os.environ, **command.env} if command.env else None
        logger.debug(
            "command_started",
            name=command.name,
            command=command.display(),
            cwd=str(command.cwd),
        )
        try:
            proc = await asyncio.create_subprocess_exec(
                *command.args,
                cwd=command.cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            # Missing executable or working directory
            result = CommandResult(command, NOT_STARTED_RETURNCODE, "", str(exc))
        else:
            stdout, stderr = await proc.communicate()  # Waits for process exit
            result = CommandResult(
                command,
                proc.returncode if proc.returncode is not None else -1,
                stdout.decode(errors="replace") if stdout else "",
                stderr.decode(errors="replace") if stderr else "",
            )

        logger.debug(
            "command_exited",
            name=command.name,
            command=command.display(),
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
        return result


@dataclass
class InMemoryCommandRunner:
    """Test double that records commands and replays scripted results.

    ``results`` maps a command name to the ``(returncode, stdout, stderr)`` it
    should produce. Unscripted commands succeed silently.
    """

    results: dict[str, tuple[int, str, str]] = field(default_factory=dict)
    commands: list[Command] = field(default_factory=list)

    def script(self, name: str, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.results[name] = (returncode, stdout, stderr)

    @property
    def names(self) -> Sequence[str]:
        return [command.name for command in self.commands]

    async def run(self, command: Command) -> CommandResult:
        self.commands.append(command)
        returncode, stdout, stderr = self.results.get(command.name, (0, "", ""))
        return CommandResult(command, returncode, stdout, stderr)
