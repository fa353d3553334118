"""Per-repository mutual exclusion for deployments.

Two pushes to the same repository would otherwise pull and build in the same
working copy at once. Concurrent triggers for one repository queue on its lock;
different repositories deploy in parallel.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

logger = structlog.get_logger()


class RepositoryLocks:
    """Lazily created ``asyncio.Lock`` per repository name."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, repository: str) -> asyncio.Lock:
        lock = self._locks.get(repository)
        if lock is None:
            lock = self._locks[repository] = asyncio.Lock()
        return lock

    def is_locked(self, repository: str) -> bool:
        lock = self._locks.get(repository)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, repository: str) -> AsyncIterator[None]:
        """Hold the repository's lock for the duration of the block."""
        lock = self.lock_for(repository)
        if lock.locked():
            logger.info("deployment_queued", repository=repository)
        async with lock:
            yield
