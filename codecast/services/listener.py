"""Resolve the listener rule a push event is addressed to."""

import structlog

from codecast.schemas.deploy import DeployConfig, ListenerRule
from codecast.schemas.webhooks import PushEventPayload

logger = structlog.get_logger()


class ListenerResolutionError(Exception):
    """The payload names no repository, or no listener is configured for it."""


def resolve_listener(config: DeployConfig, payload: PushEventPayload) -> ListenerRule:
    """Return the first listener whose ``repository`` equals the payload's repository name.

    Raises:
        ListenerResolutionError: If the repository name is missing or empty, or
            no listener is registered for it.
    """
    name = payload.repository_name
    if not name:
        logger.error("repository_name_missing", payload=payload.model_dump())
        raise ListenerResolutionError("Repository name is missing in the payload.")

    listener = config.find_listener(name)
    if listener is None:
        logger.error(
            "listener_not_configured",
            repository=name,
            configured=[rule.repository for rule in config.listeners],
        )
        raise ListenerResolutionError(
            f"Application is not configured to accept webhooks for {name!r}."
        )

    logger.info("listener_found", repository=name, branch=listener.branch)
    return listener
