"""Push event filters: pusher identity, branch pinning and commit flag.

All checks must pass. They short-circuit on the first failure so that the log
names the check that rejected the push.
"""

import structlog

from codecast.schemas.deploy import ListenerRule
from codecast.schemas.webhooks import PushEventPayload

logger = structlog.get_logger()


def pusher_allowed(listener: ListenerRule, payload: PushEventPayload) -> bool:
    """Every identity field set on the listener must equal the pusher's."""
    filters = listener.filters
    if filters is None:
        return True

    pusher = payload.pusher
    for field in ("username", "email", "name"):
        expected = getattr(filters, field)
        if expected and expected != (getattr(pusher, field) if pusher else None):
            return False
    return True


def branch_allowed(listener: ListenerRule, payload: PushEventPayload) -> bool:
    """The listener must pin a branch and it must equal the pushed branch exactly."""
    return bool(listener.branch) and listener.branch == payload.branch


def commit_flag_present(listener: ListenerRule, payload: PushEventPayload) -> bool:
    """When a commit flag is configured, some commit message must contain it."""
    flag = listener.commit_flag
    if not flag:
        return True
    return any(flag in commit.message for commit in payload.commits)


def passes_filters(listener: ListenerRule, payload: PushEventPayload) -> bool:
    """Return True when the push is eligible to trigger a deployment."""
    if not pusher_allowed(listener, payload):
        logger.info(
            "filter_rejected",
            check="pusher",
            pusher=payload.pusher.model_dump() if payload.pusher else None,
        )
        return False

    if not branch_allowed(listener, payload):
        logger.info("filter_rejected", check="branch", ref=payload.ref, expected=listener.branch)
        return False

    if not commit_flag_present(listener, payload):
        logger.info("filter_rejected", check="commit_flag", commit_flag=listener.commit_flag)
        return False

    logger.info("filters_passed", repository=listener.repository)
    return True
