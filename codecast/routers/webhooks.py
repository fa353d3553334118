"""Catch-all webhook route: authenticate, match a listener, filter, deploy."""

import asyncio
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import HTMLResponse
from pydantic import ValidationError

from codecast.config import settings
from codecast.dependencies import (
    get_authenticator,
    get_command_runner,
    get_config_provider,
    get_rate_limiter,
    get_repository_locks,
)
from codecast.schemas.webhooks import PushEventPayload
from codecast.services.auth import RequestAuthenticator
from codecast.services.commands import CommandRunner
from codecast.services.config_provider import ConfigProvider
from codecast.services.event_filter import passes_filters
from codecast.services.listener import ListenerResolutionError, resolve_listener
from codecast.services.locks import RepositoryLocks
from codecast.services.rate_limit import RateLimiter
from codecast.services.strategy import UnsupportedStrategyError, execute_strategy

logger = structlog.get_logger()

router = APIRouter(tags=["webhooks"])

WEBHOOK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

FORBIDDEN_PAGE = (
    '<html lang="en"><head><title>403</title></head>'
    "<body><div>403</div><div>Forbidden</div></body></html>"
)


def forbidden() -> HTMLResponse:
    """The opaque response for rejected and filtered requests alike."""
    return HTMLResponse(FORBIDDEN_PAGE, status_code=status.HTTP_403_FORBIDDEN)


async def enforce_rate_limit(
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> None:
    """Reject the request with 429 once the shared window budget is spent.

    Raises:
        HTTPException: 429 with a ``Retry-After`` header.
    """
    if not limiter.hit():
        logger.warning("rate_limited", max_requests=limiter.max_requests)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests",
            headers={"Retry-After": str(limiter.retry_after())},
        )


@router.api_route(
    "/{path:path}",
    methods=WEBHOOK_METHODS,
    dependencies=[Depends(enforce_rate_limit)],
    include_in_schema=False,
)
async def receive_webhook(
    request: Request,
    authenticator: Annotated[RequestAuthenticator, Depends(get_authenticator)],
    config_provider: Annotated[ConfigProvider, Depends(get_config_provider)],
    runner: Annotated[CommandRunner, Depends(get_command_runner)],
    locks: Annotated[RepositoryLocks, Depends(get_repository_locks)],
) -> Response:
    """Receive a GitHub webhook and run the matching listener's deployment.

    ``ping`` is acknowledged without touching the configuration. A ``push``
    answers only after the deployment finished; step failures propagate to the
    global exception handler as a 500.
    """
    event = authenticator.authenticate(request.method, request.headers)
    if event is None:
        return forbidden()
    if event == "ping":
        logger.info("ping_received")
        return Response(status_code=status.HTTP_200_OK)

    config = await asyncio.to_thread(config_provider.load)

    try:
        payload = PushEventPayload.model_validate_json(await request.body())
    except ValidationError as exc:
        logger.error("payload_invalid", errors=exc.errors(include_url=False))
        return Response(status_code=status.HTTP_400_BAD_REQUEST)

    try:
        listener = resolve_listener(config, payload)
    except ListenerResolutionError:
        return Response(status_code=status.HTTP_400_BAD_REQUEST)

    if not passes_filters(listener, payload):
        return forbidden()

    logger.info("deployment_started", repository=listener.repository, ref=payload.ref)
    try:
        await execute_strategy(
            listener,
            config,
            runner=runner,
            locks=locks,
            install_command=settings.install_command,
            build_command=settings.build_command,
        )
    except UnsupportedStrategyError:
        return Response(status_code=status.HTTP_501_NOT_IMPLEMENTED)

    logger.info("deployment_finished", repository=listener.repository)
    return Response(status_code=status.HTTP_200_OK)
