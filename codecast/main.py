"""FastAPI application factory with lifespan context manager."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from codecast.config import settings
from codecast.logging_config import configure_logging
from codecast.routers import webhooks
from codecast.services.strategy import PipelineExecutionError


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging before the first webhook is accepted."""
    configure_logging(json_logs=not settings.debug, log_level=settings.log_level)
    structlog.get_logger().info(
        "app_started",
        config_dir=settings.config_dir,
        agent=settings.agent,
        event_header=settings.event_header,
    )
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for any unhandled exception.

    Pipeline step failures end up here too; their cause is logged, never sent.
    """
    logger = structlog.get_logger()
    if isinstance(exc, PipelineExecutionError):
        logger.error(
            "deployment_failed",
            path=request.url.path,
            step=exc.step,
            error=str(exc),
            detail=exc.detail,
        )
    else:
        logger.exception("unhandled_exception", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(webhooks.router)


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
