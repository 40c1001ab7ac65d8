"""FastAPI application entry point.

Run with: python -m src.main   (or the `user-record-service` script)

Launching through main() is what bounds shutdown: uvicorn waits at most
SHUTDOWN_GRACE_SECONDS for in-flight requests, cancels the rest, and only then
runs the lifespan shutdown that closes the store and cache.
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp

from config.settings import Settings, settings
from src.uc_common.errors import AppError, InternalError
from src.uc_common.request_context import REQUEST_ID_HEADER, RequestIdFilter
from src.uc_common.response import error_response
from src.uc_gateway.middleware.request_log import RequestLogMiddleware
from src.uc_user.api.router import router as user_router
from src.uc_user.bootstrap import open_user_repository

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s [%(request_id)s]: %(message)s",
)
for _handler in logging.getLogger().handlers:
    _handler.addFilter(RequestIdFilter())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: open DB + cache. Shutdown: close both."""
    # Startup
    app.state.user_repository = await open_user_repository(settings)
    yield
    # Shutdown (in-flight requests were already drained or cancelled by the server)
    await app.state.user_repository.close()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=error_response(exc.code, exc.message).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = InternalError()
    return JSONResponse(
        status_code=err.http_status,
        content=error_response(err.code, err.message).model_dump(),
    )


app.include_router(user_router, prefix="/api/v1")


@app.get("/health")
async def health(request: Request) -> JSONResponse:
    repo = request.app.state.user_repository
    backends = await repo.check_health()
    healthy = backends["store"] == "ok"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ok" if healthy else "degraded",
            "version": "0.1.0",
            "backends": backends,
            "stats": repo.stats.snapshot(),
        },
    )


def build_server_config(target: ASGIApp, cfg: Settings = settings) -> uvicorn.Config:
    return uvicorn.Config(
        target,
        host=cfg.HOST,
        port=cfg.PORT,
        log_config=None,  # keep the basicConfig handler above
        timeout_graceful_shutdown=cfg.SHUTDOWN_GRACE_SECONDS,
    )


def main() -> None:
    uvicorn.Server(build_server_config(app)).run()


if __name__ == "__main__":
    main()
