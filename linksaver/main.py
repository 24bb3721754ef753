"""Main FastAPI application."""

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from linksaver import __version__
from linksaver.config import config
from linksaver.database import init_db
from linksaver.errors import LinkSaverError, UnauthorizedError
from linksaver.logging_config import configure_logging

logger = logging.getLogger("linksaver")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan manager."""
    await init_db()
    logger.info("LinkSaver %s ready on port %s", __version__, config.PORT)
    yield


configure_logging(debug=config.DEBUG)


app = FastAPI(
    title="LinkSaver",
    description="Save, categorize and preview social media links",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


access_logger = logging.getLogger("linksaver.access")


@app.middleware("http")
async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Log incoming requests similar to the access log."""

    response = await call_next(request)
    client_host = "-"
    if request.client is not None:
        client_host = request.client.host or "-"

    access_logger.info(
        '%s - "%s %s" %s',
        client_host,
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


@app.exception_handler(LinkSaverError)
async def linksaver_error_handler(
    request: Request, exc: LinkSaverError
) -> JSONResponse:
    """Render service errors as ``{"error": kind, "message": ...}``."""

    logger.info(
        "%s %s -> %s %s: %s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.kind,
        exc.message,
    )
    headers = None
    if isinstance(exc, UnauthorizedError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies and parameters as ``validation_error``."""

    errors = jsonable_encoder(exc.errors())
    logger.info(
        "%s %s -> invalid request: %s", request.method, request.url.path, errors
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "validation_error",
            "message": "Invalid request",
            "errors": errors,
        },
    )


# Health check endpoint
@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


# Import routes
from linksaver.routes import auth, categories, links, metadata, users  # noqa: E402

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(links.router)
app.include_router(categories.router)
app.include_router(metadata.router)
