"""FastAPI application factory.

Run with:
    uvicorn techit.main:app --port 5001
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from techit.core.auth import optional_payload
from techit.core.config import APP_ENV, CORS_ORIGINS, LOG_FILE, LOG_LEVEL, PORT
from techit.core.database import client, db, ensure_indexes
from techit.core.logging_setup import setup_logging
from techit.core.rate_limiter import Limiters, RateLimitExceeded, build_limiters
from techit.routes.carts_routes import carts_route
from techit.routes.favorites_routes import favorites_route
from techit.routes.health_route import health_route
from techit.routes.products_routes import products_route
from techit.routes.users_routes import login, users_route

logger = logging.getLogger(__name__)
request_logger = logging.getLogger("techit.requests")


def validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    error = errors[0]
    location = [str(part) for part in error.get("loc", ()) if part != "body"]
    field = ".".join(location) or "body"
    return f'"{field}" {error.get("msg", "is invalid")}'


def status_color(status_code: int) -> str:
    if status_code >= 400:
        return "red"
    if status_code >= 300:
        return "yellow"
    return "green"


def create_app(database=None, limiters: Limiters | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    owns_client = database is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await ensure_indexes(app.state.db)
        logger.info("API ready on port %s (%s)", PORT, APP_ENV)
        yield
        if owns_client:
            client.close()

    application = FastAPI(title="TechIt Store API", version="1.0.0", lifespan=lifespan)
    application.state.db = db if database is None else database
    application.state.limiters = limiters or build_limiters()
    application.state.started_at = time.monotonic()

    @application.middleware("http")
    async def rateLimit(request: Request, call_next):
        limiters = request.app.state.limiters
        payload = optional_payload(request.headers.get("Authorization"))

        general_state = limiters.general.hit(request, payload)
        if general_state is not None and general_state.exceeded:
            logger.warning("general limit exceeded for %s", limiters.general.key(request, payload))
            return limiters.general.rejection(general_state)

        daily_state = limiters.daily.hit(request, payload)
        if daily_state is not None and daily_state.exceeded:
            logger.warning("daily limit exceeded for %s", limiters.daily.key(request, payload))
            return limiters.daily.rejection(daily_state)

        response = await call_next(request)
        response.headers.update(limiters.general.headers(general_state))
        return response

    @application.middleware("http")
    async def requestLogger(request: Request, call_next):
        ip = request.client.host if request.client else "-"
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"

        start = time.perf_counter()
        if APP_ENV != "production":
            request_logger.info("%s %s - IP: %s", request.method, path, ip)
        response = await call_next(request)
        duration = (time.perf_counter() - start) * 1000

        if APP_ENV == "production":
            request_logger.info(
                '%s "%s %s" %s "%s" %.0fms',
                ip, request.method, path, response.status_code,
                request.headers.get("User-Agent", "-"), duration,
            )
        else:
            color = status_color(response.status_code)
            request_logger.info(
                "%s %s - [%s]%s[/%s] - %.0fms",
                request.method, path, color, response.status_code, color, duration,
                extra={"markup": True},
            )
        return response

    # added last so it wraps the middlewares above and 429s carry CORS headers
    application.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.exception_handler(RequestValidationError)
    async def validationErrorHandler(request: Request, exc: RequestValidationError):
        if request.scope.get("endpoint") is login:
            # a malformed login body is a failed attempt too
            request.app.state.limiters.login.hit(request)
        return JSONResponse(status_code=400, content={"detail": validation_message(exc)})

    @application.exception_handler(RateLimitExceeded)
    async def rateLimitHandler(request: Request, exc: RateLimitExceeded):
        return exc.limiter.rejection(exc.state)

    @application.exception_handler(Exception)
    async def serverErrorHandler(request: Request, exc: Exception):
        logger.exception("Server error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    application.include_router(health_route)
    application.include_router(users_route)
    application.include_router(products_route)
    application.include_router(carts_route)
    application.include_router(favorites_route)

    @application.api_route(
        "/{path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    async def routeNotFound(path: str):
        return JSONResponse(status_code=404, content={"error": "Route not found"})

    return application


setup_logging(LOG_LEVEL, LOG_FILE)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
