"""FastAPI application factory."""

import base64
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from config.settings import settings
from src.api import admin, routes
from src.calculators.income_tax import ProgressiveTaxCalculator
from src.db.deduction_config import PostgresDeductionConfigStore
from src.db.session import close_pool, get_pool

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup: init DB pool, wire calculator and store. Shutdown: close pool."""
    logging.basicConfig(level=settings.log_level)
    logger.info("Starting up...")

    pool = await get_pool()
    app.state.deduction_store = PostgresDeductionConfigStore(pool)
    app.state.calculator = ProgressiveTaxCalculator()

    yield

    logger.info("Shutting down...")
    await close_pool()


UNAUTHORIZED = Response(
    content="Unauthorized",
    status_code=401,
    headers={"WWW-Authenticate": "Basic"},
)

ADMIN_PREFIX = "/admin"

AUTH_USERNAME = settings.admin_username.encode()
AUTH_PASSWORD = settings.admin_password.encode()


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Enforce HTTP Basic Auth on /admin requests."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        path = request.url.path
        if path != ADMIN_PREFIX and not path.startswith(ADMIN_PREFIX + "/"):
            return await call_next(request)

        auth = request.headers.get("Authorization")
        if auth and auth.startswith("Basic "):
            try:
                decoded = base64.b64decode(auth[6:], validate=True).decode()
                username, password = decoded.split(":", 1)
            except (ValueError, UnicodeDecodeError):
                return UNAUTHORIZED
            if secrets.compare_digest(username.encode(), AUTH_USERNAME) and secrets.compare_digest(
                password.encode(), AUTH_PASSWORD
            ):
                return await call_next(request)
        logger.warning("Rejected unauthenticated request to %s", path)
        return UNAUTHORIZED


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="Tax Calculator", lifespan=lifespan)
    app.add_middleware(BasicAuthMiddleware)
    app.include_router(routes.router)
    app.include_router(admin.router)
    return app
