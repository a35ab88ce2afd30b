from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from user_service.api.health import router as health_router
from user_service.api.metrics_endpoint import router as metrics_router
from user_service.api.users import router as users_router
from user_service.core.config import SETTINGS
from user_service.core.logging import setup_logging
from user_service.db.engine import lifespan_db
from user_service.db.redis import lifespan_redis
from user_service.middleware.metrics import MetricsMiddleware
from user_service.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order: Redis closes before the DB.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="User Service API",
    description="Registers users, persists them and announces each new "
    "user with a UserCreated event.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(users_router)

logger.info(
    "user-service started  env=%s log_level=%s port=%d docs=%s exchange=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
    SETTINGS.event_exchange,
)
