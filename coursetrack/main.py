from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coursetrack.api.admin import router as admin_router
from coursetrack.api.auth import router as auth_router
from coursetrack.api.health import router as health_router
from coursetrack.api.metrics_endpoint import router as metrics_router
from coursetrack.api.student import router as student_router
from coursetrack.api.teacher import router as teacher_router
from coursetrack.core.config import SETTINGS
from coursetrack.core.logging import setup_logging
from coursetrack.db.engine import lifespan_db
from coursetrack.db.redis import lifespan_redis
from coursetrack.db.store import document_store
from coursetrack.middleware.metrics import MetricsMiddleware
from coursetrack.middleware.request_context import RequestContextMiddleware
from coursetrack.services.roster_service import ensure_admin

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


async def _bootstrap_admin() -> None:
    if not SETTINGS.bootstrap_admin_email or not SETTINGS.bootstrap_admin_password:
        return
    admin = await ensure_admin(
        document_store,
        SETTINGS.bootstrap_admin_email,
        SETTINGS.bootstrap_admin_password,
    )
    if admin is not None:
        logger.info("Bootstrap admin created email=%s", admin.email)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order even if one hook fails.
    async with lifespan_db():
        async with lifespan_redis():
            await _bootstrap_admin()
            yield


app = FastAPI(
    title="coursetrack",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext -> Metrics -> CORS -> route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(teacher_router)
app.include_router(student_router)

logger.info(
    "coursetrack started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
