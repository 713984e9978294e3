# backend/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Response
from sqlalchemy.exc import SQLAlchemyError

from .core.booking_lock import get_lock_store
from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION
from .core.request_context import attach_request_id_filter
from .database import engine
from .database.constraints import ensure_booking_overlap_constraint
from .errors import register_error_handlers
from .middleware.performance import PerformanceMiddleware
from .middleware.prometheus_middleware import PrometheusMiddleware
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import (
    admin as admin_v1,
    bookings as bookings_v1,
    occupancy as occupancy_v1,
    organizations as organizations_v1,
    slot_blocks as slot_blocks_v1,
    trust as trust_v1,
)
from .schemas.main_responses import HealthResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s",
)
attach_request_id_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{API_TITLE} starting up...")
    logger.info(
        f"Environment: {settings.environment} (SITE_MODE={settings.site_mode or 'unset'})"
    )
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")
    else:
        try:
            with engine.begin() as connection:
                ensure_booking_overlap_constraint(connection)
        except SQLAlchemyError as e:
            logger.warning(f"Booking overlap constraint not verified: {e}")

    # Resolve the booking lock store once so a redis outage is logged at boot
    store = get_lock_store()
    logger.info(f"Booking lock backend: {store.backend}")

    yield

    logger.info(f"{API_TITLE} shutting down...")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)

# Add middleware in reverse order of execution
app.add_middleware(PrometheusMiddleware)
app.add_middleware(PerformanceMiddleware)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(trust_v1.router, prefix="/trust")
api_v1.include_router(slot_blocks_v1.router, prefix="/slot-blocks")
api_v1.include_router(occupancy_v1.router, prefix="/occupancy")
api_v1.include_router(organizations_v1.router, prefix="/organizations")
api_v1.include_router(admin_v1.router, prefix="/admin")

app.include_router(api_v1)


def _health_payload() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        service="courtbook-api",
        version=API_VERSION,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        lock_backend=get_lock_store().backend,
    )


@app.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Liveness probe; does not touch the database."""
    return _health_payload()


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
