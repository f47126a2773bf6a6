from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging

from partstock.api import inventory, reservations, alerts, reports, transactions, archives, health
from partstock.core.config import settings
from partstock.core.logging import configure_logging
from partstock.core.middleware import RequestContextMiddleware, http_exception_handler, global_exception_handler
from partstock.db.database import create_tables
from partstock.scheduler import setup_scheduler, shutdown_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging()
    await create_tables()
    if settings.SCHEDULER_ENABLED:
        setup_scheduler()
    logger.info(f"{settings.APP_NAME} started ({settings.APP_ENV})")
    yield
    # Shutdown
    shutdown_scheduler()


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Parts inventory, job-order reservations, low-stock alerts and reports",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# Include routers
app.include_router(inventory.router, prefix="/api/inventory", tags=["Inventory"])
app.include_router(reservations.router, prefix="/api/reservations", tags=["Reservations"])
app.include_router(alerts.router, prefix="/api/alerts", tags=["Alerts"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
app.include_router(transactions.router, prefix="/api/transactions", tags=["Transactions"])
app.include_router(archives.router, prefix="/api/archives", tags=["Archives"])
app.include_router(health.router, prefix="", tags=["Health"])
