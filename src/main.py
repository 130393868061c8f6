"""
Partner Commissions - commission engine of the partner sales CRM

Main FastAPI application with:
- Director API: rules, recompute, validation, payments
- Seller panel API: own payouts
- Scheduled recompute of the current month
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.api import admin_router, api_router, panel_router
from src.config import settings
from src.scheduler.jobs import scheduler, setup_scheduler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Configures and starts the scheduler

    Shutdown:
    - Stops the scheduler
    """
    logger.info("Starting Partner Commissions...")

    setup_scheduler()
    scheduler.start()

    logger.info("Partner Commissions started successfully!")

    yield

    logger.info("Shutting down Partner Commissions...")
    scheduler.shutdown(wait=False)


app = FastAPI(
    title="Partner Commissions",
    description="Commission calculation and payout workflow",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.include_router(api_router)  # /api/* endpoints
app.include_router(admin_router)  # /admin/* director endpoints
app.include_router(panel_router)  # /panel/* seller endpoints


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
