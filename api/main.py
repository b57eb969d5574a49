"""
FleetDesk — Fare & Earnings API
Trip pricing, driver incentives, monthly bonus/deduction and settlement
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from db.database import engine
from routers import pricing, earnings_config, drivers, admin
from services.errors import FleetError, ConfigurationError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("FleetDesk API starting (timezone=%s)", settings.local_timezone)
    yield
    await engine.dispose()
    logger.info("FleetDesk API shut down.")


app = FastAPI(
    title="FleetDesk Fare & Earnings API",
    description="Trip pricing and driver earnings for the fleet back office",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Errors ─────────────────────────────────────────────────

@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


@app.exception_handler(FleetError)
async def fleet_error_handler(request: Request, exc: FleetError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})


# ── Routers ────────────────────────────────────────────────
app.include_router(pricing.router, prefix="/api/pricing", tags=["Pricing"])
app.include_router(earnings_config.router, prefix="/api/earnings-config", tags=["Earnings Config"])
app.include_router(drivers.router, prefix="/api/drivers", tags=["Driver Earnings"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin Jobs"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "FleetDesk API v1"}
