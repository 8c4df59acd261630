"""
FastAPI application for the keeper service.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException

from src.paykeeper.config import settings
from src.paykeeper.health import HealthChecker, create_health_endpoints
from src.paykeeper.logging import get_logger
from src.paykeeper.shared.funding_errors import ContractReadError, PolicyError
from .service import KeeperService

logger = get_logger(__name__)

# Global service instance
keeper_service: Optional[KeeperService] = None

health_checker = HealthChecker(
    settings.service_name,
    lambda: keeper_service,
    settings.monitoring.stale_after_intervals,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage service lifecycle."""
    global keeper_service

    # Startup
    keeper_service = KeeperService(settings)
    await keeper_service.start()

    yield

    # Shutdown
    await keeper_service.stop()
    await keeper_service.close()


# Create FastAPI app
app = FastAPI(
    title="PayKeeper",
    description="Payroll contract balance monitor and top-up trigger",
    version="1.0.0",
    lifespan=lifespan
)

create_health_endpoints(app, health_checker)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.service_name,
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/status")
async def get_status():
    """Get current service status."""
    if not keeper_service:
        raise HTTPException(status_code=503, detail="Service not initialized")

    return keeper_service.get_status()


@app.get("/decision/latest")
async def get_latest_decision():
    """Get the decision of the most recent successful check."""
    if not keeper_service:
        raise HTTPException(status_code=503, detail="Service not initialized")

    if not keeper_service.last_decision:
        raise HTTPException(status_code=404, detail="No decision yet")

    return keeper_service.last_decision.model_dump(mode="json")


@app.post("/check")
async def trigger_check():
    """Run a funding check now."""
    if not keeper_service:
        raise HTTPException(status_code=503, detail="Service not initialized")

    try:
        decision = await keeper_service.run_check()
    except PolicyError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ContractReadError as e:
        logger.error(f"Manual check failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    response = decision.model_dump(mode="json")
    response["outcome"] = decision.outcome.value
    return response
