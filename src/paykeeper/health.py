"""
Keeper health: loop freshness, last check outcome and instruction channel.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field

from src.paykeeper.logging import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status, ordered from best to worst."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


_SEVERITY = {HealthStatus.HEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNHEALTHY: 2}


class ComponentHealth(BaseModel):
    name: str
    status: HealthStatus
    message: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ServiceHealth(BaseModel):
    service: str
    status: HealthStatus
    timestamp: datetime
    components: List[ComponentHealth]
    version: str = "1.0.0"


class HealthChecker:
    """
    Judges the keeper from the state it keeps between checks.

    The keeper is looked up through a callable because the API creates it
    inside its lifespan, after the checker exists. The loop is unhealthy
    when stopped or when no check ran for `stale_after_intervals` intervals,
    and degraded before the first check or after a failed one. The
    instruction channel is degraded while publishing is enabled but the
    producer has not connected.
    """

    def __init__(
        self,
        service_name: str,
        keeper_provider: Callable[[], Optional[Any]],
        stale_after_intervals: int = 3,
    ):
        self.service_name = service_name
        self.keeper_provider = keeper_provider
        self.stale_after_intervals = stale_after_intervals

    def loop_health(self, now: Optional[datetime] = None) -> ComponentHealth:
        keeper = self.keeper_provider()
        if keeper is None:
            return ComponentHealth(
                name="keeper_loop",
                status=HealthStatus.UNHEALTHY,
                message="Keeper service not initialized",
            )

        interval = keeper.config.keeper.check_interval_seconds
        last_check_at = keeper.last_check_at
        metadata = {
            "interval_seconds": interval,
            "last_check_at": last_check_at.isoformat() if last_check_at else None,
            "last_outcome": keeper.last_decision.outcome.value if keeper.last_decision else None,
        }

        if not keeper.running:
            status, message = HealthStatus.UNHEALTHY, "Keeper loop is not running"
        elif last_check_at is None:
            status, message = HealthStatus.DEGRADED, "No check has run yet"
        elif (now or datetime.utcnow()) - last_check_at > timedelta(
            seconds=interval * self.stale_after_intervals
        ):
            status = HealthStatus.UNHEALTHY
            message = f"No check for more than {self.stale_after_intervals} intervals"
        elif keeper.last_error:
            status, message = HealthStatus.DEGRADED, f"Last check failed: {keeper.last_error}"
        else:
            status, message = HealthStatus.HEALTHY, "Checks running"

        return ComponentHealth(name="keeper_loop", status=status, message=message, metadata=metadata)

    def instruction_channel_health(self) -> ComponentHealth:
        keeper = self.keeper_provider()
        if keeper is None or not keeper.config.keeper.publish_instructions:
            return ComponentHealth(
                name="instruction_channel",
                status=HealthStatus.HEALTHY,
                message="Publishing disabled",
            )

        if keeper.producer_ready:
            return ComponentHealth(
                name="instruction_channel", status=HealthStatus.HEALTHY, message="Producer connected"
            )
        return ComponentHealth(
            name="instruction_channel",
            status=HealthStatus.DEGRADED,
            message="Producer not connected, execute decisions are not published",
        )

    def check_health(self) -> ServiceHealth:
        components = [self.loop_health(), self.instruction_channel_health()]
        overall = max((c.status for c in components), key=_SEVERITY.__getitem__)

        if overall != HealthStatus.HEALTHY:
            logger.debug(f"Keeper health is {overall.value}")

        return ServiceHealth(
            service=self.service_name,
            status=overall,
            timestamp=datetime.utcnow(),
            components=components,
        )

    def is_ready(self) -> bool:
        """Ready once the keeper exists and its loop is running."""
        return self.loop_health().status != HealthStatus.UNHEALTHY


def create_health_endpoints(app: FastAPI, health_checker: HealthChecker):
    """Add health, readiness and metrics endpoints to FastAPI app."""

    @app.get("/healthz")
    async def keeper_health() -> ServiceHealth:
        return health_checker.check_health()

    @app.get("/ready")
    async def readiness_check(response: Response):
        if health_checker.is_ready():
            return {"status": "ready"}
        response.status_code = 503
        return {"status": "not ready"}

    @app.get("/metrics")
    async def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
