"""
Main entry point for the keeper service.
"""

import uvicorn

from src.paykeeper.config import settings
from src.paykeeper.logging import get_logger

logger = get_logger(__name__)


def main():
    """Run the keeper API server."""
    logger.info("Starting keeper service...")

    uvicorn.run(
        "src.paykeeper.funding_engine.api:app",
        host="0.0.0.0",
        port=settings.keeper.service_port,
        log_level=settings.monitoring.log_level.lower()
    )


if __name__ == "__main__":
    main()
