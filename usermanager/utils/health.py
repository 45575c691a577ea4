"""
Health Check Utilities for User Management API
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from sqlalchemy import text

from usermanager.models import database

logger = structlog.get_logger(__name__)


class HealthChecker:
    """Runs dependency checks and summarizes them."""

    def __init__(self):
        self.checks = [
            self._check_database,
        ]

    async def _check_database(self) -> Dict[str, Any]:
        """Check database connectivity and response time."""
        if database.engine is None:
            return {
                "name": "database",
                "status": "unhealthy",
                "error": "Database not initialized",
            }

        start_time = time.time()

        try:
            async with database.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            response_time = (time.time() - start_time) * 1000

            return {
                "name": "database",
                "status": "healthy",
                "response_time_ms": round(response_time, 2),
            }

        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "name": "database",
                "status": "unhealthy",
                "error": "Database unreachable",
            }

    async def run(self) -> Dict[str, Any]:
        results = [await check() for check in self.checks]
        return {
            "healthy": all(result["status"] == "healthy" for result in results),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {result["name"]: result for result in results},
        }


health_checker = HealthChecker()


async def health_check() -> Dict[str, Any]:
    """Run every registered health check."""
    return await health_checker.run()
