"""
Health Check Routes
Liveness and database reachability
Source: https://microservices.io/patterns/observability/health-check-api.html
"""

from typing import Any

from fastapi import APIRouter

from healthcover.db.change_feed import get_change_feed
from healthcover.db.connection import check_db_connection
from healthcover.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """
    Health check with dependency status.

    Reports "degraded" rather than failing when the database is unreachable,
    so load balancers can tell a live process from a healthy one.
    """
    db_healthy = await check_db_connection()
    if not db_healthy:
        logger.warning("Health check: database unreachable")

    feed = get_change_feed()
    return {
        "status": "healthy" if db_healthy else "degraded",
        "service": "healthcover-api",
        "checks": {
            "database": "healthy" if db_healthy else "unhealthy",
        },
        "live_subscriptions": feed.subscriber_count,
    }
