# adboard/core/health.py
"""
Health check module for the adboard backend.
Database connectivity, token encryption and provider configuration status.
"""

import time
from typing import Dict, Any

from .crypto import get_encryption_info
from .database import db_manager

__all__ = [
    'check_database',
    'check_encryption',
    'get_health_status',
]


# =============================================================================
# Section 1: Component Checks
# =============================================================================

async def check_database() -> Dict[str, Any]:
    """Check database connectivity and response time."""
    start_time = time.time()
    status = await db_manager.health_check()
    status["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
    return status


def check_encryption() -> Dict[str, Any]:
    info = get_encryption_info()
    return {
        "status": "healthy" if info["initialized"] else "unhealthy",
        **info,
    }


# =============================================================================
# Section 2: System Health Aggregation
# =============================================================================

async def get_health_status() -> Dict[str, Any]:
    """Get complete system health status."""
    # integrations import core; keep this import local
    from adboard.integrations.oauth.providers import check_provider_configuration

    start_time = time.time()

    db_status = await check_database()
    encryption_status = check_encryption()

    healthy = db_status["status"] == "healthy" and encryption_status["status"] == "healthy"
    total_time = round((time.time() - start_time) * 1000, 2)

    return {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": time.time(),
        "total_check_time_ms": total_time,
        "services": {
            "database": db_status,
            "encryption": encryption_status,
        },
        "providers_configured": check_provider_configuration(),
    }
