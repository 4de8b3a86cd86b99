"""
Health Check Endpoints.

Endpoints:
- /health: Liveness check (process running)
- /health/ready: Readiness check (database reachable)
- /health/detailed: Component status plus pool and semaphore metrics
"""

import asyncio
from typing import Any

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from eshop.backend.core.concurrency import get_semaphore_stats
from eshop.backend.core.config import get_app_config
from eshop.backend.core.logging import get_logger
from eshop.backend.core.resilience import get_breaker_states
from eshop.backend.core.utils import utc_now

router = APIRouter()
logger = get_logger(__name__)


async def check_database() -> dict[str, Any]:
    """
    Run SELECT 1 on a fresh session.

    Returns:
        Dict with status, latency, and optional error message
    """
    from eshop.backend.core.database import get_session_factory

    try:
        start = utc_now()
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
        latency_ms = int((utc_now() - start).total_seconds() * 1000)
        return {"status": "healthy", "latency_ms": latency_ms}

    except Exception as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        return {"status": "unhealthy", "error": str(e)}


async def _run_checks(timeout: float) -> dict[str, dict[str, Any]]:
    try:
        async with asyncio.timeout(timeout):
            database = await check_database()
    except TimeoutError:
        database = {"status": "unhealthy", "error": f"timed out after {timeout}s"}
    return {"database": database}


@router.get("/health")
async def health_check() -> dict[str, str]:
    """
    Liveness check.

    Returns 200 while the process is running. No dependency checks.
    """
    return {"status": "healthy"}


@router.get("/health/ready")
async def readiness_check() -> dict[str, Any]:
    """
    Readiness check.

    Returns 503 when the database does not answer within
    application.health_checks.ready_timeout_seconds.
    """
    timeout = get_app_config().application.health_checks.ready_timeout_seconds
    checks = await _run_checks(timeout)

    unhealthy = [name for name, check in checks.items() if check.get("status") == "unhealthy"]
    if unhealthy:
        logger.warning("Readiness check failed", extra={"unhealthy": unhealthy, "checks": checks})
        raise HTTPException(
            status_code=503,
            detail={
                "status": "unhealthy",
                "checks": checks,
                "timestamp": utc_now().isoformat(),
            },
        )

    return {
        "status": "healthy",
        "checks": checks,
        "timestamp": utc_now().isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health_check() -> dict[str, Any]:
    """Dependency checks, application identity, semaphores and circuit breakers."""
    app_config = get_app_config()
    app_settings = app_config.application
    checks = await _run_checks(app_settings.health_checks.ready_timeout_seconds)

    statuses = [check.get("status") for check in checks.values()]
    return {
        "status": "unhealthy" if "unhealthy" in statuses else "healthy",
        "application": {
            "name": app_settings.name,
            "env": app_settings.environment,
            "debug": app_settings.debug,
            "version": app_settings.version,
        },
        "checks": checks,
        "pools": {
            "thread_pool": {"max_workers": app_config.concurrency.thread_pool.max_workers},
            "semaphores": get_semaphore_stats(),
        },
        "circuit_breakers": get_breaker_states(),
        "timestamp": utc_now().isoformat(),
    }
