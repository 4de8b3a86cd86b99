"""
Unit Tests for Health Check Endpoints.
"""

import asyncio
from unittest.mock import patch

import pytest
from fastapi import HTTPException

from eshop.backend.api.health import (
    check_database,
    detailed_health_check,
    health_check,
    readiness_check,
)
from eshop.backend.core import database


@pytest.mark.asyncio
async def test_liveness():
    assert await health_check() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_database_check_reports_latency(db_session_factory, monkeypatch):
    monkeypatch.setattr(database, "_async_session_factory", db_session_factory)

    result = await check_database()

    assert result["status"] == "healthy"
    assert result["latency_ms"] >= 0


@pytest.mark.asyncio
async def test_database_check_catches_errors():
    with patch("eshop.backend.core.database.get_session_factory", side_effect=RuntimeError("no pool")):
        result = await check_database()

    assert result == {"status": "unhealthy", "error": "no pool"}


@pytest.mark.asyncio
async def test_readiness_fails_with_503():
    unhealthy = {"status": "unhealthy", "error": "connection refused"}
    with patch("eshop.backend.api.health.check_database", return_value=unhealthy):
        with pytest.raises(HTTPException) as exc_info:
            await readiness_check()

    assert exc_info.value.status_code == 503
    assert exc_info.value.detail["checks"]["database"] == unhealthy


@pytest.mark.asyncio
async def test_readiness_times_out(override_config):
    health = override_config("application").health_checks.model_copy(update={"ready_timeout_seconds": 0.01})
    override_config("application", health_checks=health)

    async def slow():
        await asyncio.sleep(1)

    with patch("eshop.backend.api.health.check_database", side_effect=slow):
        with pytest.raises(HTTPException) as exc_info:
            await readiness_check()

    assert "timed out" in exc_info.value.detail["checks"]["database"]["error"]


@pytest.mark.asyncio
async def test_detailed_is_unhealthy_when_database_down():
    with patch("eshop.backend.api.health.check_database", return_value={"status": "unhealthy", "error": "x"}):
        result = await detailed_health_check()

    assert result["status"] == "unhealthy"
    assert result["application"]["env"] == "development"
