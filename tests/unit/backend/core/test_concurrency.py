"""Unit tests for eshop.backend.core.concurrency."""

import contextvars
from unittest.mock import MagicMock, patch

import pytest
import structlog

import eshop.backend.core.concurrency as concurrency_module
from eshop.backend.core.concurrency import (
    DEFAULT_SEMAPHORE_CAPACITY,
    TracedThreadPoolExecutor,
    get_io_pool,
    get_semaphore,
    get_semaphore_stats,
    shutdown_pools,
)


@pytest.fixture(autouse=True)
def _reset_pools():
    """Reset global pool state before and after each test."""
    concurrency_module._io_pool = None
    concurrency_module._semaphores.clear()
    concurrency_module._semaphore_capacities.clear()
    yield
    if concurrency_module._io_pool is not None:
        concurrency_module._io_pool.shutdown(wait=False)
        concurrency_module._io_pool = None
    concurrency_module._semaphores.clear()
    concurrency_module._semaphore_capacities.clear()


def _mock_concurrency_config(thread_max=4, telegram=2, flexibee=3):
    mock_config = MagicMock()
    mock_config.concurrency.thread_pool.max_workers = thread_max
    mock_config.concurrency.semaphores.telegram = telegram
    mock_config.concurrency.semaphores.flexibee = flexibee
    return mock_config


class TestTracedThreadPoolExecutor:
    def test_propagates_contextvars(self):
        test_var = contextvars.ContextVar("test_var", default="default")
        test_var.set("from_caller")

        executor = TracedThreadPoolExecutor(max_workers=1)
        try:
            assert executor.submit(test_var.get).result(timeout=5) == "from_caller"
        finally:
            executor.shutdown(wait=True)

    def test_propagates_structlog_context(self):
        """The request id bound in the handler is visible to the SMTP worker."""
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id="req-smtp")

        executor = TracedThreadPoolExecutor(max_workers=1)
        try:
            result = executor.submit(structlog.contextvars.get_contextvars).result(timeout=5)
            assert result.get("request_id") == "req-smtp"
        finally:
            executor.shutdown(wait=True)
            structlog.contextvars.clear_contextvars()


class TestGetIoPool:
    @patch("eshop.backend.core.config.get_app_config")
    def test_creates_pool_lazily(self, mock_get_config):
        mock_get_config.return_value = _mock_concurrency_config(thread_max=4)

        pool = get_io_pool()
        assert pool is get_io_pool()
        assert isinstance(pool, TracedThreadPoolExecutor)
        assert pool._max_workers == 4

    def test_sized_from_yaml(self):
        assert get_io_pool()._max_workers == 8


class TestGetSemaphore:
    def test_capacity_per_channel_from_yaml(self):
        assert get_semaphore("telegram")._value == 2
        assert get_semaphore("database")._value == 10

    @patch("eshop.backend.core.config.get_app_config")
    def test_returns_same_instance(self, mock_get_config):
        mock_get_config.return_value = _mock_concurrency_config()
        assert get_semaphore("flexibee") is get_semaphore("flexibee")

    @patch("eshop.backend.core.config.get_app_config")
    def test_unknown_name_uses_default(self, mock_get_config):
        mock_config = _mock_concurrency_config()
        del mock_config.concurrency.semaphores.reporting
        mock_get_config.return_value = mock_config

        assert get_semaphore("reporting")._value == DEFAULT_SEMAPHORE_CAPACITY

    async def test_stats_report_free_slots(self):
        semaphore = get_semaphore("flexibee")
        async with semaphore:
            assert get_semaphore_stats()["flexibee"] == {"capacity": 2, "available": 1}
        assert get_semaphore_stats()["flexibee"]["available"] == 2


class TestShutdownPools:
    async def test_cleans_up(self):
        get_io_pool()
        get_semaphore("smtp")

        await shutdown_pools()

        assert concurrency_module._io_pool is None
        assert concurrency_module._semaphores == {}
        assert concurrency_module._semaphore_capacities == {}

    async def test_noop_without_pool(self):
        await shutdown_pools()
        assert concurrency_module._io_pool is None
