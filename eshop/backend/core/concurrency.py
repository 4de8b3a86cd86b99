"""
Concurrency Infrastructure.

Shared thread pool for blocking I/O (SMTP) and named semaphores that cap
concurrent calls per outbound dependency. Both are created lazily and
released during shutdown.

Usage:
    from eshop.backend.core.concurrency import get_io_pool, get_semaphore

    loop = asyncio.get_running_loop()
    await loop.run_in_executor(get_io_pool(), send_blocking, message)

    async with get_semaphore("telegram"):
        await bot.send_message(...)
"""

import asyncio
import contextvars
from concurrent.futures import ThreadPoolExecutor

from eshop.backend.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SEMAPHORE_CAPACITY = 20

_io_pool: ThreadPoolExecutor | None = None
_semaphores: dict[str, asyncio.Semaphore] = {}
_semaphore_capacities: dict[str, int] = {}


class TracedThreadPoolExecutor(ThreadPoolExecutor):
    """ThreadPoolExecutor that carries contextvars (structlog context) into workers."""

    def submit(self, fn, /, *args, **kwargs):
        ctx = contextvars.copy_context()
        return super().submit(ctx.run, fn, *args, **kwargs)


def get_io_pool() -> TracedThreadPoolExecutor:
    """Shared thread pool for blocking I/O, sized from concurrency.yaml."""
    global _io_pool
    if _io_pool is None:
        from eshop.backend.core.config import get_app_config

        max_workers = get_app_config().concurrency.thread_pool.max_workers
        _io_pool = TracedThreadPoolExecutor(max_workers=max_workers)
        logger.info("Thread pool created", extra={"max_workers": max_workers})
    return _io_pool


def get_semaphore(name: str) -> asyncio.Semaphore:
    """Named semaphore. Capacity comes from `semaphores.<name>` in concurrency.yaml."""
    if name not in _semaphores:
        from eshop.backend.core.config import get_app_config

        semaphore_config = get_app_config().concurrency.semaphores
        capacity = getattr(semaphore_config, name, DEFAULT_SEMAPHORE_CAPACITY)
        _semaphores[name] = asyncio.Semaphore(capacity)
        _semaphore_capacities[name] = capacity
        logger.debug("Semaphore created", extra={"name": name, "capacity": capacity})
    return _semaphores[name]


def get_semaphore_stats() -> dict[str, dict[str, int]]:
    """Capacity and free slots per created semaphore (used by /health/detailed)."""
    return {
        name: {
            "capacity": _semaphore_capacities[name],
            "available": semaphore._value,
        }
        for name, semaphore in _semaphores.items()
    }


async def shutdown_pools() -> None:
    """Shut the thread pool down off the event loop and drop semaphores."""
    global _io_pool

    if _io_pool is not None:
        await asyncio.to_thread(_io_pool.shutdown, wait=True)
        logger.info("Thread pool shut down")
        _io_pool = None

    _semaphores.clear()
    _semaphore_capacities.clear()
    logger.debug("Semaphores cleared")
