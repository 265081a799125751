"""
Periodic refresh loops.

Every scraper and the VirtualService collector runs as one of these loops:
the step fires immediately, then once per interval, until the shared stop
event is set. The interval is the only retry mechanism.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog

logger = structlog.get_logger()


async def run_periodically(
    name: str,
    interval: float,
    step: Callable[[], Awaitable[Any]],
    stop: asyncio.Event,
) -> None:
    """
    Run step immediately and then every interval seconds until stop is set.

    A failing step is logged and the loop continues with the next tick. Ticks
    missed while a step overran are dropped, not queued. Returns within one
    tick of stop being set; task cancellation propagates.
    """
    log = logger.bind(loop=name)
    log.info("loop_started", interval=interval)

    loop = asyncio.get_running_loop()
    next_run = loop.time()
    while not stop.is_set():
        try:
            await step()
        except Exception as e:
            log.error("loop_step_failed", error=str(e), error_type=type(e).__name__)

        next_run += interval
        delay = next_run - loop.time()
        if delay <= 0:
            next_run = loop.time()
            delay = 0

        try:
            await asyncio.wait_for(stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            continue

    log.info("loop_stopped")
