"""
First-success race between protocol probes.

A probe that fails does not end the race: failing on one protocol says
nothing about the other. Only a success or the shared deadline does.
"""

import asyncio
import logging
from typing import Awaitable, Iterable, Optional, TypeVar

from ..core.exceptions import ProbeTimeout
from ..core.logging_config import TRACE

logger = logging.getLogger(__name__)

T = TypeVar('T')


async def race_probes(probes: Iterable[Awaitable[T]], timeout: float,
                      address=None, log: Optional[logging.Logger] = None) -> T:
    """
    Run probes concurrently and return the first successful result.

    Args:
        probes: Probe coroutines, all started at once
        timeout: Shared deadline in seconds, counted from the start of the race
        address: Address being probed, used in log messages and errors
        log: Logger to report suppressed probe failures on

    Returns:
        Result of the first probe to finish without raising

    Raises:
        ProbeTimeout: no probe succeeded before the deadline
    """
    log = log or logger
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    tasks = [asyncio.ensure_future(probe) for probe in probes]

    try:
        pending = set(tasks)
        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            # Keep creation order so ties resolve deterministically
            for task in (t for t in tasks if t in done):
                error = task.exception()
                if error is None:
                    return task.result()
                log.log(TRACE, f"Probe for {address} failed: {error!r}")

        # Every probe failed early; the race still only ends at the deadline
        remaining = deadline - loop.time()
        if remaining > 0:
            await asyncio.sleep(remaining)
        raise ProbeTimeout(f"Timeout trying to get gateway response from {address}", address)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
