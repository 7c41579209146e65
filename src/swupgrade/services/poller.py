"""Bounded poller: retry a predicate until it holds or a timeout elapses."""

import asyncio
import inspect
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol, Union

DEFAULT_POLL_INTERVAL = 0.1

Predicate = Callable[[], Union[bool, Awaitable[bool]]]
Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class AbortSignal(Protocol):
    """Anything exposing is_set(), e.g. asyncio.Event or threading.Event."""

    def is_set(self) -> bool: ...


async def poll_until(
    predicate: Predicate,
    timeout: float,
    interval: float = DEFAULT_POLL_INTERVAL,
    *,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
    abort: Optional[AbortSignal] = None,
) -> bool:
    """Evaluate predicate every interval until it returns True or timeout elapses.

    The predicate is evaluated at least once, immediately. Exceptions raised by
    the predicate propagate to the caller.

    Args:
        predicate: Zero-argument callable returning bool (or awaitable bool)
        timeout: Seconds after which polling is abandoned
        interval: Seconds to sleep between evaluations
        clock: Monotonic clock in seconds
        sleep: Coroutine function used to wait between evaluations
        abort: Optional abort signal; polling stops early once it is set

    Returns:
        True on the first successful evaluation, False if the timeout elapsed
        or the abort signal was set
    """
    logger = logging.getLogger("swupgrade.poller")
    start = clock()
    evaluations = 0

    while True:
        result = predicate()
        if inspect.isawaitable(result):
            result = await result
        evaluations += 1

        if result:
            logger.debug(
                f"Predicate satisfied after {evaluations} evaluation(s), "
                f"{clock() - start:.1f}s"
            )
            return True

        if abort is not None and abort.is_set():
            logger.debug("Abort requested, polling stopped")
            return False

        await sleep(interval)

        if abort is not None and abort.is_set():
            logger.debug("Abort requested, polling stopped")
            return False

        if clock() - start > timeout:
            logger.debug(
                f"Predicate not satisfied within {timeout}s "
                f"({evaluations} evaluation(s))"
            )
            return False
