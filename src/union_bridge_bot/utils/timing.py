import asyncio
from typing import Awaitable, TypeVar

from ..exceptions import ShutdownRequested

T = TypeVar("T")


async def interruptible_sleep(seconds: float, shutdown_event: asyncio.Event | None = None) -> None:
    """
    Sleep for ``seconds`` unless shutdown is requested first.

    Args:
        seconds: Time to wait
        shutdown_event: Event that aborts the wait when set

    Raises:
        ShutdownRequested: If the event is set before or during the wait
    """
    if shutdown_event is None:
        await asyncio.sleep(seconds)
        return

    if shutdown_event.is_set():
        raise ShutdownRequested("Shutdown requested")

    try:
        await asyncio.wait_for(shutdown_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return  # Slept the full interval
    raise ShutdownRequested("Shutdown requested")


async def interruptible(awaitable: Awaitable[T], shutdown_event: asyncio.Event | None = None) -> T:
    """
    Await ``awaitable`` unless shutdown is requested first.

    The awaitable races the shutdown event; whichever loses is cancelled.
    A result that is ready together with the event still wins.

    Args:
        awaitable: Network call or other long wait
        shutdown_event: Event that aborts the wait when set

    Returns:
        The result of ``awaitable``

    Raises:
        ShutdownRequested: If the event is set before the awaitable completes
    """
    if shutdown_event is None:
        return await awaitable

    if shutdown_event.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise ShutdownRequested("Shutdown requested")

    work = asyncio.ensure_future(awaitable)
    stopper = asyncio.ensure_future(shutdown_event.wait())
    try:
        done, _ = await asyncio.wait({work, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (work, stopper):
            if not task.done():
                task.cancel()

    if work in done:
        return work.result()
    raise ShutdownRequested("Shutdown requested")
