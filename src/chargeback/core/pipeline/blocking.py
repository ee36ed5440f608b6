"""
Blocking Client Calls

Runs synchronous client calls (query and blob SDKs) off the event loop.
Each call gets its own daemon thread, so a call abandoned after a timeout
never holds up loop shutdown or interpreter exit.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)


async def run_blocking(func: Callable[[], Any], timeout: Optional[float] = None,
                       name: str = "chargeback-call") -> Any:
    """
    Await ``func()`` executed on a daemon thread.

    Args:
        func: Zero-argument callable performing the blocking work
        timeout: Seconds to wait before giving up, None waits indefinitely
        name: Thread name

    Returns:
        Whatever ``func`` returns

    Raises:
        asyncio.TimeoutError: If ``timeout`` elapses first; the thread keeps
            running and its result is discarded
        Exception: Whatever ``func`` raises
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def _resolve(result: Any, error: Optional[BaseException]) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    def _deliver(result: Any, error: Optional[BaseException]) -> None:
        try:
            loop.call_soon_threadsafe(_resolve, result, error)
        except RuntimeError:
            logger.debug(f"{name} finished after its event loop closed; result discarded")

    def _target() -> None:
        try:
            result = func()
        except Exception as e:
            _deliver(None, e)
        else:
            _deliver(result, None)

    threading.Thread(target=_target, name=name, daemon=True).start()
    return await asyncio.wait_for(future, timeout=timeout)
