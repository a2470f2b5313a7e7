import asyncio, logging
from typing import Awaitable, TypeVar

T = TypeVar("T")

DEFAULT_TIME_LIMIT_MS = 60000

log = logging.getLogger("deadline")


class CallTimeoutError(TimeoutError):
    def __init__(self, time_limit: int):
        super().__init__(f"async call timeout limit {time_limit} reached")
        self.time_limit = time_limit


def _discard(task: asyncio.Future):
    # late results are dropped, exceptions are only logged
    if not task.cancelled() and task.exception() is not None:
        log.debug(f"Call finished after its deadline with error: {task.exception()}")


async def call_with_timeout(aw: Awaitable[T], time_limit: int = DEFAULT_TIME_LIMIT_MS) -> T:
    """
    Wait for `aw` at most `time_limit` milliseconds.

    The wrapped call is not cancelled when the deadline passes, it keeps running
    in the background and whatever it produces is discarded. Meant for provider
    calls whose transport can hang forever instead of failing.
    """
    task = asyncio.ensure_future(aw)
    done, _ = await asyncio.wait({task}, timeout=time_limit / 1000)
    if task in done:
        return task.result()
    task.add_done_callback(_discard)
    raise CallTimeoutError(time_limit)
