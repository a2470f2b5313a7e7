import asyncio, logging, sys
import threading
from contextlib import asynccontextmanager
from typing import Callable, Dict, Optional

CHECK_INTERVAL = 10 * 60
CHECK_TIMEOUT = 10 * 60

log = logging.getLogger("deadlock")


def die(message: str):
    log.critical(message)
    sys.exit(message)


class KeyedMutex:
    """Process-wide registry of named asyncio locks."""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            with cls._lock:
                if not cls._instance:
                    cls._instance = super(KeyedMutex, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not hasattr(self, "locks"):
            self.locks: Dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> asyncio.Lock:
        lock = self.locks.get(key)
        if lock is None:
            lock = self.locks[key] = asyncio.Lock()
        return lock

    async def lock(self, key: str) -> Callable[[], None]:
        """Acquire `key` and return the function that releases it."""
        lock = self.get(key)
        await lock.acquire()
        return lock.release

    @asynccontextmanager
    async def hold(self, key: str):
        unlock = await self.lock(key)
        try:
            yield
        finally:
            unlock()

    def is_locked(self, key: str) -> bool:
        return key in self.locks and self.locks[key].locked()


class DeadlockCanary:
    def __init__(
        self,
        mutex: Optional[KeyedMutex] = None,
        interval: float = CHECK_INTERVAL,
        timeout: float = CHECK_TIMEOUT,
        on_deadlock: Callable[[str], None] = die,
    ):
        self.mutex = mutex or KeyedMutex()
        self.interval = interval
        self.timeout = timeout
        self.on_deadlock = on_deadlock
        self.watched: Dict[str, asyncio.Task] = {}
        self.log = logging.getLogger("DeadlockCanary")

    def watch(self, key: str) -> bool:
        if key in self.watched:
            self.log.info(f"already watching for deadlock on {key}")
            return False
        self.watched[key] = asyncio.create_task(self._watch_loop(key))
        self.log.info(f"Watching for deadlock on {key} every {self.interval}s")
        return True

    async def _watch_loop(self, key: str):
        checks = set()
        try:
            while True:
                await asyncio.sleep(self.interval)
                # a stuck check must not delay the next one
                check = asyncio.create_task(self.check_once(key))
                checks.add(check)
                check.add_done_callback(checks.discard)
        finally:
            for check in checks:
                check.cancel()

    async def check_once(self, key: str):
        loop = asyncio.get_running_loop()
        escape = loop.call_later(self.timeout, self.on_deadlock, f"possible deadlock on {key}")
        try:
            unlock = await self.mutex.lock(key)
            unlock()
        finally:
            escape.cancel()
        self.log.debug(f"No deadlock on {key}")

    async def stop(self):
        tasks = list(self.watched.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


_default_canary: Optional[DeadlockCanary] = None


def default_canary() -> DeadlockCanary:
    """The canary shared by every caller watching keys of the default KeyedMutex."""
    global _default_canary
    if _default_canary is None:
        _default_canary = DeadlockCanary()
    return _default_canary


def watch_for_deadlock(key: str) -> bool:
    return default_canary().watch(key)
