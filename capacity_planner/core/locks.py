import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from .settings import config_settings

logger = logging.getLogger(__name__)


class LockTimeoutError(RuntimeError):
    """Raised when another writer holds an engineer's lock for too long."""


class EngineerLockRegistry:
    """
    Hands out one mutex per engineer so that the read-evaluate-persist
    sequence of a capacity-affecting write never interleaves with another
    write for the same engineer inside this process.

    Cross-process serialisation is done by the repository (row lock on the
    engineer inside the same transaction).
    """

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, engineer_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(engineer_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[engineer_id] = lock
            return lock

    @contextmanager
    def hold(self, engineer_id: str) -> Iterator[None]:
        lock = self._lock_for(engineer_id)
        if not lock.acquire(timeout=self.timeout_seconds):
            logger.warning(
                "Timed out after %.1fs waiting for capacity lock on engineer %s",
                self.timeout_seconds,
                engineer_id,
            )
            raise LockTimeoutError(
                f"Another update for engineer {engineer_id} is in progress."
            )
        try:
            yield
        finally:
            lock.release()


# Shared by every request handled by this process
engineer_locks = EngineerLockRegistry(timeout_seconds=config_settings.LOCK_TIMEOUT_SECONDS)
