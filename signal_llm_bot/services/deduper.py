"""Time-windowed deduplication of inbound event hashes."""

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)

# Window within which a repeated event hash is treated as a duplicate
DEDUP_TTL_SECONDS = 30.0


class Deduper:
    """Thread-safe set of event hashes that forgets entries after ``ttl`` seconds.

    A daemon thread sweeps expired entries every ``ttl`` seconds until
    ``stop()`` is called. Duplicates inside the window do not extend it.
    """

    def __init__(
        self,
        ttl: float = DEDUP_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._seen: dict[str, float] = {}
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._sweeper: threading.Thread | None = None

        if start_sweeper:
            self._sweeper = threading.Thread(target=self._sweep_loop, name="deduper-sweep", daemon=True)
            self._sweeper.start()

    def seen(self, event_hash: str) -> bool:
        """Return True if the hash was first seen less than ``ttl`` ago.

        Otherwise record it as seen now and return False.
        """
        with self._lock:
            now = self._clock()
            first_seen = self._seen.get(event_hash)
            if first_seen is not None and now - first_seen <= self.ttl:
                return True
            self._seen[event_hash] = now
            return False

    def sweep(self) -> int:
        """Remove entries older than ``ttl``. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, ts in self._seen.items() if now - ts > self.ttl]
            for key in expired:
                del self._seen[key]
        if expired:
            logger.debug("Swept %d expired dedup entries", len(expired))
        return len(expired)

    def stop(self) -> None:
        """Stop the background sweep. Safe to call more than once."""
        self._stopped.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join()

    def _sweep_loop(self) -> None:
        while not self._stopped.wait(self.ttl):
            self.sweep()

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
